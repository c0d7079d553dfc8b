"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks that the feature packages use
(GitHub client wiring, environment settings). Keep wordbook parsing, merging
and validation in `wordbook/`.
"""

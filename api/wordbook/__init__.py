"""
Wordbook feature: turn uploaded word lists into dictionary entries and merge
them into the collection stored on GitHub.
"""

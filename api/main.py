from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import github, settings
from wordbook import merge
from wordbook import router as wordbook_router

@asynccontextmanager
async def lifespan(_: FastAPI):
    merge.configure_collation(settings.collation_locale())
    # One GitHub client per process.
    await github.init_client()
    try:
        yield
    finally:
        await github.close_client()


app = FastAPI(lifespan=lifespan)

# Allow the frontend dev server to call this API from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(wordbook_router.router, tags=["wordbook"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "wordbook upload api"}

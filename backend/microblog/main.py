# microblog/main.py
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from microblog.config import settings
from microblog.core.db import init_db, close_db
from microblog.core.errors import BlogError, RateLimitError, ValidationError
from microblog.api.deps import get_store
from microblog.api.routers import auth, posts

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BlogError)
async def blog_error_handler(request: Request, exc: BlogError):
    if exc.status_code >= 500:
        # Details stay in the server log; the client only sees a generic body
        logger.error("[%s %s] %s", request.method, request.url.path, exc.message, exc_info=exc)
    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    err = ValidationError("invalid request body")
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.on_event("startup")
async def on_startup():
    store = get_store()  # Fails fast on an unknown STORE_BACKEND
    if settings.store_backend == "db":
        await init_db(generate_schemas=settings.db_generate_schemas)
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    logger.info(
        "[startup] store=%s cooldown=%ss char_limit=%s exempt=%s",
        type(store).__name__, settings.cooldown_seconds, settings.char_limit, settings.exempt_usernames,
    )


@app.on_event("shutdown")
async def on_shutdown():
    if settings.store_backend == "db":
        await close_db()


app.include_router(auth.router)
app.include_router(posts.router)

# Uploaded post images
app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.get("/healthz")
def healthz():
    return {"ok": True}


def run() -> None:
    import uvicorn

    uvicorn.run("microblog.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()

# microblog/api/routers/posts.py
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from microblog.api.deps import (
    get_admission_policy,
    get_image_uploads,
    get_optional_username,
    get_session_resolver,
    get_store,
)
from microblog.core.errors import AuthenticationError, BlogError, StoreUnavailable
from microblog.core.timeutil import utc_now
from microblog.schemas.post import PostCreatedOut, PostOut
from microblog.services import AdmissionPolicy, ImageUploads, SessionResolver
from microblog.stores import PostStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


async def _read_post_body(request: Request) -> tuple[object, UploadFile | None]:
    """
    Accept either JSON {"content": ...} or a multipart form with a
    "content" field and an optional "image" file.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data") or content_type.startswith(
        "application/x-www-form-urlencoded"
    ):
        form = await request.form()
        image = form.get("image")
        return form.get("content"), image if isinstance(image, UploadFile) else None
    try:
        body = await request.json()
    except ValueError:
        return None, None
    return (body.get("content") if isinstance(body, dict) else None), None


@router.get("", response_model=list[PostOut])
async def list_posts(store: PostStore = Depends(get_store)):
    """
    All posts, newest first.

    On store failure responds 500 with an empty array.
    """
    try:
        posts = await store.list_newest_first()
    except StoreUnavailable:
        logger.exception("[posts] listing failed")
        return JSONResponse(status_code=500, content=[])
    return [p.to_dict() for p in posts]


@router.post("", response_model=PostCreatedOut)
async def create_post(
    request: Request,
    author: str | None = Depends(get_optional_username),
    policy: AdmissionPolicy = Depends(get_admission_policy),
    uploads: ImageUploads = Depends(get_image_uploads),
    sessions: SessionResolver = Depends(get_session_resolver),
):
    """
    Create a post for the logged-in user.

    Errors:
        401 AUTH_REQUIRED: not logged in (a stale or forged session cookie is cleared)
        400 EMPTY_CONTENT / CONTENT_TOO_LONG / INVALID_IMAGE / IMAGE_TOO_LARGE
        429 COOLDOWN_ACTIVE: with retryAfter seconds (and a Retry-After header)
        500: store failure
    """
    content, upload = await _read_post_body(request)

    image = None
    if upload is not None and author:
        policy.clean_content(content)  # reject bad text before writing the file
        image = await uploads.save(upload)
    try:
        post = await policy.admit(author, content, utc_now(), image=image)
    except AuthenticationError as e:
        uploads.discard(image)
        # Set-Cookie must ride on the error response itself
        resp = JSONResponse(status_code=e.status_code, content=e.to_dict())
        if sessions.cookie_name in request.cookies:
            sessions.revoke(resp)
        return resp
    except BlogError:
        uploads.discard(image)
        raise
    return {"post": post.to_dict()}

"""
Image uploads attached to posts.

Files are saved under UPLOAD_DIR with a random name and served back from
/uploads/<name>. Only image/* content types up to a size limit are accepted.
"""
import asyncio
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional

from starlette.datastructures import UploadFile

from microblog.core.errors import StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads/"
ALLOWED_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


def _suffix_for(upload: UploadFile) -> str:
    suffix = Path(upload.filename or "").suffix.lower()
    if suffix in ALLOWED_SUFFIXES:
        return suffix
    guessed = mimetypes.guess_extension(upload.content_type or "") or ""
    return guessed if guessed in ALLOWED_SUFFIXES else ".img"


class ImageUploads:
    def __init__(self, upload_dir: str | Path, max_bytes: int):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    async def save(self, upload: Optional[UploadFile]) -> Optional[str]:
        """
        Store an uploaded image and return its public path.

        Returns None when no file was chosen (browsers send an empty part).

        Raises:
            ValidationError: not an image, or larger than max_bytes
            StoreUnavailable: the file could not be written
        """
        if upload is None or not upload.filename:
            return None
        if not (upload.content_type or "").startswith("image/"):
            raise ValidationError("image must be an image file", code="INVALID_IMAGE")
        data = await upload.read(self.max_bytes + 1)
        if not data:
            return None
        if len(data) > self.max_bytes:
            raise ValidationError(f"image > {self.max_bytes} bytes", code="IMAGE_TOO_LARGE")

        name = uuid.uuid4().hex + _suffix_for(upload)
        try:
            await asyncio.to_thread(self._write, name, data)
        except OSError as e:
            raise StoreUnavailable(f"saving upload failed: {e}") from e
        return URL_PREFIX + name

    def _write(self, name: str, data: bytes) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        (self.upload_dir / name).write_bytes(data)

    def discard(self, ref: Optional[str]) -> None:
        """Remove a saved image whose post was rejected."""
        if not ref or not ref.startswith(URL_PREFIX):
            return
        try:
            (self.upload_dir / ref[len(URL_PREFIX):]).unlink(missing_ok=True)
        except OSError:
            logger.warning("[uploads] could not remove %s", ref, exc_info=True)

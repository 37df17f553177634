"""Image upload pipeline: type and size checks, Pillow decode and resize, storage.

Storage is Cloudflare R2 when credentials are configured, otherwise a local
directory served by the app at ``/uploads``. All methods here are blocking;
async callers wrap them in ``asyncio.to_thread``.
"""

from __future__ import annotations

import base64
import binascii
import re
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Literal, Protocol

import structlog

from interior_api.config import settings
from interior_api.models.contracts import UploadedImage, UploadStats
from interior_api.utils import r2
from interior_api.utils.image import (
    OUTPUT_FORMATS,
    InvalidImageError,
    fill_crop,
    fit_within,
    image_to_bytes,
    load_image,
)

logger = structlog.get_logger()

ROOT_FOLDER = "interior-design"
ALLOWED_EXTENSIONS = frozenset({"jpeg", "jpg", "png", "gif", "webp"})
ALLOWED_CONTENT_TYPES = frozenset(f"image/{ext}" for ext in ALLOWED_EXTENSIONS)

_DATA_URL = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)


class UploadRejected(Exception):
    """An upload that fails validation. Carries the HTTP status and error code."""

    def __init__(self, code: str, message: str, status: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status


@dataclass(frozen=True)
class Resize:
    mode: Literal["fit", "fill"]
    width: int
    height: int


DESIGN_IMAGE_SIZE = Resize("fit", 1200, 800)
TEAM_PROFILE_SIZE = Resize("fill", 400, 400)
BEFORE_AFTER_SIZE = Resize("fit", 800, 600)


class ImageStorage(Protocol):
    name: Literal["r2", "local"]

    def save(self, key: str, data: bytes, content_type: str) -> str: ...

    def delete(self, key: str) -> bool: ...

    def usage(self, prefix: str) -> tuple[int, int]: ...


class LocalImageStorage:
    name: Literal["r2", "local"] = "local"

    def __init__(self, root: Path, url_prefix: str = "/uploads") -> None:
        self.root = root
        self.url_prefix = url_prefix

    def _path(self, key: str) -> Path | None:
        root = self.root.resolve()
        path = (root / key).resolve()
        return path if path.is_relative_to(root) else None

    def save(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        if path is None:
            raise ValueError(f"Storage key escapes upload directory: {key}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("local_upload", key=key, size=len(data), content_type=content_type)
        return f"{self.url_prefix}/{key}"

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if path is None or not path.is_file():
            return False
        path.unlink()
        logger.info("local_delete", key=key)
        return True

    def usage(self, prefix: str) -> tuple[int, int]:
        base = self._path(prefix)
        if base is None or not base.exists():
            return 0, 0
        files = [p for p in base.rglob("*") if p.is_file()]
        return len(files), sum(p.stat().st_size for p in files)


class R2ImageStorage:
    name: Literal["r2", "local"] = "r2"

    def save(self, key: str, data: bytes, content_type: str) -> str:
        r2.upload_object(key, data, content_type=content_type)
        return r2.public_url(key)

    def delete(self, key: str) -> bool:
        if not r2.head_object(key):
            return False
        r2.delete_object(key)
        return True

    def usage(self, prefix: str) -> tuple[int, int]:
        return r2.usage(prefix)


def default_storage() -> ImageStorage:
    if settings.r2_enabled:
        return R2ImageStorage()
    return LocalImageStorage(Path(settings.upload_dir))


def decode_data_url(payload: str) -> tuple[bytes, str]:
    """Split a ``data:image/...;base64,`` URL into bytes and content type.

    Bare base64 without the prefix is accepted and assumed to be JPEG.
    """
    match = _DATA_URL.match(payload)
    content_type = match.group(1).lower() if match else "image/jpeg"
    encoded = payload[match.end() :] if match else payload
    try:
        return base64.b64decode(encoded, validate=True), content_type
    except (binascii.Error, ValueError) as exc:
        raise UploadRejected("invalid_image", "Image data is not valid base64") from exc


class UploadService:
    def __init__(self, storage: ImageStorage, max_bytes: int) -> None:
        self.storage = storage
        self.max_bytes = max_bytes

    def _check(self, data: bytes, filename: str, content_type: str) -> None:
        if not data:
            raise UploadRejected("no_file", "No image file provided")
        if len(data) > self.max_bytes:
            mb = self.max_bytes // (1024 * 1024)
            raise UploadRejected("file_too_large", f"File exceeds {mb} MB limit", status=413)
        extension = PurePosixPath(filename).suffix.lower().lstrip(".")
        if extension not in ALLOWED_EXTENSIONS or content_type.lower() not in ALLOWED_CONTENT_TYPES:
            raise UploadRejected(
                "invalid_image", "Only image files (jpg, jpeg, png, gif, webp) are allowed."
            )

    def store_image(
        self,
        data: bytes,
        *,
        filename: str,
        content_type: str,
        folder: str,
        resize: Resize | None = None,
    ) -> UploadedImage:
        self._check(data, filename, content_type)
        try:
            image = load_image(data)
        except InvalidImageError as exc:
            logger.warning("upload_image_decode_failed", filename=filename, error=str(exc))
            raise UploadRejected("invalid_image", "Could not read image file") from exc

        fmt = image.format or "JPEG"
        if resize is not None:
            shaped = (
                fit_within(image, resize.width, resize.height)
                if resize.mode == "fit"
                else fill_crop(image, resize.width, resize.height)
            )
            data = image_to_bytes(shaped, fmt)
            width, height = shaped.size
        else:
            width, height = image.size

        extension, stored_type = OUTPUT_FORMATS[fmt]
        key = f"{ROOT_FOLDER}/{folder}/{uuid.uuid4().hex}.{extension}"
        url = self.storage.save(key, data, stored_type)
        return UploadedImage(
            public_id=key,
            url=url,
            original_name=filename,
            size=len(data),
            content_type=stored_type,
            width=width,
            height=height,
        )

    def store_data_url(self, payload: str, *, folder: str, name: str) -> UploadedImage:
        data, content_type = decode_data_url(payload)
        extension = content_type.split("/")[-1]
        return self.store_image(
            data, filename=f"{name}.{extension}", content_type=content_type, folder=folder
        )

    def delete(self, public_id: str) -> bool:
        """Remove a stored image. Keys outside the upload folder are never touched."""
        parts = PurePosixPath(public_id).parts
        if len(parts) < 2 or parts[0] != ROOT_FOLDER or ".." in parts:
            return False
        return self.storage.delete(public_id)

    def stats(self) -> UploadStats:
        count, total = self.storage.usage(ROOT_FOLDER)
        return UploadStats(
            backend=self.storage.name,
            total_images=count,
            total_bytes=total,
            max_file_bytes=self.max_bytes,
        )

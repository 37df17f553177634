"""Image upload endpoints.

Files are stream-read with an early size cutoff, then validated, resized and
stored off the event loop.
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile

from interior_api.api.dependencies import get_uploads
from interior_api.api.errors import NOT_FOUND_RESPONSES, error_response
from interior_api.models.contracts import (
    BeforeAfterUpload,
    ErrorResponse,
    UploadBatch,
    UploadedImage,
    UploadStats,
)
from interior_api.services.uploads import (
    BEFORE_AFTER_SIZE,
    DESIGN_IMAGE_SIZE,
    TEAM_PROFILE_SIZE,
    Resize,
    UploadRejected,
    UploadService,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/upload", tags=["uploads"])

MAX_FILES = 10
_CHUNK = 65_536
_ID_PATTERN = r"^[\w-]{1,100}$"

_UPLOAD_ERRORS: dict[int | str, dict] = {
    400: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
}


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an upload, giving up as soon as it passes ``max_bytes``."""
    chunks: list[bytes] = []
    total = 0
    while chunk := await file.read(_CHUNK):
        total += len(chunk)
        if total > max_bytes:
            mb = max_bytes // (1024 * 1024)
            raise UploadRejected("file_too_large", f"File exceeds {mb} MB limit", status=413)
        chunks.append(chunk)
    return b"".join(chunks)


async def store_upload(
    uploads: UploadService, file: UploadFile, folder: str, resize: Resize | None = None
) -> UploadedImage:
    data = await read_upload(file, uploads.max_bytes)
    return await asyncio.to_thread(
        uploads.store_image,
        data,
        filename=file.filename or "",
        content_type=file.content_type or "",
        folder=folder,
        resize=resize,
    )


def _folder(base: str, owner_id: str | None) -> str:
    return f"{base}/{owner_id}" if owner_id else base


def _rejected(exc: UploadRejected):
    logger.info("upload_rejected", error=exc.code, detail=exc.message)
    return error_response(exc.status, exc.code, exc.message)


@router.post("/image", status_code=201, response_model=UploadedImage, responses=_UPLOAD_ERRORS)
async def upload_image(
    image: UploadFile = File(...),
    uploads: UploadService = Depends(get_uploads),
):
    try:
        stored = await store_upload(uploads, image, "general")
    except UploadRejected as exc:
        return _rejected(exc)
    logger.info("image_uploaded", public_id=stored.public_id, size=stored.size)
    return stored


@router.post("/images", status_code=201, response_model=UploadBatch, responses=_UPLOAD_ERRORS)
async def upload_images(
    images: list[UploadFile] = File(...),
    uploads: UploadService = Depends(get_uploads),
):
    if len(images) > MAX_FILES:
        return error_response(400, "too_many_files", f"At most {MAX_FILES} files per request")
    try:
        stored = [await store_upload(uploads, image, "general") for image in images]
    except UploadRejected as exc:
        return _rejected(exc)
    logger.info("images_uploaded", count=len(stored))
    return UploadBatch(files=stored, total=len(stored))


@router.post(
    "/design-images", status_code=201, response_model=UploadBatch, responses=_UPLOAD_ERRORS
)
async def upload_design_images(
    images: list[UploadFile] = File(...),
    design_id: str | None = Form(None, pattern=_ID_PATTERN),
    image_type: str | None = Form(None, max_length=50),
    uploads: UploadService = Depends(get_uploads),
):
    """Design photos, scaled down to fit within 1200x800."""
    if len(images) > MAX_FILES:
        return error_response(400, "too_many_files", f"At most {MAX_FILES} files per request")
    folder = _folder("designs", design_id)
    try:
        stored = [
            await store_upload(uploads, image, folder, DESIGN_IMAGE_SIZE) for image in images
        ]
    except UploadRejected as exc:
        return _rejected(exc)
    logger.info(
        "design_images_uploaded", design_id=design_id, image_type=image_type, count=len(stored)
    )
    return UploadBatch(files=stored, total=len(stored), folder=folder)


@router.post(
    "/team-profile", status_code=201, response_model=UploadedImage, responses=_UPLOAD_ERRORS
)
async def upload_team_profile(
    profile: UploadFile = File(...),
    team_member_id: str | None = Form(None, pattern=_ID_PATTERN),
    uploads: UploadService = Depends(get_uploads),
):
    """Profile photo, centre-cropped to 400x400."""
    try:
        stored = await store_upload(
            uploads, profile, _folder("team", team_member_id), TEAM_PROFILE_SIZE
        )
    except UploadRejected as exc:
        return _rejected(exc)
    logger.info("team_profile_uploaded", team_member_id=team_member_id)
    return stored


@router.post(
    "/before-after", status_code=201, response_model=BeforeAfterUpload, responses=_UPLOAD_ERRORS
)
async def upload_before_after(
    images: list[UploadFile] = File(...),
    design_id: str | None = Form(None, pattern=_ID_PATTERN),
    caption: str = Form("", max_length=200),
    uploads: UploadService = Depends(get_uploads),
):
    """Exactly two files: the before photo first, then the after photo."""
    if len(images) != 2:
        return error_response(
            400, "wrong_file_count", "Exactly 2 images required (before and after)"
        )
    folder = _folder("before-after", design_id)
    try:
        before, after = [
            await store_upload(uploads, image, folder, BEFORE_AFTER_SIZE) for image in images
        ]
    except UploadRejected as exc:
        return _rejected(exc)
    logger.info("before_after_uploaded", design_id=design_id)
    return BeforeAfterUpload(
        before_image=before.url,
        after_image=after.url,
        caption=caption,
        before_public_id=before.public_id,
        after_public_id=after.public_id,
    )


@router.delete("/image/{public_id:path}", status_code=204, responses=NOT_FOUND_RESPONSES)
async def delete_image(public_id: str, uploads: UploadService = Depends(get_uploads)):
    if not await asyncio.to_thread(uploads.delete, public_id):
        return error_response(404, "image_not_found", "Image not found")
    logger.info("image_deleted", public_id=public_id)


@router.get("/stats", response_model=UploadStats)
async def upload_stats(uploads: UploadService = Depends(get_uploads)) -> UploadStats:
    return await asyncio.to_thread(uploads.stats)

"""Pillow helpers for uploaded images: decode, resize, re-encode."""

from __future__ import annotations

import io

from PIL import Image, ImageOps

# Pillow format name -> (file extension, content type)
OUTPUT_FORMATS: dict[str, tuple[str, str]] = {
    "JPEG": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "GIF": ("gif", "image/gif"),
    "WEBP": ("webp", "image/webp"),
}


class InvalidImageError(ValueError):
    """Raised when bytes do not decode as a supported image."""


def load_image(data: bytes) -> Image.Image:
    """Decode image bytes fully, rejecting anything Pillow cannot read."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()  # Force full decode to catch truncated/decompression bombs early
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise InvalidImageError(str(exc)) from exc
    if img.format not in OUTPUT_FORMATS:
        raise InvalidImageError(f"Unsupported image format: {img.format}")
    return img


def fit_within(image: Image.Image, width: int, height: int) -> Image.Image:
    """Shrink to fit inside width x height keeping aspect ratio. Never upscales."""
    fitted = image.copy()
    fitted.thumbnail((width, height), Image.LANCZOS)
    return fitted


def fill_crop(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale and centre-crop to exactly width x height."""
    return ImageOps.fit(image, (width, height), Image.LANCZOS, centering=(0.5, 0.5))


def image_to_bytes(image: Image.Image, fmt: str = "JPEG") -> bytes:
    """Encode a PIL Image. JPEG output is flattened to RGB first."""
    buf = io.BytesIO()
    if fmt == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    image.save(buf, format=fmt)
    return buf.getvalue()

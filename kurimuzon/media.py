"""Image conversions for sticker / image commands (Pillow)."""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from .logging_setup import log

STICKER_SIZE = 512


class MediaConversionError(ValueError):
    """Raised when bytes cannot be decoded as a static image."""


def _open(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise MediaConversionError(f"not a static image: {e}") from e
    return image


def to_sticker_webp(data: bytes) -> bytes:
    """Fit an image into a 512px box and encode it as a WEBP sticker."""
    image = _open(data).convert("RGBA")
    # Telegram wants one side to be exactly 512px.
    scale = STICKER_SIZE / max(image.size)
    if scale != 1:
        image = image.resize(
            (max(1, round(image.width * scale)), max(1, round(image.height * scale))),
            Image.LANCZOS,
        )
    out = io.BytesIO()
    image.save(out, format="WEBP")
    log.debug(f"Sticker rendered: {image.width}x{image.height}, {out.tell()} bytes")
    return out.getvalue()


def to_png(data: bytes) -> bytes:
    """Re-encode a static sticker (WEBP) as a PNG image."""
    image = _open(data)
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")
    out = io.BytesIO()
    image.save(out, format="PNG")
    return out.getvalue()

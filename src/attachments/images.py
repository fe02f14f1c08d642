"""Image compression and thumbnailing via Pillow.

Everything here works on bytes in memory; writing files is the
attachment store's job.  Any decode or encode failure surfaces as
:class:`~noteport.errors.ProcessingError` so callers can fall back to
storing the original.
"""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from noteport.attachments.models import OUTPUT_FORMATS, EncodedImage, ImageOptions
from noteport.errors import ProcessingError

logger = logging.getLogger(__name__)


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Scale (width, height) down to fit the bound, keeping aspect ratio.

    Never upscales.
    """
    if width <= max_width and height <= max_height:
        return width, height
    ratio = min(max_width / width, max_height / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def compression_ratio(original_size: int, compressed_size: int | None) -> int:
    """Percent saved by compression, rounded."""
    if not original_size or compressed_size is None:
        return 0
    return round((original_size - compressed_size) / original_size * 100)


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    return f"{round(value, 2):g} {units[idx]}"


class ImageProcessor:
    """Resize, re-encode, and thumbnail images."""

    def __init__(self, options: ImageOptions | None = None) -> None:
        self.options = options or ImageOptions()

    def encode(self, data: bytes, options: ImageOptions | None = None) -> EncodedImage:
        """Decode ``data`` and produce the compressed image and thumbnail.

        Raises:
            ProcessingError: The bytes are not a decodable image or the
                target format cannot be written.
        """
        opts = options or self.options
        if opts.output_format not in OUTPUT_FORMATS:
            raise ProcessingError(f"Unsupported output format: {opts.output_format}")

        try:
            with Image.open(io.BytesIO(data)) as src:
                src.load()
                width, height = src.size
                if not width or not height:
                    raise ProcessingError("Image has no dimensions")

                target = fit_within(width, height, opts.max_width, opts.max_height)
                resized = src if target == (width, height) else src.resize(target, Image.Resampling.LANCZOS)
                compressed = self._save(resized, opts.output_format, opts.quality)

                thumbnail = None
                if opts.generate_thumbnail:
                    thumb = ImageOps.fit(
                        src,
                        (opts.thumbnail_size, opts.thumbnail_size),
                        method=Image.Resampling.LANCZOS,
                        centering=(0.5, 0.5),
                    )
                    thumbnail = self._save(thumb, "webp", opts.thumbnail_quality)
        except ProcessingError:
            raise
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
            raise ProcessingError(f"Image processing failed: {exc}") from exc

        logger.debug(
            "Encoded image %dx%d -> %dx%d (%d -> %d bytes)",
            width, height, target[0], target[1], len(data), len(compressed),
        )
        return EncodedImage(
            width=width,
            height=height,
            resized_width=target[0],
            resized_height=target[1],
            data=compressed,
            thumbnail=thumbnail,
        )

    @staticmethod
    def image_info(data: bytes) -> tuple[int, int, str]:
        """Return (width, height, format) without re-encoding."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.width, img.height, (img.format or "unknown").lower()
        except (UnidentifiedImageError, OSError) as exc:
            raise ProcessingError(f"Cannot read image: {exc}") from exc

    @staticmethod
    def _save(img: Image.Image, fmt: str, quality: int) -> bytes:
        out = io.BytesIO()
        if fmt == "jpeg":
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            img.save(out, format="JPEG", quality=quality, optimize=True)
        elif fmt == "png":
            img.save(out, format="PNG", optimize=True, compress_level=9)
        else:
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA" if "A" in img.getbands() or img.mode == "P" else "RGB")
            img.save(out, format="WEBP", quality=quality)
        return out.getvalue()

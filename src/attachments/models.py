"""Attachment pipeline data types and allow lists."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from noteport.content.models import Attachment

MB = 1024 * 1024
MAX_IMAGE_SIZE = 5 * MB
MAX_FILE_SIZE = 10 * MB

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
ALLOWED_DOCUMENT_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "text/markdown",
        "application/zip",
    }
)
ALWAYS_ACCEPTED_EXTENSIONS = (".md",)

IMAGES_DIR = "images"
DOCUMENTS_DIR = "documents"
THUMBNAILS_DIR = "thumbnails"
TEMP_DIR = "temp"
CONTENT_PARTITIONS = (IMAGES_DIR, DOCUMENTS_DIR, THUMBNAILS_DIR)

OUTPUT_FORMATS = ("jpeg", "png", "webp")


def is_image_type(mime_type: str) -> bool:
    return mime_type in ALLOWED_IMAGE_TYPES


def content_partition(mime_type: str) -> str:
    """Top-level upload folder for a MIME type."""
    return IMAGES_DIR if is_image_type(mime_type) else DOCUMENTS_DIR


class ImageOptions(BaseModel):
    """Compression and thumbnail settings for one image."""

    quality: int = Field(default=85, ge=1, le=100)
    max_width: int = 1920
    max_height: int = 1080
    output_format: str = "webp"
    generate_thumbnail: bool = True
    thumbnail_size: int = 300
    thumbnail_quality: int = 80

    @property
    def extension(self) -> str:
        return "jpg" if self.output_format == "jpeg" else self.output_format


class EncodedImage(BaseModel):
    """In-memory result of decoding and re-encoding one image."""

    width: int
    height: int
    resized_width: int
    resized_height: int
    data: bytes
    thumbnail: bytes | None = None


class ProcessedImage(BaseModel):
    """Files written for a processed image.

    Paths are relative to the uploads directory.
    """

    storage_name: str
    storage_path: str
    width: int
    height: int
    original_size: int
    compressed_size: int
    format: str
    thumbnail_name: str | None = None
    thumbnail_path: str | None = None
    thumbnail_size: int | None = None


class Placement(BaseModel):
    """Where an unmodified upload was written."""

    storage_name: str
    storage_path: str
    absolute_path: Path


class UploadResult(BaseModel):
    """Outcome of a single upload."""

    success: bool
    message: str = ""
    attachment: Attachment | None = None
    is_duplicate: bool = False
    compression_ratio: int = 0
    error: str | None = None


class StorageStats(BaseModel):
    """Aggregate attachment counts and sizes."""

    total_files: int = 0
    total_size: int = 0
    image_files: int = 0
    image_size: int = 0
    document_files: int = 0
    document_size: int = 0
    disk_usage: int = 0

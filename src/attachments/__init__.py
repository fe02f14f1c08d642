"""Attachment store and image pipeline."""

from noteport.attachments.images import ImageProcessor, compression_ratio, format_file_size
from noteport.attachments.models import (
    ImageOptions,
    Placement,
    ProcessedImage,
    StorageStats,
    UploadResult,
)
from noteport.attachments.storage import AttachmentStore, generate_storage_name

__all__ = [
    "AttachmentStore",
    "ImageOptions",
    "ImageProcessor",
    "Placement",
    "ProcessedImage",
    "StorageStats",
    "UploadResult",
    "compression_ratio",
    "format_file_size",
    "generate_storage_name",
]

"""Attachment store: validation, dedup, placement, image processing, delete.

Files live under ``<uploads>/<images|documents>/<YYYY>/<MM>/`` with
thumbnails under ``<uploads>/thumbnails/<YYYY>/<MM>/``.  Metadata is
registered in the ContentStore only after every file for an upload has
been written; a partial write removes what it wrote.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from noteport.attachments.images import ImageProcessor, compression_ratio
from noteport.attachments.models import (
    ALLOWED_DOCUMENT_TYPES,
    ALLOWED_IMAGE_TYPES,
    ALWAYS_ACCEPTED_EXTENSIONS,
    CONTENT_PARTITIONS,
    IMAGES_DIR,
    MAX_FILE_SIZE,
    MAX_IMAGE_SIZE,
    TEMP_DIR,
    THUMBNAILS_DIR,
    ImageOptions,
    Placement,
    ProcessedImage,
    StorageStats,
    UploadResult,
    content_partition,
    is_image_type,
)
from noteport.content.models import Attachment
from noteport.content.store import ContentStore
from noteport.errors import ProcessingError, SizeExceeded, UnsupportedType

logger = logging.getLogger(__name__)


def generate_storage_name(declared_name: str, *, timestamp_ms: int | None = None) -> str:
    """Build a collision-resistant storage name.

    ``<epoch-ms>-<hash><ext>`` where the hash is the first eight hex
    digits of md5 over the declared name, timestamp and a random token.
    """
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    token = secrets.token_hex(4)
    digest = hashlib.md5(f"{declared_name}-{ts}-{token}".encode(), usedforsecurity=False).hexdigest()[:8]
    ext = Path(declared_name).suffix.lower()
    return f"{ts}-{digest}{ext}"


class AttachmentStore:
    """Uploaded-file storage backed by the local filesystem.

    Args:
        store: Metadata store for attachment records.
        uploads_dir: Root of the uploads tree.
        max_image_size: Byte limit for image MIME types.
        max_file_size: Byte limit for everything else.
        image_options: Default compression settings.
        clock: Returns "now"; used for year/month partitioning.
    """

    def __init__(
        self,
        store: ContentStore,
        uploads_dir: Path,
        *,
        max_image_size: int = MAX_IMAGE_SIZE,
        max_file_size: int = MAX_FILE_SIZE,
        image_options: ImageOptions | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.uploads_dir = uploads_dir
        self.max_image_size = max_image_size
        self.max_file_size = max_file_size
        self.processor = ImageProcessor(image_options)
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    # ── Layout ───────────────────────────────────────────────────

    def ensure_dirs(self) -> None:
        """Create the partition roots and the current month folders."""
        now = self._clock()
        for partition in CONTENT_PARTITIONS:
            (self.uploads_dir / partition / f"{now:%Y}" / f"{now:%m}").mkdir(parents=True, exist_ok=True)
        (self.uploads_dir / TEMP_DIR).mkdir(parents=True, exist_ok=True)

    def _month_dir(self, partition: str) -> Path:
        now = self._clock()
        return Path(partition) / f"{now:%Y}" / f"{now:%m}"

    def partition_dir(self, mime_type: str) -> Path:
        """Relative directory for a new upload of this MIME type."""
        return self._month_dir(content_partition(mime_type))

    def thumbnail_dir(self) -> Path:
        return self._month_dir(THUMBNAILS_DIR)

    def resolve(self, relative_path: str) -> Path:
        return self.uploads_dir / relative_path

    def _new_storage_name(self, declared_name: str, extension: str | None = None) -> str:
        """Fresh storage name, re-drawn until no record uses it.

        ``extension`` replaces the declared one when the stored file will
        be re-encoded, so uniqueness is checked on the final name.
        """
        while True:
            name = generate_storage_name(declared_name)
            if extension:
                name = f"{Path(name).stem}.{extension}"
            if not any(a.storage_name == name for a in self.store.list_attachments()):
                return name

    def _write(self, relative: Path, data: bytes) -> Path:
        target = self.uploads_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            target.write_bytes(data)
        except OSError:
            self._discard([target])
            raise
        return target

    # ── Validation & dedup ───────────────────────────────────────

    def validate(self, name: str, size: int, mime_type: str) -> None:
        """Check size and type limits.

        Raises:
            SizeExceeded: Over 5 MB for images or 10 MB otherwise.
            UnsupportedType: MIME type not allowed (``.md`` names always pass).
        """
        limit = self.max_image_size if is_image_type(mime_type) else self.max_file_size
        if size > limit:
            raise SizeExceeded(name, size, limit)

        if name.lower().endswith(ALWAYS_ACCEPTED_EXTENSIONS):
            return
        if mime_type not in ALLOWED_IMAGE_TYPES and mime_type not in ALLOWED_DOCUMENT_TYPES:
            raise UnsupportedType(name, mime_type)

    def find_duplicate(self, name: str, size: int, mime_type: str) -> Attachment | None:
        """Return an existing attachment with the same (name, size, mime)."""
        return self.store.find_attachment(name, size, mime_type)

    # ── Writing ──────────────────────────────────────────────────

    def place(self, data: bytes, declared_name: str, mime_type: str) -> Placement:
        """Write bytes unmodified under a fresh storage name."""
        storage_name = self._new_storage_name(declared_name)
        relative = self.partition_dir(mime_type) / storage_name
        absolute = self._write(relative, data)
        logger.debug("Placed %s at %s", declared_name, relative)
        return Placement(
            storage_name=storage_name,
            storage_path=relative.as_posix(),
            absolute_path=absolute,
        )

    def process_image(
        self,
        data: bytes,
        storage_name: str,
        options: ImageOptions | None = None,
    ) -> ProcessedImage:
        """Compress an image and write it, plus an optional thumbnail.

        The stored name keeps ``storage_name``'s stem with the output
        format's extension.

        Raises:
            ProcessingError: Decode/encode failure; nothing is written.
            OSError: A write failed; anything already written is removed.
        """
        opts = options or self.processor.options
        encoded = self.processor.encode(data, opts)

        stem = Path(storage_name).stem
        main_name = f"{stem}.{opts.extension}"
        main_rel = self._month_dir(IMAGES_DIR) / main_name
        thumb_name = f"{stem}_thumb.webp" if encoded.thumbnail is not None else None
        thumb_rel = self.thumbnail_dir() / thumb_name if thumb_name else None

        written: list[Path] = []
        try:
            written.append(self._write(main_rel, encoded.data))
            if thumb_rel is not None and encoded.thumbnail is not None:
                written.append(self._write(thumb_rel, encoded.thumbnail))
        except OSError:
            self._discard(written)
            raise

        return ProcessedImage(
            storage_name=main_name,
            storage_path=main_rel.as_posix(),
            width=encoded.width,
            height=encoded.height,
            original_size=len(data),
            compressed_size=len(encoded.data),
            format=opts.output_format,
            thumbnail_name=thumb_name,
            thumbnail_path=thumb_rel.as_posix() if thumb_rel else None,
            thumbnail_size=len(encoded.thumbnail) if encoded.thumbnail is not None else None,
        )

    def upload(
        self,
        data: bytes,
        name: str,
        mime_type: str,
        *,
        post_id: str | None = None,
        check_duplicate: bool = True,
        options: ImageOptions | None = None,
    ) -> UploadResult:
        """Validate, dedup, store and register one uploaded file.

        Images are compressed and thumbnailed; if that fails the original
        bytes are stored instead.  Validation errors propagate; write
        failures return an unsuccessful result with nothing registered.

        Raises:
            SizeExceeded, UnsupportedType: From :meth:`validate`.
        """
        size = len(data)
        self.validate(name, size, mime_type)

        if check_duplicate:
            duplicate = self.find_duplicate(name, size, mime_type)
            if duplicate is not None:
                logger.info("Upload %s matches existing attachment %s", name, duplicate.id)
                return UploadResult(
                    success=True,
                    message="Duplicate of an existing attachment",
                    attachment=duplicate,
                    is_duplicate=True,
                )

        written: list[Path] = []
        try:
            processed: ProcessedImage | None = None
            if is_image_type(mime_type):
                try:
                    opts = options or self.processor.options
                    storage_name = self._new_storage_name(name, opts.extension)
                    processed = self.process_image(data, storage_name, opts)
                except ProcessingError:
                    logger.warning("Image processing failed for %s, storing original", name, exc_info=True)

            if processed is not None:
                written.append(self.resolve(processed.storage_path))
                if processed.thumbnail_path:
                    written.append(self.resolve(processed.thumbnail_path))
                attachment = Attachment(
                    original_name=name,
                    storage_name=processed.storage_name,
                    storage_path=processed.storage_path,
                    size_bytes=size,
                    mime_type=mime_type,
                    post_id=post_id,
                    thumbnail_name=processed.thumbnail_name,
                    thumbnail_path=processed.thumbnail_path,
                    compressed_size=processed.compressed_size,
                    width=processed.width,
                    height=processed.height,
                    uploaded_at=self._clock(),
                )
            else:
                placement = self.place(data, name, mime_type)
                written.append(placement.absolute_path)
                attachment = Attachment(
                    original_name=name,
                    storage_name=placement.storage_name,
                    storage_path=placement.storage_path,
                    size_bytes=size,
                    mime_type=mime_type,
                    post_id=post_id,
                    uploaded_at=self._clock(),
                )

            self.store.create_attachment(attachment)
        except (OSError, ValueError) as exc:
            self._discard(written)
            logger.warning("Upload of %s failed: %s", name, exc)
            return UploadResult(success=False, message="Upload failed", error=str(exc))

        ratio = compression_ratio(size, attachment.compressed_size)
        return UploadResult(
            success=True,
            message="Uploaded",
            attachment=attachment,
            compression_ratio=ratio,
        )

    # ── Deleting ─────────────────────────────────────────────────

    def delete(self, storage_name: str, mime_type: str, thumbnail_name: str | None = None) -> None:
        """Remove a stored file and its thumbnail.

        Missing files are logged, not raised.
        """
        main = self._locate(storage_name, content_partition(mime_type))
        self._unlink_quietly(main, storage_name)
        if thumbnail_name:
            thumb = self._locate(thumbnail_name, THUMBNAILS_DIR)
            self._unlink_quietly(thumb, thumbnail_name)

    def delete_attachment(self, attachment_id: str) -> None:
        """Remove an attachment's files and then its record.

        Raises KeyError if the id does not exist.
        """
        attachment = self.store.get_attachment(attachment_id)
        if attachment is None:
            raise KeyError(attachment_id)
        self.delete(attachment.storage_name, attachment.mime_type, attachment.thumbnail_name)
        self.store.delete_attachment(attachment_id)

    def _locate(self, name: str, partition: str) -> Path | None:
        for attachment in self.store.list_attachments():
            if attachment.storage_name == name:
                return self.resolve(attachment.storage_path)
            if attachment.thumbnail_name == name and attachment.thumbnail_path:
                return self.resolve(attachment.thumbnail_path)
        root = self.uploads_dir / partition
        if root.is_dir():
            for candidate in root.rglob(name):
                if candidate.is_file():
                    return candidate
        return None

    @staticmethod
    def _unlink_quietly(path: Path | None, name: str) -> None:
        if path is None:
            logger.warning("File to delete not found: %s", name)
            return
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("File to delete not found: %s", path)
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", path, exc)

    @staticmethod
    def _discard(paths: list[Path]) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove partial upload %s: %s", path, exc)

    # ── Ownership & queries ──────────────────────────────────────

    def link(self, attachment_id: str, post_id: str | None) -> Attachment:
        """Set or clear the owning item.  Raises KeyError if missing."""
        attachment = self.store.get_attachment(attachment_id)
        if attachment is None:
            raise KeyError(attachment_id)
        if post_id is not None and self.store.get_item(post_id) is None:
            raise KeyError(post_id)
        attachment.post_id = post_id
        return self.store.update_attachment(attachment)

    def list_for_item(self, post_id: str) -> list[Attachment]:
        return self.store.list_attachments(post_id)

    def list_unlinked(self) -> list[Attachment]:
        return self.store.list_attachments(unlinked=True)

    def read_bytes(self, attachment: Attachment) -> bytes:
        """Read a stored file.  Raises OSError if it is gone."""
        return self.resolve(attachment.storage_path).read_bytes()

    def storage_stats(self) -> StorageStats:
        """Count attachments by class and measure the uploads tree."""
        stats = StorageStats()
        for attachment in self.store.list_attachments():
            stats.total_files += 1
            stats.total_size += attachment.size_bytes
            if attachment.mime_type in ALLOWED_IMAGE_TYPES:
                stats.image_files += 1
                stats.image_size += attachment.size_bytes
            elif attachment.mime_type in ALLOWED_DOCUMENT_TYPES:
                stats.document_files += 1
                stats.document_size += attachment.size_bytes

        if self.uploads_dir.is_dir():
            for path in self.uploads_dir.rglob("*"):
                try:
                    if path.is_file():
                        stats.disk_usage += path.stat().st_size
                except OSError as exc:
                    logger.warning("Cannot stat %s: %s", path, exc)
        return stats

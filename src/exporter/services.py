"""Export orchestration: selection, rendering, artifact naming, retention.

Every export is audited with an InterchangeRecord and followed by a
background retention sweep of the exports directory.  The sweep has its
own error channel and never affects the export's result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from pathlib import Path

from noteport.attachments.storage import AttachmentStore
from noteport.content.models import ContentItem, InterchangeDirection, InterchangeStatus
from noteport.content.store import ContentStore
from noteport.errors import EmptySelection, NoteportError
from noteport.exporter.formats import create_renderer
from noteport.exporter.models import (
    DEFAULT_PDF_BODY_LINES,
    DEFAULT_PREFIX,
    DEFAULT_RETENTION_HOURS,
    AttachmentFile,
    ExportFilter,
    ExportFormat,
    ExportOptions,
    ExportResult,
    RenderContext,
    SweepResult,
)

logger = logging.getLogger(__name__)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def select_items(store: ContentStore, export_filter: ExportFilter) -> list[ContentItem]:
    """Apply a filter to the live items, newest first.

    Raises:
        EmptySelection: Nothing matched.
    """
    items = store.list_items()

    if export_filter.ids is not None:
        wanted = set(export_filter.ids)
        items = [i for i in items if i.id in wanted]
    if export_filter.tag:
        needle = export_filter.tag.lower()
        items = [i for i in items if any(needle in tag.lower() for tag in i.tags)]
    if export_filter.date_from is not None:
        lower = _aware(export_filter.date_from)
        items = [i for i in items if _aware(i.created_at) >= lower]
    if export_filter.date_to is not None:
        upper = _aware(export_filter.date_to)
        items = [i for i in items if _aware(i.created_at) <= upper]

    if not items:
        raise EmptySelection()
    return items


def artifact_path(exports_dir: Path, prefix: str, extension: str, now: datetime) -> Path:
    """``<prefix>-<YYYYMMDDTHHMMSSffffff>.<ext>``, suffixed ``-N`` if taken."""
    stem = f"{prefix}-{now:%Y%m%dT%H%M%S%f}"
    path = exports_dir / f"{stem}.{extension}"
    counter = 1
    while path.exists():
        path = exports_dir / f"{stem}-{counter}.{extension}"
        counter += 1
    return path


class RetentionSweeper:
    """Deletes export artifacts older than the retention window.

    ``schedule()`` runs the sweep on a dedicated single worker thread and
    logs the outcome; ``sweep()`` runs it inline.
    """

    def __init__(
        self,
        exports_dir: Path,
        retention_hours: float = DEFAULT_RETENTION_HOURS,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.exports_dir = exports_dir
        self.retention = timedelta(hours=retention_hours)
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._executor: ThreadPoolExecutor | None = None

    def sweep(self) -> SweepResult:
        """Remove expired artifacts.  Never raises."""
        result = SweepResult()
        cutoff = (self._clock() - self.retention).timestamp()
        try:
            entries = list(self.exports_dir.iterdir()) if self.exports_dir.is_dir() else []
        except OSError as exc:
            result.errors.append(f"Cannot read {self.exports_dir}: {exc}")
            return result

        for path in entries:
            try:
                if not path.is_file():
                    continue
                stat = path.stat()
                if stat.st_mtime >= cutoff:
                    continue
                path.unlink()
            except OSError as exc:
                result.errors.append(f"{path.name}: {exc}")
                continue
            result.removed.append(path.name)
            result.freed_bytes += stat.st_size
        return result

    def schedule(self) -> Future[SweepResult]:
        """Queue a sweep in the background."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="noteport-sweep")
        future = self._executor.submit(self.sweep)
        future.add_done_callback(self._log_outcome)
        return future

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    @staticmethod
    def _log_outcome(future: Future[SweepResult]) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("Export retention sweep crashed: %s", exc)
            return
        result = future.result()
        if result.removed:
            logger.info("Removed %d expired exports (%d bytes)", len(result.removed), result.freed_bytes)
        for error in result.errors:
            logger.warning("Export retention sweep: %s", error)


class ExportService:
    """Renders selections of notes to files under ``exports_dir``.

    Args:
        store: Source of items and attachment records.
        exports_dir: Where artifacts are written.
        attachments: Needed only for zip exports that bundle files.
        prefix: Artifact name prefix.
        pdf_body_lines: Body lines per item in PDF output.
        sweeper: Background retention sweeper; one is built from
            ``retention_hours`` when omitted.
        clock: Returns "now".
    """

    def __init__(
        self,
        store: ContentStore,
        exports_dir: Path,
        *,
        attachments: AttachmentStore | None = None,
        prefix: str = DEFAULT_PREFIX,
        retention_hours: float = DEFAULT_RETENTION_HOURS,
        pdf_body_lines: int = DEFAULT_PDF_BODY_LINES,
        sweeper: RetentionSweeper | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.exports_dir = exports_dir
        self.attachments = attachments
        self.prefix = prefix
        self.pdf_body_lines = pdf_body_lines
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self.sweeper = sweeper or RetentionSweeper(exports_dir, retention_hours)

    def export(self, options: ExportOptions | None = None) -> ExportResult:
        """Select, render and write one artifact.

        Failures (including an empty selection) come back as an
        unsuccessful result with the audit record marked failed.
        """
        options = options or ExportOptions()
        record = self.store.create_record(
            InterchangeDirection.EXPORT, options.format.value, "", status=InterchangeStatus.PROCESSING
        )
        try:
            result = self._export(options)
        except EmptySelection as exc:
            result = ExportResult(success=False, message=str(exc), error=str(exc))
        except (NoteportError, OSError, ValueError) as exc:
            logger.warning("Export failed: %s", exc, exc_info=True)
            result = ExportResult(success=False, message="Export failed", error=str(exc))
        finally:
            self.sweeper.schedule()

        result.record_id = record.id
        self.store.update_record(
            record.id,
            status=InterchangeStatus.COMPLETED if result.success else InterchangeStatus.FAILED,
            item_count=result.item_count,
            error_message=result.error,
            file_name=result.file_name,
        )
        return result

    # ── Private helpers ──────────────────────────────────────────

    def _export(self, options: ExportOptions) -> ExportResult:
        items = select_items(self.store, options.filter)
        now = self._clock()

        fmt = options.format
        if fmt == ExportFormat.MD and len(items) > 1:
            fmt = ExportFormat.ZIP
        renderer = create_renderer(fmt, pdf_body_lines=self.pdf_body_lines)

        include = options.include_attachments and fmt == ExportFormat.ZIP
        context = RenderContext(
            exported_at=now,
            include_attachments=include,
            attachments=self._collect_attachments(items) if include else [],
        )
        data = renderer.render(items, context)

        self.exports_dir.mkdir(parents=True, exist_ok=True)
        path = artifact_path(self.exports_dir, self.prefix, renderer.extension, now)
        path.write_bytes(data)
        logger.info("Exported %d items to %s", len(items), path)

        return ExportResult(
            success=True,
            message=f"Exported {len(items)} items",
            file_name=path.name,
            path=path,
            item_count=len(items),
        )

    def _collect_attachments(self, items: list[ContentItem]) -> list[AttachmentFile]:
        if self.attachments is None:
            logger.warning("Attachments requested but no attachment store is configured")
            return []
        files: list[AttachmentFile] = []
        for attachment in self.store.list_attachments(post_ids={i.id for i in items}):
            try:
                data = self.attachments.read_bytes(attachment)
            except OSError as exc:
                logger.warning("Skipping unreadable attachment %s: %s", attachment.storage_name, exc)
                continue
            files.append(
                AttachmentFile(
                    post_id=attachment.post_id or "",
                    storage_name=attachment.storage_name,
                    data=data,
                )
            )
        return files

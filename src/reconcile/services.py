"""Storage reconciler.

Brings the uploads tree back in line with the attachment registry in
three passes, always in this order: stale temp files, files no record
points at, and attachments past the age limit.  Per-file failures are
collected and the scan continues.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from noteport.attachments.images import format_file_size
from noteport.attachments.models import CONTENT_PARTITIONS, TEMP_DIR
from noteport.attachments.storage import AttachmentStore
from noteport.reconcile.models import CleanupMode, CleanupOptions, CleanupReport, ModeResult

logger = logging.getLogger(__name__)

_MODE_LABELS = {
    CleanupMode.TEMP: "temp",
    CleanupMode.ORPHAN: "orphaned",
    CleanupMode.AGE: "expired",
}


def _iter_files(root: Path, errors: list[str]) -> list[Path]:
    """All files below ``root``; unreadable directories are reported."""
    if not root.is_dir():
        return []
    files: list[Path] = []
    try:
        entries = sorted(root.iterdir())
    except OSError as exc:
        errors.append(f"Cannot read directory {root}: {exc}")
        return files
    for entry in entries:
        if entry.is_dir():
            files.extend(_iter_files(entry, errors))
        elif entry.is_file():
            files.append(entry)
    return files


class StorageReconciler:
    """Runs cleanup passes over an attachment store's uploads tree."""

    def __init__(
        self,
        attachments: AttachmentStore,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.attachments = attachments
        self.store = attachments.store
        self.uploads_dir = attachments.uploads_dir
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def run(self, options: CleanupOptions | None = None) -> CleanupReport:
        """Run the enabled passes and summarize what they did."""
        options = options or CleanupOptions()
        report = CleanupReport(dry_run=options.dry_run)

        if not self.uploads_dir.exists():
            report.summary = self._summary(report)
            return report
        try:
            next(self.uploads_dir.iterdir(), None)
        except OSError as exc:
            logger.warning("Cannot read uploads directory %s: %s", self.uploads_dir, exc)
            report.errors.append(f"Cannot read uploads directory {self.uploads_dir}: {exc}")
            report.summary = self._summary(report)
            return report

        if options.delete_temp_files:
            report.modes.append(self.purge_temp(options.temp_max_age_hours, dry_run=options.dry_run))
        if options.delete_orphaned_files:
            report.modes.append(self.purge_orphans(dry_run=options.dry_run))
        if options.delete_old_files:
            report.modes.append(self.purge_expired(options.max_file_age_days, dry_run=options.dry_run))

        report.summary = self._summary(report)
        logger.info(report.summary)
        for error in report.all_errors:
            logger.warning("Cleanup: %s", error)
        return report

    def purge_temp(self, max_age_hours: float = 24.0, *, dry_run: bool = False) -> ModeResult:
        """Remove files under ``temp/`` not modified within ``max_age_hours``."""
        result = ModeResult(mode=CleanupMode.TEMP)
        cutoff = (self._clock() - timedelta(hours=max_age_hours)).timestamp()
        for path in _iter_files(self.uploads_dir / TEMP_DIR, result.errors):
            try:
                stat = path.stat()
                if stat.st_mtime >= cutoff:
                    continue
                if not dry_run:
                    path.unlink()
            except OSError as exc:
                result.errors.append(f"Failed to remove temp file {path}: {exc}")
                continue
            result.removed.append(self._relative(path))
            result.freed_bytes += stat.st_size
        return result

    def purge_orphans(self, *, dry_run: bool = False) -> ModeResult:
        """Remove stored files whose name no attachment record mentions."""
        result = ModeResult(mode=CleanupMode.ORPHAN)
        known: set[str] = set()
        for attachment in self.store.list_attachments():
            known.add(attachment.storage_name)
            if attachment.thumbnail_name:
                known.add(attachment.thumbnail_name)

        for partition in CONTENT_PARTITIONS:
            for path in _iter_files(self.uploads_dir / partition, result.errors):
                if path.name in known:
                    continue
                try:
                    size = path.stat().st_size
                    if not dry_run:
                        path.unlink()
                except OSError as exc:
                    result.errors.append(f"Failed to remove orphaned file {path}: {exc}")
                    continue
                result.removed.append(self._relative(path))
                result.freed_bytes += size
        return result

    def purge_expired(self, max_age_days: int = 365, *, dry_run: bool = False) -> ModeResult:
        """Remove attachments uploaded more than ``max_age_days`` ago.

        Deletes the main file, the thumbnail and the record.  If the main
        file cannot be removed the attachment is left alone for the next
        run.  A thumbnail that cannot be removed does not keep the record;
        it is left as an orphan for the orphan pass.
        """
        result = ModeResult(mode=CleanupMode.AGE)
        cutoff = self._clock() - timedelta(days=max_age_days)
        for attachment in self.store.list_attachments():
            if attachment.uploaded_at >= cutoff:
                continue
            main = self.attachments.resolve(attachment.storage_path)
            try:
                freed = self._remove_file(main, dry_run=dry_run)
            except OSError as exc:
                result.errors.append(f"Failed to remove expired file {attachment.storage_name}: {exc}")
                continue

            if attachment.thumbnail_path:
                thumb = self.attachments.resolve(attachment.thumbnail_path)
                try:
                    freed += self._remove_file(thumb, dry_run=dry_run)
                except OSError as exc:
                    result.errors.append(f"Failed to remove thumbnail {attachment.thumbnail_name}: {exc}")

            if not dry_run:
                try:
                    self.store.delete_attachment(attachment.id)
                except KeyError:
                    logger.debug("Attachment %s already unregistered", attachment.id)
                except OSError as exc:
                    result.errors.append(f"Failed to unregister {attachment.storage_name}: {exc}")
                    continue
            result.removed.append(attachment.storage_path)
            result.freed_bytes += freed
        return result

    # ── Private helpers ──────────────────────────────────────────

    @staticmethod
    def _remove_file(path: Path, *, dry_run: bool) -> int:
        """Size of ``path`` (0 if absent), unlinking it unless ``dry_run``."""
        if not path.is_file():
            return 0
        size = path.stat().st_size
        if not dry_run:
            path.unlink()
        return size

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.uploads_dir).as_posix()
        except ValueError:
            return str(path)

    @staticmethod
    def _summary(report: CleanupReport) -> str:
        lead = "Dry run" if report.dry_run else "Cleanup complete"
        if report.errors and not report.modes:
            return f"{lead}: aborted, {report.errors[0]}"
        parts = [f"{m.count} {_MODE_LABELS[m.mode]} files" for m in report.modes if m.count]
        if not parts:
            return f"{lead}: nothing to remove"
        verb = "would remove" if report.dry_run else "removed"
        return f"{lead}: {verb} {', '.join(parts)}, freeing {format_file_size(report.total_freed)}"

"""Import orchestration: audit record, parsing, conflict resolution.

Each candidate is imported on its own; a failure is recorded in the
result and the batch moves on.  The audit record is opened before
parsing and closed after every candidate has been attempted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from noteport.content.models import (
    ContentItem,
    InterchangeDirection,
    InterchangeStatus,
)
from noteport.content.slugs import generate_slug, unique_slug
from noteport.content.store import ContentStore
from noteport.errors import NoteportError, ParseError, ValidationError
from noteport.importer.models import CandidateItem, ConflictStrategy, ImportResult
from noteport.importer.parsers import create_parser, detect_format

logger = logging.getLogger(__name__)


class ImportService:
    """Imports notes from uploaded files into the content store.

    Args:
        store: Destination store.
        default_strategy: Used when a call does not name a strategy.
        clock: Returns "now" for timestamps the file does not carry.
    """

    def __init__(
        self,
        store: ContentStore,
        *,
        default_strategy: ConflictStrategy = ConflictStrategy.RENAME,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.default_strategy = default_strategy
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def import_file(
        self,
        data: bytes,
        file_name: str,
        mime_type: str | None = None,
        strategy: ConflictStrategy | str | None = None,
    ) -> ImportResult:
        """Parse an uploaded file and import every item it contains.

        Unsupported file types fail before an audit record is written.
        """
        strategy = ConflictStrategy(strategy) if strategy else self.default_strategy
        try:
            fmt = detect_format(file_name, mime_type)
        except ValidationError as exc:
            logger.warning("Rejected import of %s: %s", file_name, exc)
            return ImportResult(success=False, message=str(exc), errors=[str(exc)])

        record = self.store.create_record(
            InterchangeDirection.IMPORT, fmt.value, file_name, status=InterchangeStatus.PROCESSING
        )
        logger.info("Importing %s as %s (strategy=%s)", file_name, fmt.value, strategy.value)

        try:
            parsed = create_parser(fmt).parse(data, file_name)
        except ParseError as exc:
            message = f"Could not parse {file_name}: {exc}"
            self.store.update_record(record.id, status=InterchangeStatus.FAILED, item_count=0, error_message=message)
            logger.warning(message)
            return ImportResult(success=False, message=message, errors=[message], record_id=record.id)

        if not parsed.candidates:
            message = f"No importable items found in {file_name}"
            errors = [*parsed.errors, message]
            self.store.update_record(
                record.id, status=InterchangeStatus.FAILED, item_count=0, error_message="; ".join(errors)
            )
            return ImportResult(success=False, message=message, errors=errors, record_id=record.id)

        result = self.import_items(parsed.candidates, strategy)
        result.errors = [*parsed.errors, *result.errors]
        if parsed.errors and result.success and result.imported_count:
            result.message = (
                f"Partially imported: {result.imported_count} succeeded, {len(result.errors)} failed"
            )
        result.record_id = record.id

        self.store.update_record(
            record.id,
            status=InterchangeStatus.COMPLETED if result.success else InterchangeStatus.FAILED,
            item_count=result.item_count,
            error_message="; ".join(result.errors) if result.errors else None,
        )
        return result

    def import_items(
        self,
        candidates: list[CandidateItem],
        strategy: ConflictStrategy | str | None = None,
    ) -> ImportResult:
        """Import already-parsed candidates in order.

        The batch succeeds only when at least one item was stored.  A
        skipped item counts against the batch and is noted in ``errors``.
        """
        strategy = ConflictStrategy(strategy) if strategy else self.default_strategy
        result = ImportResult(item_count=len(candidates))

        for candidate in candidates:
            try:
                self._import_one(candidate, strategy, result)
            except (NoteportError, ValueError, OSError) as exc:
                logger.warning("Failed to import %r: %s", candidate.title, exc)
                result.errors.append(f'Failed to import "{candidate.title}": {exc}')

        imported = result.imported_count
        failed = len(result.errors) - len(result.skipped)
        result.success = imported > 0
        if not result.success and not failed and result.skipped:
            result.message = f"Nothing imported: {len(result.skipped)} items already exist"
        elif not result.success:
            result.message = f"Import failed: all {len(result.errors)} items had errors"
        elif failed:
            result.message = f"Partially imported: {imported} succeeded, {failed} failed"
        else:
            result.message = f"Imported {imported} items"
            if result.skipped:
                result.message += f", skipped {len(result.skipped)}"
        return result

    # ── Private helpers ──────────────────────────────────────────

    def _import_one(self, candidate: CandidateItem, strategy: ConflictStrategy, result: ImportResult) -> None:
        now = self._clock()
        slug = generate_slug(candidate.title)
        existing = self.store.get_by_slug(slug)

        if existing is not None:
            if strategy == ConflictStrategy.SKIP:
                logger.info("Skipping %r, slug %s exists", candidate.title, slug)
                result.skipped.append(slug)
                result.errors.append(f'"{candidate.title}" skipped: slug {slug} already exists')
                return
            if strategy == ConflictStrategy.OVERWRITE:
                updated = existing.model_copy(
                    update={
                        "title": candidate.title,
                        "content": candidate.content,
                        "tags": list(dict.fromkeys(candidate.tags)),
                        "updated_at": candidate.updated_at or now,
                    }
                )
                self.store.update_item(updated)
                logger.info("Overwrote %s", slug)
                result.updated.append(slug)
                return
            slug = unique_slug(slug, self.store.slug_exists)

        created_at = candidate.created_at or now
        item = ContentItem(
            title=candidate.title,
            slug=slug,
            content=candidate.content,
            tags=candidate.tags,
            created_at=created_at,
            updated_at=candidate.updated_at or created_at,
        )
        self.store.create_item(item)
        logger.debug("Created %s from %s", slug, candidate.source or "candidate list")
        result.created.append(slug)

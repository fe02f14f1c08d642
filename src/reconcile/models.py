"""Data models for storage reconciliation."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class CleanupMode(StrEnum):
    TEMP = "temp"
    ORPHAN = "orphan"
    AGE = "age"


class CleanupOptions(BaseModel):
    """Which passes to run and their thresholds."""

    delete_temp_files: bool = True
    delete_orphaned_files: bool = True
    delete_old_files: bool = False
    temp_max_age_hours: float = 24.0
    max_file_age_days: int = 365
    dry_run: bool = False


class ModeResult(BaseModel):
    """Tally for one reconciliation pass.

    In a dry run ``removed`` lists what would have been removed.
    """

    mode: CleanupMode
    removed: list[str] = Field(default_factory=list)
    freed_bytes: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.removed)


class CleanupReport(BaseModel):
    """Outcome of a reconciliation run."""

    dry_run: bool = False
    modes: list[ModeResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    summary: str = ""

    def mode(self, mode: CleanupMode) -> ModeResult | None:
        for result in self.modes:
            if result.mode == mode:
                return result
        return None

    @property
    def total_removed(self) -> int:
        return sum(m.count for m in self.modes)

    @property
    def total_freed(self) -> int:
        return sum(m.freed_bytes for m in self.modes)

    @property
    def all_errors(self) -> list[str]:
        return [*self.errors, *(e for m in self.modes for e in m.errors)]

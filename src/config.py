"""Unified configuration loaded from .noteport.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from noteport.importer.models import ConflictStrategy

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".noteport.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
    Path.home() / ".config" / "noteport",
]

MB = 1024 * 1024


class StorageSectionConfig(BaseModel):
    """[storage] section."""

    data_dir: str = "./data"
    max_image_size: int = 5 * MB
    max_file_size: int = 10 * MB

    @property
    def root(self) -> Path:
        return Path(self.data_dir)

    @property
    def uploads_dir(self) -> Path:
        return self.root / "uploads"

    @property
    def exports_dir(self) -> Path:
        return self.root / "exports"


class ImagesSectionConfig(BaseModel):
    """[images] section."""

    quality: int = Field(default=85, ge=1, le=100)
    max_width: int = 1920
    max_height: int = 1080
    output_format: str = "webp"
    generate_thumbnail: bool = True
    thumbnail_size: int = 300


class ExportSectionConfig(BaseModel):
    """[export] section."""

    prefix: str = "notebook-export"
    retention_hours: float = 24.0
    pdf_body_lines: int = 20


class ImportSectionConfig(BaseModel):
    """[import] section."""

    default_strategy: ConflictStrategy = ConflictStrategy.RENAME


class CleanupSectionConfig(BaseModel):
    """[cleanup] section."""

    temp_max_age_hours: float = 24.0
    max_file_age_days: int = 365
    delete_temp: bool = True
    delete_orphans: bool = True
    delete_old: bool = False


class NoteportConfig(BaseModel):
    """Top-level configuration model for the interchange engine."""

    storage: StorageSectionConfig = Field(default_factory=StorageSectionConfig)
    images: ImagesSectionConfig = Field(default_factory=ImagesSectionConfig)
    export: ExportSectionConfig = Field(default_factory=ExportSectionConfig)
    import_: ImportSectionConfig = Field(default_factory=ImportSectionConfig, alias="import")
    cleanup: CleanupSectionConfig = Field(default_factory=CleanupSectionConfig)

    model_config = {"populate_by_name": True}

    def to_image_options(self) -> object:
        """Convert the [images] section to ImageOptions for the image pipeline."""
        from noteport.attachments.models import ImageOptions

        return ImageOptions(
            quality=self.images.quality,
            max_width=self.images.max_width,
            max_height=self.images.max_height,
            output_format=self.images.output_format,
            generate_thumbnail=self.images.generate_thumbnail,
            thumbnail_size=self.images.thumbnail_size,
        )

    def to_cleanup_options(self, *, dry_run: bool = False) -> object:
        """Convert the [cleanup] section to CleanupOptions for the reconciler."""
        from noteport.reconcile.models import CleanupOptions

        return CleanupOptions(
            delete_temp_files=self.cleanup.delete_temp,
            delete_orphaned_files=self.cleanup.delete_orphans,
            delete_old_files=self.cleanup.delete_old,
            temp_max_age_hours=self.cleanup.temp_max_age_hours,
            max_file_age_days=self.cleanup.max_file_age_days,
            dry_run=dry_run,
        )


def load_config(path: str | Path | None = None) -> NoteportConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .noteport.toml in CWD
    3. ~/.config/noteport/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged NoteportConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        global_config = Path.home() / ".config" / "noteport" / "config.toml"
        if not data and global_config.exists():
            data = _load_toml(global_config)
            logger.info("Loaded config from %s", global_config)

    try:
        config = NoteportConfig.model_validate(data) if data else NoteportConfig()
    except ValueError as exc:
        logger.warning("Invalid configuration, using defaults: %s", exc)
        config = NoteportConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: NoteportConfig, **cli_kwargs: object) -> NoteportConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).

    Args:
        config: Base config.
        **cli_kwargs: CLI flag values, e.g. ``data_dir``, ``export_prefix``.

    Returns:
        Updated config with CLI overrides applied.
    """
    data = config.model_dump(by_alias=True)

    mapping: dict[str, tuple[str, str]] = {
        "data_dir": ("storage", "data_dir"),
        "export_prefix": ("export", "prefix"),
        "retention_hours": ("export", "retention_hours"),
        "image_quality": ("images", "quality"),
        "max_file_age_days": ("cleanup", "max_file_age_days"),
        "strategy": ("import", "default_strategy"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return NoteportConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: NoteportConfig) -> NoteportConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump(by_alias=True)

    env_mapping: dict[str, tuple[str, str]] = {
        "NOTEPORT_DATA_DIR": ("storage", "data_dir"),
        "NOTEPORT_EXPORT_PREFIX": ("export", "prefix"),
        "NOTEPORT_RETENTION_HOURS": ("export", "retention_hours"),
        "NOTEPORT_IMAGE_QUALITY": ("images", "quality"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    try:
        return NoteportConfig.model_validate(data)
    except ValueError as exc:
        logger.warning("Ignoring invalid environment overrides: %s", exc)
        return config

"""Tests for src/config.py: NoteportConfig, TOML loading, overrides."""

from pathlib import Path

import pytest

from noteport.attachments.models import ImageOptions
from noteport.config import NoteportConfig, load_config, merge_cli_overrides
from noteport.importer.models import ConflictStrategy
from noteport.reconcile.models import CleanupOptions

ENV_VARS = (
    "NOTEPORT_DATA_DIR",
    "NOTEPORT_EXPORT_PREFIX",
    "NOTEPORT_RETENTION_HOURS",
    "NOTEPORT_IMAGE_QUALITY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove env vars that _apply_env_vars reads so tests see TOML values."""
    for key in ENV_VARS:
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_storage(self):
        cfg = NoteportConfig()
        assert cfg.storage.data_dir == "./data"
        assert cfg.storage.max_image_size == 5 * 1024 * 1024
        assert cfg.storage.max_file_size == 10 * 1024 * 1024
        assert cfg.storage.uploads_dir == Path("./data/uploads")
        assert cfg.storage.exports_dir == Path("./data/exports")

    def test_export_and_import(self):
        cfg = NoteportConfig()
        assert cfg.export.prefix == "notebook-export"
        assert cfg.export.retention_hours == 24.0
        assert cfg.import_.default_strategy == "rename"

    def test_cleanup(self):
        cfg = NoteportConfig()
        assert cfg.cleanup.delete_temp is True
        assert cfg.cleanup.delete_orphans is True
        assert cfg.cleanup.delete_old is False
        assert cfg.cleanup.max_file_age_days == 365


class TestConverters:
    def test_image_options(self):
        cfg = NoteportConfig.model_validate({"images": {"quality": 60, "output_format": "jpeg"}})
        opts = cfg.to_image_options()
        assert isinstance(opts, ImageOptions)
        assert opts.quality == 60
        assert opts.extension == "jpg"

    def test_cleanup_options(self):
        cfg = NoteportConfig.model_validate({"cleanup": {"delete_old": True, "max_file_age_days": 30}})
        opts = cfg.to_cleanup_options(dry_run=True)
        assert isinstance(opts, CleanupOptions)
        assert opts.delete_old_files is True
        assert opts.max_file_age_days == 30
        assert opts.dry_run is True


class TestLoadConfig:
    def test_explicit_toml(self, tmp_path: Path):
        path = tmp_path / "custom.toml"
        path.write_text(
            '[storage]\ndata_dir = "/srv/notes"\n\n[import]\ndefault_strategy = "skip"\n\n[export]\nprefix = "backup"\n',
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.storage.data_dir == "/srv/notes"
        assert cfg.import_.default_strategy == "skip"
        assert cfg.export.prefix == "backup"

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        cfg = load_config(tmp_path / "nope.toml")
        assert cfg == NoteportConfig()

    def test_invalid_toml_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text("[storage\n", encoding="utf-8")
        assert load_config(path).storage.data_dir == "./data"

    def test_invalid_values_use_defaults(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text("[images]\nquality = 500\n", encoding="utf-8")
        assert load_config(path).images.quality == 85

    def test_invalid_strategy_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text('[import]\ndefault_strategy = "merge"\n', encoding="utf-8")
        cfg = load_config(path)
        assert cfg.import_.default_strategy is ConflictStrategy.RENAME

    def test_cwd_discovery(self, tmp_path: Path, monkeypatch):
        (tmp_path / ".noteport.toml").write_text('[export]\nprefix = "found"\n', encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert load_config().export.prefix == "found"

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "c.toml"
        path.write_text('[export]\nprefix = "toml"\n', encoding="utf-8")
        monkeypatch.setenv("NOTEPORT_EXPORT_PREFIX", "env")
        monkeypatch.setenv("NOTEPORT_IMAGE_QUALITY", "70")
        cfg = load_config(path)
        assert cfg.export.prefix == "env"
        assert cfg.images.quality == 70

    def test_bad_env_value_ignored(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("NOTEPORT_RETENTION_HOURS", "soon")
        cfg = load_config(tmp_path / "none.toml")
        assert cfg.export.retention_hours == 24.0


class TestMergeCliOverrides:
    def test_applies_set_values(self):
        cfg = merge_cli_overrides(NoteportConfig(), data_dir="/tmp/x", strategy="overwrite", export_prefix=None)
        assert cfg.storage.data_dir == "/tmp/x"
        assert cfg.import_.default_strategy == "overwrite"
        assert cfg.export.prefix == "notebook-export"

    def test_unknown_keys_ignored(self):
        assert merge_cli_overrides(NoteportConfig(), bogus=1) == NoteportConfig()

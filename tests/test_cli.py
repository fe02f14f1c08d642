"""Smoke tests for the CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from noteport import __version__
from noteport.cli import app
from noteport.content.store import ContentStore


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch):
    """Keep config discovery and env vars away from the developer's setup."""
    monkeypatch.chdir(tmp_path)
    for key in ("NOTEPORT_DATA_DIR", "NOTEPORT_EXPORT_PREFIX", "NOTEPORT_RETENTION_HOURS", "NOTEPORT_IMAGE_QUALITY"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


def _invoke(runner: CliRunner, data_dir: Path, *args: str):
    return runner.invoke(app, ["--data-dir", str(data_dir), *args])


class TestCLI:
    def test_help(self, runner: CliRunner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("upload", "import", "export", "cleanup", "stats"):
            assert command in result.output

    def test_version(self, runner: CliRunner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestImportExport:
    def test_import_then_export(self, runner: CliRunner, data_dir: Path, tmp_path: Path):
        note = tmp_path / "demo.md"
        note.write_text('---\ntitle: "Demo"\ntags: [a, b]\n---\nHello', encoding="utf-8")

        imported = _invoke(runner, data_dir, "import", str(note))
        assert imported.exit_code == 0, imported.output
        assert "demo" in imported.output
        assert ContentStore(data_dir).get_by_slug("demo") is not None

        exported = _invoke(runner, data_dir, "export", "--format", "json", "--tag", "A")
        assert exported.exit_code == 0, exported.output
        artifacts = list((data_dir / "exports").glob("notebook-export-*.json"))
        assert len(artifacts) == 1
        assert json.loads(artifacts[0].read_text(encoding="utf-8"))["posts"][0]["title"] == "Demo"

    def test_import_skip_strategy(self, runner: CliRunner, data_dir: Path, tmp_path: Path):
        note = tmp_path / "demo.md"
        note.write_text("# Demo\nbody", encoding="utf-8")
        _invoke(runner, data_dir, "import", str(note))

        result = _invoke(runner, data_dir, "import", str(note), "--strategy", "skip")
        assert result.exit_code == 1
        assert "skipped" in result.output
        assert len(ContentStore(data_dir).list_items()) == 1

    def test_bad_configured_strategy_falls_back(self, runner: CliRunner, data_dir: Path, tmp_path: Path):
        (tmp_path / ".noteport.toml").write_text('[import]\ndefault_strategy = "merge"\n', encoding="utf-8")
        note = tmp_path / "demo.md"
        note.write_text("# Demo\nbody", encoding="utf-8")

        result = _invoke(runner, data_dir, "import", str(note))
        assert result.exit_code == 0, result.output

    def test_import_unsupported_file(self, runner: CliRunner, data_dir: Path, tmp_path: Path):
        image = tmp_path / "photo.png"
        image.write_bytes(b"\x89PNG")
        result = _invoke(runner, data_dir, "import", str(image))
        assert result.exit_code == 1

    def test_export_no_match_fails(self, runner: CliRunner, data_dir: Path):
        result = _invoke(runner, data_dir, "export", "--tag", "nothing")
        assert result.exit_code == 1
        assert "No matching items" in result.output


class TestUploadCleanupStats:
    def test_upload_and_stats(self, runner: CliRunner, data_dir: Path, tmp_path: Path):
        doc = tmp_path / "notes.txt"
        doc.write_text("some text", encoding="utf-8")

        uploaded = _invoke(runner, data_dir, "upload", str(doc))
        assert uploaded.exit_code == 0, uploaded.output
        assert "Stored" in uploaded.output

        again = _invoke(runner, data_dir, "upload", str(doc))
        assert "Duplicate" in again.output

        stats = _invoke(runner, data_dir, "stats")
        assert stats.exit_code == 0
        assert "Attachments" in stats.output

    def test_upload_rejected_type(self, runner: CliRunner, data_dir: Path, tmp_path: Path):
        binary = tmp_path / "tool.exe"
        binary.write_bytes(b"MZ")
        result = _invoke(runner, data_dir, "upload", str(binary))
        assert result.exit_code == 1
        assert "Rejected" in result.output

    def test_cleanup_dry_run(self, runner: CliRunner, data_dir: Path):
        orphan = data_dir / "uploads" / "documents" / "2024" / "01" / "stray.pdf"
        orphan.parent.mkdir(parents=True)
        orphan.write_bytes(b"x")

        result = _invoke(runner, data_dir, "cleanup", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert orphan.exists()

        result = _invoke(runner, data_dir, "cleanup")
        assert result.exit_code == 0
        assert not orphan.exists()

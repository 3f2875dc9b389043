"""Tests for the catalog CLI."""

import logging

import pytest

from castellan import __main__ as cli
from castellan.__main__ import main
from castellan.core.config import Settings


CATALOG_YAML = """
permissions:
  manage-posts:
    label: Manage Posts
    actor_types: [user]
    implies: [edit-post]
  edit-post:
    implies: [view-post]
  view-post: View Post
"""


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger("castellan")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(CATALOG_YAML)
    return str(path)


class TestCli:
    def test_no_arguments(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1
        assert "Usage" in capsys.readouterr().err

    def test_prints_catalog(self, catalog_file, capsys):
        with pytest.raises(SystemExit) as exc:
            main([catalog_file])
        assert exc.value.code == 0

        out = capsys.readouterr().out
        assert "Permission: manage-posts" in out
        assert "Label: Manage Posts" in out
        assert "Actor types: user" in out
        assert "Implies: edit-post, view-post" in out

    def test_selected_handles(self, catalog_file, capsys):
        with pytest.raises(SystemExit) as exc:
            main([catalog_file, "view-post"])
        assert exc.value.code == 0

        out = capsys.readouterr().out
        assert "Permission: view-post" in out
        assert "manage-posts" not in out

    def test_unknown_handle(self, catalog_file, capsys):
        with pytest.raises(SystemExit) as exc:
            main([catalog_file, "ghost"])
        assert exc.value.code == 1
        assert "ghost" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            main([str(tmp_path / "missing.yaml")])
        assert exc.value.code == 1
        assert "not found" in capsys.readouterr().err

    def test_logs_to_file_when_configured(self, catalog_file, tmp_path, monkeypatch):
        log_dir = tmp_path / "logs"
        settings = Settings(_env_file=None, log_to_file=True, log_dir=str(log_dir))
        monkeypatch.setattr(cli, "get_settings", lambda: settings)

        with pytest.raises(SystemExit) as exc:
            main([catalog_file])
        assert exc.value.code == 0

        assert (log_dir / "castellan.log").exists()

"""
Unit tests for the admin tasks.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from invoke import Context

from imgvault.cli.admin import create_user, init_db, namespace, serve
from imgvault.config import get_database_path
from imgvault.models.database import get_database_manager
from imgvault.services.passwords import get_credential_hasher
from imgvault.services.users import UserStore


def lookup_user(username):
    with get_database_manager(get_database_path(), create_if_missing=False) as db_manager:
        return UserStore(db_manager, get_credential_hasher()).get_user(username)


class TestAdminTasks:
    """Test cases for invoke tasks."""

    def test_namespace(self):
        assert {"init-db", "create-user", "serve"} <= set(namespace.task_names)

    def test_init_db(self, tmp_path, capsys):
        init_db(Context(), env_file=str(tmp_path / "missing.env"))

        assert Path(get_database_path()).exists()
        assert "Database ready" in capsys.readouterr().out

    def test_init_db_reads_env_file(self, tmp_path, monkeypatch):
        target = tmp_path / "from-file" / "db.duckdb"
        env_file = tmp_path / "admin.env"
        env_file.write_text(f"DATABASE_PATH={target}\n")
        monkeypatch.delenv("DATABASE_PATH")

        init_db(Context(), env_file=str(env_file))

        assert target.exists()

    def test_create_user_with_password(self, tmp_path, capsys):
        create_user(Context(), username="carol", password="pw", env_file=str(tmp_path / "missing.env"))

        assert "Created user 'carol'" in capsys.readouterr().out
        assert lookup_user("carol") is not None

    def test_create_user_prompts_for_password(self, tmp_path):
        with patch("imgvault.cli.admin.getpass.getpass", side_effect=["pw", "pw"]) as mock_getpass:
            create_user(Context(), username="dave", env_file=str(tmp_path / "missing.env"))

        assert mock_getpass.call_count == 2
        user = lookup_user("dave")
        assert get_credential_hasher().verify("pw", user.password_hash)

    def test_create_user_password_mismatch(self, tmp_path):
        with patch("imgvault.cli.admin.getpass.getpass", side_effect=["pw", "other"]):
            with pytest.raises(SystemExit) as exc_info:
                create_user(Context(), username="erin", env_file=str(tmp_path / "missing.env"))

        assert exc_info.value.code == 1

    def test_create_duplicate_user(self, tmp_path, capsys):
        env_file = str(tmp_path / "missing.env")
        create_user(Context(), username="carol", password="pw", env_file=env_file)

        with pytest.raises(SystemExit):
            create_user(Context(), username="carol", password="pw", env_file=env_file)

        assert "Username already exists" in capsys.readouterr().out

    def test_serve_passes_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOST", "127.0.0.1")
        monkeypatch.setenv("PORT", "3000")

        with patch("imgvault.main.main") as mock_main:
            serve(Context(), host="0.0.0.0", port=8080, env_file=str(tmp_path / "missing.env"))

        mock_main.assert_called_once_with()
        assert os.environ["HOST"] == "0.0.0.0"
        assert os.environ["PORT"] == "8080"

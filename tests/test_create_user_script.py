from __future__ import annotations

import importlib.util
from pathlib import Path

from userstore.database import ConnectionFactory
from userstore.repository import UserRepository

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "create_user.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("create_user_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


def test_script_creates_user_and_reports_duplicates(tmp_path: Path, capsys) -> None:
    script = _load_script()
    db_path = tmp_path / "script.db"

    assert script.main(["Grace", " grace@example.com ", "--db", str(db_path)]) == 0
    assert script.main(["Grace", "grace@example.com", "--db", str(db_path)]) == 1

    captured = capsys.readouterr()
    assert "Created user #1: Grace <grace@example.com>" in captured.out
    assert "already exists" in captured.err
    users = UserRepository(ConnectionFactory(db_path)).list_all()
    assert [user.email for user in users] == ["grace@example.com"]

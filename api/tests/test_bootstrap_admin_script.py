from __future__ import annotations

import importlib.util
import subprocess
import sys
from pathlib import Path

import pytest
from passlib.hash import pbkdf2_sha256


SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "bootstrap_admin.py"


def _run_script(*args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, str(SCRIPT_PATH), *args],
        check=check,
        capture_output=True,
        text=True,
    )


def test_bootstrap_script_emits_sql_for_user_id_target() -> None:
    output = _run_script("--user-id", "42", "--actor", "cli").stdout

    assert "update users" in output
    assert "where id = 42" in output
    assert "set role = 'admin', account_status = 'active'" in output
    assert "select 'user', id, 'admin_bootstrap', 'admin', 'cli'" in output


def test_bootstrap_script_emits_sql_for_email_target() -> None:
    output = _run_script("--email", "Admin@Example.edu").stdout

    assert "where lower(email) = lower('Admin@Example.edu')" in output
    assert "insert into users" not in output
    assert "'admin_bootstrap', 'admin', 'system'" in output


def test_bootstrap_script_creates_account_with_hashed_password() -> None:
    output = _run_script("--email", "root@example.edu", "--password", "s3cret-pass", "--full-name", "O'Neil").stdout

    assert "insert into users (email, password_hash, full_name, role)" in output
    assert "'root@example.edu'" in output
    assert "'O''Neil'" in output
    assert "s3cret-pass" not in output
    assert "on conflict ((lower(email))) do update" in output

    hashed = next(token.strip("',") for token in output.split() if token.startswith("'$pbkdf2-sha256$"))
    assert pbkdf2_sha256.verify("s3cret-pass", hashed)


def test_bootstrap_script_rejects_password_without_email() -> None:
    completed = _run_script("--user-id", "7", "--password", "s3cret-pass", check=False)

    assert completed.returncode != 0
    assert "--password requires --email" in completed.stderr


def test_render_sql_requires_a_target() -> None:
    spec = importlib.util.spec_from_file_location("bootstrap_admin", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    with pytest.raises(ValueError, match="either user_id or email is required"):
        module.render_sql(user_id=None, email=None, password=None, full_name=None, actor="cli")

from __future__ import annotations

import os
import sqlite3
import subprocess
import sys
from pathlib import Path


def test_alembic_upgrade_and_downgrade_for_review_tracking(tmp_path: Path) -> None:
    repo_root = Path(__file__).resolve().parents[2]
    db_path = tmp_path / "migration_test.db"
    env = os.environ.copy()
    env["DATABASE_URL"] = f"sqlite:///{db_path}"

    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "upgrade", "0002_application_review_tracking"],
        cwd=repo_root,
        env=env,
        check=True,
    )

    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='app_form_fields'")
    assert cur.fetchone() is not None

    cur.execute("PRAGMA index_list(applications)")
    indexes = {row[1] for row in cur.fetchall()}
    assert "ix_applications_job_status" in indexes

    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "downgrade", "0001_initial_schema"],
        cwd=repo_root,
        env=env,
        check=True,
    )

    cur.execute("PRAGMA index_list(applications)")
    indexes_after = {row[1] for row in cur.fetchall()}
    assert "ix_applications_job_status" not in indexes_after

    cur.execute("PRAGMA table_info(applications)")
    columns_after = {row[1] for row in cur.fetchall()}
    assert "viewed_at" not in columns_after
    assert "form_response_json" in columns_after

    conn.close()

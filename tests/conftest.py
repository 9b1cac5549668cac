from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="hireform-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'hireform-test.db'}"
os.environ["DATA_DIR"] = str(_TEST_ROOT)
os.environ["UPLOAD_DIR"] = str(_TEST_ROOT / "uploads")
os.environ["APP_ENV"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402

from hireform.db.base import Base  # noqa: E402
from hireform.db.repositories import Repository  # noqa: E402
from hireform.db.seed import seed_info_fields  # noqa: E402
from hireform.db.session import SessionLocal, engine  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        seed_info_fields(session)
    yield


@pytest.fixture()
def job_with_profile() -> dict[str, object]:
    """A job asking for full_name (mandatory), linkedin_url (optional), domicile (optional), email (off)."""
    with SessionLocal() as session:
        repo = Repository(session)
        job = repo.create_job(
            title="Backend Engineer",
            company="Acme",
            location="Jakarta",
            fields=[
                ("full_name", "mandatory"),
                ("linkedin_url", "optional"),
                ("domicile", "optional"),
                ("email", "off"),
            ],
        )
        profile = repo.create_profile("user-1", full_name="John Doe", location="Bandung")
        field_ids = {row.key: row.id for row in repo.list_info_fields()}
        return {"job_id": job.id, "profile_id": profile.id, "user_id": "user-1", "field_ids": field_ids}

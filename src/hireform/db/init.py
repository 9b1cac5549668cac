from __future__ import annotations

from pathlib import Path

from hireform.config import get_settings
from hireform.db.base import Base
from hireform.db.session import SessionLocal, engine
from hireform.db import models  # noqa: F401
from hireform.db.seed import seed_info_fields


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [
        settings.data_dir,
        settings.upload_dir,
        *(settings.upload_dir / kind for kind in ("resume", "cover_letter", "photo")),
    ]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, int]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        inserted = seed_info_fields(session)
    return {"seeded_fields": inserted}

from __future__ import annotations

from collections.abc import Generator

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from hireform.db.session import get_db_session

UNAUTHORIZED_DETAIL = "Unauthorized - Please log in"


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail=UNAUTHORIZED_DETAIL)
    return x_user_id.strip()

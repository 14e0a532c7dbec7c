from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session

from ingestion.db.session import ensure_schema, session_scope


def init_db() -> None:
    ensure_schema()


def session_dependency() -> Generator[Session, None, None]:
    with session_scope() as session:
        yield session

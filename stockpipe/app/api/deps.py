from __future__ import annotations

from typing import Generator

from stockpipe.app.db.session import SessionLocal
from stockpipe.services.sources import PositionSource, SqlPositionSource


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_position_source() -> PositionSource:
    # une session par lecture : les deux lectures partent en parallèle
    return SqlPositionSource(SessionLocal)

# clinic_booking/db/session.py
from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def _engine_kwargs(db_uri: str) -> Dict[str, Any]:
    if db_uri.startswith("sqlite"):
        # one connection per thread; writers wait on the file lock instead of failing fast
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 30
            },
            "future": True,
        }
    return {
        "pool_pre_ping": True,
        "pool_recycle": 280,
        "pool_size": 10,
        "max_overflow": 20,
        "future": True,
    }


class Database:
    """
    Owns the engine + session factory for one store.

    Constructed explicitly, opened at process start (FastAPI lifespan or CLI
    entrypoint) and closed at shutdown. Components receive Sessions from it;
    nothing reaches for a module-level handle.
    """

    def __init__(self, db_uri: str, **engine_overrides: Any) -> None:
        self.db_uri = db_uri
        self._engine_overrides = engine_overrides
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "Database":
        if self._engine is None:
            kw = _engine_kwargs(self.db_uri)
            kw.update(self._engine_overrides)
            self._engine = create_engine(self.db_uri, **kw)
            self._sessionmaker = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self._engine,
                future=True,
            )
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not open")
        return self._sessionmaker()

    def create_all(self) -> None:
        from clinic_booking.db.base import Base

        Base.metadata.create_all(bind=self.engine)

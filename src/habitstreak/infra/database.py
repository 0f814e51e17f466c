"""Engine, schema and the per-operation transaction used by HabitTracker.

A tracker operation writes the check ledger, the user-habit streak and any
badge cursors and awards. They all go through one session from
:func:`session_scope`, so a failure anywhere leaves none of them behind.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator, Tuple

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig

logger = logging.getLogger("habitstreak.infra.database")

SessionFactory = Callable[[], ContextManager[Session]]


def create_db_engine(config: BaseConfig) -> Engine:
    """Engine for ``config.DATABASE_URL`` with the config's engine options."""
    return create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())


def init_database(engine: Engine) -> None:
    """Create the user, habit, ledger and badge tables if missing."""
    # Registers every table on SQLModel.metadata
    from .. import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.debug("Schema ready", extra={"tables": sorted(SQLModel.metadata.tables)})


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """One tracker transaction: commit on success, roll back on any error.

    Objects stay readable after commit (``expire_on_commit=False``) because
    results such as badge views are built from them once the session closes.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_session_factory(engine: Engine) -> SessionFactory:
    """Zero-argument callable handed to :class:`HabitTracker`."""

    def factory() -> ContextManager[Session]:
        return session_scope(engine)

    return factory


def bootstrap_database(config: BaseConfig | None = None) -> Tuple[Engine, SessionFactory]:
    """Engine plus session factory for ``config``, with the schema created.

    The CLI calls this once per invocation.
    """

    cfg = config or BaseConfig()
    engine = create_db_engine(cfg)
    init_database(engine)
    logger.info("Database bootstrapped", extra={"database_url": str(engine.url)})
    return engine, create_session_factory(engine)

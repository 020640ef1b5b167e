from __future__ import annotations

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError


logger = logging.getLogger(__name__)


class DatabaseUnavailable(RuntimeError):
    """Raised when the connectivity probe against a database fails."""


def _safe_url(url: str) -> str:
    # Nunca loguear la contraseña.
    return make_url(url).render_as_string(hide_password=True)


def create_database_engine(url: str, *, label: str = "DB") -> Engine:
    """Create an engine and check it answers ``SELECT 1``.

    Raises DatabaseUnavailable if the probe fails; callers treat this as fatal.
    """
    logger.info("[%s] Connecting to %s", label, _safe_url(url))

    kwargs = {"pool_pre_ping": True, "future": True}
    if url.startswith("sqlite"):
        # SQLite connections are shared between the ingestion thread and API workers.
        kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_engine(url, **kwargs)

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        engine.dispose()
        logger.error("[%s] Connection test failed: %s", label, type(e).__name__)
        raise DatabaseUnavailable(f"{label} unreachable at {_safe_url(url)}") from e

    logger.info("[%s] Connected! ✅", label)
    return engine

"""Engine and session factory helpers."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import normalise_database_url
from .errors import ConfigError
from .models import Base

logger = logging.getLogger(__name__)


def make_engine(database_url: str | None) -> Engine:
    url = normalise_database_url(database_url)
    if not url:
        raise ConfigError("DATABASE_URL is not set")
    return create_engine(url, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    # Records are handed to the notification layer after the session closes.
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create any missing tables.  Existing tables are left untouched."""
    Base.metadata.create_all(engine, checkfirst=True)
    logger.info("Database schema ensured on %s", engine.url.render_as_string(hide_password=True))

import logging

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from proasset.config import get_settings

logger = logging.getLogger(__name__)


def _make_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    # in-memory databases only live as long as their single connection
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = _make_engine(get_settings().database_url)


def create_db_and_tables() -> None:
    SQLModel.metadata.create_all(engine)


def drop_db_and_tables() -> None:
    SQLModel.metadata.drop_all(engine)


def get_session():
    session = Session(engine)
    try:
        yield session
    except (HTTPException, RequestValidationError):
        # business, auth and input errors: nothing to undo
        raise
    except Exception as e:
        session.rollback()
        logger.error("session rolled back: %s: %s", type(e).__name__, e)
        raise
    finally:
        session.close()

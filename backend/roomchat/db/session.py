from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from roomchat.core.config import settings


class Base(DeclarativeBase):
    pass


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def build_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    if _is_memory_sqlite(url):
        # one shared connection, otherwise every checkout sees an empty database
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True, pool_recycle=1800)


def get_engine(testing: bool = False):
    if testing and settings.test_database_url:
        return build_engine(settings.test_database_url)
    return build_engine(settings.database_url)


engine = get_engine()


def make_session_factory(bind) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False)


SessionLocal = make_session_factory(engine)


@contextmanager
def db_session(factory: sessionmaker | None = None) -> Iterator[Session]:
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db(request: Request) -> Iterator[Session]:
    # each app may be bound to its own database
    factory = getattr(request.app.state, "session_factory", None)
    with db_session(factory) as session:
        yield session

from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool


Base = declarative_base()


def _manual_sqlite_transactions(engine) -> None:
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; issue BEGIN ourselves
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Database:
    """
    Data-access handle: one engine plus its session factory.

    Built once by the app factory, kept on ``app.state.db`` and disposed at
    shutdown. Scripts and tests construct their own.
    """

    def __init__(self, url: str):
        engine_kwargs = {}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # in-memory databases live as long as their single connection
                engine_kwargs["poolclass"] = StaticPool

        self.url = url
        self.engine = create_engine(url, **engine_kwargs)
        if url.startswith("sqlite"):
            _manual_sqlite_transactions(self.engine)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # Import models so SQLAlchemy registers them
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Generator[Session, None, None]:
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    database: Database = request.app.state.db
    yield from database.session()

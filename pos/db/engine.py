# pos/db/engine.py

from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from pos.config import get_settings


def _configure_sqlite(engine: Engine) -> None:
    # pysqlite defers BEGIN on its own; take it over so SAVEPOINTs work.
    # SQLite ignores FOR UPDATE, so IMMEDIATE takes the write lock up front
    # and concurrent writers wait on busy_timeout instead of failing mid-way.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_from_url(url: str, **kwargs) -> Engine:
    # echo=True if you want to see SQL printed in the terminal
    engine = create_engine(url, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        _configure_sqlite(engine)
    return engine


@lru_cache
def get_engine() -> Engine:
    return create_engine_from_url(get_settings().db_url)

# smartsupply/db/engine.py
"""
Async SQLModel engine and session factory for the local customer store.
Uses aiosqlite for SQLite (default); any async SQLAlchemy URL works.
Engines are built per store instance, there is no module-level engine.
"""

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

# SQL function registered on every SQLite connection. SQLite's own lower()
# and LIKE only fold ASCII letters.
CASEFOLD_FUNCTION = "py_casefold"


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def build_engine(database_url: str) -> AsyncEngine:
    """
    Create an async engine for the given URL.
    SQLite connections get a Unicode-aware casefold function, file-backed
    ones also get WAL mode to avoid "database is locked".
    """
    url = make_url(database_url)
    _is_sqlite = url.get_backend_name() == "sqlite"
    _connect_args = {"check_same_thread": False} if _is_sqlite else {}
    engine = create_async_engine(url, echo=False, connect_args=_connect_args)

    if _is_sqlite:
        _use_wal = url.database not in (None, "", ":memory:")

        @event.listens_for(engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            dbapi_connection.create_function(CASEFOLD_FUNCTION, 1, _casefold)
            if _use_wal:
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA journal_mode=WAL;")
                cursor.close()

    return engine


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

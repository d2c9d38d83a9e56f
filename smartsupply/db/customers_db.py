# smartsupply/db/customers_db.py
"""
Persistent local store for cached customers and the sync marker.

Two tables: customers keyed by id (indexed on name/phone/whatsapp/house_no)
and sync_metadata keyed by a fixed "lastSync" key. One CustomerStore is
built per session and injected into the cache coordinator.
"""
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Iterable, List, Optional

from sqlalchemy import delete, func
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlmodel import SQLModel, col, or_, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.constants import LAST_SYNC_KEY
from ..models import Customer, SyncMetadata
from .engine import CASEFOLD_FUNCTION, build_engine, build_session_maker

logger = logging.getLogger(__name__)

SEARCHABLE_FIELDS = ("name", "phone", "whatsapp", "house_no", "address")


class CacheStorageError(Exception):
    pass


class StorageUnavailable(CacheStorageError):
    pass


class StorageIOError(CacheStorageError):
    pass


def _like_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in the term matched literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _sqlite_directory(database_url: str) -> Optional[str]:
    """Directory holding the SQLite file, or None for in-memory/non-file URLs."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or url.database in (None, "", ":memory:"):
        return None
    return os.path.dirname(os.path.abspath(url.database))


class CustomerStore:
    """
    Durable customer table plus the "lastSync" marker.

    All operations are async and raise StorageUnavailable (store not usable)
    or StorageIOError (a read/write failed). Callers decide how to degrade.
    """

    def __init__(self, database_url: str, clock: Callable[[], float] = time.time):
        self._database_url = database_url
        self._clock = clock
        self._engine = None
        self._session_maker = None

    def is_available(self) -> bool:
        """Capability probe; safe to call before init()."""
        if not self._database_url:
            return False
        try:
            directory = _sqlite_directory(self._database_url)
        except ArgumentError:
            return False
        if directory is None:
            return True

        # Walk up to the closest existing directory: that is where
        # os.makedirs will need write access.
        probe = directory
        while not os.path.exists(probe):
            parent = os.path.dirname(probe)
            if parent == probe:
                return False
            probe = parent
        return os.path.isdir(probe) and os.access(probe, os.W_OK)

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    async def init(self) -> None:
        """Open the database and create both tables if needed. Idempotent."""
        if self._engine is not None:
            return
        if not self.is_available():
            raise StorageUnavailable(f"No usable storage at {self._database_url!r}")

        engine = None
        try:
            directory = _sqlite_directory(self._database_url)
            if directory:
                os.makedirs(directory, exist_ok=True)
            engine = build_engine(self._database_url)
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            if engine is not None:
                await engine.dispose()
            raise StorageUnavailable(f"Could not open customer store: {e}") from e

        self._engine = engine
        self._session_maker = build_session_maker(engine)
        logger.info("Customer store ready (%s)", self._database_url)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_maker = None

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        if self._session_maker is None:
            raise StorageUnavailable("Customer store is not initialized.")
        try:
            async with self._session_maker() as session:
                yield session
        except SQLAlchemyError as e:
            raise StorageIOError(f"Customer store operation failed: {e}") from e

    # --- Writes ---

    async def store_all(self, records: Iterable[Customer]) -> float:
        """
        Replace the whole customer table with `records` and advance lastSync.
        Runs in a single transaction: on failure the previous table survives.
        Returns the stored lastSync value.
        """
        # Last duplicate wins, like repeated puts on the same key
        unique = {record.id: record.copy_detached() for record in records}
        now = self._clock()
        async with self._session() as session:
            async with session.begin():
                await session.execute(delete(Customer))
                session.add_all(list(unique.values()))

                marker = await session.get(SyncMetadata, LAST_SYNC_KEY)
                if marker is None:
                    marker = SyncMetadata(key=LAST_SYNC_KEY, value=now)
                    session.add(marker)
                else:
                    # lastSync never moves backwards
                    marker.value = max(marker.value, now)
                last_sync = marker.value

        logger.info("Stored %d customers (lastSync=%s)", len(unique), last_sync)
        return last_sync

    async def upsert(self, record: Customer) -> None:
        """Insert or fully replace one customer by id. Does not touch lastSync."""
        async with self._session() as session:
            async with session.begin():
                await session.merge(record.copy_detached())

    async def update_balance(self, customer_id: str, balance: float) -> bool:
        """Patch the balance snapshot. Returns False if the customer is unknown."""
        async with self._session() as session:
            async with session.begin():
                customer = await session.get(Customer, customer_id)
                if customer is None:
                    return False
                customer.current_balance = balance
                customer.balance_last_updated = self._clock()
                session.add(customer)
        return True

    async def clear(self) -> None:
        """Drop every cached customer (the sync marker is kept)."""
        async with self._session() as session:
            async with session.begin():
                await session.execute(delete(Customer))

    # --- Reads ---

    async def get_all(self) -> List[Customer]:
        async with self._session() as session:
            result = await session.exec(select(Customer).order_by(Customer.name))
            return list(result.all())

    async def get_by_id(self, customer_id: str) -> Optional[Customer]:
        async with self._session() as session:
            return await session.get(Customer, customer_id)

    def _substring_filters(self, term: str) -> list:
        columns = [col(getattr(Customer, field)) for field in SEARCHABLE_FIELDS]
        if self._engine is not None and self._engine.dialect.name == "sqlite":
            # Fold both sides in Python so accented names match too
            folder = getattr(func, CASEFOLD_FUNCTION)
            pattern = _like_pattern(term.casefold())
            return [folder(column).like(pattern, escape="\\") for column in columns]
        pattern = _like_pattern(term)
        return [column.ilike(pattern, escape="\\") for column in columns]

    async def search_local(self, query: str) -> List[Customer]:
        """
        Case-insensitive substring search over name, phone, whatsapp,
        house number and address. A blank query returns everything.
        """
        term = query.strip()
        statement = select(Customer).order_by(Customer.name)
        if term:
            statement = statement.where(or_(*self._substring_filters(term)))
        async with self._session() as session:
            result = await session.exec(statement)
            return list(result.all())

    async def get_last_sync(self) -> Optional[float]:
        async with self._session() as session:
            marker = await session.get(SyncMetadata, LAST_SYNC_KEY)
            return marker.value if marker else None

# smartsupply/services/customer_cache.py
"""
Customer cache coordinator.

Sits between the portals, the in-memory working set, the local store and
the remote directory:
- reads are local-first, with a remote fallback when the local copy may
  be missing customers created after the last full sync
- whatever the fallback finds is written back locally (self-healing)
- balances are only trusted right after a per-customer fetch
- at most one full sync runs at a time

One instance is built per application session and injected where needed.
"""
import asyncio
import contextlib
import logging
import time
from typing import Callable, List, Optional

from ..core.config import Settings, get_settings
from ..core.constants import CacheState, ResultSource
from ..core.results import CacheResult
from ..db.customers_db import CacheStorageError, CustomerStore
from ..models import Customer
from ..utils.cache import WorkingSet
from .directory_client import DirectoryClient, DirectoryError

logger = logging.getLogger(__name__)


def _retrieve_sync_error(task: asyncio.Task) -> None:
    # Every caller may have been cancelled before the sync finished
    if not task.cancelled():
        task.exception()


class CustomerCache:
    def __init__(
        self,
        directory: DirectoryClient,
        store: Optional[CustomerStore] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = settings or get_settings()
        self._directory = directory
        self._store = store
        self._clock = clock
        self.trust_window = settings.search_trust_window_seconds
        self.min_query_length = settings.search_min_query_length

        self._memory = WorkingSet()
        self._state = CacheState.UNINITIALIZED
        self._last_sync: Optional[float] = None
        self._persistent = False
        self._inflight_sync: Optional[asyncio.Task] = None

    # --- State exposed to the portals ---

    @property
    def state(self) -> CacheState:
        if self._inflight_sync is not None:
            return CacheState.SYNCING
        return self._state

    @property
    def customers(self) -> List[Customer]:
        return self._memory.values()

    @property
    def loading(self) -> bool:
        return self._state in (CacheState.UNINITIALIZED, CacheState.LOADING)

    @property
    def syncing(self) -> bool:
        return self._inflight_sync is not None

    @property
    def last_sync(self) -> Optional[float]:
        return self._last_sync

    @property
    def persistent(self) -> bool:
        """False when the local store is missing or broken: remote-only mode."""
        return self._persistent

    # --- Lifecycle ---

    async def start(self) -> None:
        """Open the local store and warm memory from it."""
        if self._state is not CacheState.UNINITIALIZED:
            return
        self._state = CacheState.LOADING
        try:
            await self._load_from_store()
        finally:
            self._state = CacheState.READY

    async def _load_from_store(self) -> None:
        if self._store is None or not self._store.is_available():
            logger.warning("Local customer store unavailable, using the remote directory only")
            return
        try:
            await self._store.init()
            records = await self._store.get_all()
            last_sync = await self._store.get_last_sync()
        except CacheStorageError as e:
            logger.error(f"Could not load cached customers, using the remote directory only: {e}")
            return

        self._memory.replace_all(records)
        self._last_sync = last_sync
        self._persistent = True
        logger.info(f"Loaded {len(records)} cached customers (lastSync={last_sync})")

    async def close(self) -> None:
        if self._store is not None:
            await self._store.close()

    # --- Full resync ---

    async def sync_customers(self) -> None:
        """
        Replace the cached set with the directory's full customer list.

        Only one sync runs at a time. Callers arriving while one is in flight
        wait for it to finish but never see its error. Directory failures
        propagate to the caller that started the sync and leave the cached
        data untouched.
        """
        task = self._inflight_sync
        if task is not None:
            logger.debug("Customer sync already running, joining it")
            with contextlib.suppress(DirectoryError):
                await asyncio.shield(task)
            return

        task = asyncio.ensure_future(self._sync_once())
        task.add_done_callback(_retrieve_sync_error)
        self._inflight_sync = task
        await asyncio.shield(task)

    async def _sync_once(self) -> None:
        try:
            payloads = await self._directory.list_customers()
            # Bulk listings never carry a trusted balance
            records = [payload.to_customer() for payload in payloads]

            stored_at = None
            if self._persistent:
                try:
                    stored_at = await self._store.store_all(records)
                except CacheStorageError as e:
                    logger.error(f"Customer sync fetched but could not be persisted: {e}")

            self._memory.replace_all(records)
            if stored_at is not None:
                self._last_sync = max(self._last_sync or stored_at, stored_at)
            logger.info(f"Customer sync complete: {len(records)} customers")
        finally:
            self._inflight_sync = None

    # --- Search ---

    def _cache_is_fresh(self) -> bool:
        """True right after a sync, when an empty local result can be trusted."""
        if self._last_sync is None or self._memory.size == 0:
            return False
        return self._clock() - self._last_sync < self.trust_window

    async def search_customers(self, query: str) -> CacheResult[List[Customer]]:
        """
        Local-first customer search with remote fallback. Never raises.

        Local hits are returned as-is. With no local hit the directory is
        asked, unless a sync finished within the trust window.
        """
        term = query.strip()
        if not term:
            return CacheResult.ok(self.customers, ResultSource.MEMORY)
        if len(term) < self.min_query_length:
            return CacheResult.ok([], ResultSource.MEMORY)

        if self._persistent:
            try:
                local = await self._store.search_local(term)
            except CacheStorageError as e:
                logger.warning(f"Local search for '{term}' failed: {e}")
                local = []
            if local:
                return CacheResult.ok(local, ResultSource.LOCAL)

        if self._cache_is_fresh():
            return CacheResult.ok([], ResultSource.LOCAL)

        try:
            payloads = await self._directory.search_customers(term)
        except DirectoryError as e:
            logger.error(f"Fallback search for '{term}' failed: {e}")
            return CacheResult.fallback([], str(e))

        fetched_at = self._clock()
        results = [payload.to_customer(balance_fetched_at=fetched_at) for payload in payloads]
        if results:
            await self._self_heal(results)
        return CacheResult.ok(results, ResultSource.REMOTE)

    async def _self_heal(self, records: List[Customer]) -> None:
        """Keep what the directory found so the next local search has it."""
        if self._persistent:
            for record in records:
                try:
                    await self._store.upsert(record)
                except CacheStorageError as e:
                    logger.warning(f"Could not cache customer {record.id}: {e}")
        added = self._memory.add_missing(records)
        if added:
            logger.info(f"Self-healed {added} customers missing from the cache")

    # --- Per-customer fetches ---

    async def get_customer_balance(self, customer_id: str) -> CacheResult[float]:
        """Fresh balance from the directory, or the last cached one (else 0)."""
        try:
            payload = await self._directory.get_customer(customer_id)
        except DirectoryError as e:
            logger.error(f"Balance fetch for customer {customer_id} failed: {e}")
            cached = self._memory.get(customer_id)
            balance = 0.0
            if cached is not None and cached.current_balance is not None:
                balance = cached.current_balance
            return CacheResult.fallback(balance, str(e))

        balance = float(payload.current_balance or 0.0)
        if self._persistent:
            try:
                await self._store.update_balance(customer_id, balance)
            except CacheStorageError as e:
                logger.warning(f"Could not cache balance of customer {customer_id}: {e}")
        self._memory.patch_balance(customer_id, balance, self._clock())
        return CacheResult.ok(balance, ResultSource.REMOTE)

    async def refresh_customer(self, customer_id: str) -> CacheResult[Optional[Customer]]:
        """Overwrite one customer with a fresh copy from the directory."""
        try:
            payload = await self._directory.get_customer(customer_id)
        except DirectoryError as e:
            logger.error(f"Refresh of customer {customer_id} failed: {e}")
            return CacheResult.fallback(self._memory.get(customer_id), str(e))

        record = payload.to_customer(balance_fetched_at=self._clock())
        if record.current_balance is None:
            record.current_balance = 0.0

        if self._persistent:
            try:
                await self._store.upsert(record)
            except CacheStorageError as e:
                logger.warning(f"Could not cache refreshed customer {customer_id}: {e}")
        self._memory.put(record)
        return CacheResult.ok(record, ResultSource.REMOTE)

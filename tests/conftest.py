"""Shared test fixtures and helpers."""

import asyncio
import json
from typing import Optional

import httpx
import pytest

from smartsupply.core.config import Settings
from smartsupply.db.customers_db import CustomerStore
from smartsupply.models import Customer
from smartsupply.services.customer_cache import CustomerCache
from smartsupply.services.directory_client import DirectoryClient

BASE_URL = "http://directory.test/api"
START_TIME = 1_700_000_000.0


class FakeClock:
    """Callable clock returning a controllable epoch-seconds value."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DirectoryStub:
    """
    In-process stand-in for the remote directory API, served through
    httpx.MockTransport. Records every (method, path) it receives.
    """

    def __init__(self, customers: Optional[list[dict]] = None):
        self.customers: list[dict] = list(customers or [])
        self.calls: list[tuple[str, str]] = []
        self.fail = False
        self.gate: Optional[asyncio.Event] = None

    def count(self, method: str, path: str) -> int:
        return self.calls.count((method, path))

    def client(self) -> DirectoryClient:
        return DirectoryClient(BASE_URL, transport=httpx.MockTransport(self.handler))

    def _find(self, customer_id: str) -> Optional[dict]:
        return next((c for c in self.customers if str(c["id"]) == customer_id), None)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        method = request.method
        self.calls.append((method, path))

        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise httpx.ConnectError("directory is down", request=request)

        if method == "GET" and path == "/customers":
            return _ok(self.customers)

        if method == "GET" and path == "/customers/search":
            q = request.url.params.get("q", "").lower()
            matches = [
                c for c in self.customers
                if q in c["name"].lower() or q in c.get("phone", "")
            ]
            return _ok(matches)

        if method == "POST" and path == "/customers":
            body = json.loads(request.content)
            created = {"id": f"c{len(self.customers) + 1}", "isActive": True, **body}
            self.customers.append(created)
            return _ok(created, status_code=201)

        parts = path.strip("/").split("/")
        if len(parts) >= 2 and parts[0] == "customers":
            customer = self._find(parts[1])
            if customer is None:
                return httpx.Response(404, json={"success": False, "message": "Customer not found"})
            if method == "GET" and len(parts) == 2:
                return _ok(customer)
            if method == "PUT" and len(parts) == 2:
                customer.update(json.loads(request.content))
                return _ok(customer)
            if method == "PATCH" and parts[2:] == ["status"]:
                customer["isActive"] = json.loads(request.content)["isActive"]
                return _ok(customer)

        return httpx.Response(404, json={"success": False, "message": "Not found"})


def _ok(data, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"success": True, "data": data})


def api_customer(id: str, name: str, phone: str, **extra) -> dict:
    """Customer as the directory API returns it (camelCase)."""
    return {"id": id, "name": name, "phone": phone, "isActive": True, **extra}


def make_customer(id: str, name: str, phone: str = "0300-0000000", **fields) -> Customer:
    return Customer(id=id, name=name, phone=phone, **fields)


SAMPLE_CUSTOMERS = [
    api_customer(
        "c1", "John Carter", "0300-1111111",
        whatsapp="0300-1111111", houseNo="12-B", address="Street 4, Model Town",
        currentBalance=150.0,
    ),
    api_customer(
        "c2", "Ayesha Khan", "0321-2222222",
        houseNo="7", area="Gulberg", city="Lahore", bottleCount=3, currentBalance="40.50",
    ),
    api_customer(
        "c3", "Bilal Ahmed", "0333-3333333",
        address="House 99, Johar Town", avgDaysToRefill=5, currentBalance=0,
    ),
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'db' / 'customer_cache.sqlite'}"


@pytest.fixture
def settings(db_url):
    return Settings(
        cache_database_url=db_url,
        api_base_url=BASE_URL,
        search_trust_window_seconds=30,
        search_min_query_length=2,
        sync_max_age_seconds=300,
        background_sync_enabled=False,
    )


@pytest.fixture
async def store(db_url, clock):
    customer_store = CustomerStore(db_url, clock=clock)
    await customer_store.init()
    yield customer_store
    await customer_store.close()


@pytest.fixture
def directory_stub():
    return DirectoryStub([dict(c) for c in SAMPLE_CUSTOMERS])


@pytest.fixture
async def directory(directory_stub):
    client = directory_stub.client()
    yield client
    await client.aclose()


@pytest.fixture
async def cache(directory, db_url, settings, clock):
    customer_cache = CustomerCache(
        directory, CustomerStore(db_url, clock=clock), settings, clock=clock
    )
    await customer_cache.start()
    yield customer_cache
    await customer_cache.close()

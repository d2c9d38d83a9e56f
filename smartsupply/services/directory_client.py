# smartsupply/services/directory_client.py
"""
Async client for the remote customer directory API.

Every endpoint answers with the envelope {success, data?, message?}.
Transport problems raise RemoteUnavailable, anything the server rejects
(or answers with garbage) raises RemoteError.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..schemas.customer import CustomerPayload

logger = logging.getLogger(__name__)


class DirectoryError(Exception):
    pass


class RemoteUnavailable(DirectoryError):
    pass


class RemoteError(DirectoryError):
    pass


class DirectoryClient:
    """
    Thin wrapper over the directory's /customers endpoints.
    The cache coordinator is the only consumer that has to handle failures.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", **(headers or {})},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DirectoryClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and unwrap the success envelope, returning `data`."""
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteError(
                f"HTTP {e.response.status_code} from directory on {method} {path}"
            ) from e
        except httpx.RequestError as e:
            raise RemoteUnavailable(f"Directory unreachable on {method} {path}: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteError(f"Invalid JSON from directory ({path})") from e

        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise RemoteError(message or f"Directory rejected {method} {path}")
        return body.get("data")

    @staticmethod
    def _parse_one(data: Any, path: str) -> CustomerPayload:
        try:
            return CustomerPayload.model_validate(data)
        except ValidationError as e:
            raise RemoteError(f"Malformed customer from directory ({path}): {e}") from e

    @classmethod
    def _parse_many(cls, data: Any, path: str) -> List[CustomerPayload]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise RemoteError(f"Expected a customer list from directory ({path})")
        return [cls._parse_one(item, path) for item in data]

    # --- Reads ---

    async def list_customers(self, status: Optional[str] = None) -> List[CustomerPayload]:
        params = {"status": status} if status else None
        data = await self._request("GET", "/customers", params=params)
        return self._parse_many(data, "/customers")

    async def get_customer(self, customer_id: str) -> CustomerPayload:
        path = f"/customers/{customer_id}"
        data = await self._request("GET", path)
        return self._parse_one(data, path)

    async def search_customers(self, query: str) -> List[CustomerPayload]:
        data = await self._request("GET", "/customers/search", params={"q": query})
        return self._parse_many(data, "/customers/search")

    # --- Writes (pass-through, the cache is never touched) ---

    async def create_customer(self, data: Dict[str, Any]) -> CustomerPayload:
        created = await self._request("POST", "/customers", json=data)
        logger.info("Customer created in directory: %s", data.get("name"))
        return self._parse_one(created, "/customers")

    async def update_customer(self, customer_id: str, data: Dict[str, Any]) -> CustomerPayload:
        path = f"/customers/{customer_id}"
        updated = await self._request("PUT", path, json=data)
        return self._parse_one(updated, path)

    async def update_customer_status(self, customer_id: str, is_active: bool) -> CustomerPayload:
        path = f"/customers/{customer_id}/status"
        updated = await self._request("PATCH", path, json={"isActive": is_active})
        return self._parse_one(updated, path)

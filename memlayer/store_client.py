"""
Store Client - How the engine talks to the memory store.

The store is an external HTTP service. The engine reads candidate memories
from it and writes generated tags and connection lists back; it owns no
persistence itself.

Every failure (connection refused, timeout, HTTP error status) surfaces as
StoreUnavailableError so the orchestrator has exactly one thing to catch.
All calls are safe to retry: reads are reads, updates are idempotent
PATCHes.
"""

from typing import Any, Dict, List, Optional

import httpx

from memlayer.log import get_logger
from memlayer.models import StoreUnavailableError

logger = get_logger("store_client")

USER_AGENT = "memlayer/0.1.0"


class MemoryStoreClient:
    """Async client for the memory store's REST API.

    Usage:
        async with MemoryStoreClient("http://localhost:4000") as store:
            memories = await store.list_memories(limit=50)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:4000",
        api_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings) -> "MemoryStoreClient":
        return cls(
            base_url=settings.api_url,
            api_token=settings.api_token,
            timeout=settings.request_timeout_seconds,
        )

    async def __aenter__(self) -> "MemoryStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def health(self) -> bool:
        try:
            await self._request("GET", "/api/health")
            return True
        except StoreUnavailableError:
            return False

    async def list_memories(self, limit: int = 50) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/api/memories", params={"limit": limit})
        return _as_list(data)

    async def contextual_candidates(
        self,
        content: str,
        language: Optional[str],
        filename: Optional[str],
        limit: int = 5,
    ) -> List[Dict[str, Any]]:
        """Coarse candidates for a context window, each with `relevance` and `reason`."""
        data = await self._request(
            "POST",
            "/api/memories/contextual",
            json={"content": content, "language": language, "filename": filename, "limit": limit},
        )
        return _as_list(data)

    async def generate_tags(self, filename: Optional[str], content: str) -> List[str]:
        data = await self._request(
            "POST",
            "/api/memories/generate-tags",
            json={"filename": filename, "content": content},
        )
        if isinstance(data, dict) and isinstance(data.get("tags"), list):
            return [str(t) for t in data["tags"]]
        return []

    async def get_stats(self) -> Dict[str, Any]:
        data = await self._request("GET", "/api/memories/stats")
        if not isinstance(data, dict):
            raise StoreUnavailableError("Stats response was not an object")
        return data

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_memory(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/api/memories", json=payload)

    async def update_memory(self, memory_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update; only the given fields change."""
        return await self._request("PATCH", f"/api/memories/{memory_id}", json=updates)

    async def update_tags(self, memory_id: str, tags: List[str]) -> Dict[str, Any]:
        return await self.update_memory(memory_id, {"tags": tags})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"Store request {method} {path} timed out")
            raise StoreUnavailableError(f"{method} {path} timed out") from e
        except httpx.RequestError as e:
            logger.warning(f"Store request {method} {path} failed: {e}")
            raise StoreUnavailableError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            logger.warning(f"Store request {method} {path} returned {response.status_code}: {response.text[:200]}")
            raise StoreUnavailableError(f"{method} {path} returned HTTP {response.status_code}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreUnavailableError(f"{method} {path} returned invalid JSON") from e


def _as_list(data: Any) -> List[Dict[str, Any]]:
    """Accept a bare list or a {memories|results|items|data: [...]} envelope."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("memories", "results", "items", "data"):
            if isinstance(data.get(key), list):
                return data[key]
    raise StoreUnavailableError(f"Unexpected response shape: {type(data).__name__}")

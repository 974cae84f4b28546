"""
QuickBooks Time (TSheets) REST client
Thin async wrapper over httpx: bearer auth, result unwrapping and batched bulk creates
"""

import logging
from typing import Any, Callable, Optional

import httpx

from ...config import DEFAULT_TSHEETS_BASE_URL
from .credentials import CredentialSource
from .errors import UpstreamError
from .schemas import BulkCreateResult

logger = logging.getLogger(__name__)

BATCH_SIZE = 50
SUCCESS_CODES = (200, 201)


def results_of(data: Any, collection: str) -> dict[str, Any]:
    """``{"results": {"users": {"12": {...}}}}`` -> ``{"12": {...}}``"""
    if not isinstance(data, dict):
        return {}
    return (data.get("results") or {}).get(collection) or {}


def supplemental_of(data: Any, collection: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    return (data.get("supplemental_data") or {}).get(collection) or {}


def response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class QBTimeClient:
    """
    Usage:
        async with QBTimeClient(credentials, base_url) as qb:
            groups = await qb.get("groups", action="fetch groups")

    The token is resolved when the client is opened, so a missing credential
    fails before any request is made.
    """

    def __init__(
        self,
        credentials: CredentialSource,
        base_url: str = DEFAULT_TSHEETS_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "QBTimeClient":
        token = self.credentials.require_token()
        self._client = httpx.AsyncClient(
            base_url=self.base_url + "/",
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            timeout=self.timeout,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("QBTimeClient must be used as an async context manager")
        return self._client

    async def get(self, path: str, params: Optional[dict[str, Any]] = None, action: str = "") -> Any:
        """GET and return the decoded body, raising UpstreamError on a non-2xx status"""
        response = await self.http.get(path, params=params)
        if not response.is_success:
            body = response_body(response)
            logger.error(f"❌ QB Time GET {path} failed: {response.status_code} {body}")
            raise UpstreamError(action or f"fetch {path}", response.status_code, body)
        return response.json()

    async def post(self, path: str, payload: Any) -> httpx.Response:
        return await self.http.post(path, json=payload)

    async def bulk_create(
        self,
        path: str,
        collection: str,
        items: list[dict[str, Any]],
        summarize: Callable[[dict[str, Any]], dict[str, Any]],
        batch_size: int = BATCH_SIZE,
    ) -> BulkCreateResult:
        """
        POST ``{"data": batch}`` in batches. A failed batch is recorded and the
        next one still goes out; inside a successful batch every item is judged
        by its own ``_status_code``.
        """
        results: list[dict[str, Any]] = []
        errors: list[dict[str, Any]] = []

        for start in range(0, len(items), batch_size):
            batch = items[start : start + batch_size]
            batch_number = start // batch_size + 1

            response = await self.post(path, {"data": batch})
            data = response_body(response)
            logger.info(f"📤 QB Time POST {path} batch {batch_number}: {response.status_code}")

            if not response.is_success:
                logger.warning(f"⚠️ Batch {batch_number} to {path} rejected: {response.status_code}")
                errors.append({"batch": batch_number, "status": response.status_code, "error": data})
                continue

            for key, item in results_of(data, collection).items():
                if item.get("_status_code") in SUCCESS_CODES:
                    results.append(summarize(item))
                else:
                    errors.append(
                        {
                            "key": key,
                            "status": item.get("_status_code"),
                            "message": item.get("_status_message"),
                            "extra": item.get("_status_extra"),
                        }
                    )

        return BulkCreateResult(
            created=len(results),
            failed=len(errors),
            results=results,
            errors=errors or None,
        )

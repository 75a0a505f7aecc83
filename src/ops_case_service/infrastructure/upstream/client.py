"""HTTP client for the upstream case application.

The upstream application owns persistence for every case family and the
reference lists. This client only moves JSON; mapping and validation happen
in the core.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ops_case_service.config.settings import Settings
from ops_case_service.core.sources import CaseSource

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The upstream application could not be reached or rejected a call."""

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail if status_code is None else f"{status_code}: {detail}")


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase


class UpstreamClient:
    """Async JSON client over ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        page_limit: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.page_limit = page_limit
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "UpstreamClient":
        return cls(
            base_url=settings.upstream_base_url,
            timeout=settings.upstream_timeout_seconds,
            page_limit=settings.upstream_page_limit,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise UpstreamError(f"Upstream request failed: {e}") from e

        if response.is_error:
            detail = _error_detail(response)
            logger.error(f"{method} {path} returned {response.status_code}: {detail}")
            raise UpstreamError(detail, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Upstream returned invalid JSON for {path}") from e

    async def fetch_collection(self, source: CaseSource) -> Any:
        """Fetch the raw collection envelope of one case family, bypassing HTTP caches."""
        return await self._request(
            "GET",
            source.path,
            params={"limit": self.page_limit},
            headers={"Cache-Control": "no-cache"},
        )

    async def fetch_case(self, source: CaseSource, case_id: str) -> Any:
        return await self._request("GET", source.detail_path(case_id))

    async def update_case(self, source: CaseSource, case_id: str, payload: Dict[str, Any]) -> Any:
        return await self._request("PUT", source.detail_path(case_id), json=payload)

    async def update_evaluation(
        self, source: CaseSource, case_id: str, body: Dict[str, Any]
    ) -> Any:
        return await self._request("PUT", source.evaluation_path(case_id), json=body)

    async def fetch_reference(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Fetch a reference list (employees, partners, type lists, evaluation configs)."""
        return await self._request("GET", path, params=params)

    async def close(self) -> None:
        await self._client.aclose()

"""
API Client Base
===============
Shared async HTTP plumbing for the Treeherder, Taskcluster and Lando clients.

    - One lazily-created httpx.AsyncClient per instance, or an injected one
      (tests hand in a client backed by httpx.MockTransport).
    - Every response goes through raise_for_status(); there are no retries.
    - A body that should be JSON but is not raises UpstreamUnexpected.
"""
import logging
from typing import Any, Mapping, Optional

import httpx

from treeherder_cli.core import config
from treeherder_cli.core.errors import UpstreamUnexpected

logger = logging.getLogger(__name__)


def build_http_client() -> httpx.AsyncClient:
    """HTTP client with the configured User-Agent and (optional) timeout."""
    return httpx.AsyncClient(
        headers={"User-Agent": config.USER_AGENT, "Accept": "application/json"},
        timeout=httpx.Timeout(config.HTTP_TIMEOUT),
        follow_redirects=True,
    )


class ApiClient:
    def __init__(self, base_url: str, http: Optional[httpx.AsyncClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = http
        self._owns_http = http is None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            self._http = build_http_client()
            self._owns_http = True
        return self._http

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http and self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get(self, url: str, params: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        http = await self._get_http()
        logger.debug("GET %s %s", url, dict(params) if params else "")
        response = await http.get(url, params=params)
        response.raise_for_status()
        return response

    async def get_json(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        response = await self.get(url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamUnexpected(f"Expected JSON from {url}: {exc}") from exc

    async def get_text(self, url: str) -> str:
        response = await self.get(url)
        return response.text

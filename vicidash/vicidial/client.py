"""VICIdial non-agent API client.

Every VICIdial operation is a GET against one endpoint
(``.../vicidial/non_agent_api.php``) with the operation named by the
``function`` query parameter. Responses are plain text; a body starting
with ``ERROR`` signals failure.

Usage:
    async with ViciClient.from_settings() as vici:
        raw = await vici.call("campaigns_list", {"stage": "pipe", "header": "YES"})
        raw = await vici.call({"function": "logged_in_agents", "stage": "pipe"})
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from ..config import ViciSettings, settings as default_settings
from .errors import InvalidArgument, RemoteError

logger = logging.getLogger(__name__)

SOURCE = "node-api"

# Keys the client controls; callers may override user/pass only.
_RESERVED = ("source", "user", "pass", "function")


class ViciClient:
    """Thin async gateway to the VICIdial non-agent API."""

    def __init__(
        self,
        base_url: str,
        user: str = "",
        password: str = "",
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.user = user
        self.password = password
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: ViciSettings | None = None, **kwargs) -> "ViciClient":
        cfg = settings or default_settings
        return cls(
            cfg.vicidial_url,
            cfg.vicidial_user,
            cfg.vicidial_pass,
            timeout=cfg.vicidial_timeout_seconds,
            **kwargs,
        )

    async def __aenter__(self) -> "ViciClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "text/plain, */*"},
        )
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def build_query(
        self,
        function: str | Mapping[str, Any] | None,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, str]:
        """Merge credentials, source and function with caller params."""
        if isinstance(function, Mapping):
            p = dict(function)
            fn = p.get("function") or ""
        elif isinstance(function, str):
            p = dict(params or {})
            fn = function or p.get("function") or ""
        else:
            raise InvalidArgument("Invalid arguments to call: expected a function name or params mapping")

        if not fn:
            raise InvalidArgument("call: no function specified")

        query: dict[str, str] = {
            "source": SOURCE,
            "user": str(p.get("user") or self.user),
            "pass": str(p.get("pass") or self.password),
            "function": str(fn),
        }
        for key, value in p.items():
            if key in _RESERVED or value is None:
                continue
            query[key] = str(value)
        return query

    async def call(
        self,
        function: str | Mapping[str, Any] | None,
        params: Mapping[str, Any] | None = None,
    ) -> str:
        """Invoke a VICIdial function and return the raw response body."""
        query = self.build_query(function, params)
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context.")

        try:
            resp = await self._client.get(self.base_url, params=query)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("VICIdial %s transport failure: %s", query["function"], e)
            raise RemoteError(f"{query['function']}: {e}") from e

        body = resp.text or ""
        if body.startswith("ERROR"):
            raise RemoteError(body)
        return body

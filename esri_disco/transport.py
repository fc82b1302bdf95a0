"""Async HTTP collaborator for Esri REST endpoints (httpx)."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from esri_disco.errors import MalformedResponseError, TransportError

log = logging.getLogger("transport")

DEFAULT_TIMEOUT = 10.0


class EsriClient:
    """Thin wrapper over ``httpx.AsyncClient`` that speaks Esri JSON.

    Use as an async context manager so the underlying connection pool is
    closed. ``transport`` is passed straight to httpx (tests inject a
    ``MockTransport``).
    """

    def __init__(
        self,
        token: str | None = None,
        verify_tls: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        debug: bool = False,
    ):
        self.token = token
        self.debug = debug
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            headers=headers,
            verify=verify_tls,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> EsriClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_json(self, url: str) -> Any:
        """GET ``url`` (already carrying ``f=json``) and return the parsed body."""
        if self.debug:
            log.debug("GET %s", url)
        try:
            resp = await self._client.get(url)
        except httpx.TimeoutException as exc:
            raise TransportError(f"Timed out: {exc}", url=url) from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or type(exc).__name__, url=url) from exc
        return self._parse(resp, url)

    async def post_form(self, url: str, form: dict[str, str]) -> tuple[int, Any]:
        """POST an urlencoded form and return ``(status, parsed body)``.

        Status handling is left to the caller; the token endpoint needs to
        inspect both.
        """
        if self.debug:
            log.debug("POST %s", url)
        try:
            resp = await self._client.post(url, data=form)
        except httpx.TimeoutException as exc:
            raise TransportError(f"Timed out: {exc}", url=url) from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or type(exc).__name__, url=url) from exc
        try:
            body = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        return resp.status_code, body

    @staticmethod
    def _parse(resp: httpx.Response, url: str) -> Any:
        if not resp.is_success:
            raise TransportError(resp.reason_phrase or "request failed", status=resp.status_code, url=url)
        try:
            return resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedResponseError(
                f"Response is not JSON: {resp.text[:200]!r}",
                status=resp.status_code,
                url=url,
            ) from exc

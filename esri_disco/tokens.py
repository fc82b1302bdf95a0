"""Exchange username/password for an Esri bearer token."""

from __future__ import annotations

import logging

from esri_disco.errors import TokenExchangeError
from esri_disco.transport import EsriClient

log = logging.getLogger("tokens")


class EsriTokenService:
    def __init__(self, token_url: str, client: EsriClient):
        self.token_url = token_url
        self.client = client

    async def get_token(self, username: str, password: str, referer: str | None) -> str:
        """POST the credentials to the token endpoint and return the token.

        Raises:
            TokenExchangeError: non-200 status, an ``error`` body, or no token.
            TransportError: the endpoint could not be reached.
        """
        form = {
            "username": username,
            "password": password,
            "client": "referer",
            "referer": referer or "",
            "f": "json",
        }
        status, body = await self.client.post_form(self.token_url, form)

        if status != 200:
            raise TokenExchangeError(f"Expected status 200 but got {status}")
        if not isinstance(body, dict):
            raise TokenExchangeError("Token endpoint did not return JSON")
        if body.get("error"):
            err = body["error"]
            msg = err.get("message") if isinstance(err, dict) else err
            raise TokenExchangeError(f"Token endpoint error: {msg}")
        token = body.get("token")
        if not token:
            raise TokenExchangeError("No token in response")

        log.info("Token issued by %s (expires %s)", self.token_url, body.get("expires"))
        return token

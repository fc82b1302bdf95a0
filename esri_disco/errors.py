"""Error hierarchy shared by the transport, token and config layers."""

from __future__ import annotations


class DiscoError(Exception):
    """Base class for everything this tool raises on purpose."""


class TransportError(DiscoError):
    """Non-2xx status, network failure or timeout."""

    def __init__(self, message: str, status: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status = status
        self.url = url

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            return f"HTTP {self.status}: {base}"
        return base


class MalformedResponseError(TransportError):
    """Body could not be parsed as a JSON object."""


class AuthError(DiscoError):
    """No usable bearer token."""


class TokenExchangeError(DiscoError):
    """Token endpoint rejected the credentials or returned no token."""


class ConfigError(DiscoError):
    """Configuration file exists but cannot be read."""

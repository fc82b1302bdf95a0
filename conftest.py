"""Shared fixtures: an EsriClient wired to an in-process fake server."""

import json

import httpx
import pytest

from esri_disco.transport import EsriClient


def json_response(body, status=200):
    return httpx.Response(status, content=json.dumps(body).encode(), headers={"Content-Type": "application/json"})


@pytest.fixture
def esri_client():
    """Factory: ``esri_client(handler)`` -> EsriClient backed by ``handler``."""
    def factory(handler, token="t0k", **kwargs):
        return EsriClient(token=token, transport=httpx.MockTransport(handler), **kwargs)
    return factory

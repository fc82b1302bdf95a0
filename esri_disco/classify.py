"""Decide what an arbitrary Esri REST JSON response represents.

Root and folder endpoints can list folders and services in the same body, so
a folder listing never stops the rest of the chain from being checked. After
that the first matching rule wins:

    services -> layers -> Table -> Feature Layer -> feature -> error -> raw
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from esri_disco.models import parse_fields


class ServiceShape(enum.Enum):
    FOLDERS = "folders"
    SERVICES = "services"
    LAYERS = "layers"
    TABLE_LAYER = "table_layer"
    FEATURE_LAYER = "feature_layer"
    SINGLE_FEATURE = "single_feature"
    ERROR_RESPONSE = "error_response"
    RAW_JSON = "raw_json"


@dataclass(frozen=True)
class Classification:
    shape: ServiceShape
    payload: Any


def _non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error.get("details") or "unknown error")
    return str(error) or "unknown error"


def _entry(item: Any, keys: tuple[str, ...]) -> dict[str, Any]:
    """Project one listing entry onto ``keys``; bare values become the name."""
    if isinstance(item, dict):
        return {k: item.get(k) for k in keys}
    return {k: (item if k == "name" else None) for k in keys}


def classify(body: Any) -> list[Classification]:
    """Classify one parsed response body.

    Returns one classification, or two when a folder listing is followed by
    another match (folders + services being the usual case).
    """
    if not isinstance(body, dict):
        return [Classification(ServiceShape.RAW_JSON, body)]

    results: list[Classification] = []

    if _non_empty_list(body.get("folders")):
        results.append(Classification(ServiceShape.FOLDERS, list(body["folders"])))

    shape_type = body.get("type")

    if _non_empty_list(body.get("services")):
        services = [_entry(s, ("name", "type")) for s in body["services"]]
        results.append(Classification(ServiceShape.SERVICES, services))
    elif _non_empty_list(body.get("layers")):
        tables = body.get("tables")
        results.append(Classification(ServiceShape.LAYERS, {
            "layers": [_entry(l, ("id", "name", "type")) for l in body["layers"]],
            "tables": [_entry(t, ("id", "name")) for t in tables] if isinstance(tables, list) else [],
            "capabilities": body.get("capabilities"),
        }))
    elif shape_type == "Table":
        fields = body.get("fields")
        results.append(Classification(ServiceShape.TABLE_LAYER, {
            "capabilities": body.get("capabilities"),
            "fieldCount": len(fields) if isinstance(fields, list) else 0,
        }))
    elif shape_type == "Feature Layer":
        results.append(Classification(ServiceShape.FEATURE_LAYER, {
            "id": body.get("id"),
            "name": body.get("name"),
            "capabilities": body.get("capabilities"),
            "fields": parse_fields(body.get("fields")),
        }))
    elif isinstance(body.get("feature"), dict) and "attributes" in body["feature"]:
        results.append(Classification(ServiceShape.SINGLE_FEATURE, body["feature"]))
    elif body.get("error") is not None:
        results.append(Classification(ServiceShape.ERROR_RESPONSE, _error_message(body["error"])))
    elif not results:
        results.append(Classification(ServiceShape.RAW_JSON, body))

    return results


def primary(results: list[Classification]) -> Classification:
    """The classification that drives follow-up queries."""
    return results[-1]

"""Build Esri ``/query`` URLs and render the rows they return."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from urllib.parse import quote

from esri_disco.models import (
    Count,
    ExtentProbe,
    FieldDescriptor,
    FilteredCount,
    LastRows,
    QueryIntent,
    SchemaProbe,
    TimestampRangeProbe,
)
from esri_disco.urls import append_query_to_url, url_with_json_format

# Same layout as the nb-NO locale string: 19.10.2026, 14:33:20
DATE_FORMAT = "%d.%m.%Y, %H:%M:%S"


def build_query(resource_url: str, intent: QueryIntent) -> str:
    """Return the full query URL for one intent against a layer or table.

    Where clauses are passed through unescaped; callers own their validation.
    """
    url = url_with_json_format(append_query_to_url(resource_url))

    if isinstance(intent, FilteredCount):
        return url + f"&where={intent.where}&returnCountOnly=true"
    if isinstance(intent, Count):
        return url + "&where=1=1&returnCountOnly=true"
    if isinstance(intent, LastRows):
        out_fields = ",".join(intent.fields)
        return url + (
            f"&where=1=1&outFields={out_fields}"
            f"&orderByFields={intent.fields[0]}+DESC"
            f"&resultRecordCount={intent.limit}"
        )
    if isinstance(intent, ExtentProbe):
        geometry = quote(json.dumps(intent.extent.envelope(), separators=(",", ":")), safe="")
        return url + (
            f"&where=1=1&geometry={geometry}"
            f"&geometryType=esriGeometryEnvelope&returnCountOnly=true"
        )
    if isinstance(intent, TimestampRangeProbe):
        # orderByFields/outFields as documented for /query; the singular
        # orderByField and lowercase outfields are not accepted everywhere.
        return url + (
            f"&where=1=1&orderByFields={intent.field}%20DESC"
            f"&outFields=objectid,{intent.field}&resultRecordCount=1"
        )
    if isinstance(intent, SchemaProbe):
        return url + "&where=1=1&outFields=*&resultRecordCount=1"

    raise TypeError(f"Unsupported query intent: {type(intent).__name__}")


def parse_field_list(field_list: str) -> list[str]:
    """Split a ``--rows`` argument like ``objectid,name`` into field names."""
    return [f.strip() for f in field_list.split(",") if f.strip()]


def select_timestamp_field(fields: list[FieldDescriptor]) -> str | None:
    """Pick the field the latest-timestamp probe orders by.

    A date field named like ``*timestamp*`` wins over declaration order;
    otherwise the first date field. ``None`` means skip the probe.
    """
    date_fields = [f for f in fields if f.is_date]
    for f in date_fields:
        if "timestamp" in f.name.lower():
            return f.name
    return date_fields[0].name if date_fields else None


def field_types(fields: list[Any]) -> dict[str, str | None]:
    """Map field name to Esri type from a ``fields`` array (dicts or models)."""
    types: dict[str, str | None] = {}
    for f in fields or []:
        if isinstance(f, FieldDescriptor):
            types[f.name] = f.type
        elif isinstance(f, dict) and "name" in f:
            types[f["name"]] = f.get("type")
    return types


def render_value(value: Any, field_type: str | None) -> str:
    if field_type == "esriFieldTypeDate" and isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000).strftime(DATE_FORMAT)
    return str(value)


def geometry_tag(feature: dict[str, Any]) -> str:
    if "geometry" not in feature:
        return "no-geo"
    geom = feature.get("geometry") or {}
    x = geom.get("x")
    if x is not None and x != 0 and geom.get("y") != 0:
        return "geo"
    return "err-geo"


def render_row(
    feature: dict[str, Any],
    fields: list[str],
    types: dict[str, str | None],
) -> str:
    """One tab-separated line for a row listing, ending with the geometry tag."""
    attrs = feature.get("attributes") or {}
    line = ""
    for name in fields:
        line += "\t" + render_value(attrs.get(name), types.get(name))
    return line + "\t" + geometry_tag(feature)

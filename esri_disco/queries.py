"""Follow-up probes issued after a layer has been discovered.

Every probe handles its own failures (logged, empty result) so a batch run
with ``asyncio.gather`` never loses sibling results to one bad request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from esri_disco.errors import DiscoError
from esri_disco.models import (
    Count,
    Extent,
    ExtentProbe,
    FieldDescriptor,
    FilteredCount,
    LastRows,
    SchemaProbe,
    TimestampRangeProbe,
    parse_fields,
)
from esri_disco.query_builder import (
    build_query,
    field_types,
    render_row,
    render_value,
    select_timestamp_field,
)
from esri_disco.transport import EsriClient
from esri_disco.urls import layer_url

log = logging.getLogger("queries")


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


async def query_count(client: EsriClient, url: str, where: str = "1=1") -> int | None:
    intent = Count() if where == "1=1" else FilteredCount(where=where)
    start = time.monotonic()
    try:
        data = await client.get_json(build_query(url, intent))
    except DiscoError as exc:
        log.error("Failed to count features: %s", exc)
        return None

    count = data.get("count") if isinstance(data, dict) else None
    if count is None:
        log.error("Count failed where %s: %s", where, data.get("error") if isinstance(data, dict) else data)
        return None
    label = f"{count} features" if count > 0 else "No features"
    log.info("Count: %s where %s (%dms)", label, where, _elapsed_ms(start))
    return count


async def query_last_rows(
    client: EsriClient,
    url: str,
    fields: list[str],
    limit: int = 10,
    title: str = "",
) -> list[dict[str, Any]]:
    """Print the newest ``limit`` rows ordered by the first of ``fields``."""
    try:
        data = await client.get_json(build_query(url, LastRows(fields=fields, limit=limit)))
    except DiscoError as exc:
        log.error("Failed to fetch last features: %s", exc)
        return []

    features = data.get("features") if isinstance(data, dict) else None
    if features is None:
        log.warning("No last features fetched %s", title)
        return []

    log.info("List features: %s", title)
    types = field_types(data.get("fields") or [])
    for feature in features:
        print(render_row(feature, fields, types))
    return features


async def get_schema(client: EsriClient, base_url: str, layer_id: int | str) -> list[FieldDescriptor]:
    try:
        data = await client.get_json(build_query(layer_url(base_url, layer_id), SchemaProbe()))
    except DiscoError as exc:
        log.error("Failed to fetch schema %s: %s", layer_id, exc)
        return []

    raw = data.get("fields") if isinstance(data, dict) else None
    if not raw:
        log.warning("No fields in response for schema %s", layer_id)
        return []
    fields = parse_fields(raw)
    log.info("Schema %s fields: %d", layer_id, len(fields))
    return fields


async def _extent_count(client: EsriClient, url: str, extent: Extent) -> int | None:
    try:
        data = await client.get_json(build_query(url, ExtentProbe(extent=extent)))
    except DiscoError as exc:
        log.error("Extent %s failed: %s", extent.label, exc)
        return None
    count = data.get("count") if isinstance(data, dict) else None
    log.info("Extent %s: %s features", extent.label, count if count is not None else "?")
    return count


async def probe_extents(client: EsriClient, url: str, extents: list[Extent]) -> dict[str, int | None]:
    """Feature count inside each named extent, requested concurrently."""
    counts = await asyncio.gather(*(_extent_count(client, url, e) for e in extents))
    return {e.label: c for e, c in zip(extents, counts)}


async def probe_latest_timestamp(
    client: EsriClient,
    url: str,
    fields: list[FieldDescriptor],
) -> tuple[str, str] | None:
    """Most recent value of the layer's timestamp field, or ``None`` if skipped."""
    field = select_timestamp_field(fields)
    if field is None:
        log.debug("No date field, skipping timestamp probe")
        return None

    try:
        data = await client.get_json(build_query(url, TimestampRangeProbe(field=field)))
    except DiscoError as exc:
        log.error("Timestamp probe failed: %s", exc)
        return None

    features = data.get("features") if isinstance(data, dict) else None
    if not features:
        log.warning("Latest %s: no features", field)
        return None

    attrs = features[0].get("attributes") or {}
    # Attribute keys follow the service's casing, not necessarily ours.
    value = attrs.get(field)
    if value is None:
        value = next((v for k, v in attrs.items() if k.lower() == field.lower()), None)
    rendered = render_value(value, "esriFieldTypeDate")
    log.info("Latest %s: %s", field, rendered)
    return field, rendered

"""One discovery pass: fetch a URL, classify it, print it, run follow-ups."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from esri_disco.classify import Classification, ServiceShape, classify, primary
from esri_disco.models import DiscoConfig
from esri_disco.queries import (
    get_schema,
    probe_extents,
    probe_latest_timestamp,
    query_count,
    query_last_rows,
)
from esri_disco.query_builder import parse_field_list
from esri_disco.transport import EsriClient
from esri_disco.urls import layer_url, url_with_json_format

log = logging.getLogger("discover")

# Feature layers with fewer fields than this list them without --fields.
SHORT_FIELD_LIST = 8


@dataclass
class DiscoverOptions:
    fields: bool = False
    notnull: str | None = None
    rows: str | None = None
    schema: str | None = None
    where: str | None = None
    do_count: bool = True
    do_extent: bool = True
    do_age: bool = True


def _discovery_url(url: str, where: str | None) -> str:
    full = url_with_json_format(url)
    if where:
        full += "&" + where.lstrip("&")
    return full


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render(result: Classification) -> None:
    shape, payload = result.shape, result.payload

    if shape is ServiceShape.FOLDERS:
        log.info("Folders discovered")
        for folder in payload:
            print(f"- {folder}")
    elif shape is ServiceShape.SERVICES:
        log.info("Services discovered")
        for service in payload:
            print(f"- {service['name']} ({service['type']})")
    elif shape is ServiceShape.LAYERS:
        log.info("Layers discovered")
        print(f"Capabilities: {payload['capabilities']}")
        for layer in payload["layers"]:
            print(f"- {layer['id']} {layer['name']} ({layer['type']})")
        if payload["tables"]:
            print("Tables: ")
            for table in payload["tables"]:
                print(f"- {table['id']} {table['name']}")
    elif shape is ServiceShape.TABLE_LAYER:
        log.info("Table Layer discovered")
        print(f"Capabilities: {payload['capabilities']}")
        print(f"Fields: {payload['fieldCount']}")
    elif shape is ServiceShape.FEATURE_LAYER:
        log.info("Feature Layer (%s) %s", payload["id"], payload["name"])
        print(f"Capabilities: {payload['capabilities']}")
        print(f"Fields: {len(payload['fields'])}")
    elif shape is ServiceShape.SINGLE_FEATURE:
        log.info("Feature discovered")
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    elif shape is ServiceShape.ERROR_RESPONSE:
        log.error("Found error in response: %s", payload)
    else:
        log.info("Found JSON response")
        print(json.dumps(payload, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Follow-ups
# ---------------------------------------------------------------------------

async def export_schema(client: EsriClient, url: str, layers: list[dict[str, Any]], path: str) -> dict[str, Any]:
    """Fetch every layer's fields and write ``{id: {name, fields}}`` to ``path``."""
    fetched = await asyncio.gather(*(get_schema(client, url, layer["id"]) for layer in layers))
    schemas = {
        str(layer["id"]): {
            "name": layer["name"],
            "fields": [f.model_dump(exclude_none=True) for f in fields],
        }
        for layer, fields in zip(layers, fetched)
    }
    try:
        Path(path).write_text(json.dumps(schemas, indent=2, ensure_ascii=False), encoding="utf-8")
        log.info("Schema saved to %s", path)
    except OSError as exc:
        log.error("Error saving schema to file: %s", exc)
    return schemas


async def _layer_followups(client: EsriClient, url: str, payload: dict, options: DiscoverOptions) -> None:
    layers = [layer for layer in payload["layers"] if layer["id"] is not None]
    tasks = []
    if options.rows:
        fields = parse_field_list(options.rows)
        tasks += [
            query_last_rows(client, layer_url(url, layer["id"]), fields, 3, f"{layer['name']} ({layer['id']})")
            for layer in layers
        ]
    if options.schema:
        tasks.append(export_schema(client, url, layers, options.schema))
    if tasks:
        await asyncio.gather(*tasks)


async def _feature_layer_followups(
    client: EsriClient,
    url: str,
    payload: dict,
    options: DiscoverOptions,
    config: DiscoConfig,
) -> None:
    fields = payload["fields"]
    if options.fields or len(fields) < SHORT_FIELD_LIST:
        for f in fields:
            print(f"- {f.name} {f.type}")

    tasks = []
    if options.do_count:
        tasks.append(query_count(client, url))
    if options.rows:
        tasks.append(query_last_rows(client, url, parse_field_list(options.rows), 10))
    if options.notnull:
        tasks.append(query_count(client, url, f"{options.notnull} IS NOT NULL"))
    extents = config.extent_list()
    if options.do_extent and extents:
        tasks.append(probe_extents(client, url, extents))
    if options.do_age:
        tasks.append(probe_latest_timestamp(client, url, fields))
    if tasks:
        await asyncio.gather(*tasks)


async def discover(
    client: EsriClient,
    url: str,
    options: DiscoverOptions | None = None,
    config: DiscoConfig | None = None,
) -> list[Classification]:
    """Run one discovery pass against ``url``.

    Raises:
        TransportError: the discovery request itself failed. Follow-up probe
            failures are logged, not raised.
    """
    options = options or DiscoverOptions()
    config = config or DiscoConfig()

    log.info("Discovering services at: %s", url)
    body = await client.get_json(_discovery_url(url, options.where))

    results = classify(body)
    for result in results:
        render(result)

    main = primary(results)
    if main.shape is ServiceShape.LAYERS:
        await _layer_followups(client, url, main.payload, options)
    elif main.shape is ServiceShape.FEATURE_LAYER:
        await _feature_layer_followups(client, url, main.payload, options, config)

    return results

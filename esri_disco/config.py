"""disco.json: known URLs, token endpoints per URL prefix, named extents.

Example::

    {
      "urls": ["https://gis.example.no/arcgis/rest/services"],
      "token": {
        "https://gis.example.no/": {
          "tokenUrl": "https://gis.example.no/portal/sharing/rest/generateToken",
          "username": "svc", "password": "...", "referer": "https://gis.example.no",
          "token": "<cached>"
        }
      },
      "extents": {"oslo": {"xmin": 590000, "ymin": 6640000, "xmax": 605000, "ymax": 6655000}}
    }
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from esri_disco.errors import ConfigError
from esri_disco.models import DiscoConfig, TokenEntry

log = logging.getLogger("config")

DEFAULT_CONFIG_PATH = Path("disco.json")


def config_path(override: str | os.PathLike | None = None) -> Path:
    if override:
        return Path(override)
    env = os.getenv("DISCO_CONFIG")
    return Path(env) if env else DEFAULT_CONFIG_PATH


def load_config(path: Path) -> DiscoConfig:
    """Read the config file; a missing file yields empty defaults."""
    if not path.exists():
        log.debug("No config at %s, using defaults", path)
        return DiscoConfig()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return DiscoConfig.model_validate(raw)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid config {path}: {exc}") from exc


def find_token_entry(config: DiscoConfig, url: str) -> tuple[str, TokenEntry] | None:
    """Last configured prefix (in file order) that ``url`` starts with."""
    match = None
    for prefix, entry in config.token.items():
        if url.startswith(prefix):
            match = (prefix, entry)
    return match


def write_token(path: Path, url: str, token: str) -> str | None:
    """Store ``token`` under the matching prefix and rewrite the file.

    The raw JSON is re-read so keys this tool doesn't model survive.
    Returns the prefix written, or ``None`` if nothing matched.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot update token in {path}: {exc}") from exc

    match = None
    for prefix in (raw.get("token") or {}):
        if url.startswith(prefix):
            match = prefix
    if match is None:
        return None

    raw["token"][match]["token"] = token
    path.write_text(json.dumps(raw, indent=2, ensure_ascii=False), encoding="utf-8")
    log.info("Token saved for %s in %s", match, path)
    return match


def complete_urls(config: DiscoConfig, current: str) -> list[str]:
    """Known URLs for shell completion, with ``://`` escaped for bash/zsh."""
    return [
        u.replace("://", "\\:\\/\\/")
        for u in config.urls
        if u.startswith(current)
    ]

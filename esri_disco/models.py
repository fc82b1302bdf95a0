"""Typed views over Esri JSON and the local configuration file."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

ESRI_DATE_TYPE = "esriFieldTypeDate"
DEFAULT_WKID = 25833


# ---------------------------------------------------------------------------
# Esri metadata
# ---------------------------------------------------------------------------

class FieldDescriptor(BaseModel):
    """One entry of a layer's ``fields`` array.

    Unknown keys (alias, length, domain, ...) are kept so schema export
    writes back what the service declared.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = ""
    type: str | None = None

    # Services do send numeric or null names; keep the entry rather than fail.
    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @property
    def is_date(self) -> bool:
        return self.type == ESRI_DATE_TYPE


def parse_fields(raw: Any) -> list[FieldDescriptor]:
    """One FieldDescriptor per entry of a ``fields`` array, never raising."""
    if not isinstance(raw, list):
        return []
    return [
        FieldDescriptor.model_validate(f) if isinstance(f, dict) else FieldDescriptor(name=f)
        for f in raw
    ]


class Extent(BaseModel):
    """Named envelope used by the extent probe."""

    model_config = ConfigDict(frozen=True)

    label: str
    xmin: float
    ymin: float
    xmax: float
    ymax: float
    wkid: int = DEFAULT_WKID

    def envelope(self) -> dict[str, Any]:
        return {
            "spatialReference": {"wkid": self.wkid},
            "xmin": self.xmin,
            "ymin": self.ymin,
            "xmax": self.xmax,
            "ymax": self.ymax,
        }


# ---------------------------------------------------------------------------
# Query intents
# ---------------------------------------------------------------------------

class QueryIntent(BaseModel):
    model_config = ConfigDict(frozen=True)


class Count(QueryIntent):
    pass


class FilteredCount(QueryIntent):
    where: str  # inserted verbatim into the URL


class LastRows(QueryIntent):
    fields: list[str] = Field(min_length=1)
    limit: int = 10


class ExtentProbe(QueryIntent):
    extent: Extent


class TimestampRangeProbe(QueryIntent):
    field: str


class SchemaProbe(QueryIntent):
    pass


# ---------------------------------------------------------------------------
# disco.json
# ---------------------------------------------------------------------------

class TokenEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    token_url: str | None = Field(default=None, alias="tokenUrl")
    username: str | None = None
    password: str | None = None
    referer: str | None = None
    token: str | None = None


class ExtentBox(BaseModel):
    """An entry of ``extents`` in disco.json; ``wkid`` falls back to the top level."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float
    wkid: int | None = None


class DiscoConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    urls: list[str] = []
    token: dict[str, TokenEntry] = {}
    extents: dict[str, ExtentBox] = {}
    verify_tls: bool = Field(default=True, alias="verifyTls")
    timeout: float = 10.0
    wkid: int = DEFAULT_WKID

    def extent_list(self) -> list[Extent]:
        return [
            Extent(
                label=label,
                xmin=box.xmin,
                ymin=box.ymin,
                xmax=box.xmax,
                ymax=box.ymax,
                wkid=box.wkid or self.wkid,
            )
            for label, box in self.extents.items()
        ]

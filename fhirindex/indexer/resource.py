"""FHIR resource wrapper consumed by the indexer."""

import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

from .datetimes import TemporalParseError, parse_temporal
from .exceptions import ResourceFormatError
from .values import Temporal


def _reject_constant(name: str):
    raise ResourceFormatError(f"Invalid JSON: {name} is not a FHIR number")


@dataclass(frozen=True)
class Resource:
    """A parsed FHIR resource.

    ``data`` is the JSON object as loaded, with decimals kept as ``Decimal``.
    The path evaluator reads it; nothing in the indexer mutates it.
    """

    data: dict[str, Any] = field(repr=False)

    def __post_init__(self):
        if not isinstance(self.data, dict):
            raise ResourceFormatError(f"Resource must be a JSON object, got {type(self.data).__name__}")
        resource_type = self.data.get("resourceType")
        if not isinstance(resource_type, str) or not resource_type:
            raise ResourceFormatError("Resource has no resourceType")

    @property
    def resource_type(self) -> str:
        return self.data["resourceType"]

    @property
    def logical_id(self) -> str:
        return self.data.get("id") or ""

    @property
    def last_updated(self) -> Temporal | None:
        """meta.lastUpdated as an instant, or None when absent or unparseable."""
        meta = self.data.get("meta")
        raw = meta.get("lastUpdated") if isinstance(meta, dict) else None
        if not raw:
            return None
        try:
            millis, precision = parse_temporal(raw)
        except TemporalParseError:
            return None
        return Temporal(shape="instant", raw=raw, epoch_millis=millis, precision=precision)

    @classmethod
    def from_json(cls, text: str) -> "Resource":
        try:
            data = json.loads(text, parse_float=Decimal, parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            raise ResourceFormatError(f"Invalid JSON: {e}") from e
        return cls(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "Resource":
        with open(path, encoding="utf-8") as f:
            return cls.from_json(f.read())


def iter_bundle(resource: Resource) -> list[Resource]:
    """Expand a Bundle into its entry resources; other resources pass through."""
    if resource.resource_type != "Bundle":
        return [resource]
    resources = []
    for entry in resource.data.get("entry") or []:
        inner = entry.get("resource") if isinstance(entry, dict) else None
        if inner is not None:
            resources.append(Resource(inner))
    return resources

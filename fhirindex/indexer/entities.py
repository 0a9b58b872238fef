"""Index entries and the per-resource ResourceIndices aggregate."""

from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union

from .datetimes import TemporalPrecision


@dataclass(frozen=True)
class NumberIndex:
    name: str
    path: str
    value: Decimal


@dataclass(frozen=True)
class DateIndex:
    """Point-in-time range; ts_low equals ts_high for every supported shape."""

    name: str
    path: str
    ts_low: int
    ts_high: int
    precision: TemporalPrecision


@dataclass(frozen=True)
class StringIndex:
    name: str
    path: str
    value: str


@dataclass(frozen=True)
class TokenIndex:
    name: str
    path: str
    system: str | None
    code: str


@dataclass(frozen=True)
class ReferenceIndex:
    name: str
    path: str
    reference: str


@dataclass(frozen=True)
class QuantityIndex:
    name: str
    path: str
    system: str
    unit: str
    value: Decimal


@dataclass(frozen=True)
class UriIndex:
    name: str
    path: str
    uri: str


IndexEntry = Union[
    NumberIndex, DateIndex, StringIndex, TokenIndex, ReferenceIndex, QuantityIndex, UriIndex
]

# ResourceIndices field holding each entry type, in output order
CATEGORY_FIELDS: dict[type, str] = {
    NumberIndex: "number_indices",
    DateIndex: "date_indices",
    StringIndex: "string_indices",
    TokenIndex: "token_indices",
    ReferenceIndex: "reference_indices",
    QuantityIndex: "quantity_indices",
    UriIndex: "uri_indices",
}


def _json_ready(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, TemporalPrecision):
        return value.value
    return value


@dataclass(frozen=True)
class ResourceIndices:
    """All index entries extracted from one resource.

    Built through ``ResourceIndices.Builder``; immutable afterwards.
    """

    resource_type: str
    resource_id: str
    number_indices: tuple[NumberIndex, ...] = ()
    date_indices: tuple[DateIndex, ...] = ()
    string_indices: tuple[StringIndex, ...] = ()
    token_indices: tuple[TokenIndex, ...] = ()
    reference_indices: tuple[ReferenceIndex, ...] = ()
    quantity_indices: tuple[QuantityIndex, ...] = ()
    uri_indices: tuple[UriIndex, ...] = ()

    def entries(self) -> Iterator[IndexEntry]:
        """Iterate every entry, category by category."""
        for field_name in CATEGORY_FIELDS.values():
            yield from getattr(self, field_name)

    def counts(self) -> dict[str, int]:
        """Number of entries per category field."""
        return {name: len(getattr(self, name)) for name in CATEGORY_FIELDS.values()}

    def is_empty(self) -> bool:
        return not any(self.counts().values())

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation (decimals as strings)."""
        result: dict[str, Any] = {
            "resourceType": self.resource_type,
            "id": self.resource_id,
        }
        for field_name in CATEGORY_FIELDS.values():
            result[field_name] = [
                {key: _json_ready(value) for key, value in vars(entry).items()}
                for entry in getattr(self, field_name)
            ]
        return result

    class Builder:
        """Accumulates entries for one resource before freezing them."""

        def __init__(self, resource_type: str, resource_id: str):
            self.resource_type = resource_type
            self.resource_id = resource_id
            self._entries: dict[str, list] = {name: [] for name in CATEGORY_FIELDS.values()}

        def add(self, entry: IndexEntry) -> "ResourceIndices.Builder":
            field_name = CATEGORY_FIELDS.get(type(entry))
            if field_name is None:
                raise TypeError(f"Not an index entry: {entry!r}")
            self._entries[field_name].append(entry)
            return self

        def build(self) -> "ResourceIndices":
            return ResourceIndices(
                resource_type=self.resource_type,
                resource_id=self.resource_id,
                **{name: tuple(entries) for name, entries in self._entries.items()},
            )

"""Category extractors for the indexer.

One pure function per search parameter category, each mapping a single
matched value to zero or more index entries:

    (SearchParameterDefinition, MatchedValue) -> list[IndexEntry]

A shape the category does not recognise, or a missing sub-field, yields an
empty list; it is never an error. UNSUPPORTED (composite and special)
parameters have no extractor at all.
"""

from collections.abc import Callable

from ..entities import IndexEntry
from ..schemas import SearchParameterDefinition, SearchParamType
from ..values import MatchedValue
from .date import date_index
from .number import number_index
from .quantity import quantity_index
from .reference import reference_index
from .string import string_index
from .token import token_index
from .uri import uri_index

Extractor = Callable[[SearchParameterDefinition, MatchedValue], list[IndexEntry]]

EXTRACTORS: dict[SearchParamType, Extractor] = {
    SearchParamType.NUMBER: number_index,
    SearchParamType.DATE: date_index,
    SearchParamType.STRING: string_index,
    SearchParamType.TOKEN: token_index,
    SearchParamType.REFERENCE: reference_index,
    SearchParamType.QUANTITY: quantity_index,
    SearchParamType.URI: uri_index,
}


def get_extractor(category: SearchParamType) -> Extractor | None:
    """Extractor for a category, or None for UNSUPPORTED."""
    return EXTRACTORS.get(category)


__all__ = [
    "EXTRACTORS",
    "Extractor",
    "get_extractor",
    "date_index",
    "number_index",
    "quantity_index",
    "reference_index",
    "string_index",
    "token_index",
    "uri_index",
]

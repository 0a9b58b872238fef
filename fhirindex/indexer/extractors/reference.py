"""REFERENCE search parameters - literal reference strings."""

from ..entities import ReferenceIndex
from ..schemas import SearchParameterDefinition
from ..values import MatchedValue, Reference


def reference_index(
    definition: SearchParameterDefinition, value: MatchedValue
) -> list[ReferenceIndex]:
    if not isinstance(value, Reference) or not value.reference:
        return []
    return [ReferenceIndex(definition.name, definition.path, value.reference)]

"""STRING search parameters - textual form of any non-empty value."""

from ..entities import StringIndex
from ..schemas import SearchParameterDefinition
from ..values import MatchedValue


def string_index(definition: SearchParameterDefinition, value: MatchedValue) -> list[StringIndex]:
    if value.is_empty():
        return []
    return [StringIndex(definition.name, definition.path, value.text())]

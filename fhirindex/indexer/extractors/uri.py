"""URI search parameters."""

from ..entities import UriIndex
from ..schemas import SearchParameterDefinition
from ..values import MatchedValue, Primitive


def uri_index(definition: SearchParameterDefinition, value: MatchedValue) -> list[UriIndex]:
    if not isinstance(value, Primitive) or value.shape != "uri" or not value.value:
        return []
    return [UriIndex(definition.name, definition.path, str(value.value))]

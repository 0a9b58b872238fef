"""NUMBER search parameters - integer and decimal values."""

from decimal import Decimal

from ..entities import NumberIndex
from ..schemas import SearchParameterDefinition
from ..values import MatchedValue, Primitive


def number_index(definition: SearchParameterDefinition, value: MatchedValue) -> list[NumberIndex]:
    if not isinstance(value, Primitive) or value.value is None:
        return []
    if value.shape == "integer":
        number = Decimal(value.value)
    elif value.shape == "decimal":
        number = value.value
    else:
        return []
    return [NumberIndex(definition.name, definition.path, number)]

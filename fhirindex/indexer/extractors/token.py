"""TOKEN search parameters - booleans, identifiers and codeable concepts.

A CodeableConcept yields one entry per coding that carries a code, so this is
the only extractor that can produce several entries for one value.
"""

from ..entities import TokenIndex
from ..schemas import SearchParameterDefinition
from ..values import CodeableConcept, Identifier, MatchedValue, Primitive


def token_index(definition: SearchParameterDefinition, value: MatchedValue) -> list[TokenIndex]:
    if isinstance(value, Primitive) and value.shape == "boolean":
        return [TokenIndex(definition.name, definition.path, None, value.primitive_value())]

    if isinstance(value, Identifier):
        if not value.value:
            return []
        return [TokenIndex(definition.name, definition.path, value.system, value.value)]

    if isinstance(value, CodeableConcept):
        return [
            TokenIndex(definition.name, definition.path, coding.system or "", coding.code)
            for coding in value.coding
            if coding.code
        ]

    return []

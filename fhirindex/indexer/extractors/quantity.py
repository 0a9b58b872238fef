"""QUANTITY search parameters - Money and Quantity values."""

from ..config import FHIR_CURRENCY_CODE_SYSTEM
from ..entities import QuantityIndex
from ..schemas import SearchParameterDefinition
from ..values import MatchedValue, Money, Quantity


def quantity_index(
    definition: SearchParameterDefinition, value: MatchedValue
) -> list[QuantityIndex]:
    if isinstance(value, Money):
        if value.value is None or value.currency is None:
            return []
        return [
            QuantityIndex(
                definition.name,
                definition.path,
                system=FHIR_CURRENCY_CODE_SYSTEM,
                unit=value.currency,
                value=value.value,
            )
        ]

    if isinstance(value, Quantity):
        if value.value is None:
            return []
        return [
            QuantityIndex(
                definition.name,
                definition.path,
                system=value.system or "",
                unit=value.unit or "",
                value=value.value,
            )
        ]

    return []

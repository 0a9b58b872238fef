"""DATE search parameters - date and instant values.

dateTime, Period and Timing are not indexed; every supported shape is a
single point so the range low and high are equal.
"""

from ..entities import DateIndex
from ..schemas import SearchParameterDefinition
from ..values import MatchedValue, Temporal

DATE_SHAPES = frozenset({"date", "instant"})


def date_index(definition: SearchParameterDefinition, value: MatchedValue) -> list[DateIndex]:
    if not isinstance(value, Temporal) or value.shape not in DATE_SHAPES:
        return []
    return [
        DateIndex(
            definition.name,
            definition.path,
            ts_low=value.epoch_millis,
            ts_high=value.epoch_millis,
            precision=value.precision,
        )
    ]

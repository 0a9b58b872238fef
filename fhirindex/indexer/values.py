"""Typed values matched by path evaluation.

Every value returned by the path evaluator is one variant of a closed union,
tagged with its FHIR type name in ``shape``. Extractors branch on the shape;
anything they do not recognise produces no index entry. ``Element`` is the
catch-all arm for complex types without a dedicated variant.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Union

from fhirindex.utils.logging import logger

from .config import NON_TEXT_KEYS, TEMPORAL_TYPES, UNKNOWN_COMPLEX_TYPE
from .datetimes import TemporalParseError, TemporalPrecision, parse_temporal


def _to_decimal(raw: Any) -> Decimal | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        number = raw
    else:
        try:
            # str() first so floats keep their printed digits
            number = Decimal(str(raw))
        except InvalidOperation:
            return None
    # NaN and Infinity never compare equal to themselves
    return number if number.is_finite() else None


def _text_leaves(raw: Any) -> list[str]:
    """Collect primitive leaves of a JSON value in document order."""
    if raw is None:
        return []
    if isinstance(raw, bool):
        return ["true" if raw else "false"]
    if isinstance(raw, dict):
        leaves = []
        for key, child in raw.items():
            if key in NON_TEXT_KEYS or key.startswith("_"):
                continue
            leaves.extend(_text_leaves(child))
        return leaves
    if isinstance(raw, list):
        leaves = []
        for child in raw:
            leaves.extend(_text_leaves(child))
        return leaves
    text = str(raw)
    return [text] if text else []


@dataclass(frozen=True)
class Primitive:
    """A FHIR primitive: integer, decimal, boolean, string, code, uri, ..."""

    shape: str
    value: Any

    def is_empty(self) -> bool:
        return self.value is None or self.value == ""

    def primitive_value(self) -> str:
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return "" if self.value is None else str(self.value)

    def text(self) -> str:
        return self.primitive_value()


@dataclass(frozen=True)
class Temporal:
    """A date, dateTime or instant with its epoch time and precision."""

    shape: str
    raw: str
    epoch_millis: int
    precision: TemporalPrecision

    def is_empty(self) -> bool:
        return not self.raw

    def text(self) -> str:
        return self.raw


@dataclass(frozen=True)
class Identifier:
    system: str | None = None
    value: str | None = None
    shape: str = field(default="Identifier", init=False)

    def is_empty(self) -> bool:
        return not self.system and not self.value

    def text(self) -> str:
        return " ".join(part for part in (self.system, self.value) if part)


@dataclass(frozen=True)
class Coding:
    system: str | None = None
    code: str | None = None
    display: str | None = None
    shape: str = field(default="Coding", init=False)

    def is_empty(self) -> bool:
        return not self.system and not self.code and not self.display

    def text(self) -> str:
        return self.display or self.code or ""


@dataclass(frozen=True)
class CodeableConcept:
    coding: tuple[Coding, ...] = ()
    text_value: str | None = None
    shape: str = field(default="CodeableConcept", init=False)

    def is_empty(self) -> bool:
        return not self.text_value and all(c.is_empty() for c in self.coding)

    def text(self) -> str:
        if self.text_value:
            return self.text_value
        return " ".join(c.text() for c in self.coding if c.text())


@dataclass(frozen=True)
class Reference:
    reference: str | None = None
    display: str | None = None
    shape: str = field(default="Reference", init=False)

    def is_empty(self) -> bool:
        return not self.reference and not self.display

    def text(self) -> str:
        return self.display or self.reference or ""


@dataclass(frozen=True)
class Money:
    currency: str | None = None
    value: Decimal | None = None
    shape: str = field(default="Money", init=False)

    def is_empty(self) -> bool:
        return self.value is None and not self.currency

    def text(self) -> str:
        return " ".join(str(p) for p in (self.value, self.currency) if p is not None and p != "")


@dataclass(frozen=True)
class Quantity:
    value: Decimal | None = None
    unit: str | None = None
    system: str | None = None
    code: str | None = None
    shape: str = field(default="Quantity", init=False)

    def is_empty(self) -> bool:
        return self.value is None and not self.unit and not self.system and not self.code

    def text(self) -> str:
        return " ".join(str(p) for p in (self.value, self.unit or self.code) if p is not None and p != "")


@dataclass(frozen=True)
class Element:
    """Any complex type without a dedicated variant (HumanName, Address, ...)."""

    shape: str
    content: Any = None

    def is_empty(self) -> bool:
        return not _text_leaves(self.content)

    def text(self) -> str:
        if isinstance(self.content, dict) and self.content.get("text"):
            return str(self.content["text"])
        return " ".join(_text_leaves(self.content))


MatchedValue = Union[
    Primitive, Temporal, Identifier, Coding, CodeableConcept, Reference, Money, Quantity, Element
]


def _coding(raw: dict) -> Coding:
    return Coding(system=raw.get("system"), code=raw.get("code"), display=raw.get("display"))


def _complex_value(type_name: str, raw: Any) -> MatchedValue:
    if not isinstance(raw, dict):
        return Element(shape=type_name, content=raw)

    if type_name == "Identifier":
        return Identifier(system=raw.get("system"), value=raw.get("value"))
    if type_name == "Coding":
        return _coding(raw)
    if type_name == "CodeableConcept":
        codings = tuple(_coding(c) for c in raw.get("coding") or [] if isinstance(c, dict))
        return CodeableConcept(coding=codings, text_value=raw.get("text"))
    if type_name == "Reference":
        return Reference(reference=raw.get("reference"), display=raw.get("display"))
    if type_name == "Money":
        return Money(currency=raw.get("currency"), value=_to_decimal(raw.get("value")))
    if type_name == "Quantity":
        return Quantity(
            value=_to_decimal(raw.get("value")),
            unit=raw.get("unit"),
            system=raw.get("system"),
            code=raw.get("code"),
        )
    return Element(shape=type_name, content=raw)


def to_matched_value(type_name: str, raw: Any) -> MatchedValue:
    """Wrap a raw JSON value of the given FHIR type in its value variant.

    Args:
        type_name: FHIR type of the element (``date``, ``Quantity``, ...)
        raw: The JSON value found in the resource

    Returns:
        The typed value. Malformed primitives become an ``Element`` so no
        category extractor recognises them.
    """
    if type_name in TEMPORAL_TYPES:
        try:
            millis, precision = parse_temporal(raw)
        except TemporalParseError as e:
            logger.debug(f"Unparseable {type_name} value ignored: {e}")
            return Element(shape=UNKNOWN_COMPLEX_TYPE, content=raw)
        return Temporal(shape=type_name, raw=raw, epoch_millis=millis, precision=precision)

    if type_name == "decimal":
        number = _to_decimal(raw)
        if number is None:
            return Element(shape=UNKNOWN_COMPLEX_TYPE, content=raw)
        return Primitive(shape=type_name, value=number)

    if type_name in ("integer", "positiveInt", "unsignedInt"):
        if isinstance(raw, bool) or not isinstance(raw, int):
            return Element(shape=UNKNOWN_COMPLEX_TYPE, content=raw)
        return Primitive(shape=type_name, value=raw)

    if type_name == "boolean":
        if not isinstance(raw, bool):
            return Element(shape=UNKNOWN_COMPLEX_TYPE, content=raw)
        return Primitive(shape=type_name, value=raw)

    if type_name[:1].isupper():
        return _complex_value(type_name, raw)

    if isinstance(raw, (dict, list)):
        return Element(shape=UNKNOWN_COMPLEX_TYPE, content=raw)

    return Primitive(shape=type_name, value=raw)

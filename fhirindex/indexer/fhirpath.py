"""FHIRPath subset evaluator for search parameter paths.

Supports what the R4 search parameter registry actually uses for the value
categories the indexer extracts:

    Patient.name.given                      navigation (collections flatten)
    Observation.value                       choice elements (valueQuantity, ...)
    A.b | A.c                               union
    (Observation.value as Quantity)         type filter, also .as(T) / .ofType(T)
    Observation.subject.where(resolve() is Patient)
    Patient.telecom.where(system='phone')
    x.first(), x.exists()

Anything else is rejected with PathEvaluationError. Parsed expressions are
cached; evaluation keeps no state between calls, so one evaluator can be
shared by concurrent indexing threads.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Any, Protocol, Union

from .config import JSON_KIND_TYPES, PRIMITIVE_TYPES, UNKNOWN_COMPLEX_TYPE
from .exceptions import PathEvaluationError
from .resource import Resource
from .schemas import SchemaRegistry
from .values import MatchedValue, to_matched_value


class PathEvaluator(Protocol):
    """Resolves a path expression against a resource.

    Implementations must be safe to call concurrently and must not modify the
    resource.
    """

    def evaluate(self, resource: Resource, path: str) -> list[MatchedValue]: ...


# =============================================================================
# PARSING
# =============================================================================

_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<string>'(?:[^'\\]|\\.)*')"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>!=|[.|()=,])"
    r")"
)


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int


@dataclass(frozen=True)
class Name:
    """Identifier applied to the input collection (source None) or a source."""

    source: "Expression | None"
    name: str


@dataclass(frozen=True)
class Call:
    source: "Expression | None"
    function: str
    args: tuple


@dataclass(frozen=True)
class TypeOp:
    source: "Expression"
    operator: str  # "as" or "is"
    type_name: str


@dataclass(frozen=True)
class Literal:
    value: str


@dataclass(frozen=True)
class Equality:
    left: "Expression"
    right: "Expression"
    negate: bool


@dataclass(frozen=True)
class UnionOf:
    parts: tuple


Expression = Union[Name, Call, TypeOp, Literal, Equality, UnionOf]

# function name -> (min args, max args)
_FUNCTIONS = {
    "as": (1, 1),
    "ofType": (1, 1),
    "is": (1, 1),
    "where": (1, 1),
    "resolve": (0, 0),
    "first": (0, 0),
    "exists": (0, 0),
}

_TYPE_ARG_FUNCTIONS = frozenset({"as", "ofType", "is"})


def _tokenize(path: str) -> list[Token]:
    tokens = []
    pos = 0
    stripped_len = len(path.rstrip())
    while pos < stripped_len:
        match = _TOKEN_RE.match(path, pos)
        if not match or match.end() == pos:
            raise PathEvaluationError(f"Unexpected character at offset {pos}", path)
        kind = match.lastgroup
        text = match.group(kind)
        tokens.append(Token(kind, text, match.start(kind)))
        pos = match.end()
    return tokens


class _Parser:
    """Recursive descent parser; precedence: | < = != < as/is < invocation."""

    def __init__(self, path: str):
        self.path = path
        self.tokens = _tokenize(path)
        self.index = 0

    def _peek(self) -> Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise PathEvaluationError("Unexpected end of expression", self.path)
        self.index += 1
        return token

    def _accept(self, text: str) -> bool:
        token = self._peek()
        if token is not None and token.kind == "op" and token.text == text:
            self.index += 1
            return True
        return False

    def _expect(self, text: str) -> None:
        token = self._next()
        if token.kind != "op" or token.text != text:
            raise PathEvaluationError(
                f"Expected '{text}' at offset {token.pos}, got '{token.text}'", self.path
            )

    def parse(self) -> Expression:
        if not self.tokens:
            raise PathEvaluationError("Empty expression", self.path)
        expression = self._union()
        token = self._peek()
        if token is not None:
            raise PathEvaluationError(
                f"Unexpected '{token.text}' at offset {token.pos}", self.path
            )
        return expression

    def _union(self) -> Expression:
        parts = [self._equality()]
        while self._accept("|"):
            parts.append(self._equality())
        return parts[0] if len(parts) == 1 else UnionOf(tuple(parts))

    def _equality(self) -> Expression:
        left = self._type_expression()
        token = self._peek()
        if token is not None and token.kind == "op" and token.text in ("=", "!="):
            self.index += 1
            right = self._type_expression()
            return Equality(left, right, negate=token.text == "!=")
        return left

    def _type_expression(self) -> Expression:
        expression = self._chain()
        while True:
            token = self._peek()
            if token is None or token.kind != "ident" or token.text not in ("as", "is"):
                return expression
            self.index += 1
            expression = TypeOp(expression, token.text, self._type_specifier())

    def _type_specifier(self) -> str:
        token = self._next()
        if token.kind != "ident":
            raise PathEvaluationError(f"Expected a type name at offset {token.pos}", self.path)
        name = token.text
        # Namespaced types: FHIR.Quantity, System.String
        if self._accept("."):
            inner = self._next()
            if inner.kind != "ident":
                raise PathEvaluationError(
                    f"Expected a type name at offset {inner.pos}", self.path
                )
            name = inner.text
        return name

    def _chain(self) -> Expression:
        expression = self._primary()
        while self._accept("."):
            expression = self._invocation(expression)
        return expression

    def _primary(self) -> Expression:
        token = self._peek()
        if token is None:
            raise PathEvaluationError("Unexpected end of expression", self.path)
        if token.kind == "op" and token.text == "(":
            self.index += 1
            expression = self._union()
            self._expect(")")
            return expression
        if token.kind == "string":
            self.index += 1
            return Literal(token.text[1:-1].replace("\\'", "'"))
        return self._invocation(None)

    def _invocation(self, source: Expression | None) -> Expression:
        token = self._next()
        if token.kind != "ident":
            raise PathEvaluationError(
                f"Expected an element or function name at offset {token.pos}, got '{token.text}'",
                self.path,
            )
        if not self._accept("("):
            return Name(source, token.text)

        function = token.text
        if function not in _FUNCTIONS:
            raise PathEvaluationError(f"Unsupported function '{function}()'", self.path)

        args = []
        if not self._accept(")"):
            if function in _TYPE_ARG_FUNCTIONS:
                args.append(self._type_specifier())
            else:
                args.append(self._union())
            while self._accept(","):
                args.append(self._union())
            self._expect(")")

        low, high = _FUNCTIONS[function]
        if not low <= len(args) <= high:
            raise PathEvaluationError(
                f"Function '{function}()' takes {low} argument(s), got {len(args)}", self.path
            )
        if function in _TYPE_ARG_FUNCTIONS:
            operator = "is" if function == "is" else "as"
            return TypeOp(source if source is not None else Name(None, "$this"), operator, args[0])
        return Call(source, function, tuple(args))


@lru_cache(maxsize=2048)
def parse_path(path: str) -> Expression:
    """Parse a path expression (cached).

    Raises:
        PathEvaluationError: If the expression is malformed or unsupported
    """
    if not isinstance(path, str):
        raise PathEvaluationError(f"Path must be a string, got {type(path).__name__}")
    return _Parser(path).parse()


# =============================================================================
# EVALUATION
# =============================================================================


@dataclass(frozen=True)
class Node:
    """One item of an evaluation collection.

    ``type_name`` addresses child element declarations (a backbone element is
    named by its dotted path, e.g. ``Patient.communication``); ``shape`` is the
    FHIR type handed to the extractors.
    """

    value: Any
    type_name: str
    shape: str


def _normalize_type(type_name: str) -> str:
    return type_name[:1].lower() + type_name[1:]


def _json_kind(raw: Any) -> str:
    if isinstance(raw, (Decimal, float)):
        return "decimal"
    if isinstance(raw, dict):
        return UNKNOWN_COMPLEX_TYPE
    return JSON_KIND_TYPES.get(type(raw), "string")


def _truthy(nodes: list[Node]) -> bool:
    if not nodes:
        return False
    if len(nodes) == 1 and isinstance(nodes[0].value, bool):
        return nodes[0].value
    return True


def _boolean(value: bool) -> list[Node]:
    return [Node(value, "boolean", "boolean")]


class FhirPathEvaluator:
    """Evaluates search parameter paths using element types from a schema registry."""

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry

    def evaluate(self, resource: Resource, path: str) -> list[MatchedValue]:
        """Evaluate ``path`` against ``resource``.

        Returns:
            Matched values in document order

        Raises:
            PathEvaluationError: If the path is malformed or unsupported
        """
        expression = parse_path(path)
        root = Node(resource.data, resource.resource_type, resource.resource_type)
        return [to_matched_value(node.shape, node.value) for node in self._eval(expression, [root])]

    # -------------------------------------------------------------------------

    def _eval(self, expression: Expression, context: list[Node]) -> list[Node]:
        if isinstance(expression, Name):
            nodes = context if expression.source is None else self._eval(expression.source, context)
            if expression.name == "$this":
                return nodes
            return self._navigate(nodes, expression.name)

        if isinstance(expression, UnionOf):
            result: list[Node] = []
            for part in expression.parts:
                for node in self._eval(part, context):
                    if node not in result:
                        result.append(node)
            return result

        if isinstance(expression, TypeOp):
            nodes = self._eval(expression.source, context)
            if expression.operator == "as":
                return [n for n in nodes if self._is_type(n, expression.type_name)]
            if len(nodes) != 1:
                return []
            return _boolean(self._is_type(nodes[0], expression.type_name))

        if isinstance(expression, Literal):
            return [Node(expression.value, "string", "string")]

        if isinstance(expression, Equality):
            left = self._eval(expression.left, context)
            right = self._eval(expression.right, context)
            if not left or not right:
                return []
            equal = len(left) == len(right) and all(
                l.value == r.value for l, r in zip(left, right)
            )
            return _boolean(equal != expression.negate)

        if isinstance(expression, Call):
            nodes = context if expression.source is None else self._eval(expression.source, context)
            return self._call(expression, nodes)

        raise PathEvaluationError(f"Unsupported expression {expression!r}")

    def _call(self, call: Call, nodes: list[Node]) -> list[Node]:
        if call.function == "where":
            predicate = call.args[0]
            return [n for n in nodes if _truthy(self._eval(predicate, [n]))]
        if call.function == "first":
            return nodes[:1]
        if call.function == "exists":
            return _boolean(bool(nodes))
        if call.function == "resolve":
            return [r for r in (self._resolve(n) for n in nodes) if r is not None]
        raise PathEvaluationError(f"Unsupported function '{call.function}()'")

    def _resolve(self, node: Node) -> Node | None:
        """Stand-in for a resolved reference typed by its reference string."""
        if not isinstance(node.value, dict):
            return None
        reference = node.value.get("reference")
        if not isinstance(reference, str) or "/" not in reference:
            return None
        parts = reference.split("/")
        # Absolute URLs end with .../Type/id[/_history/version]
        if "_history" in parts:
            parts = parts[: parts.index("_history")]
        if len(parts) < 2:
            return None
        resource_type = parts[-2]
        return Node(None, resource_type, resource_type)

    def _is_type(self, node: Node, type_name: str) -> bool:
        return _normalize_type(node.shape) == _normalize_type(type_name)

    def _navigate(self, nodes: list[Node], name: str) -> list[Node]:
        result = []
        for node in nodes:
            # A leading type name (Patient.name) filters on the input type
            if name[:1].isupper() and node.type_name == name:
                result.append(node)
                continue
            result.extend(self._children(node, name))
        return result

    def _children(self, node: Node, name: str) -> list[Node]:
        data = node.value
        if not isinstance(data, dict):
            return []

        declared = self.registry.element_type(node.type_name, name)
        if name in data:
            raw = data[name]
            items = raw if isinstance(raw, list) else [raw]
            return [self._child(node, name, declared, item) for item in items if item is not None]

        if declared is not None:
            return []

        # Choice element: value[x] is stored as valueQuantity, valueString, ...
        children = []
        for key, raw in data.items():
            if not key.startswith(name) or len(key) == len(name) or not key[len(name)].isupper():
                continue
            type_name = self._choice_type(key[len(name):])
            if type_name is None:
                continue
            items = raw if isinstance(raw, list) else [raw]
            children.extend(Node(item, type_name, type_name) for item in items if item is not None)
        return children

    def _child(self, parent: Node, name: str, declared: str | None, raw: Any) -> Node:
        if declared == "BackboneElement":
            return Node(raw, f"{parent.type_name}.{name}", declared)
        type_name = declared or _json_kind(raw)
        return Node(raw, type_name, type_name)

    def _choice_type(self, suffix: str) -> str | None:
        primitive = _normalize_type(suffix)
        if primitive in PRIMITIVE_TYPES:
            return primitive
        if suffix in self.registry.datatypes:
            return suffix
        return None

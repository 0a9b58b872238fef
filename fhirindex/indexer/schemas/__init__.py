"""Schema registry - element types and search parameter definitions.

Definitions are loaded ahead of time from YAML files rather than discovered
by introspecting resource classes. Two kinds of file live under
``schemas/YAML`` (and any extra directory handed to the loader):

    datatypes:            # complex type -> child element types
      HumanName:
        family: string
        given: string

    resourceType: Patient
    elements:             # child element types of the resource
      birthDate: date
    searchParameters:
      - name: birthdate
        type: date
        path: Patient.birthDate
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml

from fhirindex.utils.logging import logger

from ..exceptions import SchemaError

BUILTIN_SCHEMAS_DIR = Path(__file__).parent / "YAML"


class SearchParamType(Enum):
    """Value category a search parameter indexes."""

    NUMBER = "number"
    DATE = "date"
    STRING = "string"
    TOKEN = "token"
    REFERENCE = "reference"
    QUANTITY = "quantity"
    URI = "uri"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_code(cls, code: str) -> "SearchParamType":
        """Map a FHIR search-param-type code to a category.

        ``composite`` and ``special`` have no extractor and map to UNSUPPORTED.
        """
        if code in ("composite", "special"):
            return cls.UNSUPPORTED
        try:
            return cls(code)
        except ValueError:
            raise SchemaError(f"Unknown search parameter type: {code!r}") from None


@dataclass(frozen=True)
class SearchParameterDefinition:
    name: str
    path: str
    category: SearchParamType
    description: str = ""


@dataclass
class ResourceSchema:
    """Elements and search parameters declared for one resource type."""

    resource_type: str
    elements: dict[str, str] = field(default_factory=dict)
    search_parameters: list[SearchParameterDefinition] = field(default_factory=list)


class SchemaRegistry:
    """Read-only lookup of element types and search parameters.

    Populated once by ``load_schema_registry``; safe to share between threads.
    """

    def __init__(
        self,
        datatypes: dict[str, dict[str, str]] | None = None,
        resources: dict[str, ResourceSchema] | None = None,
    ):
        self.datatypes = datatypes or {}
        self.resources = resources or {}

    def resource_types(self) -> list[str]:
        return sorted(self.resources)

    def has_resource_type(self, resource_type: str) -> bool:
        return resource_type in self.resources

    def element_type(self, parent_type: str, element: str) -> str | None:
        """Declared FHIR type of ``parent_type.element``, or None if undeclared.

        Backbone elements are addressed by their dotted path from the resource
        (``Patient.communication``); their children are declared in the
        resource's ``elements`` as ``communication.language``.
        """
        resource_type, _, relative = parent_type.partition(".")
        resource = self.resources.get(resource_type)
        if resource is not None:
            key = f"{relative}.{element}" if relative else element
            if key in resource.elements:
                return resource.elements[key]
        return self.datatypes.get(parent_type, {}).get(element)

    def search_parameters(self, resource_type: str) -> list[SearchParameterDefinition]:
        """Definitions applicable to a resource type, in declaration order.

        Definitions without a path are excluded.

        Raises:
            SchemaError: If the resource type has no registered schema
        """
        resource = self.resources.get(resource_type)
        if resource is None:
            raise SchemaError(f"No schema registered for resource type '{resource_type}'")
        return [sp for sp in resource.search_parameters if sp.path]


def _parse_search_parameter(raw, source: Path) -> SearchParameterDefinition:
    if not isinstance(raw, dict):
        raise SchemaError(f"{source}: search parameter must be a mapping, got {raw!r}")
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise SchemaError(f"{source}: search parameter without a name")
    code = raw.get("type")
    if not isinstance(code, str):
        raise SchemaError(f"{source}: search parameter '{name}' has no type")
    path = raw.get("path") or ""
    if not isinstance(path, str):
        raise SchemaError(f"{source}: search parameter '{name}' path must be a string")
    try:
        category = SearchParamType.from_code(code)
    except SchemaError as e:
        raise SchemaError(f"{source}: {e}") from None
    return SearchParameterDefinition(
        name=name,
        path=path.strip(),
        category=category,
        description=raw.get("description") or "",
    )


def _parse_elements(raw, source: Path, owner: str) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in raw.items()
    ):
        raise SchemaError(f"{source}: elements of '{owner}' must map names to type names")
    return dict(raw)


class SchemaLoader:
    """Loads schema YAML files into a SchemaRegistry."""

    def __init__(self, schema_dirs: list[Path] | None = None):
        """Initialize the loader.

        Args:
            schema_dirs: Extra directories searched after the built-in one
        """
        self.schema_dirs = [BUILTIN_SCHEMAS_DIR] + [Path(d) for d in schema_dirs or []]

    def _schema_files(self) -> list[Path]:
        files = []
        for schema_dir in self.schema_dirs:
            if not schema_dir.is_dir():
                raise SchemaError(f"Schema directory not found: {schema_dir}")
            found = list(schema_dir.glob("*.yml")) + list(schema_dir.glob("*.yaml"))
            files.extend(sorted(found))
        return files

    def load(self) -> SchemaRegistry:
        datatypes: dict[str, dict[str, str]] = {}
        resources: dict[str, ResourceSchema] = {}

        for schema_file in self._schema_files():
            try:
                with open(schema_file, encoding="utf-8") as f:
                    document = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise SchemaError(f"Could not read schema file {schema_file}: {e}") from e

            if not isinstance(document, dict):
                raise SchemaError(f"{schema_file}: schema file must contain a mapping")

            if "datatypes" in document:
                types = document["datatypes"]
                if not isinstance(types, dict):
                    raise SchemaError(f"{schema_file}: 'datatypes' must be a mapping")
                for type_name, elements in types.items():
                    datatypes.setdefault(type_name, {}).update(
                        _parse_elements(elements, schema_file, type_name)
                    )
                continue

            resource_type = document.get("resourceType")
            if not isinstance(resource_type, str) or not resource_type:
                raise SchemaError(f"{schema_file}: missing 'resourceType' or 'datatypes'")
            if resource_type in resources:
                raise SchemaError(f"{schema_file}: duplicate schema for '{resource_type}'")

            params = document.get("searchParameters") or []
            if not isinstance(params, list):
                raise SchemaError(f"{schema_file}: 'searchParameters' must be a list")

            resources[resource_type] = ResourceSchema(
                resource_type=resource_type,
                elements=_parse_elements(document.get("elements"), schema_file, resource_type),
                search_parameters=[_parse_search_parameter(p, schema_file) for p in params],
            )

        logger.debug(
            f"Loaded {len(resources)} resource schemas and {len(datatypes)} datatypes "
            f"from {len(self.schema_dirs)} directories"
        )
        return SchemaRegistry(datatypes=datatypes, resources=resources)


def load_schema_registry(schema_dirs: list[Path] | None = None) -> SchemaRegistry:
    """Load the built-in schemas plus any extra schema directories."""
    return SchemaLoader(schema_dirs).load()


__all__ = [
    "BUILTIN_SCHEMAS_DIR",
    "ResourceSchema",
    "SchemaLoader",
    "SchemaRegistry",
    "SearchParamType",
    "SearchParameterDefinition",
    "load_schema_registry",
]

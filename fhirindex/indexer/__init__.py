"""fhirindex Indexer Package.

Turns FHIR resources into typed search index entries:

- SchemaRegistry (schemas/) supplies search parameter definitions per
  resource type, loaded from YAML
- FhirPathEvaluator resolves each definition's path against the resource
- Category extractors (extractors/) turn every matched value into zero or
  more index entries
- ResourceIndexer orchestrates the above and aggregates the result into an
  immutable ResourceIndices

The indexer owns no storage; ResourceIndices is handed to the caller.
"""

from .entities import (
    DateIndex,
    NumberIndex,
    QuantityIndex,
    ReferenceIndex,
    ResourceIndices,
    StringIndex,
    TokenIndex,
    UriIndex,
)
from .datetimes import TemporalPrecision
from .exceptions import IndexerError, PathEvaluationError, ResourceFormatError, SchemaError
from .fhirpath import FhirPathEvaluator, PathEvaluator
from .orchestrator import ResourceIndexer
from .resource import Resource, iter_bundle
from .schemas import (
    SchemaRegistry,
    SearchParameterDefinition,
    SearchParamType,
    load_schema_registry,
)

__all__ = [
    "DateIndex",
    "FhirPathEvaluator",
    "IndexerError",
    "NumberIndex",
    "PathEvaluationError",
    "PathEvaluator",
    "QuantityIndex",
    "ReferenceIndex",
    "Resource",
    "ResourceFormatError",
    "ResourceIndexer",
    "ResourceIndices",
    "SchemaError",
    "SchemaRegistry",
    "SearchParamType",
    "SearchParameterDefinition",
    "StringIndex",
    "TemporalPrecision",
    "TokenIndex",
    "UriIndex",
    "iter_bundle",
    "load_schema_registry",
]

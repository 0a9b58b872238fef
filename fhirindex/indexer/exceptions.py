"""Custom exceptions for the indexer module.

Contains exception classes for the failure modes that abort indexing of a
resource. Shape mismatches and missing values are never errors; they simply
produce no index entry.
"""


class IndexerError(Exception):
    """Base class for fatal indexing failures."""


class SchemaError(IndexerError):
    """Raised when search parameter definitions cannot be discovered.

    Covers unreadable or malformed schema files as well as lookups for a
    resource type the registry does not know.
    """


class PathEvaluationError(IndexerError):
    """Raised when a search parameter path expression cannot be evaluated.

    Attributes:
        path: The offending path expression
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message if path is None else f"{message} in path '{path}'")
        self.path = path


class ResourceFormatError(IndexerError):
    """Raised when input data is not a FHIR resource."""

"""Indexer configuration - constants.

CRITICAL: This file should contain ONLY configuration constants.
NO business logic.
"""

# =============================================================================
# INDEX CONSTANTS
# =============================================================================

# The FHIR currency code system.
# See: https://www.hl7.org/fhir/valueset-currencies.html
FHIR_CURRENCY_CODE_SYSTEM = "urn:iso:std:iso:4217"

# Synthetic date index added to every resource that carries meta.lastUpdated
LAST_UPDATED_INDEX_NAME = "_lastUpdated"


# =============================================================================
# FHIR DATA TYPES
# =============================================================================

# R4 primitive type names. JSON keys of choice elements carry the type name
# with its first letter capitalised (valueDateTime -> dateTime).
PRIMITIVE_TYPES: frozenset[str] = frozenset(
    {
        "base64Binary",
        "boolean",
        "canonical",
        "code",
        "date",
        "dateTime",
        "decimal",
        "id",
        "instant",
        "integer",
        "markdown",
        "oid",
        "positiveInt",
        "string",
        "time",
        "unsignedInt",
        "uri",
        "url",
        "uuid",
    }
)

TEMPORAL_TYPES: frozenset[str] = frozenset({"date", "dateTime", "instant"})

# Fallback type names for elements the schema registry does not declare
JSON_KIND_TYPES = {
    bool: "boolean",
    int: "integer",
    str: "string",
}

# Type given to undeclared JSON objects
UNKNOWN_COMPLEX_TYPE = "Element"

# Keys skipped when rendering a complex value as text
NON_TEXT_KEYS: frozenset[str] = frozenset({"id", "extension", "modifierExtension"})


# =============================================================================
# BATCH INDEXING
# =============================================================================

DEFAULT_MAX_WORKERS = 4

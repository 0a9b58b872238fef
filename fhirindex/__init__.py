"""fhirindex - search-parameter indexing for FHIR R4 resources."""

__version__ = "0.3.0"

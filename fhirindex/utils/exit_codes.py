"""Centralized exit codes for the fhirindex CLI."""


class ExitCodes:
    """Standard exit codes for fhirindex CLI commands."""

    SUCCESS = 0

    INDEX_FAILED = 1

    NOTHING_INDEXED = 3

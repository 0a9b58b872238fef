"""Commands module for the fhirindex CLI."""

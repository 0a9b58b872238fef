"""Pytest configuration and fixtures."""

import copy
from decimal import Decimal

import pytest

from fhirindex.indexer import Resource, ResourceIndexer, load_schema_registry

PATIENT = {
    "resourceType": "Patient",
    "id": "example",
    "meta": {"lastUpdated": "2020-01-01T10:00:00Z"},
    "identifier": [{"system": "urn:oid:1.2.36.146.595.217.0.1", "value": "12345"}],
    "active": True,
    "name": [{"use": "official", "family": "Chalmers", "given": ["Peter", "James"]}],
    "telecom": [
        {"system": "phone", "value": "(03) 5555 6473", "use": "work"},
        {"system": "email", "value": "p.chalmers@example.org"},
    ],
    "gender": "male",
    "birthDate": "1974-12-25",
    "address": [{"line": ["534 Erewhon St"], "city": "PleasantVille", "postalCode": "3999"}],
    "communication": [
        {"language": {"coding": [{"system": "urn:ietf:bcp:47", "code": "en-AU"}]}}
    ],
    "managingOrganization": {"reference": "Organization/1"},
}

OBSERVATION = {
    "resourceType": "Observation",
    "id": "f001",
    "status": "final",
    "code": {
        "coding": [
            {"system": "http://loinc.org", "code": "15074-8", "display": "Glucose"},
            {"system": "http://snomed.info/sct", "code": ""},
        ]
    },
    "subject": {"reference": "Patient/example"},
    "effectiveDateTime": "2013-04-02T09:30:10+01:00",
    "issued": "2013-04-03T15:30:10.123+01:00",
    "valueQuantity": {
        "value": Decimal("6.3"),
        "unit": "mmol/l",
        "system": "http://unitsofmeasure.org",
        "code": "mmol/L",
    },
}

INVOICE = {
    "resourceType": "Invoice",
    "id": "inv-1",
    "status": "issued",
    "subject": {"reference": "Patient/example"},
    "totalGross": {"value": 100, "currency": "USD"},
    "totalNet": {"value": Decimal("80.50"), "currency": "EUR"},
}


@pytest.fixture(scope="session")
def registry():
    """Registry built from the bundled schema files."""
    return load_schema_registry()


@pytest.fixture
def indexer(registry):
    return ResourceIndexer(registry)


@pytest.fixture
def patient():
    return Resource(copy.deepcopy(PATIENT))


@pytest.fixture
def observation():
    return Resource(copy.deepcopy(OBSERVATION))


@pytest.fixture
def invoice():
    return Resource(copy.deepcopy(INVOICE))


@pytest.fixture
def patient_data():
    return copy.deepcopy(PATIENT)


@pytest.fixture
def observation_data():
    return copy.deepcopy(OBSERVATION)

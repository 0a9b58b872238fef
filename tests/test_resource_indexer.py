"""Integration tests for ResourceIndexer.

Runs real resources through discovery, path evaluation, extraction and
aggregation using the bundled schemas, plus hand-built registries for the
edge cases.
"""

import threading
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from fhirindex.indexer import (
    DateIndex,
    NumberIndex,
    PathEvaluationError,
    QuantityIndex,
    ReferenceIndex,
    Resource,
    ResourceFormatError,
    ResourceIndexer,
    ResourceIndices,
    SchemaError,
    SchemaRegistry,
    SearchParameterDefinition,
    SearchParamType,
    TemporalPrecision,
    TokenIndex,
    UriIndex,
)
from fhirindex.indexer.schemas import ResourceSchema
from fhirindex.indexer.values import Money, Primitive


def _millis(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def _registry(*definitions, elements=None, resource_type="Patient") -> SchemaRegistry:
    schema = ResourceSchema(
        resource_type=resource_type,
        elements=elements or {},
        search_parameters=list(definitions),
    )
    return SchemaRegistry(resources={resource_type: schema})


class RecordingEvaluator:
    """Path evaluator double that returns canned values and records calls."""

    def __init__(self, values=None, error_paths=()):
        self.values = values or {}
        self.error_paths = set(error_paths)
        self.calls = []

    def evaluate(self, resource, path):
        self.calls.append(path)
        if path in self.error_paths:
            raise PathEvaluationError("cannot evaluate", path)
        return list(self.values.get(path, []))


# ============================================================================
# Bundled schemas
# ============================================================================


class TestPatient:
    def test_tokens(self, indexer, patient):
        indices = indexer.index(patient)

        assert set(indices.token_indices) == {
            TokenIndex("active", "Patient.active", None, "true"),
            TokenIndex("identifier", "Patient.identifier", "urn:oid:1.2.36.146.595.217.0.1", "12345"),
            TokenIndex("language", "Patient.communication.language", "urn:ietf:bcp:47", "en-AU"),
        }

    def test_strings(self, indexer, patient):
        indices = indexer.index(patient)
        by_name = {}
        for entry in indices.string_indices:
            by_name.setdefault(entry.name, []).append(entry.value)

        assert by_name["family"] == ["Chalmers"]
        assert by_name["given"] == ["Peter", "James"]
        assert by_name["address-city"] == ["PleasantVille"]
        assert by_name["address-postalcode"] == ["3999"]
        assert by_name["address"] == ["534 Erewhon St PleasantVille 3999"]
        assert "Chalmers" in by_name["name"][0]

    def test_birth_date_and_last_updated(self, indexer, patient):
        indices = indexer.index(patient)

        assert set(indices.date_indices) == {
            DateIndex(
                "birthdate",
                "Patient.birthDate",
                _millis(1974, 12, 25),
                _millis(1974, 12, 25),
                TemporalPrecision.DAY,
            ),
            DateIndex(
                "_lastUpdated",
                "Patient.meta.lastUpdated",
                _millis(2020, 1, 1, 10),
                _millis(2020, 1, 1, 10),
                TemporalPrecision.SECOND,
            ),
        }

    def test_references(self, indexer, patient):
        indices = indexer.index(patient)

        assert indices.reference_indices == (
            ReferenceIndex("organization", "Patient.managingOrganization", "Organization/1"),
        )

    def test_identity(self, indexer, patient):
        indices = indexer.index(patient)

        assert indices.resource_type == "Patient"
        assert indices.resource_id == "example"

    def test_every_entry_has_name_and_path(self, indexer, patient):
        for entry in indexer.index(patient).entries():
            assert entry.name
            assert entry.path


class TestObservation:
    def test_quantities_from_choice_value(self, indexer, observation):
        indices = indexer.index(observation)
        expected_value = (
            "http://unitsofmeasure.org",
            "mmol/l",
            Decimal("6.3"),
        )

        assert {e.name for e in indices.quantity_indices} == {"value-quantity", "combo-value-quantity"}
        for entry in indices.quantity_indices:
            assert (entry.system, entry.unit, entry.value) == expected_value

    def test_codings_without_code_are_skipped(self, indexer, observation):
        indices = indexer.index(observation)
        code_tokens = [e for e in indices.token_indices if e.name == "code"]

        assert code_tokens == [TokenIndex("code", "Observation.code", "http://loinc.org", "15074-8")]

    def test_subject_reference_and_patient_filter(self, indexer, observation):
        indices = indexer.index(observation)

        assert {(e.name, e.reference) for e in indices.reference_indices} == {
            ("patient", "Patient/example"),
            ("subject", "Patient/example"),
        }

    def test_issued_instant_indexed_but_date_time_not(self, indexer, observation):
        indices = indexer.index(observation)

        assert [e.name for e in indices.date_indices] == ["issued"]
        (issued,) = indices.date_indices
        assert issued.precision is TemporalPrecision.MILLISECOND
        assert issued.ts_low == _millis(2013, 4, 3, 14, 30, 10) + 123

    def test_composite_parameter_skipped_without_error(self, indexer, observation):
        indices = indexer.index(observation)

        assert all(e.name != "code-value-quantity" for e in indices.entries())

    def test_no_last_updated_without_meta(self, indexer, observation):
        indices = indexer.index(observation)

        assert all(e.name != "_lastUpdated" for e in indices.date_indices)


class TestOtherResources:
    def test_money_totals(self, indexer, invoice):
        indices = indexer.index(invoice)

        assert set(indices.quantity_indices) == {
            QuantityIndex("totalgross", "Invoice.totalGross", "urn:iso:std:iso:4217", "USD", Decimal(100)),
            QuantityIndex("totalnet", "Invoice.totalNet", "urn:iso:std:iso:4217", "EUR", Decimal("80.50")),
        }

    def test_integer_number(self, indexer):
        resource = Resource(
            {
                "resourceType": "MolecularSequence",
                "id": "seq",
                "coordinateSystem": 0,
                "referenceSeq": {"windowStart": 42, "windowEnd": 100},
            }
        )

        indices = indexer.index(resource)

        assert set(indices.number_indices) == {
            NumberIndex("window-start", "MolecularSequence.referenceSeq.windowStart", Decimal(42)),
            NumberIndex("window-end", "MolecularSequence.referenceSeq.windowEnd", Decimal(100)),
        }

    def test_decimal_number_from_choice(self, indexer):
        resource = Resource(
            {
                "resourceType": "RiskAssessment",
                "status": "final",
                "prediction": [{"probabilityDecimal": Decimal("0.02")}],
            }
        )

        (entry,) = indexer.index(resource).number_indices

        assert entry.value == Decimal("0.02")

    def test_uris(self, indexer):
        resource = Resource(
            {
                "resourceType": "ValueSet",
                "url": "http://hl7.org/fhir/ValueSet/example",
                "compose": {"include": [{"system": "http://loinc.org"}, {"system": ""}]},
            }
        )

        indices = indexer.index(resource)

        assert set(indices.uri_indices) == {
            UriIndex("url", "ValueSet.url", "http://hl7.org/fhir/ValueSet/example"),
            UriIndex("reference", "ValueSet.compose.include.system", "http://loinc.org"),
        }

    def test_instant_date(self, indexer):
        resource = Resource(
            {
                "resourceType": "Appointment",
                "start": "2013-12-10T09:00:00Z",
                "participant": [{"actor": {"reference": "Practitioner/example"}}],
            }
        )

        indices = indexer.index(resource)

        assert [e.precision for e in indices.date_indices] == [TemporalPrecision.SECOND]
        assert {(e.name, e.reference) for e in indices.reference_indices} == {
            ("actor", "Practitioner/example"),
            ("practitioner", "Practitioner/example"),
        }


# ============================================================================
# Contract edge cases
# ============================================================================


class TestContract:
    def test_integer_42_becomes_decimal_42(self):
        definition = SearchParameterDefinition("count", "Patient.count", SearchParamType.NUMBER)
        indexer = ResourceIndexer(_registry(definition, elements={"count": "integer"}))

        indices = indexer.index(Resource({"resourceType": "Patient", "count": 42}))

        assert indices.number_indices == (NumberIndex("count", "Patient.count", Decimal(42)),)

    def test_codeable_concept_property(self):
        definition = SearchParameterDefinition("code", "Patient.code", SearchParamType.TOKEN)
        indexer = ResourceIndexer(_registry(definition, elements={"code": "CodeableConcept"}))
        resource = Resource(
            {
                "resourceType": "Patient",
                "code": {"coding": [{"system": "sys1", "code": ""}, {"system": "sys2", "code": "C1"}]},
            }
        )

        indices = indexer.index(resource)

        assert indices.token_indices == (TokenIndex("code", "Patient.code", "sys2", "C1"),)

    @pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_json_numbers_are_rejected(self, token):
        text = '{"resourceType": "Invoice", "totalNet": {"value": %s, "currency": "EUR"}}' % token

        with pytest.raises(ResourceFormatError):
            Resource.from_json(text)

    @pytest.mark.parametrize(
        "raw", [float("nan"), Decimal("NaN"), "Infinity", Decimal("-Infinity")]
    )
    def test_non_finite_money_is_not_indexed(self, indexer, raw):
        resource = Resource(
            {
                "resourceType": "Invoice",
                "totalNet": {"value": raw, "currency": "EUR"},
                "totalGross": {"value": 100, "currency": "USD"},
            }
        )

        first = indexer.index(resource)
        second = indexer.index(resource)

        assert first == second
        assert [e.name for e in first.quantity_indices] == ["totalgross"]

    @pytest.mark.parametrize("raw", [float("inf"), Decimal("NaN"), "NaN"])
    def test_non_finite_decimal_is_not_indexed(self, indexer, raw):
        resource = Resource(
            {"resourceType": "RiskAssessment", "prediction": [{"probabilityDecimal": raw}]}
        )

        assert indexer.index(resource).number_indices == ()

    def test_quantity_definition_against_boolean_yields_nothing(self):
        definition = SearchParameterDefinition("odd", "Patient.active", SearchParamType.QUANTITY)
        indexer = ResourceIndexer(_registry(definition, elements={"active": "boolean"}))

        indices = indexer.index(Resource({"resourceType": "Patient", "active": True}))

        assert indices.is_empty()

    def test_last_updated_absent(self):
        indexer = ResourceIndexer(_registry())

        indices = indexer.index(Resource({"resourceType": "Patient", "meta": {"versionId": "1"}}))

        assert indices.date_indices == ()

    def test_last_updated_present(self):
        indexer = ResourceIndexer(_registry())
        resource = Resource(
            {"resourceType": "Patient", "meta": {"lastUpdated": "2021-06-01T08:15:30Z"}}
        )

        indices = indexer.index(resource)

        assert indices.date_indices == (
            DateIndex(
                "_lastUpdated",
                "Patient.meta.lastUpdated",
                _millis(2021, 6, 1, 8, 15, 30),
                _millis(2021, 6, 1, 8, 15, 30),
                TemporalPrecision.SECOND,
            ),
        )

    def test_unparseable_last_updated_is_ignored(self):
        indexer = ResourceIndexer(_registry())
        resource = Resource({"resourceType": "Patient", "meta": {"lastUpdated": "yesterday"}})

        assert indexer.index(resource).date_indices == ()

    def test_deterministic(self, indexer, patient):
        first = indexer.index(patient)
        second = indexer.index(Resource(dict(patient.data)))

        assert first == second
        for field_name in first.counts():
            assert set(getattr(first, field_name)) == set(getattr(second, field_name))

    def test_duplicates_are_kept(self):
        definition = SearchParameterDefinition("tag", "Patient.tag", SearchParamType.STRING)
        indexer = ResourceIndexer(_registry(definition, elements={"tag": "string"}))

        indices = indexer.index(Resource({"resourceType": "Patient", "tag": ["a", "a"]}))

        assert [e.value for e in indices.string_indices] == ["a", "a"]

    def test_result_is_immutable(self, indexer, patient):
        indices = indexer.index(patient)

        with pytest.raises(AttributeError):
            indices.token_indices = ()
        assert isinstance(indices.token_indices, tuple)


class TestErrors:
    def test_malformed_path_aborts_resource(self):
        good = SearchParameterDefinition("active", "Patient.active", SearchParamType.TOKEN)
        bad = SearchParameterDefinition("broken", "Patient.name.(", SearchParamType.STRING)
        indexer = ResourceIndexer(_registry(good, bad, elements={"active": "boolean"}))

        with pytest.raises(PathEvaluationError):
            indexer.index(Resource({"resourceType": "Patient", "active": True}))

    def test_evaluator_error_propagates(self):
        definition = SearchParameterDefinition("x", "Patient.x", SearchParamType.STRING)
        evaluator = RecordingEvaluator(error_paths={"Patient.x"})
        indexer = ResourceIndexer(_registry(definition), evaluator=evaluator)

        with pytest.raises(PathEvaluationError) as exc_info:
            indexer.index(Resource({"resourceType": "Patient"}))
        assert exc_info.value.path == "Patient.x"

    def test_unknown_resource_type(self, indexer):
        with pytest.raises(SchemaError):
            indexer.index(Resource({"resourceType": "Spaceship"}))


class TestInjectedEvaluator:
    def test_empty_paths_and_unsupported_are_never_evaluated(self):
        definitions = [
            SearchParameterDefinition("empty", "", SearchParamType.STRING),
            SearchParameterDefinition("combo", "Patient", SearchParamType.UNSUPPORTED),
            SearchParameterDefinition("name", "Patient.name", SearchParamType.STRING),
        ]
        evaluator = RecordingEvaluator()
        indexer = ResourceIndexer(_registry(*definitions), evaluator=evaluator)

        indexer.index(Resource({"resourceType": "Patient"}))

        assert evaluator.calls == ["Patient.name"]

    def test_values_from_evaluator_are_dispatched(self):
        definitions = [
            SearchParameterDefinition("price", "Patient.price", SearchParamType.QUANTITY),
            SearchParameterDefinition("flag", "Patient.flag", SearchParamType.QUANTITY),
        ]
        evaluator = RecordingEvaluator(
            values={
                "Patient.price": [Money(currency="USD", value=Decimal(100))],
                "Patient.flag": [Primitive("boolean", True)],
            }
        )
        indexer = ResourceIndexer(_registry(*definitions), evaluator=evaluator)

        indices = indexer.index(Resource({"resourceType": "Patient"}))

        assert indices.quantity_indices == (
            QuantityIndex("price", "Patient.price", "urn:iso:std:iso:4217", "USD", Decimal(100)),
        )


class TestIndexAll:
    def test_results_keep_input_order(self, indexer):
        resources = [
            Resource({"resourceType": "Patient", "id": str(i), "active": i % 2 == 0})
            for i in range(20)
        ]

        results = indexer.index_all(resources, max_workers=4)

        assert [r.resource_id for r in results] == [str(i) for i in range(20)]
        assert results[3].token_indices[0].code == "false"

    def test_empty_input(self, indexer):
        assert indexer.index_all([]) == []

    def test_first_error_is_raised(self, indexer):
        resources = [
            Resource({"resourceType": "Patient", "id": "ok"}),
            Resource({"resourceType": "Spaceship", "id": "bad"}),
        ]

        with pytest.raises(SchemaError):
            indexer.index_all(resources, max_workers=2)

    def test_concurrent_use_of_one_indexer(self, indexer, patient):
        expected = indexer.index(patient)
        results = []

        def worker():
            results.append(indexer.index(patient))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(r == expected for r in results)


def test_builder_routes_entries_by_type():
    builder = ResourceIndices.Builder("Patient", "p1")
    builder.add(TokenIndex("t", "Patient.t", None, "x"))
    builder.add(UriIndex("u", "Patient.u", "http://x"))

    indices = builder.build()

    assert indices.counts()["token_indices"] == 1
    assert indices.counts()["uri_indices"] == 1
    with pytest.raises(TypeError):
        builder.add("not an entry")


def test_to_dict_is_json_ready(indexer, invoice):
    data = indexer.index(invoice).to_dict()

    assert data["resourceType"] == "Invoice"
    assert data["id"] == "inv-1"
    gross = next(q for q in data["quantity_indices"] if q["name"] == "totalgross")
    assert gross == {
        "name": "totalgross",
        "path": "Invoice.totalGross",
        "system": "urn:iso:std:iso:4217",
        "unit": "USD",
        "value": "100",
    }

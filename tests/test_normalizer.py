"""
Bundle Normalizer Tests

Structural policy: unusable documents, field salvage, defaults, aliases.
"""

import copy
import threading

from crossdoc.core.enums import (
    DocumentType,
    EndpointDataType,
    IssueCategory,
    IssueCode,
    ObjectiveType,
    Severity,
)
from crossdoc.core.schemas import CrossDocBundle, ProtocolDocument
from crossdoc.normalization.normalizer import normalize_bundle


class TestEmptyInput:
    """Absent input is a valid empty bundle."""

    def test_none(self):
        normalized = normalize_bundle(None)

        assert normalized.bundle == CrossDocBundle()
        assert normalized.issues == ()

    def test_empty_mapping(self):
        normalized = normalize_bundle({})

        assert normalized.bundle.present() == []
        assert normalized.issues == ()

    def test_bundle_instance_passes_through(self):
        bundle = CrossDocBundle(protocol=ProtocolDocument(id="p"))

        assert normalize_bundle(bundle).bundle is bundle

    def test_non_mapping_bundle_is_empty(self):
        normalized = normalize_bundle(["not", "a", "bundle"])

        assert normalized.bundle.present() == []


class TestDefaults:
    """Optional collections default to empty, optional scalars to None."""

    def test_empty_document(self):
        protocol = normalize_bundle({"protocol": {}}).bundle.protocol

        assert protocol.objectives == ()
        assert protocol.endpoints == ()
        assert protocol.inclusion_criteria == ()
        assert protocol.version is None

    def test_blank_strings_are_unset(self):
        ib = normalize_bundle({"ib": {"version": "   ", "targetPopulation": ""}}).bundle.ib

        assert ib.version is None
        assert ib.target_population is None

    def test_camel_and_snake_case_keys(self):
        bundle = normalize_bundle(
            {
                "protocol": {"inclusionCriteria": ["Adults"]},
                "sap": {"primary_endpoints": [{"name": "Change in HbA1c", "endpoint_id": "ep_1"}]},
            }
        ).bundle

        assert bundle.protocol.inclusion_criteria == ("Adults",)
        assert bundle.sap.primary_endpoints[0].endpoint_id == "ep_1"

    def test_uppercase_document_keys(self):
        bundle = normalize_bundle({"PROTOCOL": {"id": "p"}, "SAP": {"id": "s"}}).bundle

        assert bundle.present() == [DocumentType.PROTOCOL, DocumentType.SAP]

    def test_lenient_enums_and_aliases(self):
        bundle = normalize_bundle(
            {
                "ib": {
                    "objectives": [{"type": "Primary", "text": "To evaluate efficacy"}],
                    "keyRiskProfile": ["Hypoglycemia"],
                },
                "protocol": {
                    "endpoints": [{"id": "ep_1", "type": "PRIMARY", "dataType": "Time-to-event"}],
                    "visitSchedule": ["Screening", {"name": "Week 4", "week": 4}],
                    "analysisPopulations": ["FAS"],
                },
            }
        ).bundle

        assert bundle.ib.objectives[0].type is ObjectiveType.PRIMARY
        assert bundle.ib.objectives[0].description == "To evaluate efficacy"
        assert bundle.ib.key_risks == ("Hypoglycemia",)
        assert bundle.protocol.endpoints[0].data_type is EndpointDataType.TIME_TO_EVENT
        assert [v.name for v in bundle.protocol.visit_schedule] == ["Screening", "Week 4"]
        assert bundle.protocol.analysis_populations[0].label == "FAS"

    def test_numeric_ids_become_strings(self):
        protocol = normalize_bundle({"protocol": {"id": 42, "version": 2}}).bundle.protocol

        assert protocol.id == "42"
        assert protocol.version == "2"


class TestStructuralPolicy:
    """Unusable documents and salvage."""

    def test_non_mapping_document_is_unusable(self):
        normalized = normalize_bundle({"protocol": "not a document", "sap": {"id": "s"}})

        assert normalized.bundle.protocol is None
        assert normalized.bundle.sap is not None
        assert normalized.unusable == frozenset({DocumentType.PROTOCOL})

        (issue,) = normalized.issues
        assert issue.code is IssueCode.DOCUMENT_UNUSABLE
        assert issue.severity is Severity.CRITICAL
        assert issue.category is IssueCategory.STRUCTURAL
        assert issue.locations[0].document is DocumentType.PROTOCOL

    def test_malformed_fields_are_dropped(self):
        normalized = normalize_bundle(
            {
                "protocol": {
                    "id": "p",
                    "version": {"major": 1},
                    "objectives": [
                        {"id": "o1", "type": "primary", "description": "To evaluate efficacy"},
                        42,
                    ],
                }
            }
        )
        protocol = normalized.bundle.protocol

        assert protocol.version is None
        assert [o.id for o in protocol.objectives] == ["o1"]
        assert normalized.unusable == frozenset()

        (issue,) = normalized.issues
        assert issue.code is IssueCode.DOCUMENT_FIELD_MALFORMED
        assert issue.severity is Severity.WARNING
        assert issue.metadata["dropped_paths"] == ["objectives[1]", "version"]

    def test_several_bad_items_in_one_collection(self):
        normalized = normalize_bundle(
            {"sap": {"statisticalTests": ["ANCOVA", {"endpointId": "ep_1", "test": "ANCOVA"}, 3]}}
        )

        assert [t.endpoint_id for t in normalized.bundle.sap.statistical_tests] == ["ep_1"]
        assert normalized.issues[0].metadata["dropped_paths"] == [
            "statisticalTests[0]",
            "statisticalTests[2]",
        ]

    def test_wrong_collection_type_reverts_to_default(self):
        normalized = normalize_bundle({"ib": {"dosingInformation": {"dose": "100 mg"}}})

        assert normalized.bundle.ib.dosing_information == ()
        assert normalized.issues[0].metadata["dropped_paths"] == ["dosingInformation"]

    def test_malformed_aliased_field(self):
        normalized = normalize_bundle({"ib": {"keyRiskProfile": 5}})

        assert normalized.bundle.ib is not None
        assert normalized.bundle.ib.key_risks == ()

    def test_input_not_mutated(self):
        raw = {
            "protocol": {
                "version": {"major": 1},
                "objectives": [{"id": "o1"}, 42],
            },
            "ib": "broken",
        }
        snapshot = copy.deepcopy(raw)

        normalize_bundle(raw)

        assert raw == snapshot

    def test_values_that_cannot_be_copied(self):
        lock = threading.Lock()
        raw = {
            "ib": {
                "id": "ib_001",
                "keyRisks": (risk for risk in ["Hypoglycemia"]),
                "attachment": lock,
            },
            "protocol": {"id": "prot_001", "arms": [{"id": "a1", "dose": "100 mg"}]},
        }

        normalized = normalize_bundle(raw)

        assert normalized.issues == ()
        assert normalized.bundle.ib.key_risks == ("Hypoglycemia",)
        assert normalized.bundle.protocol.arms[0].dose == "100 mg"
        assert raw["ib"]["attachment"] is lock

"""
Field Extractor Tests
"""

import pytest

from crossdoc.core.enums import DocumentType
from crossdoc.core.schemas import IBDocument, ProtocolDocument, SAPDocument
from crossdoc.extraction.dose import parse_dose
from crossdoc.extraction.extractor import (
    extract_bundle,
    extract_ib,
    extract_protocol,
    extract_sap,
)
from crossdoc.normalization.normalizer import normalize_bundle


class TestRecordIds:
    """Stable record ids."""

    def test_positional_ids_for_records_without_id(self):
        ib = extract_ib(
            IBDocument.model_validate(
                {"objectives": [{"type": "primary", "description": "A"}, {"description": "B"}]}
            )
        )

        assert list(ib.objectives) == ["#0", "#1"]

    def test_repeated_id_keeps_first(self):
        ib = extract_ib(
            IBDocument.model_validate(
                {"objectives": [{"id": "o", "description": "A"}, {"id": "o", "description": "B"}]}
            )
        )

        assert ib.objectives["o"].text == "A"
        assert ib.objectives["o#1"].text == "B"

    def test_maps_are_read_only(self):
        ib = extract_ib(IBDocument.model_validate({"objectives": [{"id": "o"}]}))

        with pytest.raises(TypeError):
            ib.objectives["x"] = ib.objectives["o"]


class TestIBAndProtocol:
    """IB and Protocol snapshots."""

    def test_primary_objectives(self, aligned_bundle):
        ib = extract_ib(IBDocument.model_validate(aligned_bundle["ib"]))

        assert [o.id for o in ib.primary_objectives] == ["ib_obj_1"]
        assert ib.primary_objectives[0].canonical.startswith("to evaluate the efficacy")

    def test_dose_sets(self, aligned_bundle):
        ib = extract_ib(IBDocument.model_validate(aligned_bundle["ib"]))
        protocol = extract_protocol(ProtocolDocument.model_validate(aligned_bundle["protocol"]))

        assert ib.dose_set == {parse_dose("100 mg"), parse_dose("200 mg")}
        # placebo arm carries no quantity
        assert protocol.dose_set == ib.dose_set
        assert protocol.arm_doses["arm_3"].quantity is None

    def test_arm_dose_falls_back_to_name(self):
        protocol = extract_protocol(
            ProtocolDocument.model_validate({"arms": [{"id": "a", "name": "Drug X 150 mg"}]})
        )

        assert protocol.arm_doses["a"].quantity == parse_dose("150 mg")

    def test_ib_mechanism_and_risks(self, aligned_bundle):
        ib = extract_ib(IBDocument.model_validate(aligned_bundle["ib"]))

        assert ib.mechanism_of_action.startswith("Drug X is a DPP-4 inhibitor")
        assert ib.key_risks == ("Hypoglycemia", "Gastrointestinal disturbances")

    def test_regimen(self, aligned_bundle):
        ib = extract_ib(IBDocument.model_validate(aligned_bundle["ib"]))
        protocol = extract_protocol(
            ProtocolDocument.model_validate(
                {"arms": [{"id": "a", "dose": "as tolerated", "frequency": "QD"}, {"id": "b"}]}
            )
        )

        assert ib.doses["#0"].regimen == "100 mg oral once daily"
        assert protocol.arm_doses["a"].regimen == "as tolerated QD"
        assert protocol.arm_doses["b"].regimen is None

    def test_eligibility_criteria_combined(self, aligned_bundle):
        protocol = extract_protocol(ProtocolDocument.model_validate(aligned_bundle["protocol"]))

        assert len(protocol.eligibility_criteria) == 5
        assert len(protocol.inclusion_criteria) == 3

    def test_comparable_texts(self, aligned_bundle):
        protocol = extract_protocol(ProtocolDocument.model_validate(aligned_bundle["protocol"]))
        names = [t for t in protocol.texts if t.field == "name"]

        assert names[0].document is DocumentType.PROTOCOL
        assert names[0].section == "endpoints"
        assert names[0].record_id == "ep_1"
        assert names[0].raw == "Change in HbA1c"
        assert names[0].canonical == "change in hba1c"


class TestSAP:
    """SAP snapshot indexes."""

    def test_indexes(self):
        sap = extract_sap(
            SAPDocument.model_validate(
                {
                    "primaryEndpoints": [
                        {"id": "s1", "name": "Change in HbA1c", "endpointId": "ep_1"},
                        {"id": "s2", "name": "Body weight"},
                    ],
                    "secondaryEndpoints": [{"id": "s3", "name": "Adverse events"}],
                    "statisticalTests": [
                        {"endpointId": "ep_1", "test": "ANCOVA"},
                        {"endpointId": "ep_1", "test": "MMRM"},
                        {"test": "Log-rank test"},
                    ],
                }
            )
        )

        assert sap.primary_by_protocol_ref["ep_1"].id == "s1"
        assert set(sap.endpoints_by_id) == {"s1", "s2", "s3"}
        assert [t.test for t in sap.tests_by_endpoint["ep_1"]] == ["ANCOVA", "MMRM"]
        assert len(sap.tests) == 3


class TestExtractBundle:
    """Bundle-level extraction."""

    def test_absent_documents_are_none(self):
        normalized = normalize_bundle({"protocol": {"id": "p"}})
        extracted, issues = extract_bundle(normalized.bundle, normalized.unusable)

        assert extracted.ib is None
        assert extracted.sap is None
        assert extracted.protocol.document_id == "p"
        assert issues == []

    def test_unusable_documents_carried(self):
        normalized = normalize_bundle({"protocol": "broken", "ib": {}})
        extracted, _ = extract_bundle(normalized.bundle, normalized.unusable)

        assert extracted.unusable == frozenset({DocumentType.PROTOCOL})
        assert extracted.protocol is None
        assert extracted.ib is not None

    def test_all_texts(self, aligned_bundle):
        normalized = normalize_bundle(aligned_bundle)
        extracted, _ = extract_bundle(normalized.bundle)

        documents = {t.document for t in extracted.texts}
        assert documents == {DocumentType.IB, DocumentType.PROTOCOL, DocumentType.SAP}

    def test_texts_name_their_section(self, aligned_bundle):
        normalized = normalize_bundle(aligned_bundle)
        extracted, _ = extract_bundle(normalized.bundle)

        sections = {(t.document, t.section) for t in extracted.texts}
        assert (DocumentType.IB, "dosingInformation") in sections
        assert (DocumentType.PROTOCOL, "arms") in sections
        assert (DocumentType.SAP, "secondaryEndpoints") in sections

"""
CrossDoc Test Configuration

Shared fixtures and test utilities.
"""

import copy
import os
from typing import Generator

import pytest

# Set test environment before any imports
os.environ.setdefault("LOG_LEVEL", "DEBUG")


@pytest.fixture(autouse=True)
def reset_settings() -> Generator[None, None, None]:
    """Reset settings before each test."""
    from crossdoc.config import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def engine():
    """Default engine."""
    from crossdoc.engine import CrossDocEngine

    return CrossDocEngine.create_default()


_ALIGNED_BUNDLE = {
    "ib": {
        "id": "ib_001",
        "version": "1.0",
        "objectives": [
            {
                "id": "ib_obj_1",
                "type": "primary",
                "description": "To evaluate the efficacy of Drug X in reducing HbA1c levels in patients with type 2 diabetes",
            },
            {
                "id": "ib_obj_2",
                "type": "secondary",
                "description": "To assess the safety and tolerability of Drug X",
            },
        ],
        "mechanismOfAction": "Drug X is a DPP-4 inhibitor that enhances glucose-dependent insulin secretion",
        "targetPopulation": "Adults aged 18-75 years with type 2 diabetes mellitus and inadequate glycemic control",
        "keyRisks": ["Hypoglycemia", "Gastrointestinal disturbances"],
        "dosingInformation": [
            {"dose": "100 mg", "route": "oral", "frequency": "once daily"},
            {"dose": "200 mg", "route": "oral", "frequency": "once daily"},
        ],
    },
    "protocol": {
        "id": "prot_001",
        "version": "1.0",
        "objectives": [
            {
                "id": "prot_obj_1",
                "type": "primary",
                "description": "To evaluate the efficacy of Drug X in reducing HbA1c levels in patients with type 2 diabetes",
            },
            {
                "id": "prot_obj_2",
                "type": "secondary",
                "description": "To assess the safety and tolerability of Drug X",
            },
        ],
        "endpoints": [
            {
                "id": "ep_1",
                "type": "primary",
                "name": "Change in HbA1c",
                "description": "Change from baseline in HbA1c at week 24",
                "dataType": "continuous",
            },
            {
                "id": "ep_2",
                "type": "secondary",
                "name": "Adverse events",
                "description": "Incidence of adverse events",
                "dataType": "binary",
            },
        ],
        "arms": [
            {"id": "arm_1", "name": "Drug X 100mg", "dose": "100mg", "route": "oral", "frequency": "QD"},
            {"id": "arm_2", "name": "Drug X 200mg", "dose": "200mg", "route": "oral", "frequency": "QD"},
            {"id": "arm_3", "name": "Placebo", "dose": "placebo", "route": "oral", "frequency": "QD"},
        ],
        "visitSchedule": ["Screening", "Baseline", "Week 4", "Week 12", "Week 24"],
        "inclusionCriteria": [
            "Adults aged 18-75 years",
            "Type 2 diabetes mellitus",
            "HbA1c 7.0-10.0%",
        ],
        "exclusionCriteria": ["Type 1 diabetes", "Severe renal impairment"],
        "analysisPopulations": ["FAS", "PP", "Safety"],
    },
    "sap": {
        "id": "sap_001",
        "version": "1.0",
        "primaryEndpoints": [
            {
                "id": "sap_ep_1",
                "name": "Change in HbA1c",
                "description": "Change from baseline in HbA1c at week 24",
            }
        ],
        "secondaryEndpoints": [
            {
                "id": "sap_ep_2",
                "name": "Adverse events",
                "description": "Incidence of adverse events",
            }
        ],
        "statisticalTests": [
            {"endpointId": "ep_1", "test": "ANCOVA"},
            {"endpointId": "ep_2", "test": "Chi-square test"},
        ],
        "analysisPopulations": ["FAS", "PP", "Safety"],
        "sampleSize": 300,
        "sampleSizeJustification": "Based on primary endpoint (HbA1c change)",
    },
}

_MISALIGNED_BUNDLE = {
    "ib": {
        "id": "ib_002",
        "objectives": [
            {
                "id": "ib_obj_1",
                "type": "primary",
                "description": "To evaluate efficacy in reducing blood pressure",
            }
        ],
        "dosingInformation": [{"dose": "50 mg", "route": "oral", "frequency": "twice daily"}],
    },
    "protocol": {
        "id": "prot_002",
        "objectives": [
            {
                "id": "prot_obj_1",
                "type": "primary",
                "description": "To evaluate efficacy in reducing cholesterol levels",
            }
        ],
        "endpoints": [
            {
                "id": "ep_1",
                "type": "primary",
                "name": "LDL-C change",
                "description": "Change in LDL cholesterol",
                "dataType": "continuous",
            }
        ],
        "arms": [
            {"id": "arm_1", "name": "Treatment", "dose": "100mg", "route": "oral", "frequency": "QD"}
        ],
    },
    "sap": {
        "id": "sap_002",
        "primaryEndpoints": [
            {
                "id": "sap_ep_1",
                "name": "Blood pressure change",
                "description": "Change in systolic BP",
            }
        ],
        "statisticalTests": [{"endpointId": "ep_1", "test": "Chi-square test"}],
    },
}


@pytest.fixture
def aligned_bundle() -> dict:
    """Well-aligned IB/Protocol/SAP bundle."""
    return copy.deepcopy(_ALIGNED_BUNDLE)


@pytest.fixture
def misaligned_bundle() -> dict:
    """Bundle with objective, dose, endpoint and test inconsistencies."""
    return copy.deepcopy(_MISALIGNED_BUNDLE)

#!/usr/bin/env python3
"""
Example: Validate a Document Bundle from Python

Demonstrates how to run the CrossDoc engine programmatically on an
IB / Protocol / SAP bundle and inspect the findings.

Requirements:
    pip install -e ".[test]"

Usage:
    PYTHONPATH=src python examples/validate_bundle.py [bundle.json]
"""

import asyncio
import json
import sys
from pathlib import Path

from crossdoc.config import configure_logging
from crossdoc.engine import CrossDocEngine

SAMPLE_BUNDLE = {
    "ib": {
        "id": "ib_002",
        "objectives": [
            {"id": "ib_obj_1", "type": "primary", "description": "To evaluate efficacy in reducing blood pressure"}
        ],
        "dosingInformation": [{"dose": "50 mg", "route": "oral", "frequency": "twice daily"}],
    },
    "protocol": {
        "id": "prot_002",
        "objectives": [
            {"id": "prot_obj_1", "type": "primary", "description": "To evaluate efficacy in reducing cholesterol levels"}
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
        "arms": [{"id": "arm_1", "name": "Treatment", "dose": "100mg", "route": "oral", "frequency": "QD"}],
    },
    "sap": {
        "id": "sap_002",
        "primaryEndpoints": [
            {"id": "sap_ep_1", "name": "Blood pressure change", "description": "Change in systolic BP"}
        ],
        "statisticalTests": [{"endpointId": "ep_1", "test": "Chi-square test"}],
    },
}


async def main():
    """Validate a bundle and print its findings."""
    configure_logging()

    if len(sys.argv) > 1:
        bundle = json.loads(Path(sys.argv[1]).read_text(encoding="utf-8"))
    else:
        bundle = SAMPLE_BUNDLE

    engine = CrossDocEngine.create_default()
    result = await engine.run(bundle)

    summary = result.summary
    print(f"Issues: {summary.total} "
          f"(critical {summary.critical}, error {summary.error}, "
          f"warning {summary.warning}, info {summary.info})")
    print()

    for i, issue in enumerate(result.issues, 1):
        print(f"  {i}. [{issue.severity.value.upper()}] {issue.code.value}")
        print(f"     {issue.message}")
        for suggestion in issue.suggestions:
            marker = "auto-fix" if suggestion.auto_fixable else "review"
            print(f"     -> ({marker}) {suggestion.description}")
            for patch in suggestion.patches:
                print(f"        {patch.target_document.value}.{patch.path}: "
                      f"{patch.old_value!r} -> {patch.new_value!r}")
    print()

    output_path = Path("crossdoc_result.json")
    output_path.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
    print(f"Full result saved to: {output_path}")


if __name__ == "__main__":
    asyncio.run(main())

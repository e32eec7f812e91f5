"""
Auto-Fix Generator

Builds suggestions for the issues that have a safe mechanical fix:
- PRIMARY_ENDPOINT_DRIFT: restate the Protocol endpoint in the SAP
- TEST_MISMATCH: switch the SAP test to the preferred test of the family

Patches only describe the change; nothing here applies them. A suggestion is
auto-fixable only when its target is addressed unambiguously.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from crossdoc.core.enums import DocumentType, EndpointDataType, IssueCode
from crossdoc.core.schemas import Issue, Patch, Suggestion

if TYPE_CHECKING:
    from crossdoc.rules.registry import RuleContext

logger = logging.getLogger(__name__)


def suggest_endpoint_fix(issue: Issue, ctx: RuleContext) -> list[Suggestion]:
    """Rewrite the SAP primary endpoint's name/description to the Protocol's."""
    if issue.code is not IssueCode.PRIMARY_ENDPOINT_DRIFT:
        return []
    protocol, sap = ctx.extracted.protocol, ctx.extracted.sap
    if protocol is None or sap is None:
        return []

    meta = issue.metadata
    source = protocol.endpoints.get(meta.get("protocol_endpoint_id"))
    target = sap.primary_endpoints.get(meta.get("sap_endpoint_id"))
    if source is None or target is None:
        return []

    review = Suggestion(
        id="REVIEW_SAP_PRIMARY_ENDPOINT",
        description=(
            f"Review which SAP primary endpoint restates Protocol endpoint '{source.label}'"
        ),
    )
    if meta.get("ambiguous"):
        logger.debug(f"No auto-fix for {source.id}: ambiguous SAP match")
        return [review]

    patches = [
        Patch(
            target_document=DocumentType.SAP,
            document_id=sap.document_id,
            collection="primaryEndpoints",
            record_id=target.id,
            target_field=field,
            old_value=old,
            new_value=new,
        )
        for field, old, new in (
            ("name", target.name, source.name),
            ("description", target.description, source.description),
        )
        if new and new != old
    ]
    if not patches:
        return [review]

    return [
        Suggestion(
            id="ALIGN_SAP_PRIMARY_ENDPOINT",
            description=(
                f"Restate SAP primary endpoint '{target.label}' as Protocol endpoint "
                f"'{source.label}'"
            ),
            auto_fixable=True,
            patches=tuple(patches),
        )
    ]


def suggest_test_fix(issue: Issue, ctx: RuleContext) -> list[Suggestion]:
    """Replace an inappropriate SAP test with the family's preferred test."""
    if issue.code is not IssueCode.TEST_MISMATCH:
        return []
    sap = ctx.extracted.sap
    if sap is None:
        return []

    meta = issue.metadata
    endpoint_id = meta.get("test_endpoint_id")
    family = ctx.test_lookup(EndpointDataType(meta["data_type"]))
    preferred = family.preferred if family else None

    entries = sap.tests_by_endpoint.get(endpoint_id, ()) if endpoint_id else ()
    if not preferred or len(entries) != 1:
        return [
            Suggestion(
                id="REVIEW_STATISTICAL_TEST",
                description=(
                    f"Choose a {meta['data_type']} test for endpoint "
                    f"'{meta.get('protocol_endpoint_id')}'"
                ),
            )
        ]

    return [
        Suggestion(
            id="USE_PREFERRED_TEST",
            description=f"Replace '{entries[0].test}' with '{preferred}'",
            auto_fixable=True,
            patches=(
                Patch(
                    target_document=DocumentType.SAP,
                    document_id=sap.document_id,
                    collection="statisticalTests",
                    record_id=endpoint_id,
                    target_field="test",
                    old_value=entries[0].test,
                    new_value=preferred,
                ),
            ),
        )
    ]

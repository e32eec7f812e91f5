"""
Bundle-wide Rules

Missing documents, empty key sections, population coherence and missing
version information. Checks that compare documents run only when those
documents are present: an absent document is reported, never turned into a
consistency finding.
"""

from __future__ import annotations

from crossdoc.core.enums import DocumentType, IssueCode
from crossdoc.core.schemas import Issue, IssueLocation
from crossdoc.extraction.text import has_text
from crossdoc.rules.registry import Rule, RuleContext

# A shorter IB target population does not define the study population
POPULATION_MIN_LENGTH = 50

_DOCUMENT_NAMES = {
    DocumentType.IB: "Investigator's Brochure",
    DocumentType.PROTOCOL: "Protocol",
    DocumentType.SAP: "Statistical Analysis Plan",
}


def _usable(ctx: RuleContext) -> list[DocumentType]:
    extracted = ctx.extracted
    parts = {
        DocumentType.IB: extracted.ib,
        DocumentType.PROTOCOL: extracted.protocol,
        DocumentType.SAP: extracted.sap,
    }
    return [doc for doc, part in parts.items() if part is not None]


def check_missing_documents(ctx: RuleContext) -> list[Issue]:
    """
    One notice per absent document.

    An empty bundle has nothing to cross-check and yields nothing; documents
    already reported as unusable are not reported again.
    """
    usable = _usable(ctx)
    if not usable:
        return []

    return [
        Issue.from_catalog(
            IssueCode.DOCUMENT_MISSING,
            f"{_DOCUMENT_NAMES[doc]} is not part of the bundle; related checks were skipped",
            locations=[IssueLocation(document=doc)],
        )
        for doc in DocumentType
        if doc not in usable and doc not in ctx.extracted.unusable
    ]


def check_empty_sections(ctx: RuleContext) -> list[Issue]:
    """
    Key sections of present documents must not be empty.

    A section whose records carry no comparable text (objectives without a
    description, endpoints without a name or description) counts as empty.
    """
    ib, protocol, sap = ctx.extracted.ib, ctx.extracted.protocol, ctx.extracted.sap
    sections: list[tuple[DocumentType, str | None, str, int]] = []
    if ib is not None:
        sections.append((DocumentType.IB, ib.document_id, "objectives", len(ib.objectives)))
    if protocol is not None:
        sections.append(
            (DocumentType.PROTOCOL, protocol.document_id, "objectives", len(protocol.objectives))
        )
        sections.append(
            (DocumentType.PROTOCOL, protocol.document_id, "endpoints", len(protocol.endpoints))
        )
    if sap is not None:
        sections.append(
            (DocumentType.SAP, sap.document_id, "primaryEndpoints", len(sap.primary_endpoints))
        )

    texted = {(t.document, t.section) for t in ctx.extracted.texts if t.canonical}
    issues: list[Issue] = []
    for doc, doc_id, section, count in sections:
        if count and (doc, section) in texted:
            continue
        message = (
            f"{_DOCUMENT_NAMES[doc]} has no {section}"
            if not count
            else f"{_DOCUMENT_NAMES[doc]} {section} carry no text"
        )
        issues.append(
            Issue.from_catalog(
                IssueCode.DOCUMENT_SECTION_EMPTY,
                message,
                locations=[IssueLocation(document=doc, document_id=doc_id, section=section)],
                metadata={"section": section, "records": count},
            )
        )
    return issues


def check_population_coherence(ctx: RuleContext) -> list[Issue]:
    """
    The study population must be defined somewhere, and carried into the SAP.

    Neither an IB target population nor Protocol inclusion criteria is an
    error once both documents are present. Protocol inclusion criteria with
    no SAP analysis populations is a warning.
    """
    ib, protocol, sap = ctx.extracted.ib, ctx.extracted.protocol, ctx.extracted.sap
    issues: list[Issue] = []
    has_criteria = protocol is not None and any(
        has_text(c) for c in protocol.inclusion_criteria
    )

    if ib is not None and protocol is not None:
        population = (ib.target_population or "").strip()
        if len(population) <= POPULATION_MIN_LENGTH and not has_criteria:
            issues.append(
                Issue.from_catalog(
                    IssueCode.GLOBAL_POPULATION_INCOHERENT,
                    "Target population not adequately defined",
                    details=(
                        "Neither the IB target population nor the Protocol inclusion "
                        "criteria define the study population"
                    ),
                    locations=[
                        IssueLocation(
                            document=DocumentType.IB,
                            document_id=ib.document_id,
                            field="targetPopulation",
                        ),
                        IssueLocation(
                            document=DocumentType.PROTOCOL,
                            document_id=protocol.document_id,
                            section="inclusionCriteria",
                        ),
                    ],
                )
            )

    if sap is not None and has_criteria and not sap.populations:
        issues.append(
            Issue.from_catalog(
                IssueCode.GLOBAL_ANALYSIS_POPULATIONS_MISSING,
                "Analysis populations not defined in SAP",
                details="The SAP should define analysis populations (FAS, PP, Safety)",
                locations=[
                    IssueLocation(
                        document=DocumentType.PROTOCOL,
                        document_id=protocol.document_id,
                        section="inclusionCriteria",
                    ),
                    IssueLocation(
                        document=DocumentType.SAP,
                        document_id=sap.document_id,
                        section="analysisPopulations",
                    ),
                ],
            )
        )
    return issues


def check_versions(ctx: RuleContext) -> list[Issue]:
    """A single notice listing present documents without a version."""
    unversioned = []
    for doc in _usable(ctx):
        document = ctx.bundle.document(doc)
        if document is not None and not document.version:
            unversioned.append((doc, document.id))
    if not unversioned:
        return []

    return [
        Issue.from_catalog(
            IssueCode.DOCUMENT_VERSION_MISSING,
            "Documents without version information: "
            + ", ".join(doc.value for doc, _ in unversioned),
            locations=[
                IssueLocation(document=doc, document_id=doc_id, field="version")
                for doc, doc_id in unversioned
            ],
            metadata={"documents": [doc.value for doc, _ in unversioned]},
        )
    ]


MISSING_DOCUMENT_RULE = Rule(
    code=IssueCode.DOCUMENT_MISSING,
    name="missing_document",
    evaluate=check_missing_documents,
    description="Reports documents absent from the bundle",
)

EMPTY_COLLECTION_RULE = Rule(
    code=IssueCode.DOCUMENT_SECTION_EMPTY,
    name="empty_collection",
    evaluate=check_empty_sections,
    description="Key sections of present documents are populated",
)

POPULATION_COHERENCE_RULE = Rule(
    code=IssueCode.GLOBAL_POPULATION_INCOHERENT,
    name="population_coherence",
    evaluate=check_population_coherence,
    description="The study population is defined and carried into the SAP",
)

VERSION_RULE = Rule(
    code=IssueCode.DOCUMENT_VERSION_MISSING,
    name="version",
    evaluate=check_versions,
    description="Present documents carry version information",
)

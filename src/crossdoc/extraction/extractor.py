"""
Field Extractors

One extractor per document kind. Each builds an immutable snapshot of
id-indexed canonical records plus a flat tuple of comparable text fields,
built once per run so that rules resolve cross-document references
(SAP endpointId -> Protocol endpoint) by dictionary lookup.

Records without an id are keyed by their position as ``#<index>``; a
repeated id keeps its first record under the id and later ones under
``<id>#<index>``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, TypeVar

from crossdoc.core.enums import DocumentType, EndpointDataType, IssueCode, ObjectiveType
from crossdoc.core.exceptions import ExtractionError
from crossdoc.core.schemas import (
    AnalysisPopulation,
    CrossDocBundle,
    IBDocument,
    Issue,
    IssueLocation,
    ProtocolDocument,
    SAPDocument,
)
from crossdoc.extraction.dose import DoseQuantity, parse_dose
from crossdoc.extraction.text import canonicalize
from crossdoc.observability import Tracer

logger = logging.getLogger(__name__)

R = TypeVar("R")


# =============================================================================
# CANONICAL RECORDS
# =============================================================================


@dataclass(frozen=True)
class ComparableText:
    """A free-text field lifted out of a document for comparison."""

    document: DocumentType
    section: str
    record_id: str
    field: str
    raw: str
    canonical: str


@dataclass(frozen=True)
class ObjectiveRecord:
    id: str
    type: ObjectiveType | None
    text: str | None
    canonical: str


@dataclass(frozen=True)
class EndpointRecord:
    """Protocol or SAP endpoint. ``protocol_ref`` is the SAP -> Protocol key."""

    id: str
    index: int
    type: ObjectiveType | None
    name: str | None
    description: str | None
    canonical_name: str
    canonical_description: str
    data_type: EndpointDataType | None = None
    protocol_ref: str | None = None

    @property
    def label(self) -> str:
        return self.name or self.description or self.id


@dataclass(frozen=True)
class DoseRecord:
    """IB dose regimen or Protocol arm dose."""

    id: str
    raw: str | None
    quantity: DoseQuantity | None
    route: str | None = None
    frequency: str | None = None
    label: str | None = None

    @property
    def regimen(self) -> str | None:
        """Dose with its route and frequency, e.g. '100 mg oral once daily'."""
        dose = str(self.quantity) if self.quantity is not None else self.raw
        parts = [p for p in (dose, self.route, self.frequency) if p]
        return " ".join(parts) or None


@dataclass(frozen=True)
class TestRecord:
    """SAP statistical test assignment."""

    index: int
    endpoint_id: str | None
    test: str | None


# =============================================================================
# SNAPSHOTS
# =============================================================================


def _freeze(records: dict[str, R]) -> Mapping[str, R]:
    return MappingProxyType(dict(records))


@dataclass(frozen=True)
class IBFields:
    document_id: str | None
    objectives: Mapping[str, ObjectiveRecord]
    doses: Mapping[str, DoseRecord]
    target_population: str | None
    mechanism_of_action: str | None = None
    key_risks: tuple[str, ...] = ()
    texts: tuple[ComparableText, ...] = ()

    @property
    def primary_objectives(self) -> tuple[ObjectiveRecord, ...]:
        return tuple(o for o in self.objectives.values() if o.type is ObjectiveType.PRIMARY)

    @property
    def dose_set(self) -> frozenset[DoseQuantity]:
        return frozenset(d.quantity for d in self.doses.values() if d.quantity is not None)


@dataclass(frozen=True)
class ProtocolFields:
    document_id: str | None
    objectives: Mapping[str, ObjectiveRecord]
    endpoints: Mapping[str, EndpointRecord]
    arm_doses: Mapping[str, DoseRecord]
    eligibility_criteria: tuple[str, ...]
    populations: tuple[AnalysisPopulation, ...]
    inclusion_criteria: tuple[str, ...] = ()
    texts: tuple[ComparableText, ...] = ()

    @property
    def primary_objectives(self) -> tuple[ObjectiveRecord, ...]:
        return tuple(o for o in self.objectives.values() if o.type is ObjectiveType.PRIMARY)

    @property
    def primary_endpoints(self) -> tuple[EndpointRecord, ...]:
        return tuple(e for e in self.endpoints.values() if e.type is ObjectiveType.PRIMARY)

    @property
    def dose_set(self) -> frozenset[DoseQuantity]:
        return frozenset(d.quantity for d in self.arm_doses.values() if d.quantity is not None)


@dataclass(frozen=True)
class SAPFields:
    document_id: str | None
    primary_endpoints: Mapping[str, EndpointRecord]
    secondary_endpoints: Mapping[str, EndpointRecord]
    # Primary endpoints keyed by the Protocol endpoint id they declare
    primary_by_protocol_ref: Mapping[str, EndpointRecord]
    # Every endpoint (primary and secondary) keyed by its own id
    endpoints_by_id: Mapping[str, EndpointRecord]
    tests: tuple[TestRecord, ...]
    tests_by_endpoint: Mapping[str, tuple[TestRecord, ...]]
    populations: tuple[AnalysisPopulation, ...]
    sample_size_driver: str | None = None
    multiplicity_strategy: str | None = None
    texts: tuple[ComparableText, ...] = ()


@dataclass(frozen=True)
class ExtractedBundle:
    """Snapshot handed to every rule. Absent or unusable documents are None."""

    ib: IBFields | None = None
    protocol: ProtocolFields | None = None
    sap: SAPFields | None = None
    unusable: frozenset[DocumentType] = field(default_factory=frozenset)

    @property
    def texts(self) -> tuple[ComparableText, ...]:
        parts = (self.ib, self.protocol, self.sap)
        return tuple(t for part in parts if part is not None for t in part.texts)


# =============================================================================
# EXTRACTORS
# =============================================================================


def _index(items: Iterable[R], key_of: Callable[[R], str | None]) -> list[tuple[str, int, R]]:
    """Assign each item its stable record id."""
    keyed: list[tuple[str, int, R]] = []
    seen: set[str] = set()
    for position, item in enumerate(items):
        key = key_of(item)
        if not key:
            key = f"#{position}"
        elif key in seen:
            key = f"{key}#{position}"
        seen.add(key)
        keyed.append((key, position, item))
    return keyed


def _text(
    document: DocumentType, section: str, record_id: str, field_name: str, raw: str | None
) -> list[ComparableText]:
    if not raw:
        return []
    return [ComparableText(document, section, record_id, field_name, raw, canonicalize(raw))]


def _objectives(
    document: DocumentType, objectives, texts: list[ComparableText]
) -> dict[str, ObjectiveRecord]:
    records: dict[str, ObjectiveRecord] = {}
    for key, _, obj in _index(objectives, lambda o: o.id):
        records[key] = ObjectiveRecord(
            id=key, type=obj.type, text=obj.description, canonical=canonicalize(obj.description)
        )
        texts.extend(_text(document, "objectives", key, "description", obj.description))
    return records


def extract_ib(document: IBDocument) -> IBFields:
    """Build the comparable snapshot of an Investigator's Brochure."""
    texts: list[ComparableText] = []
    objectives = _objectives(DocumentType.IB, document.objectives, texts)

    doses: dict[str, DoseRecord] = {}
    for key, _, info in _index(document.dosing_information, lambda d: d.id):
        doses[key] = DoseRecord(
            id=key,
            raw=info.dose,
            quantity=parse_dose(info.dose),
            route=info.route,
            frequency=info.frequency,
        )
        texts.extend(_text(DocumentType.IB, "dosingInformation", key, "dose", info.dose))

    return IBFields(
        document_id=document.id,
        objectives=_freeze(objectives),
        doses=_freeze(doses),
        target_population=document.target_population,
        mechanism_of_action=document.mechanism_of_action,
        key_risks=document.key_risks,
        texts=tuple(texts),
    )


def extract_protocol(document: ProtocolDocument) -> ProtocolFields:
    """Build the comparable snapshot of a Protocol."""
    texts: list[ComparableText] = []
    objectives = _objectives(DocumentType.PROTOCOL, document.objectives, texts)

    endpoints: dict[str, EndpointRecord] = {}
    for key, position, ep in _index(document.endpoints, lambda e: e.id):
        endpoints[key] = EndpointRecord(
            id=key,
            index=position,
            type=ep.type,
            name=ep.name,
            description=ep.description,
            canonical_name=canonicalize(ep.name),
            canonical_description=canonicalize(ep.description),
            data_type=ep.data_type,
        )
        texts.extend(_text(DocumentType.PROTOCOL, "endpoints", key, "name", ep.name))
        texts.extend(_text(DocumentType.PROTOCOL, "endpoints", key, "description", ep.description))

    arm_doses: dict[str, DoseRecord] = {}
    for key, _, arm in _index(document.arms, lambda a: a.id):
        # An arm without an explicit dose often carries it in its name
        raw = arm.dose or arm.name
        arm_doses[key] = DoseRecord(
            id=key,
            raw=raw,
            quantity=parse_dose(raw),
            route=arm.route,
            frequency=arm.frequency,
            label=arm.name,
        )
        texts.extend(_text(DocumentType.PROTOCOL, "arms", key, "dose", arm.dose))

    return ProtocolFields(
        document_id=document.id,
        objectives=_freeze(objectives),
        endpoints=_freeze(endpoints),
        arm_doses=_freeze(arm_doses),
        eligibility_criteria=document.inclusion_criteria + document.exclusion_criteria,
        populations=document.analysis_populations,
        inclusion_criteria=document.inclusion_criteria,
        texts=tuple(texts),
    )


def _sap_endpoints(endpoints, collection: str, texts: list[ComparableText]) -> dict[str, EndpointRecord]:
    records: dict[str, EndpointRecord] = {}
    for key, position, ep in _index(endpoints, lambda e: e.id):
        records[key] = EndpointRecord(
            id=key,
            index=position,
            type=ObjectiveType.PRIMARY if collection == "primaryEndpoints" else ObjectiveType.SECONDARY,
            name=ep.name,
            description=ep.description,
            canonical_name=canonicalize(ep.name),
            canonical_description=canonicalize(ep.description),
            protocol_ref=ep.endpoint_id,
        )
        texts.extend(_text(DocumentType.SAP, collection, key, "name", ep.name))
        texts.extend(_text(DocumentType.SAP, collection, key, "description", ep.description))
    return records


def extract_sap(document: SAPDocument) -> SAPFields:
    """Build the comparable snapshot of a Statistical Analysis Plan."""
    texts: list[ComparableText] = []
    primary = _sap_endpoints(document.primary_endpoints, "primaryEndpoints", texts)
    secondary = _sap_endpoints(document.secondary_endpoints, "secondaryEndpoints", texts)

    by_ref: dict[str, EndpointRecord] = {}
    for record in primary.values():
        if record.protocol_ref and record.protocol_ref not in by_ref:
            by_ref[record.protocol_ref] = record

    by_id: dict[str, EndpointRecord] = {**secondary, **primary}

    tests = tuple(
        TestRecord(index=position, endpoint_id=entry.endpoint_id, test=entry.test)
        for position, entry in enumerate(document.statistical_tests)
    )
    grouped: dict[str, list[TestRecord]] = {}
    for test in tests:
        if test.endpoint_id:
            grouped.setdefault(test.endpoint_id, []).append(test)

    return SAPFields(
        document_id=document.id,
        primary_endpoints=_freeze(primary),
        secondary_endpoints=_freeze(secondary),
        primary_by_protocol_ref=_freeze(by_ref),
        endpoints_by_id=_freeze(by_id),
        tests=tests,
        tests_by_endpoint=_freeze({k: tuple(v) for k, v in grouped.items()}),
        populations=document.analysis_populations,
        sample_size_driver=document.sample_size_driver_endpoint,
        multiplicity_strategy=document.multiplicity_strategy,
        texts=tuple(texts),
    )


_EXTRACTORS: dict[DocumentType, Callable] = {
    DocumentType.IB: extract_ib,
    DocumentType.PROTOCOL: extract_protocol,
    DocumentType.SAP: extract_sap,
}


def extract_bundle(
    bundle: CrossDocBundle,
    unusable: frozenset[DocumentType] = frozenset(),
    tracer: Tracer | None = None,
) -> tuple[ExtractedBundle, list[Issue]]:
    """
    Run every extractor over a normalized bundle.

    A document whose extraction fails is reported as DOCUMENT_UNUSABLE and
    left out of the snapshot; the others are still extracted.
    """
    tracer = tracer or Tracer("crossdoc.extraction")
    fields: dict[DocumentType, object] = {}
    issues: list[Issue] = []
    failed = set(unusable)

    for doc_type in bundle.present():
        document = bundle.document(doc_type)
        with tracer.span(f"extract_{doc_type.value.lower()}") as span:
            try:
                try:
                    fields[doc_type] = _EXTRACTORS[doc_type](document)
                except (TypeError, ValueError, AttributeError) as e:
                    raise ExtractionError(doc_type.value, str(e)) from e
            except ExtractionError as e:
                logger.warning(f"Extraction failed for {doc_type.value}: {e}")
                span.add_event("extraction_failed", {"error": str(e)})
                failed.add(doc_type)
                issues.append(
                    Issue.from_catalog(
                        IssueCode.DOCUMENT_UNUSABLE,
                        f"{doc_type.value} could not be read and was skipped",
                        details=e.message,
                        locations=[
                            IssueLocation(document=doc_type, document_id=document.id)
                        ],
                        metadata={"stage": "extraction"},
                    )
                )

    extracted = ExtractedBundle(
        ib=fields.get(DocumentType.IB),
        protocol=fields.get(DocumentType.PROTOCOL),
        sap=fields.get(DocumentType.SAP),
        unusable=frozenset(failed),
    )
    return extracted, issues

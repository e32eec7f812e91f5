"""
Bundle Normalizer

Turns whatever the caller handed in (None, a CrossDocBundle, or a mapping of
raw document dicts) into a well-formed CrossDocBundle without raising.

Structural policy:
- A document that is not a mapping is unusable: it is reported as
  DOCUMENT_UNUSABLE and treated as absent.
- A mapping with wrongly typed content is salvaged: offending top-level
  fields revert to their empty default and offending collection items are
  dropped. One DOCUMENT_FIELD_MALFORMED warning lists the dropped paths.
- A document that still fails after MAX_SALVAGE_PASSES is unusable.

The caller's input is never mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ValidationError

from crossdoc.core.enums import DocumentType, IssueCode
from crossdoc.core.exceptions import StructuralError
from crossdoc.core.schemas import (
    DOCUMENT_FIELDS,
    DOCUMENT_MODELS,
    CrossDocBundle,
    Issue,
    IssueLocation,
)

logger = logging.getLogger(__name__)

MAX_SALVAGE_PASSES = 5


@dataclass(frozen=True)
class NormalizedBundle:
    """Normalized bundle plus what the normalizer had to report."""

    bundle: CrossDocBundle
    issues: tuple[Issue, ...] = ()
    unusable: frozenset[DocumentType] = field(default_factory=frozenset)


def _squash(key: str) -> str:
    return key.replace("_", "").lower()


def _input_names(model: type[BaseModel], loc_key: str) -> set[str]:
    """Every input key that feeds the field an error location names."""
    for name, info in model.model_fields.items():
        names = {name}
        if info.alias:
            names.add(info.alias)
        if isinstance(info.validation_alias, AliasChoices):
            names.update(c for c in info.validation_alias.choices if isinstance(c, str))
        elif isinstance(info.validation_alias, str):
            names.add(info.validation_alias)
        if loc_key in names:
            return names
    return {loc_key}


def _resolve_key(data: Mapping[str, Any], model: type[BaseModel], loc_key: Any) -> str | None:
    """Find the input key an error location refers to (camelCase, snake_case or alias)."""
    if not isinstance(loc_key, str):
        return None
    wanted = {_squash(name) for name in _input_names(model, loc_key)}
    for key in data:
        if isinstance(key, str) and _squash(key) in wanted:
            return key
    return None


def _offending_paths(
    data: dict[str, Any], model: type[BaseModel], error: ValidationError
) -> dict[str, set[int] | None]:
    """
    Map each offending top-level key to the item indices to drop.

    ``None`` means the whole field is dropped.
    """
    targets: dict[str, set[int] | None] = {}
    for detail in error.errors():
        loc = detail.get("loc", ())
        if not loc:
            continue
        key = _resolve_key(data, model, loc[0])
        if key is None:
            continue
        value = data[key]
        index = loc[1] if len(loc) > 1 else None
        if (
            isinstance(value, list)
            and isinstance(index, int)
            and 0 <= index < len(value)
            and targets.get(key, set()) is not None
        ):
            targets.setdefault(key, set()).add(index)
        else:
            targets[key] = None
    return targets


def _drop(data: dict[str, Any], targets: dict[str, set[int] | None]) -> list[str]:
    dropped: list[str] = []
    for key in sorted(targets):
        indices = targets[key]
        if indices is None:
            del data[key]
            dropped.append(key)
            continue
        for index in sorted(indices, reverse=True):
            del data[key][index]
        dropped.extend(f"{key}[{index}]" for index in sorted(indices))
    return dropped


def salvage_document(doc_type: DocumentType, raw: Any) -> tuple[BaseModel, list[str]]:
    """
    Validate one raw document, dropping malformed content.

    Returns:
        The validated document and the list of dropped paths.

    Raises:
        StructuralError: If the document cannot be made valid.
    """
    model = DOCUMENT_MODELS[doc_type]
    if isinstance(raw, model):
        return raw, []
    if not isinstance(raw, Mapping):
        raise StructuralError(
            doc_type.value, f"expected an object, got {type(raw).__name__}"
        )

    # Salvage only deletes top-level keys and top-level list items, so a
    # shallow copy of the mapping and its lists leaves the caller's input intact
    data = {
        key: list(value) if isinstance(value, (list, tuple)) else value
        for key, value in raw.items()
    }
    dropped: list[str] = []

    for _ in range(MAX_SALVAGE_PASSES):
        try:
            return model.model_validate(data), dropped
        except ValidationError as e:
            removed = _drop(data, _offending_paths(data, model, e))
            if not removed:
                raise StructuralError(
                    doc_type.value, f"unrecoverable validation errors: {e.error_count()}"
                ) from e
            logger.debug(f"{doc_type.value}: dropped {removed}")
            dropped.extend(removed)

    raise StructuralError(
        doc_type.value,
        f"still invalid after {MAX_SALVAGE_PASSES} salvage passes",
        paths=dropped,
    )


def _raw_document(raw: Mapping[str, Any], doc_type: DocumentType) -> Any:
    """Accept both 'protocol' and 'PROTOCOL' style keys."""
    name = DOCUMENT_FIELDS[doc_type]
    if name in raw:
        return raw[name]
    return raw.get(doc_type.value)


def _document_id(raw: Any) -> str | None:
    if isinstance(raw, Mapping):
        value = raw.get("id")
        return str(value) if value is not None else None
    return None


def normalize_bundle(raw: CrossDocBundle | Mapping[str, Any] | None) -> NormalizedBundle:
    """
    Normalize a bundle. Never raises.

    Args:
        raw: None, a CrossDocBundle, or a mapping with ``ib`` / ``protocol`` /
            ``sap`` entries.
    """
    if raw is None:
        return NormalizedBundle(bundle=CrossDocBundle())
    if isinstance(raw, CrossDocBundle):
        return NormalizedBundle(bundle=raw)
    if not isinstance(raw, Mapping):
        logger.warning(f"Ignoring bundle of type {type(raw).__name__}")
        return NormalizedBundle(bundle=CrossDocBundle())

    documents: dict[str, BaseModel] = {}
    issues: list[Issue] = []
    unusable: set[DocumentType] = set()

    for doc_type in DocumentType:
        value = _raw_document(raw, doc_type)
        if value is None:
            continue
        location = IssueLocation(document=doc_type, document_id=_document_id(value))

        try:
            document, dropped = salvage_document(doc_type, value)
        except StructuralError as e:
            logger.warning(f"{doc_type.value} is unusable: {e.message}")
            unusable.add(doc_type)
            issues.append(
                Issue.from_catalog(
                    IssueCode.DOCUMENT_UNUSABLE,
                    f"{doc_type.value} could not be read and was skipped",
                    details=e.message,
                    locations=[location],
                    metadata={"stage": "normalization"},
                )
            )
            continue

        documents[DOCUMENT_FIELDS[doc_type]] = document
        if dropped:
            issues.append(
                Issue.from_catalog(
                    IssueCode.DOCUMENT_FIELD_MALFORMED,
                    f"{doc_type.value} had {len(dropped)} malformed field(s) that were dropped",
                    details=", ".join(dropped),
                    locations=[location],
                    metadata={"dropped_paths": dropped},
                )
            )

    return NormalizedBundle(
        bundle=CrossDocBundle(**documents),
        issues=tuple(issues),
        unusable=frozenset(unusable),
    )

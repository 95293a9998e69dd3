"""Field-level merge of partial source results into a property record.

Each field's value comes from the highest-ranked source that supplied a
non-null value for it. Rank is taken from the precedence table first; sources
the table does not list for a field follow in SourceName declaration order.
Arrival order never matters, so re-applying or reordering merges gives the
same record.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sitedata.core.types import SourceName
from sitedata.enrichment.models import RECORD_FIELDS, PropertyRecord
from sitedata.sources.models import PartialRecord
from sitedata.sources.registry import read_sources_file

logger = logging.getLogger(__name__)

Precedence = dict[str, list[str]]

# Parcel records come from county data and outrank listing data.
DEFAULT_PRECEDENCE: Precedence = {
    "parcel_number": [SourceName.PARCEL_RECORDS.value, SourceName.LOT_RECORDS.value],
    "owner": [SourceName.PARCEL_RECORDS.value, SourceName.LOT_RECORDS.value],
    "land_use": [SourceName.PARCEL_RECORDS.value, SourceName.LOT_RECORDS.value],
    "lot_size": [SourceName.PARCEL_RECORDS.value, SourceName.LOT_RECORDS.value],
}

_DECLARED_ORDER: list[str] = [source.value for source in SourceName]


def load_precedence(config_path: str | Path) -> Precedence:
    """Read the ``precedence`` table from the sources config file.

    Falls back to DEFAULT_PRECEDENCE when the file has no table.
    """
    data = read_sources_file(config_path)
    table = data.get("precedence")
    if not table:
        return dict(DEFAULT_PRECEDENCE)

    precedence: Precedence = {}
    for field, order in table.items():
        if field not in RECORD_FIELDS:
            raise ValueError(f"Precedence entry for unknown field {field!r}")
        if not isinstance(order, list):
            raise ValueError(f"Precedence for {field!r} must be a list of source names")
        unknown = [name for name in order if name not in _DECLARED_ORDER]
        if unknown:
            logger.warning("Precedence for %s names unregistered sources: %s", field, unknown)
        precedence[field] = [str(name) for name in order]
    return precedence


def source_rank(field: str, source: str, precedence: Precedence) -> tuple[int, int, str]:
    """Sort key for a source supplying ``field``; lower wins."""
    order = precedence.get(field, [])
    primary = order.index(source) if source in order else len(order)
    secondary = _DECLARED_ORDER.index(source) if source in _DECLARED_ORDER else len(_DECLARED_ORDER)
    return (primary, secondary, source)


def resolve_field(
    field: str,
    sources: dict[str, dict[str, Any]],
    precedence: Precedence,
) -> tuple[Any, str] | None:
    """Return ``(value, source)`` for the winning supplier of a field, if any."""
    candidates = [
        name for name, fields in sources.items()
        if fields.get(field) is not None
    ]
    if not candidates:
        return None
    winner = min(candidates, key=lambda name: source_rank(field, name, precedence))
    return sources[winner][field], winner


def merge_partial(
    record: PropertyRecord,
    partial: PartialRecord,
    source_name: str,
    precedence: Precedence,
) -> PropertyRecord:
    """Return a new record with ``partial`` applied as ``source_name``'s contribution.

    The source's provenance entry is replaced, not accumulated, so applying
    the same partial twice is a no-op.
    """
    contributed = partial.record_fields()
    unknown = set(contributed) - set(RECORD_FIELDS)
    if unknown:
        raise ValueError(f"{source_name} supplied unknown fields: {sorted(unknown)}")

    sources = {name: dict(fields) for name, fields in record.sources.items()}
    touched = set(contributed) | set(sources.get(source_name, {}))
    sources[source_name] = contributed

    updates: dict[str, Any] = {}
    attribution = dict(record.attribution)
    for field in touched:
        resolved = resolve_field(field, sources, precedence)
        if resolved is None:
            updates[field] = None
            attribution.pop(field, None)
        else:
            updates[field], attribution[field] = resolved

    updates["sources"] = sources
    updates["attribution"] = attribution
    return record.model_copy(update=updates)

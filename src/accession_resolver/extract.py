"""Pull a single named field out of a raw payload."""

import logging
from typing import Optional

from accession_resolver.errors import ParseFailure
from accession_resolver.payloads import AttributeList, FlatRecord, RawPayload

logger = logging.getLogger(__name__)

# Values that annotators use to say "no value"; treated as absent.
_MISSING_VALUES = {
    "",
    "-",
    "missing",
    "na",
    "n/a",
    "none",
    "not applicable",
    "not available",
    "not collected",
    "not provided",
    "not recorded",
    "restricted access",
    "unknown",
}


def extract(payload: RawPayload, field_name: str) -> Optional[str]:
    """Return the value of ``field_name`` in ``payload``, or None if absent."""
    try:
        if isinstance(payload, FlatRecord):
            value = _extract_flat(payload, field_name)
        elif isinstance(payload, AttributeList):
            value = _extract_attribute(payload, field_name)
        else:
            raise TypeError(f"Unsupported payload type: {type(payload).__name__}")
    except ParseFailure as exc:
        logger.debug("Could not parse %s: %s", field_name, exc)
        return None
    return _clean(value)


def is_missing(value: Optional[str]) -> bool:
    if value is None:
        return True
    normalized = value.strip().lower()
    return normalized in _MISSING_VALUES or normalized.startswith("missing:")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = " ".join(value.split())
    return None if is_missing(value) else value


def _extract_attribute(payload: AttributeList, field_name: str) -> Optional[str]:
    # Harmonized names are schema-normalized, so they win over free-text names.
    for attr in payload.attributes:
        if attr.harmonized_name == field_name:
            return attr.value
    for attr in payload.attributes:
        if attr.name == field_name:
            return attr.value
    return None


def _extract_flat(payload: FlatRecord, field_name: str) -> Optional[str]:
    record = payload.parse()
    name = field_name.lower()
    if name == "organism":
        return record.annotations.get("organism")
    if name == "biosample":
        for xref in record.dbxrefs:
            db, _, value = xref.partition(":")
            if db.strip().lower() == "biosample" and value.strip():
                return value.strip()
        return None

    for feature in record.features:
        for key, values in feature.qualifiers.items():
            if key.lower() == name and values:
                return values[0]
    return None

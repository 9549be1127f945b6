"""Document Builder — shapes a validated flat row into the request body.

Four shapes are supported (see DocumentShape). Columns named "prefix.field"
fold into a nested object under "prefix"; only the first dot is significant,
and a sub-field named "uuid" becomes the "_id" key. Missing values never
raise: they are simply left out of the document.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from importer.core.record_types import DocumentShape, RecordType
from importer.core.row_source import Row

ID_FIELD = "_id"
UUID_COLUMN = "uuid"

DEFAULT_USER_TYPE = "district-manager"
DEFAULT_LANGUAGE = "en"
FALSE_VALUES = {"false", "0", "no", "n"}

Document = dict[str, Any]


def format_timestamp(now: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-01-31T09:15:00.000Z."""
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _split_column(column: str) -> tuple[Optional[str], str]:
    """Split "prefix.field" on the first dot; (None, column) when undotted."""
    if "." not in column:
        return None, column
    prefix, field = column.split(".", 1)
    return prefix, field


def _compact(doc: dict) -> dict:
    """Drop keys whose value is missing."""
    return {k: v for k, v in doc.items() if v is not None}


def fold_prefixed(row: Row, prefix: str) -> Optional[dict]:
    """Collect "prefix.*" columns into a nested object.

    Returns None when the row has no such columns at all.
    """
    nested = None
    for column, value in row.items():
        col_prefix, field = _split_column(column)
        if col_prefix != prefix:
            continue
        if nested is None:
            nested = {}
        if value is None:
            continue
        nested[ID_FIELD if field == UUID_COLUMN else field] = value
    return nested


def _parse_bool(value: Optional[str], default: bool = True) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() not in FALSE_VALUES


def build_user(row: Row, place: Optional[str] = None) -> Document:
    """User account document."""
    place_ref = fold_prefixed(row, "place")
    if place_ref is None:
        place_ref = row.get("place") or place

    contact = fold_prefixed(row, "contact")
    if contact is None:
        contact = row.get("contact") or _compact({
            "name": row.get("name"),
            "phone": row.get("phone"),
        })

    return _compact({
        "username": row.get("username"),
        "password": row.get("password"),
        "type": row.get("type") or DEFAULT_USER_TYPE,
        "language": row.get("language") or row.get("lang") or DEFAULT_LANGUAGE,
        "known": _parse_bool(row.get("known")),
        "external_id": row.get("external_id"),
        "place": place_ref,
        "contact": contact,
    })


def build_person(
    row: Row,
    record_type: RecordType,
    place: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Document:
    """Person contact document: columns pass through, place.* folds."""
    now = now or datetime.now(timezone.utc)
    doc: Document = {}
    for column, value in row.items():
        prefix, _ = _split_column(column)
        if prefix == "place":
            continue
        doc[ID_FIELD if column == UUID_COLUMN else column] = value

    place_ref = fold_prefixed(row, "place")
    if place_ref is None:
        place_ref = row.get("place") or place

    doc["place"] = place_ref
    doc["imported_date"] = format_timestamp(now)
    doc["type"] = record_type.doc_type
    return _compact(doc)


def build_place(
    row: Row,
    record_type: RecordType,
    place: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Document:
    """Place document for any hierarchy level: contact.* and parent.* fold."""
    now = now or datetime.now(timezone.utc)
    doc: Document = {}
    for column, value in row.items():
        prefix, _ = _split_column(column)
        if prefix in ("contact", "parent"):
            continue
        doc[ID_FIELD if column == UUID_COLUMN else column] = value

    contact = fold_prefixed(row, "contact")
    if contact is not None:
        doc["contact"] = contact

    parent = fold_prefixed(row, "parent")
    if parent is None:
        parent = row.get("parent") or place

    doc["parent"] = parent
    doc["imported_date"] = format_timestamp(now)
    doc["type"] = record_type.doc_type
    return _compact(doc)


def build_place_update(row: Row) -> Document:
    """Flat partial update; uuid only addresses the resource."""
    return _compact({k: v for k, v in row.items() if k != UUID_COLUMN})


def build_document(
    row: Row,
    record_type: RecordType,
    place: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Document:
    """Build the request body for a row according to its record type's shape."""
    shape = record_type.shape
    if shape == DocumentShape.USER:
        return build_user(row, place)
    if shape == DocumentShape.PERSON:
        return build_person(row, record_type, place, now)
    if shape == DocumentShape.PLACE:
        return build_place(row, record_type, place, now)
    if shape == DocumentShape.PLACE_UPDATE:
        return build_place_update(row)
    raise ValueError(f"Unknown document shape: {shape}")

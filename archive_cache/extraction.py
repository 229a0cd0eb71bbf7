"""
Helpers which turn loosely-typed archive payloads into snapshot columns.

Nothing here assumes that a field is present: every projection produces a
value, falling back to a default when the payload doesn't carry one.
"""

import datetime
from collections.abc import Mapping
from typing import Any, Optional

from django.utils import timezone
from django.utils.crypto import get_random_string
from django.utils.dateparse import parse_datetime

RESOURCE_ID_FIELDS = ("id", "_id", "aid")
FALLBACK_ID_CHARS = "abcdefghijklmnopqrstuvwxyz0123456789"

NAME_MAX_LENGTH = 255

# Range of the IntegerField which stores job progress
PROGRESS_MIN = -(2**31)
PROGRESS_MAX = 2**31 - 1


def ensure_payload(item: Any) -> Mapping:
    if not isinstance(item, Mapping):
        raise TypeError(
            "Archive resources must be mappings, not %s" % type(item).__name__
        )
    return item


def first_present(payload: Mapping, *fields: str, default: Any = None) -> Any:
    """
    Return the value of the first field which is present and not empty.
    """
    for field in fields:
        value = payload.get(field)
        if value is not None and value != "":
            return value
    return default


def fallback_resource_id() -> str:
    """
    Identifier for a payload which doesn't carry one of its own. These never
    match anything on a later refresh, so such items are always new rows.
    """
    epoch_millis = int(timezone.now().timestamp() * 1000)
    return "unknown-%d-%s" % (
        epoch_millis,
        get_random_string(9, allowed_chars=FALLBACK_ID_CHARS),
    )


def extract_resource_id(payload: Mapping) -> str:
    resource_id = first_present(payload, *RESOURCE_ID_FIELDS)
    if resource_id is None:
        return fallback_resource_id()
    return str(resource_id)


def as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def as_name(value: Any, default: str) -> str:
    return (as_text(value) or default)[:NAME_MAX_LENGTH]


def as_reference(value: Any) -> Optional[str]:
    """
    Reduce a reference to another archive resource to its identifier. The
    archive sends either the bare id or the embedded resource.
    """
    if isinstance(value, Mapping):
        value = first_present(value, *RESOURCE_ID_FIELDS)
    return as_text(value)


def as_progress(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        progress = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        # NaN is a ValueError, infinity an OverflowError
        return None
    if not PROGRESS_MIN <= progress <= PROGRESS_MAX:
        return None
    return progress


def as_datetime(value: Any) -> Optional[datetime.datetime]:
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = parse_datetime(value)
        except ValueError:
            # Well formed but out of range, e.g. "2024-02-30T00:00:00"
            parsed = None
    else:
        parsed = None

    if parsed is not None and timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, datetime.timezone.utc)
    return parsed


def project_ingestion_point(payload: Mapping) -> dict[str, Any]:
    return {
        "name": as_name(payload.get("name"), "Unknown"),
        "resource_type": as_text(payload.get("type")) or "unknown",
        "type_details": payload.get("typeDetails"),
        "status": as_text(payload.get("status")),
        "description": as_text(payload.get("description")) or "",
    }


def project_import_job(payload: Mapping) -> dict[str, Any]:
    return {
        "name": as_name(
            first_present(payload, "name", "title"), "Unknown Import Job"
        ),
        "status": as_text(first_present(payload, "status", "state")),
        "description": as_text(payload.get("description")) or "",
        "ingestion_point_id": as_reference(
            first_present(payload, "ingestionPointId", "ingestionPoint")
        ),
        "progress": as_progress(first_present(payload, "progress", "percentage")),
        "start_time": as_datetime(first_present(payload, "startTime", "startedAt")),
        "end_time": as_datetime(first_present(payload, "endTime", "completedAt")),
    }

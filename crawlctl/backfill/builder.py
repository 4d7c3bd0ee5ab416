"""Turn archived event lines into crawler work-item requests.

Each input line holds one GitHub event as exported from an event archive.
The crawler already knows how to process events it fetched itself, so the
request carries the event as a pre-fetched payload addressed at the event's
canonical API URL.
"""

from __future__ import annotations

import typing as typ

import msgspec

from crawlctl.gateway.models import (
    DEFAULT_POLICY,
    PLACEHOLDER_ETAG,
    WorkItemPayload,
    WorkItemRequest,
)

from .errors import InvalidRecordError, RecordDecodeError

# Storage key added by the archive; not part of the event itself.
INTERNAL_ID_FIELD = "_id"

_DECODER = msgspec.json.Decoder()


def _nested_url(record: dict[str, typ.Any], key: str) -> str | None:
    container = record.get(key)
    if not isinstance(container, dict):
        return None
    url = container.get("url")
    if isinstance(url, str) and url:
        return url
    return None


def _base_url(record: dict[str, typ.Any]) -> str | None:
    return _nested_url(record, "repo") or _nested_url(record, "org")


def decode_record(line: bytes | str) -> dict[str, typ.Any] | None:
    """Decode one line into an event mapping.

    Returns ``None`` for blank lines.

    Raises
    ------
    RecordDecodeError
        If the line is not valid JSON or does not hold a JSON object.

    """
    if not line.strip():
        return None
    try:
        decoded = _DECODER.decode(line)
    except msgspec.DecodeError as exc:
        raise RecordDecodeError.malformed(str(exc)) from exc
    if not isinstance(decoded, dict):
        raise RecordDecodeError.not_an_object(type(decoded).__name__)
    return decoded


def request_from_record(record: dict[str, typ.Any]) -> WorkItemRequest:
    """Build the work-item request for a decoded event.

    The returned payload body is a shallow copy of ``record`` without the
    archive's internal id.

    Raises
    ------
    InvalidRecordError
        If the event has no id, or neither ``repo.url`` nor ``org.url``.

    """
    event_id = record.get("id")
    if event_id is None or event_id == "":
        raise InvalidRecordError.missing_id()
    base_url = _base_url(record)
    if base_url is None:
        raise InvalidRecordError.missing_base_url(event_id)

    body = {key: value for key, value in record.items() if key != INTERNAL_ID_FIELD}
    created_at = record.get("created_at")
    event_type = record.get("type")
    return WorkItemRequest(
        type=event_type if isinstance(event_type, str) else "",
        url=f"{base_url}/events/{event_id}",
        policy=DEFAULT_POLICY,
        payload=WorkItemPayload(
            body=body,
            etag=PLACEHOLDER_ETAG,
            fetched_at=created_at if isinstance(created_at, str) else None,
        ),
    )


def build_request(line: bytes | str) -> WorkItemRequest | None:
    """Build a request from one source line, or ``None`` for a blank line.

    Raises
    ------
    RecordDecodeError
        If the line cannot be decoded.
    InvalidRecordError
        If the decoded event cannot be addressed.

    """
    record = decode_record(line)
    if record is None:
        return None
    return request_from_record(record)

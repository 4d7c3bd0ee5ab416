"""Wire structures exchanged with the crawler service."""

from __future__ import annotations

import typing as typ

import msgspec

DEFAULT_POLICY = "default:self"
PLACEHOLDER_ETAG = 1


class WorkItemPayload(msgspec.Struct, kw_only=True, omit_defaults=True):
    """Pre-fetched content attached to a work item.

    Attributes
    ----------
    body : dict[str, Any]
        The source event without its storage identifier.
    etag : int
        Sentinel etag; the crawler treats the body as already fetched.
    fetched_at : str | None
        Event creation time. Omitted from the wire when ``None`` so the
        crawler stamps its own fetch time.

    """

    body: dict[str, typ.Any]
    etag: int
    fetched_at: str | None = msgspec.field(default=None, name="fetchedAt")


class WorkItemRequest(msgspec.Struct, kw_only=True, omit_defaults=True):
    """Canonical unit of work accepted by a crawler queue.

    ``payload`` is left off the wire for plain URL requests that the crawler
    must fetch itself.
    """

    type: str
    url: str
    policy: str
    payload: WorkItemPayload | None = None


class DeadletterExtra(msgspec.Struct, kw_only=True):
    """Context recorded by the crawler when it dead-lettered a request."""

    type: str | None = None
    url: str | None = None
    reason: str | None = None


class DeadletterRecord(msgspec.Struct, kw_only=True):
    """A request the crawler gave up on and set aside."""

    urn: str
    extra: DeadletterExtra = msgspec.field(default_factory=DeadletterExtra)


class DeadletterCount(msgspec.Struct):
    """Body of the dead-letter count endpoint."""

    count: int

"""Crawler gateway protocol and its httpx implementation."""

from __future__ import annotations

import typing as typ
from urllib.parse import quote

import httpx
import msgspec

from .errors import (
    DeadletterNotFoundError,
    GatewayAPIError,
    GatewayResponseShapeError,
    GatewayTransportError,
)
from .models import DeadletterCount, DeadletterRecord, WorkItemRequest

if typ.TYPE_CHECKING:
    from .config import GatewayConfig


class CrawlerGateway(typ.Protocol):
    """Operations the control plane needs from the crawler service."""

    async def submit_batch(
        self, queue_name: str, items: typ.Sequence[WorkItemRequest]
    ) -> None:
        """Queue every item in ``items`` on ``queue_name`` in one call."""
        ...

    async def list_deadletters(self) -> list[DeadletterRecord]:
        """Return the dead-lettered requests in the crawler's order."""
        ...

    async def count_deadletters(self) -> int:
        """Return how many requests are currently dead-lettered."""
        ...

    async def requeue_deadletter(self, urn: str) -> None:
        """Put the dead letter ``urn`` back on a crawler queue."""
        ...

    async def delete_deadletter(self, urn: str) -> None:
        """Discard the dead letter ``urn``."""
        ...


_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_NOT_FOUND = 404

_REQUESTS_ENCODER = msgspec.json.Encoder()
_DEADLETTERS_DECODER = msgspec.json.Decoder(list[DeadletterRecord])
_COUNT_DECODER = msgspec.json.Decoder(DeadletterCount)


def _deadletter_path(urn: str) -> str:
    # urns contain ':' and may contain '/', both must stay inside one segment
    return f"/deadletters/{quote(urn, safe='')}"


class HttpCrawlerGateway:
    """HTTP implementation of :class:`CrawlerGateway`."""

    def __init__(
        self,
        config: GatewayConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the gateway, creating an httpx client when none is given."""
        self._config = config
        self._owns_client = http_client is None
        headers = {
            "User-Agent": config.user_agent,
            "Accept": "application/json",
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers=headers,
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> typ.Self:
        """Return the gateway for use in ``async with`` blocks."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close owned resources on exit."""
        await self.aclose()

    async def submit_batch(
        self, queue_name: str, items: typ.Sequence[WorkItemRequest]
    ) -> None:
        """POST ``items`` as a JSON array to ``/requests/{queue_name}``."""
        await self._request(
            "submit",
            "POST",
            f"/requests/{quote(queue_name, safe='')}",
            content=_REQUESTS_ENCODER.encode(list(items)),
            headers={"Content-Type": "application/json"},
        )

    async def list_deadletters(self) -> list[DeadletterRecord]:
        """GET ``/deadletters`` and decode the record array."""
        response = await self._request("list deadletters", "GET", "/deadletters")
        try:
            return _DEADLETTERS_DECODER.decode(response.content)
        except msgspec.DecodeError as exc:
            raise GatewayResponseShapeError.invalid(
                "list deadletters", str(exc)
            ) from exc

    async def count_deadletters(self) -> int:
        """GET ``/deadletters/count`` and return the ``count`` field."""
        response = await self._request(
            "count deadletters", "GET", "/deadletters/count"
        )
        try:
            return _COUNT_DECODER.decode(response.content).count
        except msgspec.DecodeError as exc:
            raise GatewayResponseShapeError.invalid(
                "count deadletters", str(exc)
            ) from exc

    async def requeue_deadletter(self, urn: str) -> None:
        """POST to ``/deadletters/{urn}`` to requeue one dead letter."""
        await self._request(
            "requeue deadletter", "POST", _deadletter_path(urn), not_found_urn=urn
        )

    async def delete_deadletter(self, urn: str) -> None:
        """DELETE ``/deadletters/{urn}``."""
        await self._request(
            "delete deadletter", "DELETE", _deadletter_path(urn), not_found_urn=urn
        )

    async def _request(  # noqa: PLR0913
        self,
        operation: str,
        method: str,
        path: str,
        *,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        not_found_urn: str | None = None,
    ) -> httpx.Response:
        """Send one request and translate failures into gateway errors."""
        try:
            response = await self._client.request(
                method,
                f"{self._config.url}{path}",
                content=content,
                headers=headers,
            )
        except httpx.RequestError as exc:
            raise GatewayTransportError.wrap(operation, exc) from exc

        status = response.status_code
        if status == _HTTP_NOT_FOUND and not_found_urn is not None:
            raise DeadletterNotFoundError(not_found_urn)
        if status >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GatewayAPIError.http_error(operation, status)
        return response

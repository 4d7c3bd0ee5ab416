"""Access to the remote crawler's queue and dead-letter endpoints."""

from __future__ import annotations

from .client import CrawlerGateway, HttpCrawlerGateway
from .config import GatewayConfig
from .errors import (
    DeadletterNotFoundError,
    GatewayAPIError,
    GatewayConfigError,
    GatewayError,
    GatewayResponseShapeError,
    GatewayTransportError,
)
from .models import (
    DEFAULT_POLICY,
    PLACEHOLDER_ETAG,
    DeadletterExtra,
    DeadletterRecord,
    WorkItemPayload,
    WorkItemRequest,
)

__all__ = [
    "DEFAULT_POLICY",
    "PLACEHOLDER_ETAG",
    "CrawlerGateway",
    "DeadletterExtra",
    "DeadletterNotFoundError",
    "DeadletterRecord",
    "GatewayAPIError",
    "GatewayConfig",
    "GatewayConfigError",
    "GatewayError",
    "GatewayResponseShapeError",
    "GatewayTransportError",
    "HttpCrawlerGateway",
    "WorkItemPayload",
    "WorkItemRequest",
]

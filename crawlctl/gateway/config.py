"""Connection settings for the crawler gateway.

Usage
-----
Build a configuration explicitly:

>>> config = GatewayConfig(url="https://crawler.example.test")
>>> config.timeout_s
30.0

Or read it from the environment:

>>> import os
>>> os.environ["CRAWLCTL_CRAWLER_URL"] = "https://crawler.example.test/"
>>> GatewayConfig.from_env().url
'https://crawler.example.test'

"""

from __future__ import annotations

import dataclasses as dc
import os

from .errors import GatewayConfigError

_DEFAULT_TIMEOUT_S = 30.0


def _normalise_url(url: str) -> str:
    cleaned = url.strip().rstrip("/")
    if not cleaned:
        raise GatewayConfigError.missing_url()
    if not cleaned.startswith(("http://", "https://")):
        raise GatewayConfigError.invalid_url(cleaned)
    return cleaned


def _parse_timeout(raw: str) -> float:
    if not raw.strip():
        return _DEFAULT_TIMEOUT_S
    try:
        value = float(raw)
    except ValueError as exc:
        raise GatewayConfigError.invalid_timeout(raw) from exc
    if value <= 0:
        raise GatewayConfigError.invalid_timeout(raw)
    return value


@dc.dataclass(frozen=True, slots=True)
class GatewayConfig:
    """Settings for :class:`~crawlctl.gateway.client.HttpCrawlerGateway`.

    Attributes
    ----------
    url
        Base URL of the crawler service, without a trailing slash.
    token
        Optional bearer token sent verbatim in the ``Authorization`` header.
    timeout_s
        Per-request timeout enforced by httpx.
    user_agent
        ``User-Agent`` header value.

    """

    url: str
    token: str | None = None
    timeout_s: float = _DEFAULT_TIMEOUT_S
    user_agent: str = "crawlctl/0.1"

    def __post_init__(self) -> None:
        """Normalise the base URL."""
        object.__setattr__(self, "url", _normalise_url(self.url))

    @classmethod
    def from_env(
        cls, *, url: str | None = None, token: str | None = None
    ) -> GatewayConfig:
        """Create configuration from ``CRAWLCTL_*`` environment variables.

        Explicit ``url`` and ``token`` arguments (typically command-line
        flags) take precedence over the environment.

        - ``CRAWLCTL_CRAWLER_URL``: crawler base URL (required).
        - ``CRAWLCTL_CRAWLER_TOKEN``: optional bearer token.
        - ``CRAWLCTL_TIMEOUT_S``: request timeout in seconds.

        Raises
        ------
        GatewayConfigError
            If no URL is available or the timeout is invalid.

        """
        resolved_url = url or os.environ.get("CRAWLCTL_CRAWLER_URL", "")
        if not resolved_url.strip():
            raise GatewayConfigError.missing_url()
        resolved_token = token or os.environ.get("CRAWLCTL_CRAWLER_TOKEN", "")
        timeout_s = _parse_timeout(os.environ.get("CRAWLCTL_TIMEOUT_S", ""))
        return cls(
            url=resolved_url,
            token=resolved_token.strip() or None,
            timeout_s=timeout_s,
        )

"""Request construction for the image report stream."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping
from urllib.parse import urlencode

import httpx

from image_report.core.config import ReportConfig
from image_report.core.exceptions import ConfigurationError

REPORT_PATH = "/app-proxy/api/image/report-image/v2"


@dataclass(frozen=True)
class ConnectionTarget:
    """Where and how to open the report stream"""

    url: str
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def __hash__(self) -> int:
        return hash((self.url, tuple(sorted(self.headers.items()))))

    def redacted_headers(self) -> dict[str, str]:
        """Headers safe to log: the authorization value is masked."""
        return {
            name: ("****" if name.lower() == "authorization" else value)
            for name, value in self.headers.items()
        }


def build_url_headers(config: ReportConfig) -> ConnectionTarget:
    """Map a validated configuration to the report stream URL and headers.

    The forwarded ``CF_*`` values go into the query string sorted by name, so
    the same configuration always produces the same URL. The API key is only
    ever sent in the authorization header.

    Raises:
        ConfigurationError: If the configured host cannot form an absolute URL.
    """
    try:
        base = httpx.URL(config.host)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"Invalid CF_HOST {config.host!r}: {e}") from e
    if base.scheme not in ("http", "https") or not base.host:
        raise ConfigurationError(f"Invalid CF_HOST {config.host!r}: not an absolute http(s) URL")

    query = urlencode(sorted(config.forwarded_fields().items()))
    url = f"{config.host}{REPORT_PATH}?{query}"

    headers = {
        "authorization": config.api_key.get_secret_value(),
        "accept": "text/event-stream",
        "cache-control": "no-cache",
    }
    return ConnectionTarget(url=url, headers=headers)

"""
Exceptions raised by the upstream API clients.

Analyzers catch these (together with ``requests.RequestException``) and turn
them into their fallback result.
"""

from typing import Optional


class UpstreamError(Exception):
    """Base exception for failures talking to Nansen or a price API."""

    def __init__(self, message: str, source: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.source = source
        self.status_code = status_code

    def __str__(self) -> str:
        parts = [self.message]
        if self.source:
            parts.append(f"[source={self.source}]")
        if self.status_code is not None:
            parts.append(f"[status={self.status_code}]")
        return " ".join(parts)


class APIResponseError(UpstreamError):
    """The upstream answered with a non-2xx status or an error payload."""

    def is_rate_limited(self) -> bool:
        return self.status_code == 429


class MalformedResponseError(UpstreamError):
    """The upstream payload could not be parsed into the expected shape."""

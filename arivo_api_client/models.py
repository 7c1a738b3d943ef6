"""Data models and constants for the Arivo API client."""

from dataclasses import dataclass, field

import httpx

DEFAULT_BASE_URL = "https://arivo.com.br/api/v2"
CREDENTIAL_TYPE = "arivoApi"

# Dispatcher: total attempts per request when the API answers 429
MAX_RETRIES = 3
DEFAULT_RETRY_WAIT = 1.0  # seconds, when neither retry-after nor reset is sent

# Collector
DEFAULT_LIMIT = 100
LOW_QUOTA_THRESHOLD = 5  # throttle once x-ratelimit-remaining drops to this
RESET_MARGIN = 1.0  # seconds added past the reported reset
MAX_THROTTLE_WAIT = 60.0
PAGE_DELAY = 0.1  # pause between pages when quota is healthy

NEXT_PAGE_HEADER = "x-next-page"
REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"
RETRY_AFTER_HEADER = "retry-after"


@dataclass(frozen=True)
class RequestOptions:
    """One fully-built request, handed to the authenticated-request facility."""

    method: str
    url: str
    body: dict = field(default_factory=dict)
    query: dict = field(default_factory=dict)
    headers: dict = field(default_factory=lambda: {"Content-Type": "application/json"})
    json: bool = True
    return_full_response: bool = False
    timeout: float | None = None


@dataclass
class ApiResponse:
    """Full response from the Arivo API: body plus headers."""

    status: int
    body: dict | list | None
    headers: httpx.Headers = field(default_factory=httpx.Headers)

    def __post_init__(self):
        self.headers = to_headers(self.headers)


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate-limit signal carried by a single response."""

    remaining: int | None = None
    reset: float | None = None  # epoch seconds
    retry_after: float | None = None  # seconds

    @classmethod
    def from_headers(cls, headers) -> "RateLimitInfo":
        headers = to_headers(headers)
        remaining = _parse_number(headers.get(REMAINING_HEADER))
        return cls(
            remaining=int(remaining) if remaining is not None else None,
            reset=_parse_number(headers.get(RESET_HEADER)),
            retry_after=_parse_number(headers.get(RETRY_AFTER_HEADER)),
        )


@dataclass(frozen=True)
class PaginationPolicy:
    """Return-all or return-up-to-limit, fixed for one collection."""

    return_all: bool = False
    limit: int | None = DEFAULT_LIMIT

    def reached(self, count: int) -> bool:
        return not self.return_all and self.limit is not None and count >= self.limit


def to_headers(raw) -> httpx.Headers:
    """Case-insensitive headers from any mapping; None-valued entries are dropped."""
    if isinstance(raw, httpx.Headers):
        return raw
    if not raw:
        return httpx.Headers()
    items = raw.items() if hasattr(raw, "items") else raw
    return httpx.Headers(
        [(k, v if isinstance(v, (str, bytes)) else str(v)) for k, v in items if v is not None]
    )


def _parse_number(val: str | None) -> float | None:
    if val is None:
        return None
    try:
        return float(val)
    except ValueError:
        return None

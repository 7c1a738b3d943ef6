"""Arivo CRM API client.

Authenticated request dispatch with 429 retry, and collection of
paginated endpoints by following the X-Next-Page header.
"""

from .cli import main
from .context import ArivoCredentials, NodeInfo, StandaloneContext
from .errors import ApiRequestFailed, NodeApiError, RateLimitExceeded
from .generic_client import arivo_api_request, arivo_api_request_all_items
from .models import ApiResponse

__all__ = [
    "main",
    "arivo_api_request",
    "arivo_api_request_all_items",
    "ApiResponse",
    "ArivoCredentials",
    "NodeInfo",
    "StandaloneContext",
    "NodeApiError",
    "ApiRequestFailed",
    "RateLimitExceeded",
]

if __name__ == "__main__":
    main()

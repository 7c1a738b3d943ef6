"""Execution context: what the workflow host supplies to the client.

A host implements ``ExecutionContext``. ``StandaloneContext`` is the
implementation used outside a host (CLI, scripts, tests): it resolves
parameters from a plain dict, reads credentials from settings and sends
requests through an ``httpx.AsyncClient``.
"""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog

from .models import CREDENTIAL_TYPE, DEFAULT_BASE_URL, ApiResponse, RequestOptions
from .settings import Settings, get_settings


@dataclass(frozen=True)
class NodeInfo:
    """Identity of the calling node, attached to every reported error."""

    name: str = "Arivo"
    type: str = "arivo"


@dataclass(frozen=True)
class ArivoCredentials:
    api_key: str
    api_url: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ArivoCredentials":
        if not settings.arivo_api_key:
            raise RuntimeError("ARIVO_API_KEY is not set")
        return cls(api_key=settings.arivo_api_key, api_url=settings.arivo_base_url)


class ExecutionContext(Protocol):
    """What a host must supply.

    ``logger`` must be structlog-compatible: it is called as
    ``logger.debug("event_name", key=value, ...)``. Wrap a stdlib
    ``logging.Logger`` with ``structlog.stdlib.BoundLogger`` (for instance
    via ``structlog.wrap_logger``) before handing it over.
    """

    node: NodeInfo
    logger: Any

    def get_node_parameter_or_none(self, name: str, item_index: int = 0) -> Any: ...

    def get_credentials(self, credential_type: str) -> ArivoCredentials: ...

    async def request_with_authentication(
        self, credential_type: str, options: RequestOptions
    ) -> Any: ...


def resolve_parameter(context: ExecutionContext, candidates, default=None, item_index: int = 0):
    """Return the first candidate parameter the context has a value for."""
    for name in candidates:
        value = context.get_node_parameter_or_none(name, item_index)
        if value is not None:
            return value
    return default


def resolve_base_url(credentials: ArivoCredentials | None, settings: Settings | None = None) -> str:
    """Base endpoint for one operation: credential URL, then env, then default."""
    settings = settings or get_settings()
    for candidate in (
        credentials.api_url if credentials else None,
        settings.arivo_base_url,
        DEFAULT_BASE_URL,
    ):
        if candidate:
            return candidate.rstrip("/")
    return DEFAULT_BASE_URL


class StandaloneContext:
    """Context for running outside a workflow host."""

    def __init__(
        self,
        parameters: dict | None = None,
        credentials: ArivoCredentials | None = None,
        node: NodeInfo | None = None,
        logger=None,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.credentials = credentials or ArivoCredentials.from_settings(settings)
        self.parameters = dict(parameters or {})
        self.node = node or NodeInfo()
        self.logger = logger or structlog.get_logger()
        self._client = client or httpx.AsyncClient(timeout=settings.arivo_timeout)

    def get_node_parameter_or_none(self, name: str, item_index: int = 0):
        # Dotted names walk nested collections, e.g. "options.limit"
        value: Any = self.parameters
        for part in name.split("."):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return value

    def get_credentials(self, credential_type: str = CREDENTIAL_TYPE) -> ArivoCredentials:
        return self.credentials

    async def request_with_authentication(self, credential_type: str, options: RequestOptions):
        credentials = self.get_credentials(credential_type)
        headers = {**options.headers, "Authorization": f"Token token={credentials.api_key}"}
        kwargs: dict[str, Any] = {"headers": headers}
        if options.query:
            kwargs["params"] = options.query
        if options.body:
            kwargs["json"] = options.body
        if options.timeout is not None:
            kwargs["timeout"] = options.timeout

        resp = await self._client.request(options.method, options.url, **kwargs)
        resp.raise_for_status()

        if options.json:
            body = resp.json() if resp.content else None
        else:
            body = resp.text
        if options.return_full_response:
            return ApiResponse(status=resp.status_code, body=body, headers=resp.headers)
        return body

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

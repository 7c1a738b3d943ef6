"""Errors reported back to the workflow host."""

import json

import httpx

from .models import to_headers

RATE_LIMIT_MESSAGE = "Could not complete API request. Maximum number of rate-limit retries reached."


class NodeError(Exception):
    """Base for errors raised on behalf of a node."""

    def __init__(self, node, message: str):
        super().__init__(message)
        self.node = node
        self.message = message


class NodeOperationError(NodeError):
    """The operation itself could not be carried out (bad data, no data)."""


class NodeApiError(NodeError):
    """The Arivo API call failed.

    ``payload`` holds the decoded error body when the API returned one,
    otherwise a ``{"message": ...}`` dict built from the underlying error.
    """

    def __init__(self, node, error: BaseException | None = None, message: str | None = None):
        self.cause = error
        self.http_code, self.payload = _describe(error)
        if message is None:
            message = _message_from(self.payload, error)
        super().__init__(node, message)


class ApiRequestFailed(NodeApiError):
    """Any non-429 failure: client error, server error, transport error."""


class RateLimitExceeded(NodeApiError):
    """The API kept answering 429 until the retry budget ran out."""

    def __init__(self, node, error: BaseException | None = None):
        super().__init__(node, error, message=RATE_LIMIT_MESSAGE)


def status_code_of(error: BaseException) -> int | None:
    """HTTP status carried by an error raised by the request facility.

    Looks at the error itself first, then at its ``response``.
    """
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    code = getattr(error, "status_code", None)
    if code is None:
        code = _field(getattr(error, "response", None), "status_code")
    return code


def headers_of(error: BaseException) -> httpx.Headers:
    """Response headers carried by an error, case-insensitive."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.headers
    raw = getattr(error, "headers", None)
    if not raw:
        raw = _field(getattr(error, "response", None), "headers")
    return to_headers(raw)


def _field(response, name):
    if response is None:
        return None
    if isinstance(response, dict):
        return response.get(name)
    return getattr(response, name, None)


def _describe(error):
    if error is None:
        return None, {}
    code = status_code_of(error)
    if isinstance(error, httpx.HTTPStatusError):
        resp = error.response
        try:
            body = resp.json() if resp.content else {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = {"message": resp.text}
        if not isinstance(body, dict):
            body = {"body": body}
        return code, body
    return code, {"message": str(error)}


def _message_from(payload: dict, error) -> str:
    for key in ("message", "error", "errors"):
        val = payload.get(key)
        if val:
            return val if isinstance(val, str) else json.dumps(val)
    if error is not None and str(error):
        return str(error)
    return "Arivo API request failed"

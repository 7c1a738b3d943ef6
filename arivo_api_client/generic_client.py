"""Arivo REST API request dispatch and link-header pagination."""

import asyncio
import dataclasses
import time

import httpx

from .context import ExecutionContext, resolve_base_url, resolve_parameter
from .errors import ApiRequestFailed, RateLimitExceeded, headers_of, status_code_of
from .models import (
    CREDENTIAL_TYPE,
    DEFAULT_LIMIT,
    DEFAULT_RETRY_WAIT,
    LOW_QUOTA_THRESHOLD,
    MAX_RETRIES,
    MAX_THROTTLE_WAIT,
    NEXT_PAGE_HEADER,
    PAGE_DELAY,
    RESET_MARGIN,
    ApiResponse,
    PaginationPolicy,
    RateLimitInfo,
    RequestOptions,
    to_headers,
)

RETURN_ALL_PARAMETERS = ("returnAll", "options.returnAll")
LIMIT_PARAMETERS = ("limit", "options.limit")


def _build_options(method, url, body=None, query=None, overrides=None) -> RequestOptions:
    overrides = dict(overrides or {})
    extra_headers = overrides.pop("headers", None) or {}
    options = RequestOptions(
        method=method.upper(),
        url=url,
        body=dict(body or {}),
        query=dict(query or {}),
    )
    return dataclasses.replace(options, headers={**options.headers, **extra_headers}, **overrides)


def _join_url(base_url: str, path: str) -> str:
    if path.startswith(("http://", "https://")):
        return path
    return f"{base_url}{path}"


def _until_reset(reset: float) -> float:
    """Seconds to wait for an epoch reset timestamp, clamped to [0, MAX_THROTTLE_WAIT]."""
    return min(max(reset - time.time() + RESET_MARGIN, 0.0), MAX_THROTTLE_WAIT)


def retry_wait(headers) -> float:
    """Seconds to sleep before retrying a 429.

    ``retry-after`` wins; otherwise wait for ``x-ratelimit-reset`` (epoch
    seconds); otherwise DEFAULT_RETRY_WAIT.
    """
    info = RateLimitInfo.from_headers(headers)
    if info.retry_after is not None:
        return max(info.retry_after, 0.0)
    if info.reset is not None:
        return _until_reset(info.reset)
    return DEFAULT_RETRY_WAIT


def throttle_wait(headers, first_page: bool) -> float:
    """Seconds to pause before requesting the next page."""
    info = RateLimitInfo.from_headers(headers)
    if info.remaining is not None and info.remaining <= LOW_QUOTA_THRESHOLD:
        if info.reset is not None:
            return _until_reset(info.reset)
        return DEFAULT_RETRY_WAIT
    return 0.0 if first_page else PAGE_DELAY


def normalize_items(body) -> list:
    """Turn any page payload into a list of records."""
    if body is None:
        return []
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in ("data", "items"):
            if isinstance(body.get(key), list):
                return body[key]
    return [body]


def strip_base_url(next_page: str, base_url: str) -> str:
    """Relative path for a next-page reference; foreign URLs are kept whole."""
    if next_page.startswith(base_url):
        return next_page[len(base_url):]
    return next_page


def _unwrap(response) -> tuple:
    if isinstance(response, ApiResponse):
        return response.body, response.headers
    if isinstance(response, dict) and "body" in response and "headers" in response:
        return response["body"], to_headers(response["headers"])
    return response, httpx.Headers()


async def arivo_api_request(
    context: ExecutionContext,
    method: str,
    path: str,
    body: dict | None = None,
    query: dict | None = None,
    overrides: dict | None = None,
    base_url: str | None = None,
):
    """Make an authenticated Arivo API request.

    Args:
        context: Host execution context (credentials, request facility, logger)
        method: HTTP method
        path: API path relative to the base URL, e.g. "/contacts/123"
        body: JSON body
        query: Query parameters
        overrides: RequestOptions fields to override, e.g.
            {"return_full_response": True}; "headers" are merged
        base_url: Base endpoint resolved for this operation

    Returns:
        The parsed response body, or an ApiResponse when the full response
        was requested.

    Raises:
        RateLimitExceeded: the API answered 429 on every attempt.
        ApiRequestFailed: any other failure.
    """
    base_url = base_url or resolve_base_url(context.get_credentials(CREDENTIAL_TYPE))
    options = _build_options(method, _join_url(base_url, path), body, query, overrides)
    log = context.logger
    log.debug(
        "arivo_api_request",
        method=options.method,
        url=options.url,
        query=options.query,
        body=options.body,
    )

    last_error = None
    for attempt in range(MAX_RETRIES):
        try:
            response = await context.request_with_authentication(CREDENTIAL_TYPE, options)
        except Exception as e:
            status = status_code_of(e)
            if status != 429:
                log.error("arivo_api_error", method=options.method, url=options.url, status_code=status, error=str(e))
                raise ApiRequestFailed(context.node, e) from e
            last_error = e
            if attempt < MAX_RETRIES - 1:
                wait = retry_wait(headers_of(e))
                log.warning("arivo_rate_limited", url=options.url, attempt=attempt + 1, wait=wait)
                await asyncio.sleep(wait)
            continue
        log.debug("arivo_api_response", url=options.url, attempt=attempt + 1)
        return response

    log.error("arivo_rate_limit_exhausted", url=options.url, attempts=MAX_RETRIES)
    raise RateLimitExceeded(context.node, last_error) from last_error


async def arivo_api_request_all_items(
    context: ExecutionContext,
    method: str,
    path: str,
    body: dict | None = None,
    query: dict | None = None,
    base_url: str | None = None,
) -> list:
    """Fetch every record behind a paginated Arivo endpoint.

    Pages are linked through the ``X-Next-Page`` header; the query is sent
    with the first request only, since the next-page reference already
    carries it. Honors the node's ``returnAll`` / ``limit`` parameters and
    slows down when ``x-ratelimit-remaining`` runs low.
    """
    return_all = bool(resolve_parameter(context, RETURN_ALL_PARAMETERS, default=False))
    limit = None
    if not return_all:
        limit = max(int(resolve_parameter(context, LIMIT_PARAMETERS, default=DEFAULT_LIMIT)), 0)
    policy = PaginationPolicy(return_all=return_all, limit=limit)

    base_url = base_url or resolve_base_url(context.get_credentials(CREDENTIAL_TYPE))
    log = context.logger
    log.debug("arivo_pagination_start", path=path, return_all=policy.return_all, limit=policy.limit)

    items: list = []
    current = path
    page_query = query
    page = 0
    while True:
        page += 1
        response = await arivo_api_request(
            context,
            method,
            current,
            body,
            page_query,
            {"return_full_response": True},
            base_url=base_url,
        )
        page_body, headers = _unwrap(response)
        new_items = normalize_items(page_body)
        items.extend(new_items)
        log.debug("arivo_page_fetched", page=page, path=current, count=len(new_items), total=len(items))

        if policy.reached(len(items)):
            log.debug("arivo_pagination_limit_reached", limit=policy.limit, pages=page)
            return items[: policy.limit]

        next_page = headers.get(NEXT_PAGE_HEADER)
        if not next_page:
            break
        current = strip_base_url(next_page, base_url)
        page_query = None

        wait = throttle_wait(headers, first_page=page == 1)
        if wait > 0:
            if wait > PAGE_DELAY:
                log.info("arivo_throttle", wait=wait, page=page)
            await asyncio.sleep(wait)

    log.debug("arivo_pagination_complete", pages=page, total=len(items))
    return items

"""Shared fixtures: a fake host context and patched waits."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from arivo_api_client.context import ArivoCredentials, NodeInfo

TEST_BASE_URL = "https://test.arivo.com.br/api/v2"


class FakeContext:
    """Host context whose authenticated-request facility is an AsyncMock."""

    def __init__(self, responses=None, parameters=None, credentials=None):
        self.node = NodeInfo(name="Arivo Test", type="arivo")
        self.logger = MagicMock()
        self.parameters = dict(parameters or {})
        self.credentials = credentials or ArivoCredentials(api_key="test-key", api_url=TEST_BASE_URL)
        self.request_with_authentication = AsyncMock(side_effect=responses)

    def get_node_parameter_or_none(self, name, item_index=0):
        return self.parameters.get(name)

    def get_credentials(self, credential_type):
        return self.credentials

    def sent_options(self, call_index=0):
        """RequestOptions passed on the given call."""
        return self.request_with_authentication.call_args_list[call_index].args[1]


def _status_error(status, headers=None, json_body=None):
    """httpx.HTTPStatusError as raised by the request facility."""
    request = httpx.Request("GET", f"{TEST_BASE_URL}/contacts")
    response = httpx.Response(status, headers=headers, json=json_body, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class HostError(Exception):
    """Error shaped like a host request facility's: status and headers hang off ``response``."""

    def __init__(self, status_code=None, response=None):
        super().__init__(f"Request failed with status code {status_code}")
        if status_code is not None:
            self.status_code = status_code
        self.response = response


def _host_error(status, headers=None, status_on_response=False):
    response = SimpleNamespace(status_code=status, headers=headers or {})
    if status_on_response:
        return HostError(response=response)
    return HostError(status_code=status, response=response)


@pytest.fixture
def make_context():
    return FakeContext


@pytest.fixture
def status_error():
    return _status_error


@pytest.fixture
def host_error():
    return _host_error


@pytest.fixture
def base_url():
    return TEST_BASE_URL


@pytest.fixture(autouse=True)
def sleep():
    """Patch out asyncio.sleep in generic_client to avoid real waits."""
    with patch("arivo_api_client.generic_client.asyncio.sleep", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def now():
    """Freeze time.time() in generic_client at 1000.0."""
    with patch("arivo_api_client.generic_client.time.time", return_value=1000.0) as mock:
        yield mock

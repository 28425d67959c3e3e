"""
Pytest configuration and fixtures for helpscout-api-client tests.
"""

import pytest
import responses as responses_lib

from helpscout_api_client import HelpScoutClient

API_BASE = "https://api.helpscout.net/v2"
TOKEN_URL = "https://api.helpscout.net/v2/oauth2/token"


@pytest.fixture
def base_url():
    """Base URL of the Mailbox API."""
    return API_BASE


@pytest.fixture
def token_url():
    """OAuth token endpoint."""
    return TOKEN_URL


@pytest.fixture
def mock_responses():
    """Mock HTTP responses using responses library."""
    with responses_lib.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def add_token(rsps, token="test-token", expires_in=7200):
    """Register a successful token endpoint response."""
    rsps.add(
        responses_lib.POST,
        TOKEN_URL,
        json={"token_type": "bearer", "access_token": token, "expires_in": expires_in},
        status=200,
    )


def api_calls(rsps):
    """Calls made to the API, leaving out token requests."""
    return [call for call in rsps.calls if not call.request.url.startswith(TOKEN_URL)]


@pytest.fixture
def make_client(mock_responses):
    """Factory building clients against the mocked token endpoint."""
    clients = []

    def _make(**kwargs):
        add_token(mock_responses)
        kwargs.setdefault("client_id", "test-id")
        kwargs.setdefault("client_secret", "test-secret")
        client = HelpScoutClient(**kwargs)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
def client(make_client):
    """Client speaking the default ``items`` API variant."""
    return make_client()


@pytest.fixture
def embedded_client(make_client):
    """Client speaking the HAL style ``embedded`` API variant."""
    return make_client(variant="embedded")

"""
Pytest configuration and fixtures for the Graph mail sender tests.
"""
from __future__ import annotations

from collections.abc import Generator
from urllib.parse import parse_qs

import httpx
import pytest

from graphmail.auth.credentials import ApplicationCredentialProvider
from graphmail.config import GraphMailConfig, get_graph_mail_config
from graphmail.factory import get_graph_sender
from graphmail.mail.models import Address, EmailMessage, Priority

AUTHORITY = "https://login.test"
GRAPH = "https://graph.test/v1.0"
TENANT = "tenant-456"
APP_ID = "app-123"
SECRET = "s3cret-value"

TOKEN_URL = f"{AUTHORITY}/{TENANT}/oauth2/v2.0/token"
DEVICE_CODE_URL = f"{AUTHORITY}/{TENANT}/oauth2/v2.0/devicecode"
SEND_URL = f"{GRAPH}/users/a@x.com/sendMail"


def form_data(request: httpx.Request) -> dict[str, str]:
    """Decode a form-encoded request body into a flat dict."""
    return {k: v[0] for k, v in parse_qs(request.content.decode("utf-8")).items()}


def token_response(
    access_token: str = "app-token",
    expires_in: int = 3600,
    refresh_token: str | None = None,
) -> httpx.Response:
    payload: dict[str, object] = {
        "access_token": access_token,
        "token_type": "Bearer",
        "expires_in": expires_in,
    }
    if refresh_token:
        payload["refresh_token"] = refresh_token
    return httpx.Response(200, json=payload)


@pytest.fixture(autouse=True)
def clear_cached_factories() -> Generator[None, None, None]:
    """Cached config/sender must not leak between tests."""
    get_graph_mail_config.cache_clear()
    get_graph_sender.cache_clear()
    yield
    get_graph_mail_config.cache_clear()
    get_graph_sender.cache_clear()


@pytest.fixture
def graph_config() -> GraphMailConfig:
    return GraphMailConfig(
        app_id=APP_ID,
        tenant_id=TENANT,
        client_secret="",
        authority_host=AUTHORITY,
        graph_base_url=GRAPH,
        request_timeout_seconds=5,
        token_refresh_leeway_seconds=300,
    )


@pytest.fixture
def app_credential(graph_config: GraphMailConfig) -> ApplicationCredentialProvider:
    return ApplicationCredentialProvider(APP_ID, TENANT, SECRET, config=graph_config)


@pytest.fixture
def simple_email() -> EmailMessage:
    return EmailMessage(
        from_address=Address("a@x.com", "Alice"),
        subject="Hi",
        body="Hello",
        is_html=False,
        to=[Address("b@x.com")],
        priority=Priority.NORMAL,
    )

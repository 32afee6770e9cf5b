"""Shared pytest fixtures for Xero client tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest
import requests

from xeroapi.oauth.config import XeroConfig
from xeroapi.oauth.credentials import CredentialState


@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    """Factory for real requests.Response objects with a given body."""

    def _make_response(
        status_code: int = 200,
        body: str = "",
        content_type: Optional[str] = "application/json; charset=utf-8",
        url: str = "https://api.xero.com/api.xro/2.0/Invoices",
    ) -> requests.Response:
        response = requests.Response()
        response.status_code = status_code
        response._content = body.encode("utf-8")
        response.encoding = "utf-8"
        response.url = url
        if content_type is not None:
            response.headers["Content-Type"] = content_type
        return response

    return _make_response


@pytest.fixture
def config() -> XeroConfig:
    """HMAC-signed test config (no RSA key needed)."""
    return XeroConfig(
        consumer_key="test_consumer_key",
        consumer_secret="test_consumer_secret",
        signature_method="HMAC-SHA1",
    )


@pytest.fixture
def partner_credentials() -> CredentialState:
    """Renewable credentials that expire in 20 minutes."""
    return CredentialState(
        consumer_key="test_consumer_key",
        consumer_secret="test_consumer_secret",
        access_token="OLDTOKEN",
        access_token_secret="OLDSECRET",
        session_handle="SESSION1",
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=20),
    )


@pytest.fixture
def private_credentials() -> CredentialState:
    """Non-renewable credentials (no session handle)."""
    return CredentialState(
        consumer_key="test_consumer_key",
        consumer_secret="test_consumer_secret",
        access_token="test_consumer_key",
        access_token_secret="test_consumer_secret",
    )

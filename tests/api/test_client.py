"""Tests for the refreshing API client."""

from dataclasses import replace
from datetime import datetime, timezone
from unittest import mock

import pytest
import requests

from xeroapi.api.client import RefreshableClient
from xeroapi.models.envelope import ResponseEnvelope
from xeroapi.oauth.exceptions import TokenRefreshError, TokenRejectedError

EXPIRED_BODY = (
    "oauth_problem=token_expired"
    "&oauth_problem_advice=The%20access%20token%20has%20expired"
)
REJECTED_BODY = "oauth_problem=token_rejected&oauth_problem_advice=Token+X+does+not+match"
FRESH_TOKEN_BODY = (
    "oauth_token=NEWTOK&oauth_token_secret=NEWSEC"
    "&oauth_expires_in=1800&oauth_session_handle=H1"
)
INVOICES_BODY = '{"Status": "OK", "ProviderName": "Test", "Invoices": [{"InvoiceNumber": "INV-1"}]}'


@pytest.fixture
def expired_response(make_response):
    return make_response(401, EXPIRED_BODY, "text/html; charset=utf-8")


@pytest.fixture
def fresh_token_response(make_response):
    return make_response(
        200, FRESH_TOKEN_BODY, "text/html; charset=utf-8",
        url="https://api.xero.com/oauth/AccessToken",
    )


@pytest.fixture
def ok_response(make_response):
    return make_response(200, INVOICES_BODY)


class TestRefreshableClientInit:
    """Tests for client construction and URL building."""

    def test_init(self, config, partner_credentials):
        """Client starts with the given credentials and no refresh."""
        client = RefreshableClient(config, partner_credentials)

        assert client.credentials is partner_credentials
        assert client.token_refreshed is False
        assert client.refreshed_params is None
        assert client.session.auth.client.resource_owner_key == "OLDTOKEN"

    def test_get_full_url(self, config, partner_credentials):
        """Relative URIs are resolved against the configured API."""
        client = RefreshableClient(config, partner_credentials)

        assert client._get_full_url("Invoices") == "https://api.xero.com/api.xro/2.0/Invoices"
        assert client._get_full_url("/Invoices") == "https://api.xero.com/api.xro/2.0/Invoices"
        assert client._get_full_url(["Invoices", "INV-1"]) == (
            "https://api.xero.com/api.xro/2.0/Invoices/INV-1"
        )
        assert client._get_full_url("https://api.xero.com/payroll.xro/1.0/Employees") == (
            "https://api.xero.com/payroll.xro/1.0/Employees"
        )

    def test_is_token_expired_uses_refresh_guard(self, config, partner_credentials):
        """The configured guard period brings the expiry forward."""
        client = RefreshableClient(config, partner_credentials)
        assert client.is_token_expired() is False

        guarded = RefreshableClient(
            replace(config, refresh_guard_seconds=30 * 60), partner_credentials
        )
        assert guarded.is_token_expired() is True

    def test_is_token_expired_without_expiry(self, config, private_credentials):
        """Credentials with no known expiry count as expired."""
        assert RefreshableClient(config, private_credentials).is_token_expired() is True

    def test_context_manager(self, config, partner_credentials):
        """Client can be used as context manager."""
        with mock.patch("requests.Session.close") as mock_close:
            with RefreshableClient(config, partner_credentials) as client:
                assert client is not None

            mock_close.assert_called_once()


class TestRefreshableClientExecute:
    """Tests for execute() without a refresh."""

    @mock.patch("requests.Session.request")
    def test_success_passes_through(self, mock_request, config, partner_credentials, ok_response):
        """A successful response is returned as-is after a single call."""
        mock_request.return_value = ok_response
        client = RefreshableClient(config, partner_credentials)

        response = client.get("Invoices", params={"page": 1})

        assert response is ok_response
        assert mock_request.call_count == 1
        args, kwargs = mock_request.call_args
        assert args == ("GET", "https://api.xero.com/api.xro/2.0/Invoices")
        assert kwargs["params"] == {"page": 1}
        assert kwargs["timeout"] == config.timeout
        assert client.token_refreshed is False

    @mock.patch("requests.Session.request")
    def test_method_is_upper_cased(self, mock_request, config, partner_credentials, ok_response):
        """HTTP methods are sent upper case."""
        mock_request.return_value = ok_response
        client = RefreshableClient(config, partner_credentials)

        client.execute("post", "Invoices", json={"Type": "ACCREC"})

        args, kwargs = mock_request.call_args
        assert args[0] == "POST"
        assert kwargs["json"] == {"Type": "ACCREC"}

    @mock.patch("requests.Session.request")
    def test_explicit_timeout_is_kept(self, mock_request, config, partner_credentials, ok_response):
        """A caller-supplied timeout overrides the default."""
        mock_request.return_value = ok_response
        client = RefreshableClient(config, partner_credentials)

        client.get("Invoices", timeout=5)

        assert mock_request.call_args[1]["timeout"] == 5

    @mock.patch("requests.Session.request")
    def test_non_expiry_401_is_returned(self, mock_request, config, partner_credentials, make_response):
        """A 401 for any other reason is returned without a refresh."""
        rejected = make_response(401, REJECTED_BODY, "text/html")
        mock_request.return_value = rejected
        client = RefreshableClient(config, partner_credentials)

        response = client.get("Invoices")

        assert response is rejected
        assert mock_request.call_count == 1
        assert client.token_refreshed is False

    @mock.patch("requests.Session.request")
    def test_non_expiry_http_error_is_reraised(self, mock_request, config, partner_credentials, make_response):
        """With raise_for_status, unrelated HTTP errors propagate unchanged."""
        mock_request.return_value = make_response(404, '{"Message": "Not found"}')
        client = RefreshableClient(config, partner_credentials)

        with pytest.raises(requests.HTTPError) as exc_info:
            client.get("Invoices/missing", raise_for_status=True)

        assert exc_info.value.response.status_code == 404
        assert mock_request.call_count == 1
        assert "raise_for_status" not in mock_request.call_args[1]

    @mock.patch("requests.Session.request")
    def test_transport_error_propagates(self, mock_request, config, partner_credentials):
        """Transport errors are not caught."""
        mock_request.side_effect = requests.ConnectionError("Network error")
        client = RefreshableClient(config, partner_credentials)

        with pytest.raises(requests.ConnectionError):
            client.get("Invoices")

    @mock.patch("requests.Session.request")
    def test_private_credentials_never_refresh(
        self, mock_request, config, private_credentials, expired_response
    ):
        """Credentials without a session handle are sent once, expired or not."""
        mock_request.return_value = expired_response
        client = RefreshableClient(config, private_credentials)

        response = client.get("Invoices")

        assert response is expired_response
        assert mock_request.call_count == 1


class TestModifiedSince:
    """Tests for the If-Modified-Since rewrite."""

    @mock.patch("requests.Session.request")
    def test_datetime_becomes_header(self, mock_request, config, partner_credentials, ok_response):
        """modified_since moves from the query string to an HTTP-date header."""
        mock_request.return_value = ok_response
        client = RefreshableClient(config, partner_credentials)
        params = {"modified_since": datetime(2017, 11, 28, 12, 0, tzinfo=timezone.utc), "page": 2}

        client.get("Invoices", params=params)

        kwargs = mock_request.call_args[1]
        assert kwargs["params"] == {"page": 2}
        assert kwargs["headers"]["If-Modified-Since"] == "Tue, 28 Nov 2017 12:00:00 GMT"
        # The caller's dict is left alone
        assert "modified_since" in params

    @mock.patch("requests.Session.request")
    def test_parameter_name_variants(self, mock_request, config, partner_credentials, ok_response):
        """ModifiedSince and If-Modified-Since spellings are recognised."""
        mock_request.return_value = ok_response
        client = RefreshableClient(config, partner_credentials)

        client.get("Contacts", params={"If-Modified-Since": "2017-11-28T12:00:00"})
        assert mock_request.call_args[1]["headers"]["If-Modified-Since"] == (
            "Tue, 28 Nov 2017 12:00:00 GMT"
        )

        client.get("Contacts", params={"ModifiedSince": "yesterday"}, headers={"X-Test": "1"})
        headers = mock_request.call_args[1]["headers"]
        assert headers["If-Modified-Since"] == "yesterday"
        assert headers["X-Test"] == "1"


class TestTokenRefresh:
    """Tests for the expired-token refresh and retry path."""

    @mock.patch("requests.Session.request")
    def test_refresh_and_retry(
        self, mock_request, config, partner_credentials, expired_response,
        fresh_token_response, ok_response,
    ):
        """An expired token is refreshed and the request retried once."""
        mock_request.side_effect = [expired_response, fresh_token_response, ok_response]
        on_refresh = mock.Mock()
        client = RefreshableClient(config, partner_credentials, on_refresh=on_refresh)

        response = client.get("Invoices", params={"page": 1})

        assert response is ok_response
        assert mock_request.call_count == 3

        refresh_args, refresh_kwargs = mock_request.call_args_list[1]
        assert refresh_args == ("GET", "https://api.xero.com/oauth/AccessToken")
        assert refresh_kwargs["params"] == {"oauth_session_handle": "SESSION1"}
        assert refresh_kwargs["timeout"] == config.refresh_timeout

        first_call = mock_request.call_args_list[0]
        retry_call = mock_request.call_args_list[2]
        assert retry_call == first_call

    @mock.patch("requests.Session.request")
    def test_credentials_are_rotated(
        self, mock_request, config, partner_credentials, expired_response,
        fresh_token_response, ok_response,
    ):
        """After a refresh the client holds and reports the new credentials."""
        mock_request.side_effect = [expired_response, fresh_token_response, ok_response]
        on_refresh = mock.Mock()
        client = RefreshableClient(config, partner_credentials, on_refresh=on_refresh)
        old_session = client.session

        client.get("Invoices")

        new_credentials = client.credentials
        assert new_credentials.access_token == "NEWTOK"
        assert new_credentials.access_token_secret == "NEWSEC"
        assert new_credentials.session_handle == "H1"
        assert new_credentials.consumer_key == partner_credentials.consumer_key
        assert 1790 < new_credentials.remaining_seconds() <= 1800

        assert client.token_refreshed is True
        assert client.refreshed_params.token == "NEWTOK"
        assert client.session is not old_session
        assert client.session.auth.client.resource_owner_key == "NEWTOK"
        assert old_session.auth.client.resource_owner_key == "OLDTOKEN"

        on_refresh.assert_called_once_with(new_credentials, partner_credentials)
        assert partner_credentials.access_token == "OLDTOKEN"

    @mock.patch("requests.Session.request")
    def test_replaced_session_is_closed(
        self, mock_request, config, partner_credentials, expired_response,
        fresh_token_response, ok_response,
    ):
        """The session signed with the old token is closed on rotation."""
        mock_request.side_effect = [expired_response, fresh_token_response, ok_response]
        client = RefreshableClient(config, partner_credentials)
        old_session = client.session

        with mock.patch.object(old_session, "close") as mock_close:
            client.get("Invoices")

        mock_close.assert_called_once_with()
        assert client.session is not old_session

    @mock.patch("requests.Session.request")
    def test_retry_is_final(
        self, mock_request, config, partner_credentials, expired_response,
        fresh_token_response, make_response,
    ):
        """A second expiry after the refresh is returned, not refreshed again."""
        second_expired = make_response(401, EXPIRED_BODY, "text/html; charset=utf-8")
        mock_request.side_effect = [expired_response, fresh_token_response, second_expired]
        client = RefreshableClient(config, partner_credentials)

        response = client.get("Invoices")

        assert response is second_expired
        assert mock_request.call_count == 3

    @mock.patch("requests.Session.request")
    def test_expiry_detected_with_raise_for_status(
        self, mock_request, config, partner_credentials, expired_response,
        fresh_token_response, ok_response,
    ):
        """Expiry is detected from the HTTPError when raise_for_status is set."""
        mock_request.side_effect = [expired_response, fresh_token_response, ok_response]
        client = RefreshableClient(config, partner_credentials)

        response = client.get("Invoices", raise_for_status=True)

        assert response is ok_response
        assert mock_request.call_count == 3

    @mock.patch("requests.Session.request")
    def test_rejected_refresh_raises(
        self, mock_request, config, partner_credentials, expired_response, make_response
    ):
        """A rejected refresh raises TokenRejectedError and keeps the old credentials."""
        mock_request.side_effect = [
            expired_response,
            make_response(401, REJECTED_BODY, "text/html; charset=utf-8"),
        ]
        on_refresh = mock.Mock()
        client = RefreshableClient(config, partner_credentials, on_refresh=on_refresh)

        with pytest.raises(TokenRejectedError) as exc_info:
            client.get("Invoices")

        assert exc_info.value.problem == "token_rejected"
        assert exc_info.value.advice == "Token X does not match"
        assert 'Token refresh error "token_rejected"' in str(exc_info.value)
        assert mock_request.call_count == 2
        assert client.credentials is partner_credentials
        assert client.token_refreshed is False
        on_refresh.assert_not_called()

    @mock.patch("requests.Session.request")
    def test_refresh_without_token_raises(
        self, mock_request, config, partner_credentials, expired_response, make_response
    ):
        """A refresh response without a token raises TokenRefreshError."""
        mock_request.side_effect = [
            expired_response,
            make_response(503, "Service Unavailable", "text/plain"),
        ]
        client = RefreshableClient(config, partner_credentials)

        with pytest.raises(TokenRefreshError) as exc_info:
            client.get("Invoices")

        assert not isinstance(exc_info.value, TokenRejectedError)

    @mock.patch("requests.Session.request")
    def test_force_token_refresh(
        self, mock_request, config, partner_credentials, ok_response,
        fresh_token_response, make_response,
    ):
        """force_token_refresh refreshes once, even after a successful response."""
        second_ok = make_response(200, INVOICES_BODY)
        third_ok = make_response(200, INVOICES_BODY)
        mock_request.side_effect = [ok_response, fresh_token_response, second_ok, third_ok]
        client = RefreshableClient(config, partner_credentials, force_token_refresh=True)

        assert client.get("Invoices") is second_ok
        assert client.force_token_refresh is False
        assert client.credentials.access_token == "NEWTOK"

        assert client.get("Invoices") is third_ok
        assert mock_request.call_count == 4

    @mock.patch("requests.Session.request")
    def test_refresh_token_directly(
        self, mock_request, config, partner_credentials, fresh_token_response
    ):
        """refresh_token() can be called on its own and returns the new credentials."""
        mock_request.return_value = fresh_token_response
        client = RefreshableClient(config, partner_credentials)

        new_credentials = client.refresh_token()

        assert new_credentials is client.credentials
        assert new_credentials.access_token == "NEWTOK"

    def test_refresh_without_session_handle(self, config, private_credentials):
        """Refreshing is refused for non-renewable credentials."""
        client = RefreshableClient(config, private_credentials)

        with pytest.raises(TokenRefreshError, match="No session handle"):
            client.refresh_token()


class TestFetch:
    """Tests for fetch()."""

    @mock.patch("requests.Session.request")
    def test_fetch_returns_envelope(self, mock_request, config, partner_credentials, ok_response):
        """fetch() classifies the final response."""
        mock_request.return_value = ok_response
        client = RefreshableClient(config, partner_credentials)

        envelope = client.fetch("Invoices")

        assert isinstance(envelope, ResponseEnvelope)
        assert envelope.is_collection() is True
        assert envelope.first().InvoiceNumber == "INV-1"
        assert envelope.metadata.ProviderName == "Test"

    @mock.patch("requests.Session.request")
    def test_fetch_after_refresh(
        self, mock_request, config, partner_credentials, expired_response,
        fresh_token_response, ok_response,
    ):
        """fetch() classifies the retried response after a refresh."""
        mock_request.side_effect = [expired_response, fresh_token_response, ok_response]
        client = RefreshableClient(config, partner_credentials)

        envelope = client.fetch("Invoices")

        assert envelope.count() == 1
        assert client.token_refreshed is True

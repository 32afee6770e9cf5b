"""
Xero API client with transparent OAuth token refresh.

Partner application access tokens expire after 30 minutes. The API
reports this as a 401 whose body carries
"oauth_problem=token_expired" (URL-encoded, served as text/html). This
client detects that signal, refreshes the token once using the session
handle, rotates its credentials, and retries the original request once
with the same method, URI and options.

The client is not thread-safe: concurrent callers that hit an expired
token will each refresh independently. Serialize access externally if a
single client is shared.
"""

import logging
from datetime import datetime
from email.utils import format_datetime
from typing import Any, Callable, Dict, Optional, Sequence, Union

import requests

from ..models.envelope import ResponseEnvelope
from ..oauth.config import XeroConfig
from ..oauth.credentials import CredentialState
from ..oauth.exceptions import TokenRefreshError, TokenRejectedError
from ..oauth.params import OAuthParams
from ..oauth.signer import SIGNATURE_TYPE_QUERY, SignedRequestFactory
from ..utils.date_utils import to_datetime

logger = logging.getLogger(__name__)

# Query parameter names (compared case-insensitively, ignoring "_" and "-")
# that are rewritten into an If-Modified-Since header.
MODIFIED_SINCE_PARAMS = ("modifiedsince", "ifmodifiedsince")

RefreshCallback = Callable[[CredentialState, CredentialState], None]


class RefreshableClient:
    """
    Signed HTTP client for Xero APIs with automatic token refresh.

    Example:
        config = XeroConfig.from_env()
        credentials = CredentialState.from_dict(load_saved_tokens())

        client = RefreshableClient(
            config, credentials, on_refresh=lambda new, old: save_tokens(new.to_dict())
        )

        envelope = client.fetch("Invoices", params={"modified_since": last_sync})
        for invoice in envelope:
            print(invoice.InvoiceNumber, invoice.Total)

    Attributes:
        config: Client configuration
        on_refresh: Called with (new_credentials, old_credentials) after a refresh
        force_token_refresh: Refresh on the next request regardless of the
                             response (for testing the refresh path)
        token_refreshed: True once any refresh has succeeded
        refreshed_params: Token endpoint response from the last refresh
        session: Signed session for the current credentials
    """

    def __init__(
        self,
        config: XeroConfig,
        credentials: CredentialState,
        on_refresh: Optional[RefreshCallback] = None,
        force_token_refresh: bool = False,
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration
            credentials: Current credentials
            on_refresh: Credential persistence hook
            force_token_refresh: Force one refresh on the next request
        """
        self.config = config
        self.on_refresh = on_refresh
        self.force_token_refresh = force_token_refresh
        self.token_refreshed = False
        self.refreshed_params: Optional[OAuthParams] = None

        self._credentials = credentials
        self._factory = SignedRequestFactory(config, credentials)
        self.session = self._factory.create_session()

        logger.info("RefreshableClient initialized")

    @property
    def credentials(self) -> CredentialState:
        """Current credentials; read back after each call to persist refreshes."""
        return self._credentials

    def is_token_expired(self) -> bool:
        """
        Check whether the current token is expired or about to expire.

        Uses config.refresh_guard_seconds as the safety margin. An unknown
        expiry time counts as expired. Callers can use this to refresh
        ahead of a request; execute() itself only reacts to the expiry
        signal in a response.
        """
        return self._credentials.is_expired(self.config.refresh_guard_seconds)

    def _get_full_url(self, uri: Union[str, Sequence[str]]) -> str:
        """
        Construct full API URL from a resource path.

        Args:
            uri: Absolute URL, or resource path relative to the configured API

        Returns:
            Full URL
        """
        if isinstance(uri, str):
            if uri.startswith(("http://", "https://")):
                return uri
            uri = uri.lstrip("/")

        return self.config.endpoint.with_resource(uri).url

    def _apply_modified_since(self, options: Dict[str, Any]) -> Dict[str, Any]:
        """
        Move a "modified since" query parameter into an If-Modified-Since header.

        Returns:
            Copy of options; the caller's dicts are never changed
        """
        params = options.get("params")
        if not isinstance(params, dict):
            return options

        key = next(
            (
                name
                for name in params
                if name.replace("_", "").replace("-", "").lower() in MODIFIED_SINCE_PARAMS
            ),
            None,
        )
        if key is None:
            return options

        params = dict(params)
        value = params.pop(key)

        headers = dict(options.get("headers") or {})
        headers["If-Modified-Since"] = _http_date(value)

        options = dict(options)
        options["params"] = params
        options["headers"] = headers
        return options

    def _send(
        self,
        session: requests.Session,
        method: str,
        url: str,
        options: Dict[str, Any],
    ) -> requests.Response:
        options = dict(options)
        raise_for_status = options.pop("raise_for_status", False)

        logger.debug(f"{method} {url}")
        if options.get("params"):
            logger.debug(f"  Params: {options['params']}")

        response = session.request(method, url, **options)
        logger.debug(f"Response: {response.status_code}")

        if raise_for_status:
            response.raise_for_status()
        return response

    def _needs_refresh(self, response: requests.Response) -> bool:
        if self.force_token_refresh:
            logger.info("Forcing token refresh")
            return True

        if response.status_code != 401:
            return False

        return OAuthParams.from_response(response).is_expired()

    def execute(
        self,
        method: str,
        uri: Union[str, Sequence[str]],
        **options: Any,
    ) -> requests.Response:
        """
        Make a signed request, refreshing the token once if it has expired.

        Args:
            method: HTTP method (GET, POST, etc.)
            uri: Resource path (e.g., "Invoices") or absolute URL
            **options: requests options (params, json, data, headers, timeout, ...).
                       raise_for_status=True raises requests.HTTPError for
                       error responses instead of returning them.

        Returns:
            The response, or the retried response after a refresh

        Raises:
            TokenRefreshError: If the token expired and could not be refreshed
            requests.RequestException: Transport errors, and HTTP errors
                                       (with raise_for_status) unrelated to
                                       token expiry
        """
        method = method.upper()
        url = self._get_full_url(uri)
        options = self._apply_modified_since(options)
        options.setdefault("timeout", self.config.timeout)

        # Only renewable (partner) credentials can be refreshed.
        if not self._credentials.can_refresh:
            return self._send(self.session, method, url, options)

        error: Optional[requests.HTTPError] = None
        try:
            response = self._send(self.session, method, url, options)
        except requests.HTTPError as e:
            if e.response is None:
                raise
            response = e.response
            error = e

        if not self._needs_refresh(response):
            if error is not None:
                raise error
            return response

        self.refresh_token()

        logger.info(f"Token refreshed, retrying {method} {url}")
        # Exactly one retry; whatever comes back is final.
        return self._send(self.session, method, url, options)

    def refresh_token(self) -> CredentialState:
        """
        Refresh the access token using the session handle.

        The token, session handle and consumer key go in the query string
        along with the signature. Uses config.refresh_timeout.

        Returns:
            The new credentials (also now held by this client)

        Raises:
            TokenRejectedError: If the provider rejected the token
            TokenRefreshError: If no token was returned
            requests.RequestException: Transport errors
        """
        self.force_token_refresh = False
        old_credentials = self._credentials

        if not old_credentials.session_handle:
            logger.error("Token refresh attempted without a session handle")
            raise TokenRefreshError(
                "No session handle available. Only partner application tokens "
                "can be refreshed."
            )

        url = self.config.access_token_endpoint.url
        logger.info(f"Refreshing access token at {url}")

        refresh_session = self._factory.create_session(signature_type=SIGNATURE_TYPE_QUERY)
        try:
            # oauth_token and oauth_consumer_key are added by the query signer.
            response = refresh_session.request(
                "GET",
                url,
                params={"oauth_session_handle": old_credentials.session_handle},
                timeout=self.config.refresh_timeout,
            )
        finally:
            refresh_session.close()

        params = OAuthParams.from_response(response)
        self.refreshed_params = params

        if not params.has_token():
            logger.error(
                f"Token refresh failed ({response.status_code}): "
                f"{params.problem} - {params.problem_advice}"
            )
            error_class = TokenRejectedError if params.is_rejected() else TokenRefreshError
            raise error_class(
                f'Token refresh error "{params.problem}": {params.problem_advice}',
                problem=params.problem,
                advice=params.problem_advice,
            )

        new_credentials = old_credentials.with_fresh_token(params)
        self._rotate(new_credentials, old_credentials)

        logger.info(
            f"Successfully refreshed access token "
            f"(expires {new_credentials.expires_at.isoformat()})"
        )
        return new_credentials

    def _rotate(self, new: CredentialState, old: CredentialState) -> None:
        """Swap in new credentials and a new signed session."""
        self._credentials = new
        self._factory = self._factory.with_credentials(new)
        old_session = self.session
        self.session = self._factory.create_session()
        # Releases pooled connections; the old signer stays attached.
        old_session.close()
        self.token_refreshed = True

        if self.on_refresh is not None:
            self.on_refresh(new, old)

    def fetch(
        self,
        uri: Union[str, Sequence[str]],
        method: str = "GET",
        **options: Any,
    ) -> ResponseEnvelope:
        """
        Make a request and classify the response body.

        Args:
            uri: Resource path or absolute URL
            method: HTTP method
            **options: As for execute()

        Returns:
            ResponseEnvelope for the final response
        """
        response = self.execute(method, uri, **options)
        return ResponseEnvelope.from_response(response)

    def get(self, uri: Union[str, Sequence[str]], **options: Any) -> requests.Response:
        return self.execute("GET", uri, **options)

    def post(self, uri: Union[str, Sequence[str]], **options: Any) -> requests.Response:
        return self.execute("POST", uri, **options)

    def put(self, uri: Union[str, Sequence[str]], **options: Any) -> requests.Response:
        return self.execute("PUT", uri, **options)

    def delete(self, uri: Union[str, Sequence[str]], **options: Any) -> requests.Response:
        return self.execute("DELETE", uri, **options)

    def close(self) -> None:
        """Close the current session."""
        self.session.close()
        logger.info("RefreshableClient closed")

    def __enter__(self) -> "RefreshableClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - ensures cleanup."""
        self.close()


def _http_date(value: Any) -> str:
    """
    Format a timestamp as an HTTP-date for If-Modified-Since.

    Unrecognised values are passed through as strings.
    """
    when = to_datetime(value)
    if isinstance(when, datetime):
        return format_datetime(when, usegmt=True)

    return str(value)

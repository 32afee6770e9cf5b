"""
OAuth token endpoint response parsing.

The token endpoint answers with a URL-encoded body (declared as text/html)
holding either a fresh token:

    oauth_token, oauth_token_secret, oauth_expires_in, oauth_session_handle,
    oauth_authorization_expires_in

or a problem report:

    oauth_problem, oauth_problem_advice

The same problem report is embedded in 401 responses from the ordinary
API endpoints when the access token has expired.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import parse_qsl

import requests

from ..utils.date_utils import snake_to_camel, to_datetime, utcnow

logger = logging.getLogger(__name__)

PROBLEM_TOKEN_EXPIRED = "token_expired"
PROBLEM_TOKEN_REJECTED = "token_rejected"

# Content types whose body may carry URL-encoded OAuth parameters.
FORM_CONTENT_TYPES = ("text/html", "text/plain", "application/x-www-form-urlencoded")


def _to_timestamp(value: Any) -> Any:
    """Coerce a stored timestamp; numeric strings count as epoch seconds."""
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    return to_datetime(value)


class OAuthParams:
    """
    Parsed OAuth parameters from a token endpoint or 401 response.

    The provider only sends a lifetime (oauth_expires_in), so the expiry
    time is derived from created_at, the moment the response was parsed
    unless supplied explicitly. An explicit oauth_expires_at is
    authoritative. With no expiry information at all, expires_at falls
    back to created_at so the token is treated as already expired.
    """

    def __init__(
        self,
        params: Optional[Mapping[str, Any]] = None,
        created_at: Optional[Any] = None,
    ):
        """
        Initialize from a parameter map.

        Args:
            params: Raw OAuth parameters (string to string)
            created_at: When the token was issued; defaults to any
                        oauth_created_at parameter, then to now
        """
        self._params: Dict[str, Any] = dict(params or {})
        self._index = {snake_to_camel(name).lower(): name for name in self._params}

        if created_at is None:
            created_at = self.get("oauth_created_at")

        created = _to_timestamp(created_at) if created_at is not None else None
        self.created_at: datetime = created if isinstance(created, datetime) else utcnow()

    @classmethod
    def parse(
        cls,
        body: Union[str, bytes, None],
        content_type: Optional[str] = None,
        created_at: Optional[Any] = None,
    ) -> "OAuthParams":
        """
        Parse a raw response body.

        Args:
            body: Response body
            content_type: Declared content type; bodies that are not
                          text/html, text/plain or form-encoded yield no params
            created_at: Issue time override

        Returns:
            OAuthParams (possibly empty)
        """
        media_type = (content_type or "").split(";")[0].strip().lower()

        if media_type not in FORM_CONTENT_TYPES or not body:
            return cls({}, created_at=created_at)

        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")

        return cls(dict(parse_qsl(body.strip())), created_at=created_at)

    @classmethod
    def from_response(
        cls, response: requests.Response, created_at: Optional[Any] = None
    ) -> "OAuthParams":
        """
        Parse OAuth parameters out of an HTTP response.

        The status code is ignored; only the body and content type matter.
        """
        return cls.parse(
            response.content,
            response.headers.get("Content-Type", ""),
            created_at=created_at,
        )

    def get(self, name: str, default: Any = None) -> Any:
        """Look up a parameter by snake_case or camelCase name."""
        key = self._index.get(snake_to_camel(name).lower())
        if key is None:
            return default
        return self._params[key]

    def __contains__(self, name: str) -> bool:
        return snake_to_camel(name).lower() in self._index

    def __bool__(self) -> bool:
        return bool(self._params)

    @property
    def params(self) -> Dict[str, Any]:
        """Copy of the raw parameters."""
        return dict(self._params)

    @property
    def token(self) -> Optional[str]:
        return self.get("oauth_token")

    @property
    def token_secret(self) -> Optional[str]:
        return self.get("oauth_token_secret")

    @property
    def session_handle(self) -> Optional[str]:
        return self.get("oauth_session_handle")

    @property
    def problem(self) -> Optional[str]:
        return self.get("oauth_problem")

    @property
    def problem_advice(self) -> Optional[str]:
        return self.get("oauth_problem_advice")

    @property
    def expires_in(self) -> Optional[int]:
        """Token lifetime in seconds, if the provider sent one."""
        value = self.get("oauth_expires_in")
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric oauth_expires_in: {value!r}")
            return None

    @property
    def expires_at(self) -> datetime:
        """
        When the token expires (UTC).

        Returns:
            Explicit oauth_expires_at if supplied, else created_at plus
            oauth_expires_in, else created_at
        """
        explicit = self.get("oauth_expires_at")
        if explicit not in (None, ""):
            expires = _to_timestamp(explicit)
            if isinstance(expires, datetime):
                return expires
            logger.warning(f"Ignoring unparseable oauth_expires_at: {explicit!r}")

        expires_in = self.expires_in
        if expires_in is not None:
            return self.created_at + timedelta(seconds=expires_in)

        return self.created_at

    def has_token(self) -> bool:
        """True if the response carries a (non-empty) access token."""
        return bool(self.token)

    def is_expired(self) -> bool:
        """True if the provider reported that the token has expired."""
        return self.problem == PROBLEM_TOKEN_EXPIRED

    def is_rejected(self) -> bool:
        """True if the provider rejected the token; refreshing will not help."""
        return self.problem == PROBLEM_TOKEN_REJECTED

    def remaining_seconds(self) -> float:
        """Seconds until expires_at (negative once expired)."""
        return (self.expires_at - utcnow()).total_seconds()

    def with_created_at(self, created_at: Any) -> "OAuthParams":
        """Copy of these parameters with a different issue time."""
        return OAuthParams(self._params, created_at=created_at)

    def to_dict(self) -> Dict[str, Any]:
        """
        Export the parameters for storage.

        The provider never sends an absolute expiry time, so the computed
        oauth_expires_at and oauth_created_at are always included.
        """
        data = dict(self._params)
        data["oauth_created_at"] = self.created_at.isoformat()
        if "oauth_expires_at" not in self:
            data["oauth_expires_at"] = self.expires_at.isoformat()
        return data

    def __repr__(self) -> str:
        if self.has_token():
            return f"OAuthParams(token=..., expires_at={self.expires_at.isoformat()})"
        return f"OAuthParams(problem={self.problem!r})"

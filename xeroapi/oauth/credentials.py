"""
Credential state for Xero OAuth 1.0a access.

This module provides the immutable credential value used to sign
requests, and an expiry helper that works from whatever expiry details
the host application persisted.
"""

import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional

from ..utils.date_utils import snake_to_camel, to_datetime, utcnow
from .exceptions import ConfigurationError
from .params import OAuthParams

logger = logging.getLogger(__name__)


class Expiry:
    """
    Expiry status of a stored token.

    Needs either the absolute expiry time, or the creation time plus the
    lifetime. Each value is accepted under a few aliases, in snake or camel
    case: oauth_expires_at/expires_at, oauth_created_at/created_at and
    oauth_expires_in/expires_in.
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self.expires_at_value: Optional[datetime] = None
        self.created_at_value: Optional[datetime] = None
        self.expires_in_value: Optional[int] = None

        for key, value in (data or {}).items():
            if value is None:
                continue

            name = snake_to_camel(key)

            if name in ("oauthExpiresAt", "expiresAt"):
                self.expires_at_value = self._to_datetime(key, value)
            elif name in ("oauthCreatedAt", "createdAt"):
                self.created_at_value = self._to_datetime(key, value)
            elif name in ("oauthExpiresIn", "expiresIn"):
                try:
                    self.expires_in_value = int(value)
                except (TypeError, ValueError):
                    logger.warning(f"Ignoring non-numeric {key}: {value!r}")

    @staticmethod
    def _to_datetime(key: str, value: Any) -> Optional[datetime]:
        converted = to_datetime(value)
        if not isinstance(converted, datetime):
            logger.warning(f"Ignoring unparseable {key}: {value!r}")
            return None
        return converted

    def expires_at(self) -> datetime:
        """
        Get the expiry time from what we have.

        Returns:
            The explicit expiry time, else created_at + expires_in, else now
            (not enough information, so assume expired)
        """
        if self.expires_at_value is not None:
            return self.expires_at_value

        if self.created_at_value is not None and self.expires_in_value is not None:
            return self.created_at_value + timedelta(seconds=self.expires_in_value)

        return utcnow()

    def is_expired(self, guard_seconds: int = 0) -> bool:
        """
        Check if the expiry time has been reached.

        Args:
            guard_seconds: Bring the expiry time forward by this many seconds

        Returns:
            True if expired (or expiring within the guard period)
        """
        # Compare this way round: an unknown expiry defaults to "now", which
        # must count as expired.
        return self.expires_at() <= utcnow() + timedelta(seconds=guard_seconds)

    def remaining_seconds(self) -> float:
        return (self.expires_at() - utcnow()).total_seconds()


@dataclass(frozen=True)
class CredentialState:
    """
    Current OAuth 1.0a credentials.

    Instances are never changed in place: a refresh produces a new value
    via with_fresh_token(), so an executor holding the old value is never
    affected by another executor's refresh.

    Attributes:
        consumer_key: Consumer key (fixed for the process lifetime)
        consumer_secret: Consumer secret (fixed for the process lifetime)
        access_token: Current access token
        access_token_secret: Current access token secret
        session_handle: Session handle for renewable (partner) tokens
        expires_at: Expected token expiry (UTC), if known
    """

    consumer_key: str
    consumer_secret: str = field(repr=False)
    access_token: str
    access_token_secret: str = field(repr=False)
    session_handle: Optional[str] = field(default=None, repr=False)
    expires_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.expires_at is not None:
            expires_at = self.expires_at
            if isinstance(expires_at, str) and expires_at.isdigit():
                expires_at = int(expires_at)
            expires_at = to_datetime(expires_at)
            if not isinstance(expires_at, datetime):
                raise ConfigurationError(
                    f"expires_at must be a timestamp, got {self.expires_at!r}"
                )
            object.__setattr__(self, "expires_at", expires_at)

    @property
    def can_refresh(self) -> bool:
        """True if these are renewable credentials (a session handle is held)."""
        return bool(self.session_handle)

    @property
    def expiry(self) -> Expiry:
        return Expiry({"expires_at": self.expires_at})

    def is_expired(self, guard_seconds: int = 0) -> bool:
        """
        Check the expected expiry before issuing a request.

        An unknown expiry time counts as expired.
        """
        return self.expiry.is_expired(guard_seconds)

    def remaining_seconds(self) -> float:
        return self.expiry.remaining_seconds()

    def with_fresh_token(self, params: OAuthParams) -> "CredentialState":
        """
        Credentials after a successful refresh.

        Token, token secret and expiry are replaced; the session handle is
        kept unless the provider issued a new one.

        Args:
            params: Parsed token endpoint response (must carry a token)

        Returns:
            New CredentialState
        """
        return replace(
            self,
            access_token=params.token or self.access_token,
            access_token_secret=params.token_secret or self.access_token_secret,
            session_handle=params.session_handle or self.session_handle,
            expires_at=params.expires_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary with expires_at as an ISO string
        """
        data = asdict(self)
        if self.expires_at is not None:
            data["expires_at"] = self.expires_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CredentialState":
        """
        Create CredentialState from a stored dictionary.

        Args:
            data: Dictionary with credential fields

        Returns:
            CredentialState instance

        Raises:
            TypeError: If required fields are missing
            ConfigurationError: If expires_at is not a timestamp
        """
        return cls(**dict(data))

"""
OAuth 1.0a request signing for Xero API sessions.

The signature itself is produced by requests-oauthlib; this module only
decides what to sign with (the current credentials and configured
signature method) and where the signature goes (Authorization header for
ordinary calls, query string for token refresh).
"""

import logging
from typing import Optional

import requests
from oauthlib.oauth1 import SIGNATURE_RSA, SIGNATURE_TYPE_AUTH_HEADER, SIGNATURE_TYPE_QUERY
from requests_oauthlib import OAuth1

from .config import XeroConfig
from .credentials import CredentialState

logger = logging.getLogger(__name__)

__all__ = [
    "SIGNATURE_TYPE_AUTH_HEADER",
    "SIGNATURE_TYPE_QUERY",
    "SignedRequestFactory",
]


class SignedRequestFactory:
    """
    Builds request signers and pre-configured sessions for one credential set.

    A factory is bound to a single CredentialState. After a token refresh
    a new factory is derived with with_credentials(), and new sessions are
    built from it; sessions built earlier keep signing with the old tokens.
    """

    def __init__(self, config: XeroConfig, credentials: CredentialState):
        """
        Initialize signed request factory.

        Args:
            config: Client configuration (signature method, RSA key, headers)
            credentials: Credentials to sign with
        """
        self.config = config
        self.credentials = credentials

    def create_auth(self, signature_type: str = SIGNATURE_TYPE_AUTH_HEADER) -> OAuth1:
        """
        Create a per-request signer for requests.

        Args:
            signature_type: SIGNATURE_TYPE_AUTH_HEADER or SIGNATURE_TYPE_QUERY

        Returns:
            OAuth1 auth handler
        """
        rsa_key: Optional[str] = None
        if self.config.signature_method == SIGNATURE_RSA:
            rsa_key = self.config.load_rsa_key()

        return OAuth1(
            self.credentials.consumer_key,
            client_secret=self.credentials.consumer_secret or None,
            resource_owner_key=self.credentials.access_token,
            resource_owner_secret=self.credentials.access_token_secret,
            signature_method=self.config.signature_method,
            signature_type=signature_type,
            rsa_key=rsa_key,
        )

    def create_session(self, signature_type: str = SIGNATURE_TYPE_AUTH_HEADER) -> requests.Session:
        """
        Create a session that signs every request it sends.

        Args:
            signature_type: Where the signature goes

        Returns:
            requests.Session with auth and default headers set
        """
        session = requests.Session()
        session.auth = self.create_auth(signature_type)
        session.headers.update({
            "Accept": self.config.accept,
            "User-Agent": self.config.user_agent,
        })

        logger.debug(
            f"Created signed session ({self.config.signature_method}, {signature_type})"
        )
        return session

    def with_credentials(self, credentials: CredentialState) -> "SignedRequestFactory":
        """Factory for the same configuration with different credentials."""
        return SignedRequestFactory(self.config, credentials)

"""
OAuth 1.0a module for Xero API integration.

This module provides the credential lifecycle for Xero partner
applications: renewable access tokens that are refreshed in-band when the
API reports them expired.

Public API:
    XeroConfig: Client configuration
    CredentialState: Immutable consumer + access token credentials
    Expiry: Expiry checks over stored token details
    OAuthParams: Parsed token endpoint responses
    SignedRequestFactory: Request signers and signed sessions

Exceptions:
    XeroError: Base exception
    ConfigurationError: Configuration error
    TokenRefreshError: Token refresh failed
    TokenRejectedError: Token or signature rejected by the provider
"""

from .config import ACCEPT_JSON, ACCEPT_PDF, ACCEPT_XML, XeroConfig
from .credentials import CredentialState, Expiry
from .exceptions import ConfigurationError, TokenRefreshError, TokenRejectedError, XeroError
from .params import PROBLEM_TOKEN_EXPIRED, PROBLEM_TOKEN_REJECTED, OAuthParams
from .signer import SIGNATURE_TYPE_AUTH_HEADER, SIGNATURE_TYPE_QUERY, SignedRequestFactory

__all__ = [
    # Configuration
    "XeroConfig",
    "ACCEPT_JSON",
    "ACCEPT_PDF",
    "ACCEPT_XML",
    # Credentials
    "CredentialState",
    "Expiry",
    # Token responses
    "OAuthParams",
    "PROBLEM_TOKEN_EXPIRED",
    "PROBLEM_TOKEN_REJECTED",
    # Signing
    "SignedRequestFactory",
    "SIGNATURE_TYPE_AUTH_HEADER",
    "SIGNATURE_TYPE_QUERY",
    # Exceptions
    "XeroError",
    "ConfigurationError",
    "TokenRefreshError",
    "TokenRejectedError",
]

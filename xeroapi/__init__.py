"""
Xero API client for partner applications.

Signs requests with OAuth 1.0a, refreshes expired access tokens in-band
and retries once, and turns the many response envelope shapes of the
Xero APIs into one navigable resource tree.

Example:
    from xeroapi import CredentialState, RefreshableClient, XeroConfig

    client = RefreshableClient(XeroConfig.from_env(), credentials, on_refresh=save)
    contacts = client.fetch("Contacts")
    print(contacts.first().Name)
"""

from .api.client import RefreshableClient
from .api.endpoints import Endpoint
from .api.parsers import parse_response
from .models import EmptyNode, Resource, ResourceCollection, ResponseEnvelope, StructureType
from .oauth import (
    ConfigurationError,
    CredentialState,
    Expiry,
    OAuthParams,
    SignedRequestFactory,
    TokenRefreshError,
    TokenRejectedError,
    XeroConfig,
    XeroError,
)

__version__ = "0.1.0"

__all__ = [
    "RefreshableClient",
    "Endpoint",
    "parse_response",
    "ResponseEnvelope",
    "StructureType",
    "Resource",
    "ResourceCollection",
    "EmptyNode",
    "XeroConfig",
    "CredentialState",
    "Expiry",
    "OAuthParams",
    "SignedRequestFactory",
    "XeroError",
    "ConfigurationError",
    "TokenRefreshError",
    "TokenRejectedError",
]

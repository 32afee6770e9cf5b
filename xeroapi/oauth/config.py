"""
Client configuration for Xero API integration.

This module provides configuration management for OAuth 1.0a access to
Xero's APIs. Configuration can be loaded from environment variables or
provided programmatically. Instances are immutable; use
dataclasses.replace() to derive a modified copy.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from oauthlib.oauth1 import SIGNATURE_HMAC, SIGNATURE_RSA

from ..api.endpoints import (
    API_CORE,
    DEFAULT_BASE_URL,
    DEFAULT_VERSION,
    OAUTH_ACCESS_TOKEN,
    Endpoint,
)
from .exceptions import ConfigurationError

# Supported "Accept" header values.
ACCEPT_JSON = "application/json"
ACCEPT_PDF = "application/pdf"
ACCEPT_XML = "application/xml"

SUPPORTED_SIGNATURE_METHODS = (SIGNATURE_RSA, SIGNATURE_HMAC)


@dataclass(frozen=True)
class XeroConfig:
    """
    Configuration for the Xero client.

    Partner applications sign with RSA-SHA1 and the RSA private key that
    was registered with Xero; HMAC-SHA1 needs the consumer secret instead.

    Attributes:
        consumer_key: Consumer key from the Xero developer portal
        consumer_secret: Consumer secret from the Xero developer portal
        base_url: API scheme and host
        api: Default API family for relative request URIs
        version: Default API version
        oauth_access_token_resource: Token refresh resource under /oauth
        signature_method: "RSA-SHA1" or "HMAC-SHA1"
        rsa_key: RSA private key (PEM text)
        rsa_key_file: Path to the RSA private key, read on demand
        timeout: Timeout in seconds for ordinary API requests
        refresh_timeout: Timeout in seconds for token refresh requests
        accept: Default Accept header
        user_agent: User-Agent header sent with every request
        refresh_guard_seconds: Treat tokens as expired this many seconds early
    """

    consumer_key: str
    consumer_secret: str = field(default="", repr=False)

    # Endpoint defaults
    base_url: str = DEFAULT_BASE_URL
    api: str = API_CORE
    version: str = DEFAULT_VERSION
    oauth_access_token_resource: str = OAUTH_ACCESS_TOKEN

    # Signing
    signature_method: str = SIGNATURE_RSA
    rsa_key: Optional[str] = field(default=None, repr=False)
    rsa_key_file: Optional[str] = None

    # Transport
    timeout: float = 30
    refresh_timeout: float = 60  # A timed-out refresh breaks the token chain
    accept: str = ACCEPT_JSON
    user_agent: str = "xeroapi/0.1"

    refresh_guard_seconds: int = 60

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.consumer_key:
            raise ConfigurationError("consumer_key cannot be empty")

        if self.signature_method not in SUPPORTED_SIGNATURE_METHODS:
            raise ConfigurationError(
                f"signature_method must be one of {', '.join(SUPPORTED_SIGNATURE_METHODS)}, "
                f"got {self.signature_method}"
            )

        if self.signature_method == SIGNATURE_RSA and not (self.rsa_key or self.rsa_key_file):
            raise ConfigurationError("RSA-SHA1 signing needs rsa_key or rsa_key_file")

        if self.signature_method == SIGNATURE_HMAC and not self.consumer_secret:
            raise ConfigurationError("HMAC-SHA1 signing needs consumer_secret")

        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")

        if self.refresh_timeout < self.timeout:
            raise ConfigurationError(
                f"refresh_timeout ({self.refresh_timeout}) cannot be shorter "
                f"than timeout ({self.timeout})"
            )

        if self.refresh_guard_seconds < 0:
            raise ConfigurationError("refresh_guard_seconds cannot be negative")

    @property
    def endpoint(self) -> Endpoint:
        """Endpoint for the configured API family and version, with no resource."""
        return Endpoint(base_url=self.base_url, api=self.api, version=self.version)

    @property
    def access_token_endpoint(self) -> Endpoint:
        """Endpoint used for token refresh."""
        return Endpoint.oauth_access_token(self.base_url, self.oauth_access_token_resource)

    def load_rsa_key(self) -> Optional[str]:
        """
        Get the RSA private key text.

        Returns:
            PEM text, or None if no key is configured

        Raises:
            ConfigurationError: If the key file cannot be read
        """
        if self.rsa_key:
            return self.rsa_key

        if not self.rsa_key_file:
            return None

        try:
            return Path(self.rsa_key_file).read_text()
        except OSError as e:
            raise ConfigurationError(
                f"Could not read RSA key file {self.rsa_key_file}: {e}"
            ) from e

    @classmethod
    def from_env(cls) -> "XeroConfig":
        """
        Load configuration from environment variables.

        Required environment variables:
            XERO_CONSUMER_KEY: Consumer key

        Optional environment variables:
            XERO_CONSUMER_SECRET: Consumer secret (required for HMAC-SHA1)
            XERO_SIGNATURE_METHOD: RSA-SHA1 (default) or HMAC-SHA1
            XERO_RSA_KEY_FILE: Path to the RSA private key (required for RSA-SHA1)
            XERO_BASE_URL: API base URL (default: https://api.xero.com)
            XERO_TIMEOUT: Request timeout in seconds (default: 30)
            XERO_REFRESH_TIMEOUT: Refresh timeout in seconds (default: 60)

        Returns:
            XeroConfig instance

        Raises:
            ConfigurationError: If required environment variables are missing
                                or values are invalid
        """
        consumer_key = os.environ.get("XERO_CONSUMER_KEY")

        if not consumer_key:
            raise ConfigurationError(
                "Missing Xero OAuth credentials. Set environment variables:\n"
                "  XERO_CONSUMER_KEY=your_consumer_key\n"
                "  XERO_RSA_KEY_FILE=/path/to/privatekey.pem\n"
                "\n"
                "Get credentials from: https://developer.xero.com"
            )

        try:
            timeout = float(os.environ.get("XERO_TIMEOUT", "30"))
            refresh_timeout = float(os.environ.get("XERO_REFRESH_TIMEOUT", "60"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid timeout setting: {e}") from e

        return cls(
            consumer_key=consumer_key,
            consumer_secret=os.environ.get("XERO_CONSUMER_SECRET", ""),
            signature_method=os.environ.get("XERO_SIGNATURE_METHOD", SIGNATURE_RSA),
            rsa_key_file=os.environ.get("XERO_RSA_KEY_FILE"),
            base_url=os.environ.get("XERO_BASE_URL", DEFAULT_BASE_URL),
            timeout=timeout,
            refresh_timeout=refresh_timeout,
        )

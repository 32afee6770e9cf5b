"""
Exception classes for the Xero client.

This module defines the exception hierarchy for configuration and
token-refresh errors. Transport errors raised by requests are never
wrapped; they propagate to the caller unchanged.
"""

from typing import Optional


class XeroError(Exception):
    """Base exception for all Xero client errors."""

    pass


class ConfigurationError(XeroError):
    """Client configuration error (missing or invalid configuration)."""

    pass


class TokenRefreshError(XeroError):
    """
    Failed to refresh an expired access token.

    The provider's problem code and human-readable advice are kept so the
    host application can decide whether to re-authorize.

    Attributes:
        problem: OAuth problem code (e.g., "token_rejected"), if any
        advice: OAuth problem advice text, if any
    """

    def __init__(
        self,
        message: str,
        problem: Optional[str] = None,
        advice: Optional[str] = None,
    ):
        super().__init__(message)
        self.problem = problem
        self.advice = advice


class TokenRejectedError(TokenRefreshError):
    """
    The token endpoint rejected the token or signature.

    Usually means the consumer key, RSA key or stored token do not match;
    refreshing again will not help.
    """

    pass

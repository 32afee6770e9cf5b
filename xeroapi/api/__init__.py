"""
Xero API client module.

This module provides access to Xero's APIs for partner applications:

- Endpoint: URL building for the API families (accounting, payroll, ...)
- parse_response: response body decoding (JSON, XML, plain text)
- RefreshableClient (in xeroapi.api.client): signed requests with
  transparent token refresh and a single retry
"""

from .endpoints import (
    API_ASSET,
    API_CORE,
    API_FILE,
    API_OAUTH,
    API_PAYROLL,
    Endpoint,
    build_url,
)
from .parsers import parse_response, xml_to_data

__all__ = [
    "Endpoint",
    "build_url",
    "API_CORE",
    "API_PAYROLL",
    "API_FILE",
    "API_ASSET",
    "API_OAUTH",
    "parse_response",
    "xml_to_data",
]

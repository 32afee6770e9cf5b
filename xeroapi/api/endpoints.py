"""
Xero API endpoint definitions.

URLs take the form {base_url}/{api}/{version}/{resource}. The OAuth
sub-API has no version segment: {base_url}/oauth/{resource}.

Documentation: https://developer.xero.com/documentation/api/requests-and-responses
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Union

DEFAULT_BASE_URL = "https://api.xero.com"
DEFAULT_VERSION = "2.0"

# API families
API_CORE = "api.xro"
API_PAYROLL = "payroll.xro"
API_FILE = "files.xro"
API_ASSET = "assets.xro"
# Some docs say "OAuth", but only lower case works.
API_OAUTH = "oauth"

# OAuth resources
OAUTH_REQUEST_TOKEN = "RequestToken"
OAUTH_ACCESS_TOKEN = "AccessToken"

ResourcePath = Union[str, Sequence[str]]


def build_url(
    base_url: str,
    api: str,
    version: str,
    resource: Optional[ResourcePath] = None,
) -> str:
    """
    Build a complete endpoint URL.

    Args:
        base_url: Scheme and host (e.g., "https://api.xero.com")
        api: API family (e.g., API_CORE); API_OAUTH omits the version
        version: API version (e.g., "2.0")
        resource: Resource path, as a string or a sequence of segments

    Returns:
        Full URL. Inputs are not validated.
    """
    if resource is None:
        resource_path = ""
    elif isinstance(resource, str):
        resource_path = resource
    else:
        resource_path = "/".join(str(segment) for segment in resource)

    if api == API_OAUTH:
        path = f"{api}/{resource_path}"
    else:
        path = f"{api}/{version}/{resource_path}"

    return f"{base_url}/{path}"


@dataclass(frozen=True)
class Endpoint:
    """
    A complete endpoint on one of the Xero APIs.

    Only the base part of the URL is handled, never query parameters.

    Attributes:
        base_url: Scheme and host
        api: API family
        resource: Resource path (string or tuple of segments)
        version: API version, ignored for the OAuth API
    """

    base_url: str = DEFAULT_BASE_URL
    api: str = API_CORE
    resource: Optional[ResourcePath] = None
    version: str = DEFAULT_VERSION

    def __post_init__(self) -> None:
        if self.resource is not None and not isinstance(self.resource, str):
            object.__setattr__(self, "resource", tuple(self.resource))

    @property
    def url(self) -> str:
        return build_url(self.base_url, self.api, self.version, self.resource)

    def with_resource(self, resource: Optional[ResourcePath]) -> "Endpoint":
        return replace(self, resource=resource)

    def with_api(self, api: str) -> "Endpoint":
        return replace(self, api=api)

    def with_version(self, version: str) -> "Endpoint":
        return replace(self, version=version)

    @classmethod
    def oauth_access_token(
        cls,
        base_url: str = DEFAULT_BASE_URL,
        resource: str = OAUTH_ACCESS_TOKEN,
    ) -> "Endpoint":
        """Endpoint used to obtain and refresh access tokens."""
        return cls(base_url=base_url, api=API_OAUTH, resource=resource)

    def __str__(self) -> str:
        return self.url

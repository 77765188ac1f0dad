"""
Authority value types.

An authority identifies the token issuer an exchange talks to. This module
only parses and describes authorities; instance discovery and metadata
validation happen elsewhere.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union
from urllib.parse import urlparse

from .exceptions import ConfigurationError

B2C_PATH_SEGMENT = "tfp"
B2C_HOST_SUFFIX = ".b2clogin.com"
ADFS_PATH_SEGMENT = "adfs"


class AuthorityType(str, Enum):
    AAD = "aad"
    B2C = "b2c"
    ADFS = "adfs"


@dataclass(frozen=True)
class Plain:
    """Authority whose accounts are identified by object and tenant id alone."""

    @property
    def policy_tag(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class PolicyPartitioned:
    """
    Authority where the same raw user identifiers map to different logical
    accounts depending on which policy (user flow) issued the tokens.
    """

    policy: str

    def __post_init__(self) -> None:
        if not self.policy:
            raise ConfigurationError("policy cannot be empty for a policy-partitioned authority")

    @property
    def policy_tag(self) -> Optional[str]:
        return self.policy


AuthorityVariant = Union[Plain, PolicyPartitioned]


@dataclass(frozen=True)
class Authority:
    """
    A token issuer.

    Attributes:
        canonical_url: Authority URL without a trailing slash,
            e.g. ``https://login.microsoftonline.com/contoso.onmicrosoft.com``.
        authority_type: AAD, B2C or ADFS.
        variant: ``Plain()`` or ``PolicyPartitioned(policy)``.
        tenant: Tenant path segment, if the URL has one.
        token_endpoint: Explicit token endpoint overriding the derived one.
    """

    canonical_url: str
    authority_type: AuthorityType = AuthorityType.AAD
    variant: AuthorityVariant = field(default_factory=Plain)
    tenant: Optional[str] = None
    token_endpoint: Optional[str] = None

    def token_endpoint_url(self) -> Optional[str]:
        if self.token_endpoint is not None:
            return self.token_endpoint
        if not self.canonical_url:
            return None
        if self.authority_type == AuthorityType.ADFS:
            return f"{self.canonical_url}/oauth2/token"
        return f"{self.canonical_url}/oauth2/v2.0/token"

    def host(self) -> str:
        return urlparse(self.canonical_url).netloc.lower()

    @classmethod
    def from_url(cls, url: str, token_endpoint: Optional[str] = None) -> "Authority":
        """
        Parse an authority URL.

        Recognized shapes:
            https://login.microsoftonline.com/<tenant>
            https://<host>/tfp/<tenant>/<policy>           (B2C)
            https://<tenant>.b2clogin.com/<tenant>/<policy> (B2C)
            https://<host>/adfs                             (ADFS)

        Raises:
            ConfigurationError: If the URL is not an https URL with a tenant segment.
        """
        if not url:
            raise ConfigurationError("Authority URL cannot be empty")

        parsed = urlparse(url.strip())
        if parsed.scheme != "https" or not parsed.netloc:
            raise ConfigurationError(f"Authority must be an absolute https URL, got {url!r}")

        segments = [s for s in parsed.path.split("/") if s]
        if not segments:
            raise ConfigurationError(
                f"Authority URL must contain a tenant path segment, got {url!r}"
            )

        host = parsed.netloc.lower()
        base = f"https://{host}"

        if segments[0].lower() == ADFS_PATH_SEGMENT:
            return cls(
                canonical_url=f"{base}/{ADFS_PATH_SEGMENT}",
                authority_type=AuthorityType.ADFS,
                token_endpoint=token_endpoint,
            )

        if segments[0].lower() == B2C_PATH_SEGMENT:
            if len(segments) < 3:
                raise ConfigurationError(
                    f"B2C authority must have the form https://<host>/tfp/<tenant>/<policy>, got {url!r}"
                )
            tenant, policy = segments[1], segments[2]
            return cls(
                canonical_url=f"{base}/{B2C_PATH_SEGMENT}/{tenant}/{policy}",
                authority_type=AuthorityType.B2C,
                variant=PolicyPartitioned(policy),
                tenant=tenant,
                token_endpoint=token_endpoint,
            )

        if host.endswith(B2C_HOST_SUFFIX):
            if len(segments) < 2:
                raise ConfigurationError(
                    f"B2C authority must have the form https://<host>/<tenant>/<policy>, got {url!r}"
                )
            tenant, policy = segments[0], segments[1]
            return cls(
                canonical_url=f"{base}/{tenant}/{policy}",
                authority_type=AuthorityType.B2C,
                variant=PolicyPartitioned(policy),
                tenant=tenant,
                token_endpoint=token_endpoint,
            )

        tenant = segments[0]
        return cls(
            canonical_url=f"{base}/{tenant}",
            authority_type=AuthorityType.AAD,
            tenant=tenant,
            token_endpoint=token_endpoint,
        )

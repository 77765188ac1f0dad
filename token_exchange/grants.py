"""
Authorization grants.

A grant is the set of form parameters that tells the token endpoint which
OAuth2 flow is being exercised. Grants only serialize themselves; sending
them is the exchange's job.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
GRANT_TYPE_REFRESH_TOKEN = "refresh_token"
GRANT_TYPE_CLIENT_CREDENTIALS = "client_credentials"
GRANT_TYPE_PASSWORD = "password"
GRANT_TYPE_DEVICE_CODE = "urn:ietf:params:oauth:grant-type:device_code"
GRANT_TYPE_JWT_BEARER = "urn:ietf:params:oauth:grant-type:jwt-bearer"

# Always requested for user flows so the response carries an ID token,
# client info and a refresh token.
COMMON_SCOPES = ("openid", "profile", "offline_access")


def merge_scopes(scopes: Iterable[str], reserved: Iterable[str] = COMMON_SCOPES) -> str:
    """Join caller scopes with the reserved OIDC scopes, dropping duplicates but keeping order."""
    merged: list[str] = []
    for scope in list(scopes) + list(reserved):
        scope = scope.strip()
        if scope and scope not in merged:
            merged.append(scope)
    return " ".join(merged)


class Grant(ABC):
    """Base class for grants. ``claims`` is an optional claims-challenge string."""

    def __init__(self, scopes: Iterable[str] = (), claims: Optional[str] = None):
        self.scopes = tuple(scopes)
        self.claims = claims

    @abstractmethod
    def grant_parameters(self) -> dict[str, list[str]]:
        raise NotImplementedError()

    def scope_parameter(self) -> str:
        return merge_scopes(self.scopes)

    def to_parameters(self) -> dict[str, list[str]]:
        """Return the form parameters for this grant as name -> ordered list of values."""
        params = self.grant_parameters()
        scope = self.scope_parameter()
        if scope:
            params["scope"] = [scope]
        if self.claims:
            params["claims"] = [self.claims]
        return params


class AuthorizationCodeGrant(Grant):
    def __init__(
        self,
        code: str,
        redirect_uri: str,
        scopes: Iterable[str] = (),
        code_verifier: Optional[str] = None,
        claims: Optional[str] = None,
    ):
        super().__init__(scopes, claims)
        self.code = code
        self.redirect_uri = redirect_uri
        self.code_verifier = code_verifier

    def grant_parameters(self) -> dict[str, list[str]]:
        params = {
            "grant_type": [GRANT_TYPE_AUTHORIZATION_CODE],
            "code": [self.code],
            "redirect_uri": [self.redirect_uri],
        }
        if self.code_verifier:
            params["code_verifier"] = [self.code_verifier]
        return params


class RefreshTokenGrant(Grant):
    def __init__(
        self, refresh_token: str, scopes: Iterable[str] = (), claims: Optional[str] = None
    ):
        super().__init__(scopes, claims)
        self.refresh_token = refresh_token

    def grant_parameters(self) -> dict[str, list[str]]:
        return {
            "grant_type": [GRANT_TYPE_REFRESH_TOKEN],
            "refresh_token": [self.refresh_token],
        }


class ClientCredentialsGrant(Grant):
    """App-only grant. Sends the caller's scopes as-is, with no OIDC scopes added."""

    def grant_parameters(self) -> dict[str, list[str]]:
        return {"grant_type": [GRANT_TYPE_CLIENT_CREDENTIALS]}

    def scope_parameter(self) -> str:
        return merge_scopes(self.scopes, reserved=())


class DeviceCodeGrant(Grant):
    def __init__(
        self, device_code: str, scopes: Iterable[str] = (), claims: Optional[str] = None
    ):
        super().__init__(scopes, claims)
        self.device_code = device_code

    def grant_parameters(self) -> dict[str, list[str]]:
        return {
            "grant_type": [GRANT_TYPE_DEVICE_CODE],
            "device_code": [self.device_code],
        }


class UsernamePasswordGrant(Grant):
    def __init__(
        self,
        username: str,
        password: str,
        scopes: Iterable[str] = (),
        claims: Optional[str] = None,
    ):
        super().__init__(scopes, claims)
        self.username = username
        self.password = password

    def grant_parameters(self) -> dict[str, list[str]]:
        return {
            "grant_type": [GRANT_TYPE_PASSWORD],
            "username": [self.username],
            "password": [self.password],
        }


class OnBehalfOfGrant(Grant):
    """Exchange an incoming user assertion for a token to a downstream API."""

    def __init__(self, assertion: str, scopes: Iterable[str], claims: Optional[str] = None):
        super().__init__(scopes, claims)
        self.assertion = assertion

    def grant_parameters(self) -> dict[str, list[str]]:
        return {
            "grant_type": [GRANT_TYPE_JWT_BEARER],
            "assertion": [self.assertion],
            "requested_token_use": ["on_behalf_of"],
        }

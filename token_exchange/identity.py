"""
Account identity derivation.

An account identity is derived from two independent artifacts of a token
response: the ID token (decoded, never persisted raw) and the client-info
blob. On policy-partitioned authorities the policy is part of the identity,
so two accounts with the same object and tenant ids but different policies
never compare equal.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Optional

from jose import JWTError, jwt

from .exceptions import TransportFailure


@dataclass(frozen=True)
class IdTokenClaims:
    """Claims of an ID token that are needed to derive an account identity."""

    subject: Optional[str] = None
    issuer: Optional[str] = None
    tenant_id: Optional[str] = None
    object_id: Optional[str] = None
    preferred_username: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    upn: Optional[str] = None
    audience: Optional[str] = None
    issued_at: Optional[int] = None
    expiration: Optional[int] = None
    version: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "IdTokenClaims":
        aud = claims.get("aud")
        if isinstance(aud, list):
            aud = aud[0] if aud else None
        return cls(
            subject=claims.get("sub"),
            issuer=claims.get("iss"),
            tenant_id=claims.get("tid"),
            object_id=claims.get("oid"),
            preferred_username=claims.get("preferred_username"),
            name=claims.get("name"),
            email=claims.get("email"),
            upn=claims.get("upn"),
            audience=aud,
            issued_at=claims.get("iat"),
            expiration=claims.get("exp"),
            version=claims.get("ver"),
            raw=dict(claims),
        )

    @property
    def username(self) -> Optional[str]:
        return self.preferred_username or self.upn or self.email


def decode_id_token(id_token: str) -> IdTokenClaims:
    """
    Decode the payload segment of an ID token.

    The signature is not checked; the token was received directly from the
    token endpoint over TLS.

    Raises:
        TransportFailure: If the token is not a decodable JWT.
    """
    try:
        claims = jwt.get_unverified_claims(id_token)
    except JWTError as e:
        raise TransportFailure(f"Unable to decode ID token: {e}") from e
    if not isinstance(claims, dict):
        raise TransportFailure("ID token payload is not a JSON object")
    return IdTokenClaims.from_claims(claims)


def _b64url_decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


@dataclass(frozen=True)
class ClientInfo:
    """Decoded client-info blob: the account's unique id and its home tenant id."""

    uid: Optional[str] = None
    utid: Optional[str] = None

    @classmethod
    def decode(cls, blob: str) -> "ClientInfo":
        """
        Decode a base64url-encoded JSON client-info blob.

        Raises:
            TransportFailure: If the blob is not base64url JSON.
        """
        try:
            data = json.loads(_b64url_decode(blob.strip()).decode("utf-8"))
        except (binascii.Error, UnicodeError, ValueError) as e:
            raise TransportFailure(f"Unable to decode client info: {e}") from e
        if not isinstance(data, dict):
            raise TransportFailure("Client info is not a JSON object")
        return cls(uid=data.get("uid"), utid=data.get("utid"))

    @property
    def home_account_id(self) -> Optional[str]:
        if self.uid and self.utid:
            return f"{self.uid}.{self.utid}"
        return self.uid or None


@dataclass(frozen=True)
class AccountIdentity:
    """
    Cache-ready account identity.

    Equality and hashing use only the identity key
    ``(environment, object_id, tenant_id, policy)``; the descriptive fields
    do not take part.
    """

    environment: str
    object_id: str
    tenant_id: str
    policy: Optional[str] = None
    home_account_id: Optional[str] = field(default=None, compare=False)
    username: Optional[str] = field(default=None, compare=False)
    name: Optional[str] = field(default=None, compare=False)

    @property
    def key(self) -> tuple[str, str, str, Optional[str]]:
        return (self.environment, self.object_id, self.tenant_id, self.policy)

    @property
    def cache_key(self) -> str:
        parts = [self.home_account_id or self.object_id, self.environment, self.tenant_id]
        if self.policy:
            parts.append(self.policy)
        return "-".join(parts).lower()


def build_account_identity(
    client_info_blob: str,
    claims: IdTokenClaims,
    environment: str,
    policy_tag: Optional[str] = None,
) -> AccountIdentity:
    """
    Combine ID token claims and client info into an account identity.

    The ID token's ``oid``/``tid`` win; client info fills in whatever the ID
    token lacks (``uid`` for the object id, ``utid`` for the tenant id).

    Raises:
        TransportFailure: If the client info cannot be decoded or no object
            or tenant id can be determined.
    """
    client_info = ClientInfo.decode(client_info_blob)

    object_id = claims.object_id or client_info.uid or claims.subject
    tenant_id = claims.tenant_id or client_info.utid
    if not object_id or not tenant_id:
        raise TransportFailure(
            "Token response does not identify the account (missing object or tenant id)"
        )

    return AccountIdentity(
        environment=environment,
        object_id=object_id,
        tenant_id=tenant_id,
        policy=policy_tag or None,
        home_account_id=client_info.home_account_id,
        username=claims.username,
        name=claims.name,
    )

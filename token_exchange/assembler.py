"""
Authentication result assembly.

Turns a decoded success payload into an ``AuthenticationResult``. Both expiry
timestamps are computed from the single clock sample passed in, so they can
never drift apart.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .identity import AccountIdentity, build_account_identity, decode_id_token
from .responses import SuccessPayload

if TYPE_CHECKING:
    from .authority import Authority


@dataclass(frozen=True)
class AuthenticationResult:
    """
    Normalized result of a successful token exchange.

    Attributes:
        access_token: The access token.
        environment: Authority host the tokens were issued by.
        expires_on: Absolute expiry of the access token (epoch seconds).
        ext_expires_on: Absolute extended expiry (epoch seconds), or 0 when
            the server did not provide an extended lifetime.
        scopes: Granted scopes as returned by the server (space separated).
        refresh_token: Refresh token, if issued.
        id_token: Raw ID token string, if issued.
        family_id: Family-of-client-ids marker, if the client is in a family.
        account: Account identity, present only when both an ID token and
            client info were returned.
        token_type: Token type, usually "Bearer".
    """

    access_token: str
    environment: str
    expires_on: int
    ext_expires_on: int
    scopes: str = ""
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    family_id: Optional[str] = None
    account: Optional[AccountIdentity] = None
    token_type: str = "Bearer"

    @property
    def scope_list(self) -> list[str]:
        return self.scopes.split()

    def is_expired(self, now: int) -> bool:
        return now >= self.expires_on


def assemble_result(
    payload: SuccessPayload, captured_at: int, authority: "Authority"
) -> AuthenticationResult:
    """
    Build the authentication result for ``payload``.

    Args:
        payload: Decoded success response.
        captured_at: Wall-clock time (epoch seconds) sampled once for this exchange.
        authority: Authority the exchange was sent to.

    Raises:
        TransportFailure: If the ID token or client info cannot be decoded.
    """
    environment = authority.host()

    account = None
    claims = decode_id_token(payload.id_token) if payload.id_token else None
    if claims is not None and payload.client_info:
        account = build_account_identity(
            payload.client_info,
            claims,
            environment,
            policy_tag=authority.variant.policy_tag,
        )

    ext_expires_on = captured_at + payload.ext_expires_in if payload.ext_expires_in > 0 else 0

    return AuthenticationResult(
        access_token=payload.access_token,
        environment=environment,
        expires_on=captured_at + payload.expires_in,
        ext_expires_on=ext_expires_on,
        scopes=payload.scope,
        refresh_token=payload.refresh_token,
        id_token=payload.id_token,
        family_id=payload.foci,
        account=account,
        token_type=payload.token_type,
    )

"""
token-exchange-py: OAuth2/OIDC token-endpoint exchange core

This package performs one token-endpoint round trip for a prepared grant,
classifies the response, and returns either a normalized authentication
result (with a cache-ready account identity) or a precisely classified error.

Features:
    - Grants for authorization code, refresh token, client credentials,
      device code, username/password and on-behalf-of flows
    - Pluggable client authentication (secret, assertion, public client)
    - Response classification into Pending / InteractionRequired / ServiceError
    - Account identity derivation from ID token + client info, policy aware
    - Per-exchange diagnostic records, finalized exactly once

Example:
    Redeem a refresh token:

    >>> from token_exchange import (
    ...     Authority, PublicClient, RefreshTokenGrant, RequestHeaders, TokenExchanger
    ... )
    >>> exchanger = TokenExchanger()
    >>> result = exchanger.execute_exchange(
    ...     Authority.from_url("https://login.microsoftonline.com/contoso.com"),
    ...     RefreshTokenGrant("refresh-token", scopes=["User.Read"]),
    ...     RequestHeaders(),
    ...     PublicClient("client-id"),
    ... )

See Also:
    - `examples/device_code_polling.py` for reacting to classified errors
"""

from .version import __version__

from .assembler import AuthenticationResult, assemble_result
from .authority import Authority, AuthorityType, Plain, PolicyPartitioned
from .client_auth import (
    ClientAssertion,
    ClientAuthentication,
    ClientSecretBasic,
    ClientSecretPost,
    NoClientAuthentication,
    PublicClient,
)
from .exceptions import (
    AuthenticationErrorCode,
    ClassifiedError,
    ConfigurationError,
    InteractionRequired,
    Pending,
    ServiceError,
    TokenExchangeError,
    TransportFailure,
)
from .exchange import TokenExchanger, execute_exchange
from .grants import (
    AuthorizationCodeGrant,
    ClientCredentialsGrant,
    DeviceCodeGrant,
    Grant,
    OnBehalfOfGrant,
    RefreshTokenGrant,
    UsernamePasswordGrant,
)
from .headers import RequestHeaders
from .identity import AccountIdentity, IdTokenClaims
from .request import TokenExchangeRequest, build_request
from .settings import Settings
from .telemetry import DiagnosticRecord, TelemetryManager, TelemetryScope
from .transport import (
    HttpxTransport,
    RequestsTransport,
    TokenExchangeResponse,
    Transport,
)

__all__ = [
    "__version__",
    # exchange
    "TokenExchanger",
    "execute_exchange",
    "build_request",
    "TokenExchangeRequest",
    "TokenExchangeResponse",
    "AuthenticationResult",
    "assemble_result",
    # inputs
    "Authority",
    "AuthorityType",
    "Plain",
    "PolicyPartitioned",
    "Grant",
    "AuthorizationCodeGrant",
    "RefreshTokenGrant",
    "ClientCredentialsGrant",
    "DeviceCodeGrant",
    "UsernamePasswordGrant",
    "OnBehalfOfGrant",
    "ClientAuthentication",
    "PublicClient",
    "ClientSecretPost",
    "ClientSecretBasic",
    "ClientAssertion",
    "NoClientAuthentication",
    "RequestHeaders",
    "Settings",
    # identity
    "AccountIdentity",
    "IdTokenClaims",
    # transport
    "Transport",
    "RequestsTransport",
    "HttpxTransport",
    # telemetry
    "DiagnosticRecord",
    "TelemetryManager",
    "TelemetryScope",
    # errors
    "AuthenticationErrorCode",
    "TokenExchangeError",
    "ConfigurationError",
    "TransportFailure",
    "ClassifiedError",
    "Pending",
    "InteractionRequired",
    "ServiceError",
]

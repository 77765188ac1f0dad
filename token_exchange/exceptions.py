"""
Exception hierarchy for token-endpoint exchanges.

Every failure an exchange can produce is one of five kinds:

    ConfigurationError   - the request could not be built (no network call made)
    TransportFailure     - network, I/O, or response-parse failure
    Pending              - authorization_pending; caller should poll again later
    InteractionRequired  - claims challenge; caller must re-run interactively
    ServiceError         - any other non-200 token-endpoint response

None of these are handled inside the exchange. They are raised to the caller
once telemetry has been recorded.
"""

from enum import Enum
from typing import Optional


class AuthenticationErrorCode(str, Enum):
    """Well-known OAuth2 error codes returned by token endpoints"""

    AUTHORIZATION_PENDING = "authorization_pending"
    INTERACTION_REQUIRED = "interaction_required"
    INVALID_GRANT = "invalid_grant"
    INVALID_CLIENT = "invalid_client"
    INVALID_REQUEST = "invalid_request"
    INVALID_SCOPE = "invalid_scope"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    EXPIRED_TOKEN = "expired_token"
    SLOW_DOWN = "slow_down"
    ACCESS_DENIED = "access_denied"
    UNKNOWN = "unknown"


class TokenExchangeError(Exception):
    """Base exception for all token exchange errors, with optional machine-readable code."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ConfigurationError(TokenExchangeError):
    """Exchange configuration error (missing or malformed endpoint or settings)."""

    pass


class TransportFailure(TokenExchangeError):
    """Network, I/O, or response-parse failure."""

    pass


class ClassifiedError(TokenExchangeError):
    """
    A non-200 token-endpoint response classified by protocol meaning.

    Attributes:
        error_code: Normalized OAuth2 error code (never blank).
        description: Server-provided ``error_description``, if any.
        raw_body: The response body exactly as received.
        http_status: HTTP status code of the response.
        error_codes: Numeric service error codes (``error_codes``), if any.
        correlation_id: Server-echoed correlation id, if any.
        sub_error: Server-provided ``suberror``, if any.
    """

    def __init__(
        self,
        error_code: str,
        description: Optional[str],
        raw_body: str,
        http_status: int,
        error_codes: Optional[list[int]] = None,
        correlation_id: Optional[str] = None,
        sub_error: Optional[str] = None,
    ):
        message = f"{error_code}: {description}" if description else error_code
        super().__init__(message, error_code=error_code)
        self.description = description
        self.raw_body = raw_body
        self.http_status = http_status
        self.error_codes = error_codes or []
        self.correlation_id = correlation_id
        self.sub_error = sub_error


class Pending(ClassifiedError):
    """The user has not finished authorizing yet (device-code polling)."""

    pass


class InteractionRequired(ClassifiedError):
    """
    Conditional-access claims challenge.

    ``claims`` holds the server's ``claims`` value verbatim so it can be
    passed back in a follow-up interactive request.
    """

    def __init__(self, *args, claims: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.claims = claims


class ServiceError(ClassifiedError):
    """Any other token-endpoint error response."""

    pass

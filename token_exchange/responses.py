"""
Token-endpoint response classification.

A 200 response is decoded into a ``SuccessPayload``. Anything else is decoded
into ``ErrorDetails`` and classified, in this priority order:

    1. ``authorization_pending`` (any HTTP status)   -> Pending
    2. HTTP 400 with ``interaction_required``         -> InteractionRequired
    3. everything else                                -> ServiceError

``authorization_pending`` is matched regardless of status because some
servers return it with non-400 statuses while a device code is polled.
"""

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import (
    AuthenticationErrorCode,
    ClassifiedError,
    InteractionRequired,
    Pending,
    ServiceError,
    TransportFailure,
)
from .transport import TokenExchangeResponse

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_BAD_REQUEST = 400


class SuccessPayload(BaseModel):
    """Decoded OIDC token success response"""

    access_token: str
    expires_in: int
    token_type: str = "Bearer"
    ext_expires_in: int = 0
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    scope: str = ""
    client_info: Optional[str] = None
    foci: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("access_token")
    @classmethod
    def _access_token_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("access_token cannot be blank")
        return value

    @field_validator("ext_expires_in", mode="before")
    @classmethod
    def _absent_ext_expiry_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("scope", mode="before")
    @classmethod
    def _absent_scope_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("foci", mode="before")
    @classmethod
    def _foci_as_string(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class ErrorDetails(BaseModel):
    """Decoded OAuth2 error response"""

    error_code: str = ""
    description: Optional[str] = None
    http_status: int
    raw_body: str = ""
    claims: Optional[str] = None
    error_codes: list[int] = []
    correlation_id: Optional[str] = None
    sub_error: Optional[str] = None

    model_config = ConfigDict(frozen=True)


def parse_success(response: TokenExchangeResponse) -> SuccessPayload:
    """
    Decode a 200 response.

    Raises:
        TransportFailure: If the body is not JSON or lacks required fields
            (``access_token``, ``expires_in``).
    """
    data = response.json()
    try:
        return SuccessPayload.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise TransportFailure(f"Invalid token response, bad fields: {fields}") from e


def _claims_as_string(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def _int_list(value: Any) -> list[int]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, int) and not isinstance(v, bool)]


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def parse_error(response: TokenExchangeResponse) -> ErrorDetails:
    """
    Decode a non-200 response. Never raises: a body that is not a JSON object
    yields blank error details carrying the raw text.
    """
    try:
        data = response.json()
    except TransportFailure:
        logger.debug("Error response body is not a JSON object")
        data = {}

    return ErrorDetails(
        error_code=_optional_str(data.get("error")) or "",
        description=_optional_str(data.get("error_description")),
        http_status=response.status_code,
        raw_body=response.body,
        claims=_claims_as_string(data.get("claims")),
        error_codes=_int_list(data.get("error_codes")),
        correlation_id=_optional_str(data.get("correlation_id")),
        sub_error=_optional_str(data.get("suberror")),
    )


def classify_error(details: ErrorDetails) -> ClassifiedError:
    """Map error details to Pending, InteractionRequired or ServiceError."""
    common = dict(
        description=details.description,
        raw_body=details.raw_body,
        http_status=details.http_status,
        error_codes=details.error_codes,
        correlation_id=details.correlation_id,
        sub_error=details.sub_error,
    )

    if details.error_code == AuthenticationErrorCode.AUTHORIZATION_PENDING.value:
        return Pending(details.error_code, **common)

    if (
        details.http_status == HTTP_BAD_REQUEST
        and details.error_code == AuthenticationErrorCode.INTERACTION_REQUIRED.value
    ):
        return InteractionRequired(details.error_code, claims=details.claims, **common)

    code = details.error_code.strip() or AuthenticationErrorCode.UNKNOWN.value
    return ServiceError(code, **common)


def classify_response(response: TokenExchangeResponse) -> SuccessPayload:
    """
    Return the success payload of a 200 response, or raise the classified error.

    Raises:
        TransportFailure: Malformed success body.
        Pending, InteractionRequired, ServiceError: Non-200 responses.
    """
    if response.status_code == HTTP_OK:
        return parse_success(response)
    raise classify_error(parse_error(response))

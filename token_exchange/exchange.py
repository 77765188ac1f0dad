"""
Token-endpoint exchange.

``TokenExchanger.execute_exchange`` performs one round trip:

    1. open a telemetry scope
    2. build the request (grant + headers + client authentication)
    3. send it through the transport
    4. classify the response
    5. assemble the result, or raise the classified error

The telemetry scope is finalized exactly once on every path. Nothing here
retries or caches; the caller decides what to do with a Pending or
InteractionRequired error.
"""

import logging
import time
from typing import Callable, Optional

from .assembler import AuthenticationResult, assemble_result
from .authority import Authority
from .client_auth import ClientAuthentication
from .exceptions import ClassifiedError
from .grants import Grant
from .headers import RequestHeaders
from .logs import exception_details, log_message
from .request import TokenExchangeRequest
from .request import build_request as _build_request
from .responses import HTTP_OK, classify_error, parse_error, parse_success
from .settings import Settings
from .telemetry import DiagnosticRecord, TelemetryManager
from .transport import RequestsTransport, Transport

logger = logging.getLogger(__name__)


class TokenExchanger:
    """
    Runs token-endpoint exchanges.

    Args:
        transport: HTTP transport; defaults to ``RequestsTransport`` configured
            from settings.
        telemetry: Telemetry manager; defaults to one without sinks.
        settings: Configuration; defaults to ``Settings()``.
        clock: Returns the current time in epoch seconds. Sampled once per
            successful exchange.

    Example:
        >>> exchanger = TokenExchanger()
        >>> authority = Authority.from_url("https://login.microsoftonline.com/contoso.com")
        >>> result = exchanger.execute_exchange(
        ...     authority,
        ...     RefreshTokenGrant("rt", scopes=["User.Read"]),
        ...     RequestHeaders(),
        ...     PublicClient("my-client-id"),
        ... )
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        telemetry: Optional[TelemetryManager] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or Settings()
        self.settings.validate_configuration()
        self.transport = transport or RequestsTransport(
            timeout=self.settings.http_timeout_seconds,
            verify=self.settings.verify_ssl,
        )
        self.telemetry = telemetry or TelemetryManager(
            enabled=self.settings.telemetry_enabled
        )
        self.clock = clock

    def build_request(
        self,
        authority: Authority,
        grant: Grant,
        headers: Optional[RequestHeaders] = None,
        client_auth: Optional[ClientAuthentication] = None,
    ) -> TokenExchangeRequest:
        """Build the request without sending it, e.g. to reuse one request shape while polling."""
        return _build_request(authority, grant, headers, client_auth)

    def _create_record(self, authority: Authority, correlation_id: str) -> DiagnosticRecord:
        record = DiagnosticRecord(http_method="POST")
        try:
            record.set_target(authority.token_endpoint_url())
        except ValueError as e:
            logger.warning(
                log_message(
                    "Setting URL telemetry fields failed: "
                    + exception_details(e, self.settings.log_pii),
                    correlation_id,
                )
            )
        return record

    def execute_exchange(
        self,
        authority: Authority,
        grant: Grant,
        headers: Optional[RequestHeaders] = None,
        client_auth: Optional[ClientAuthentication] = None,
        client_id: Optional[str] = None,
    ) -> AuthenticationResult:
        """
        Exchange ``grant`` for tokens at the authority's token endpoint.

        Returns:
            AuthenticationResult for a 200 response.

        Raises:
            ConfigurationError: The authority has no well-formed token endpoint.
            TransportFailure: Network error or malformed success response.
            Pending: ``authorization_pending``; poll again later.
            InteractionRequired: Claims challenge; re-run interactively.
            ServiceError: Any other error response.
        """
        headers = headers or RequestHeaders(settings=self.settings)
        correlation_id = headers.correlation_id

        record = self._create_record(authority, correlation_id)

        with self.telemetry.create_scope(
            record, correlation_id=correlation_id, client_id=client_id
        ):
            request = _build_request(authority, grant, headers, client_auth)
            logger.debug(log_message(f"Sending token request to {record.http_path}", correlation_id))

            response = self.transport.send(request)
            record.record_response(response)

            if response.status_code != HTTP_OK:
                error: ClassifiedError = classify_error(parse_error(response))
                record.oauth_error_code = error.error_code
                logger.warning(
                    log_message(
                        f"Token request failed: {type(error).__name__} "
                        f"(error={error.error_code}, status={response.status_code})",
                        correlation_id,
                    )
                )
                raise error

            payload = parse_success(response)
            captured_at = int(self.clock())
            result = assemble_result(payload, captured_at, authority)

            logger.info(log_message("Token exchange succeeded", correlation_id))
            return result


_default_exchanger: Optional[TokenExchanger] = None


def get_default_exchanger() -> TokenExchanger:
    global _default_exchanger
    if _default_exchanger is None:
        _default_exchanger = TokenExchanger()
    return _default_exchanger


def execute_exchange(
    authority: Authority,
    grant: Grant,
    headers: Optional[RequestHeaders] = None,
    client_auth: Optional[ClientAuthentication] = None,
    client_id: Optional[str] = None,
) -> AuthenticationResult:
    """Run one exchange with the shared default ``TokenExchanger``."""
    return get_default_exchanger().execute_exchange(
        authority, grant, headers, client_auth, client_id=client_id
    )

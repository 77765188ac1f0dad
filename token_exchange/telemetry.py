"""
Exchange telemetry.

Every exchange records one ``DiagnosticRecord`` describing the HTTP round
trip. The record lives inside a ``TelemetryScope`` which is finalized exactly
once when the exchange ends, whichever way it ends.

Records only carry metadata: the request path (with user-looking segments
scrubbed), query parameter names, response status, a few response headers and
the OAuth error code. Token values are never recorded.
"""

import logging
import re
import time
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Iterable, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from .logs import log_message

if TYPE_CHECKING:
    from .transport import TokenExchangeResponse

logger = logging.getLogger(__name__)

USER_AGENT_HEADER = "User-Agent"
REQUEST_ID_HEADER = "x-ms-request-id"
CLIENT_TELEMETRY_HEADER = "x-ms-clitelem"

CLIENT_TELEMETRY_VERSION = "1"
_CLIENT_TELEMETRY_PATTERN = re.compile(
    r"^[1-9]+\.?[0-9|.]*,[0-9|.]*,[0-9|.]*,[^,]*[0-9.]*,[^,]*$"
)
USER_PATH_PLACEHOLDER = "<user>"


class ClientTelemetryInfo(BaseModel):
    """Fields of the server's ``x-ms-clitelem`` response header"""

    version: str
    server_error_code: str = ""
    server_sub_error_code: str = ""
    token_age: str = ""
    spe_info: str = ""

    model_config = ConfigDict(frozen=True)


def parse_client_telemetry(header_value: Optional[str]) -> Optional[ClientTelemetryInfo]:
    """
    Parse an ``x-ms-clitelem`` header value, e.g. ``1,0,0,,``.

    Layout: ``version,server_error_code,server_sub_error_code,token_age,spe_info``.
    Only version 1 is understood. Anything malformed yields None.
    """
    if not header_value or not header_value.strip():
        return None

    version = header_value.split(",", 1)[0]
    if version != CLIENT_TELEMETRY_VERSION:
        logger.warning(
            f"Client telemetry header version {version!r} does not match "
            f"expected version {CLIENT_TELEMETRY_VERSION!r}"
        )
        return None

    if not _CLIENT_TELEMETRY_PATTERN.match(header_value):
        logger.warning("Client telemetry header is malformed, ignoring it")
        return None

    fields = header_value.split(",", 4)
    fields += [""] * (5 - len(fields))
    return ClientTelemetryInfo(
        version=fields[0],
        server_error_code=fields[1],
        server_sub_error_code=fields[2],
        token_age=fields[3],
        spe_info=fields[4],
    )


def _scrubbed_path(url: Optional[str]) -> str:
    if not isinstance(url, str) or not url:
        raise ValueError("No URL to extract a path from")
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Cannot extract a path from {url!r}")
    segments = [
        USER_PATH_PLACEHOLDER if "@" in segment else segment
        for segment in parsed.path.split("/")
        if segment
    ]
    return "/".join([f"{parsed.scheme}://{parsed.netloc}"] + segments)


def _query_parameter_names(query: str) -> Optional[str]:
    names = [pair.split("=", 1)[0] for pair in query.split("&") if pair]
    return "&".join(names) if names else None


class DiagnosticRecord(BaseModel):
    """Telemetry event describing one token-endpoint round trip"""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_name: str = "http_event"
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: Optional[float] = None

    # Request
    http_method: Optional[str] = None
    http_path: Optional[str] = None
    query_parameters: Optional[str] = None

    # Response
    response_status: Optional[int] = None
    user_agent: Optional[str] = None
    request_id_header: Optional[str] = None
    client_telemetry: Optional[ClientTelemetryInfo] = None

    # Outcome
    oauth_error_code: Optional[str] = None

    # Context
    correlation_id: Optional[str] = None
    client_id: Optional[str] = None
    finalized: bool = False

    def set_target(self, url: Optional[str]) -> None:
        """
        Record the request path and query parameter names of ``url``.

        Raises:
            ValueError: If the URL has no scheme or host.
        """
        self.http_path = _scrubbed_path(url)
        query = urlparse(url).query
        if query:
            self.query_parameters = _query_parameter_names(query)

    def record_response(self, response: "TokenExchangeResponse") -> None:
        self.response_status = response.status_code

        user_agent = response.header(USER_AGENT_HEADER)
        if user_agent and user_agent.strip():
            self.user_agent = user_agent

        request_id = response.header(REQUEST_ID_HEADER)
        if request_id and request_id.strip():
            self.request_id_header = request_id

        telemetry_header = response.header(CLIENT_TELEMETRY_HEADER)
        if telemetry_header and telemetry_header.strip():
            info = parse_client_telemetry(telemetry_header)
            if info is not None:
                self.client_telemetry = info


TelemetrySink = Callable[[DiagnosticRecord], None]


class TelemetryScope:
    """
    Scope around one exchange. ``finalize`` runs once; later calls are no-ops.

    Use as a context manager; leaving the ``with`` block finalizes the scope
    and lets any exception propagate.
    """

    def __init__(
        self,
        record: DiagnosticRecord,
        sinks: Iterable[TelemetrySink] = (),
        enabled: bool = True,
    ):
        self.record = record
        self._sinks = list(sinks)
        self._enabled = enabled
        self._started = time.monotonic()
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        self.record.duration_ms = (time.monotonic() - self._started) * 1000
        self.record.finalized = True

        if not self._enabled:
            return
        for sink in self._sinks:
            try:
                sink(self.record)
            except Exception as e:
                logger.warning(
                    log_message(
                        f"Telemetry sink failed: {type(e).__name__}",
                        self.record.correlation_id,
                    )
                )

    def __enter__(self) -> "TelemetryScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.finalize()
        return False


class TelemetryManager:
    """Creates telemetry scopes and hands finalized records to registered sinks."""

    def __init__(self, sinks: Iterable[TelemetrySink] = (), enabled: bool = True):
        self._sinks: list[TelemetrySink] = list(sinks)
        self.enabled = enabled

    def add_sink(self, sink: TelemetrySink) -> None:
        self._sinks.append(sink)

    def create_scope(
        self,
        record: DiagnosticRecord,
        correlation_id: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> TelemetryScope:
        if correlation_id:
            record.correlation_id = correlation_id
        if client_id:
            record.client_id = client_id
        return TelemetryScope(record, sinks=self._sinks, enabled=self.enabled)

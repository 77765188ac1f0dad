"""
HTTP transports for token exchanges.

The exchange core only needs ``send(request) -> TokenExchangeResponse``. Two
implementations are provided: ``RequestsTransport`` (default) and
``HttpxTransport``. Neither retries; timeouts are the transport's own
concern.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import requests

from .exceptions import TransportFailure
from .request import TokenExchangeRequest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class TokenExchangeResponse:
    """Raw token-endpoint response."""

    status_code: int
    headers: tuple[tuple[str, str], ...] = ()
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    def json(self) -> dict[str, Any]:
        """
        Decode the body as a JSON object.

        Raises:
            TransportFailure: If the body is not a JSON object.
        """
        try:
            data = json.loads(self.body)
        except ValueError as e:
            raise TransportFailure(f"Response body is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise TransportFailure(
                f"Response body must be a JSON object, got {type(data).__name__}"
            )
        return data


class Transport(ABC):
    @abstractmethod
    def send(self, request: TokenExchangeRequest) -> TokenExchangeResponse:
        """Send ``request`` and return the raw response, or raise TransportFailure."""
        raise NotImplementedError()


class RequestsTransport(Transport):
    """Blocking transport built on a ``requests.Session``."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verify = verify

    def send(self, request: TokenExchangeRequest) -> TokenExchangeResponse:
        try:
            resp = self.session.request(
                request.method,
                request.url,
                headers=request.headers_dict(),
                data=request.body,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as e:
            logger.warning(f"Network error calling token endpoint: {type(e).__name__}")
            raise TransportFailure(f"Network error calling token endpoint: {e}") from e

        return TokenExchangeResponse(
            status_code=resp.status_code,
            headers=tuple(resp.headers.items()),
            body=resp.text,
        )


class HttpxTransport(Transport):
    """Blocking transport built on an ``httpx.Client``."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
    ):
        self.client = client or httpx.Client(timeout=timeout, verify=verify)
        self.timeout = timeout

    def send(self, request: TokenExchangeRequest) -> TokenExchangeResponse:
        try:
            resp = self.client.request(
                request.method,
                request.url,
                headers=request.headers_dict(),
                content=request.body.encode("utf-8"),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Network error calling token endpoint: {type(e).__name__}")
            raise TransportFailure(f"Network error calling token endpoint: {e}") from e

        return TokenExchangeResponse(
            status_code=resp.status_code,
            headers=tuple(resp.headers.items()),
            body=resp.text,
        )

    def close(self) -> None:
        self.client.close()

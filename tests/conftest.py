import base64
import json
import os
import sys

import pytest

# Ensure project root is on sys.path so tests can import the package under test
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from token_exchange.authority import Authority  # noqa: E402
from token_exchange.telemetry import TelemetryManager  # noqa: E402
from token_exchange.transport import TokenExchangeResponse, Transport  # noqa: E402

FIXED_NOW = 1_700_000_000


def b64url(data: dict) -> str:
    raw = json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def make_id_token(claims: dict) -> str:
    """Unsigned JWT with the given payload; only the middle segment matters to the exchange."""
    header = b64url({"alg": "none", "typ": "JWT"})
    signature = base64.urlsafe_b64encode(b"signature").decode("ascii").rstrip("=")
    return f"{header}.{b64url(claims)}.{signature}"


def json_response(status_code: int, body: dict, headers: dict = None) -> TokenExchangeResponse:
    return TokenExchangeResponse(
        status_code=status_code,
        headers=tuple((headers or {}).items()),
        body=json.dumps(body),
    )


class FakeTransport(Transport):
    """Transport returning a canned response and remembering what it was sent"""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.sent = []

    def send(self, request):
        self.sent.append(request)
        if self.error is not None:
            raise self.error
        return self.response


class CountingTelemetryManager(TelemetryManager):
    """Telemetry manager counting how often scopes are finalized"""

    def __init__(self):
        super().__init__()
        self.finalize_calls = 0
        self.scopes = []

    def create_scope(self, record, correlation_id=None, client_id=None):
        scope = super().create_scope(record, correlation_id, client_id)
        original = scope.finalize
        manager = self

        def counting_finalize():
            manager.finalize_calls += 1
            original()

        scope.finalize = counting_finalize
        self.scopes.append(scope)
        return scope


@pytest.fixture
def aad_authority():
    return Authority.from_url("https://login.microsoftonline.com/contoso.onmicrosoft.com")


@pytest.fixture
def b2c_authority():
    return Authority.from_url("https://contoso.b2clogin.com/tfp/contoso.onmicrosoft.com/p1")


@pytest.fixture
def client_info_blob():
    return b64url({"uid": "obj1", "utid": "tenant1"})


@pytest.fixture
def id_token():
    return make_id_token(
        {
            "tid": "tenant1",
            "oid": "obj1",
            "sub": "subject-1",
            "preferred_username": "user@contoso.com",
            "name": "Test User",
        }
    )

"""
End-to-end tests for TokenExchanger.

The transport is faked; telemetry is observed through a manager counting
finalize calls.
"""

import logging

import pytest
from conftest import (
    FIXED_NOW,
    CountingTelemetryManager,
    FakeTransport,
    json_response,
)

from token_exchange.authority import Authority
from token_exchange.client_auth import PublicClient
from token_exchange.exceptions import (
    ConfigurationError,
    InteractionRequired,
    Pending,
    ServiceError,
    TransportFailure,
)
from token_exchange.exchange import TokenExchanger
from token_exchange.grants import DeviceCodeGrant, RefreshTokenGrant
from token_exchange.headers import RequestHeaders
from token_exchange.settings import Settings


def make_exchanger(response=None, error=None, clock=lambda: FIXED_NOW):
    transport = FakeTransport(response=response, error=error)
    telemetry = CountingTelemetryManager()
    exchanger = TokenExchanger(transport=transport, telemetry=telemetry, clock=clock)
    return exchanger, transport, telemetry


def run(exchanger, authority, grant=None):
    return exchanger.execute_exchange(
        authority,
        grant or RefreshTokenGrant("rt", scopes=["User.Read"]),
        RequestHeaders(correlation_id="corr-42"),
        PublicClient("client-1"),
        client_id="client-1",
    )


class TestSuccess:
    """Successful exchanges"""

    def test_result_and_request(self, aad_authority):
        exchanger, transport, telemetry = make_exchanger(
            json_response(200, {"access_token": "AT1", "expires_in": 3600, "ext_expires_in": 0})
        )
        result = run(exchanger, aad_authority)

        assert result.access_token == "AT1"
        assert result.expires_on == FIXED_NOW + 3600
        assert result.ext_expires_on == 0
        assert result.account is None

        sent = transport.sent[0]
        assert sent.parameters()["client_id"] == ["client-1"]
        assert sent.parameters()["grant_type"] == ["refresh_token"]

        record = telemetry.scopes[0].record
        assert record.oauth_error_code is None
        assert record.response_status == 200
        assert record.correlation_id == "corr-42"
        assert record.client_id == "client-1"

    def test_clock_sampled_once(self, aad_authority):
        calls = []

        def clock():
            calls.append(1)
            return FIXED_NOW + len(calls)

        exchanger, _, _ = make_exchanger(
            json_response(200, {"access_token": "AT", "expires_in": 100, "ext_expires_in": 50}),
            clock=clock,
        )
        result = run(exchanger, aad_authority)

        assert len(calls) == 1
        assert result.ext_expires_on - result.expires_on == 50 - 100

    def test_account_identity_on_b2c(self, b2c_authority, id_token, client_info_blob):
        exchanger, _, _ = make_exchanger(
            json_response(
                200,
                {
                    "access_token": "AT",
                    "expires_in": 3600,
                    "id_token": id_token,
                    "client_info": client_info_blob,
                },
            )
        )
        result = run(exchanger, b2c_authority)
        assert result.environment == "contoso.b2clogin.com"
        assert result.account.key == ("contoso.b2clogin.com", "obj1", "tenant1", "p1")

    def test_repeated_exchanges_are_identical(self, aad_authority, id_token, client_info_blob):
        response = json_response(
            200,
            {
                "access_token": "AT",
                "expires_in": 3600,
                "ext_expires_in": 7200,
                "refresh_token": "RT",
                "id_token": id_token,
                "client_info": client_info_blob,
                "foci": "1",
            },
        )
        exchanger, _, _ = make_exchanger(response)
        assert run(exchanger, aad_authority) == run(exchanger, aad_authority)

    def test_response_headers_recorded(self, aad_authority):
        exchanger, _, telemetry = make_exchanger(
            json_response(
                200,
                {"access_token": "AT", "expires_in": 1},
                headers={
                    "user-agent": "server/1.0",
                    "X-MS-Request-Id": "req-9",
                    "x-ms-clitelem": "1,50076,0,,",
                },
            )
        )
        run(exchanger, aad_authority)

        record = telemetry.scopes[0].record
        assert record.user_agent == "server/1.0"
        assert record.request_id_header == "req-9"
        assert record.client_telemetry.server_error_code == "50076"
        assert record.http_method == "POST"
        assert record.http_path == (
            "https://login.microsoftonline.com/contoso.onmicrosoft.com/oauth2/v2.0/token"
        )


class TestClassifiedFailures:
    """Error responses raise the classified error and record its code"""

    def test_pending(self, aad_authority):
        exchanger, _, telemetry = make_exchanger(
            json_response(400, {"error": "authorization_pending", "error_description": "wait"})
        )
        with pytest.raises(Pending) as excinfo:
            run(exchanger, aad_authority, DeviceCodeGrant("dc"))
        assert excinfo.value.description == "wait"
        assert telemetry.scopes[0].record.oauth_error_code == "authorization_pending"

    def test_interaction_required(self, aad_authority):
        claims = '{"access_token":{"capolids":{"essential":true,"values":["c1"]}}}'
        exchanger, _, telemetry = make_exchanger(
            json_response(400, {"error": "interaction_required", "claims": claims})
        )
        with pytest.raises(InteractionRequired) as excinfo:
            run(exchanger, aad_authority)
        assert excinfo.value.claims == claims
        assert telemetry.scopes[0].record.oauth_error_code == "interaction_required"

    def test_service_error_unknown(self, aad_authority):
        exchanger, _, telemetry = make_exchanger(json_response(503, {}))
        with pytest.raises(ServiceError) as excinfo:
            run(exchanger, aad_authority)
        assert excinfo.value.error_code == "unknown"
        assert telemetry.scopes[0].record.oauth_error_code == "unknown"

    def test_failures_are_logged_without_tokens(self, aad_authority, caplog):
        exchanger, _, _ = make_exchanger(json_response(400, {"error": "invalid_grant"}))
        with caplog.at_level(logging.WARNING, logger="token_exchange"):
            with pytest.raises(ServiceError):
                run(exchanger, aad_authority)
        assert "[Correlation ID: corr-42]" in caplog.text
        assert "invalid_grant" in caplog.text
        assert "rt" not in caplog.text.split()


class TestTelemetryFinalization:
    """The diagnostic record is finalized exactly once on every path"""

    @pytest.mark.parametrize(
        "response,expected",
        [
            (json_response(200, {"access_token": "AT", "expires_in": 1}), None),
            (json_response(400, {"error": "authorization_pending"}), Pending),
            (json_response(400, {"error": "interaction_required"}), InteractionRequired),
            (json_response(500, {"error": "server_error"}), ServiceError),
            (json_response(200, {"expires_in": 1}), TransportFailure),
        ],
    )
    def test_finalized_once(self, aad_authority, response, expected):
        exchanger, _, telemetry = make_exchanger(response)
        if expected is None:
            run(exchanger, aad_authority)
        else:
            with pytest.raises(expected):
                run(exchanger, aad_authority)

        assert telemetry.finalize_calls == 1
        assert telemetry.scopes[0].record.finalized is True
        assert telemetry.scopes[0].record.duration_ms is not None

    def test_finalized_on_transport_error(self, aad_authority):
        exchanger, _, telemetry = make_exchanger(error=TransportFailure("connection reset"))
        with pytest.raises(TransportFailure):
            run(exchanger, aad_authority)
        assert telemetry.finalize_calls == 1
        assert telemetry.scopes[0].record.response_status is None

    def test_configuration_error_never_sends(self, caplog):
        exchanger, transport, telemetry = make_exchanger(
            json_response(200, {"access_token": "AT", "expires_in": 1})
        )
        with caplog.at_level(logging.WARNING, logger="token_exchange"):
            with pytest.raises(ConfigurationError):
                run(exchanger, Authority(canonical_url=""))

        assert transport.sent == []
        assert telemetry.finalize_calls == 1
        assert telemetry.scopes[0].record.http_path is None
        assert "Setting URL telemetry fields failed" in caplog.text

    def test_sinks_receive_finalized_record(self, aad_authority):
        received = []
        exchanger, _, telemetry = make_exchanger(json_response(400, {"error": "slow_down"}))
        telemetry.add_sink(received.append)

        with pytest.raises(ServiceError):
            run(exchanger, aad_authority)

        assert len(received) == 1
        assert received[0].oauth_error_code == "slow_down"
        assert received[0].finalized is True


def test_invalid_settings_rejected():
    with pytest.raises(ConfigurationError):
        TokenExchanger(transport=FakeTransport(), settings=Settings(http_timeout_seconds=0))

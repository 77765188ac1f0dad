import pytest
from conftest import FIXED_NOW

from token_exchange.assembler import assemble_result
from token_exchange.exceptions import TransportFailure
from token_exchange.responses import SuccessPayload


def payload(**overrides):
    data = {"access_token": "AT1", "expires_in": 3600, "ext_expires_in": 0}
    data.update(overrides)
    return SuccessPayload.model_validate(data)


def test_expiry_from_single_capture_time(aad_authority):
    result = assemble_result(payload(), FIXED_NOW, aad_authority)
    assert result.expires_on == FIXED_NOW + 3600
    assert result.ext_expires_on == 0


def test_extended_expiry_when_provided(aad_authority):
    result = assemble_result(payload(ext_expires_in=600), FIXED_NOW, aad_authority)
    assert result.ext_expires_on == FIXED_NOW + 600


def test_passthrough_fields(aad_authority, id_token):
    result = assemble_result(
        payload(refresh_token="RT", id_token=id_token, scope="a b", foci="1", token_type="pop"),
        FIXED_NOW,
        aad_authority,
    )
    assert result.access_token == "AT1"
    assert result.refresh_token == "RT"
    assert result.id_token == id_token
    assert result.scopes == "a b"
    assert result.scope_list == ["a", "b"]
    assert result.family_id == "1"
    assert result.token_type == "pop"
    assert result.environment == "login.microsoftonline.com"


def test_account_on_plain_authority(aad_authority, id_token, client_info_blob):
    result = assemble_result(
        payload(id_token=id_token, client_info=client_info_blob), FIXED_NOW, aad_authority
    )
    assert result.account is not None
    assert result.account.key == ("login.microsoftonline.com", "obj1", "tenant1", None)
    assert result.account.policy is None


def test_account_on_policy_partitioned_authority(
    aad_authority, b2c_authority, id_token, client_info_blob
):
    success = payload(id_token=id_token, client_info=client_info_blob)
    b2c = assemble_result(success, FIXED_NOW, b2c_authority).account
    plain = assemble_result(success, FIXED_NOW, aad_authority).account

    assert b2c.policy == "p1"
    assert (b2c.object_id, b2c.tenant_id) == ("obj1", "tenant1")
    assert b2c != plain


def test_no_client_info_means_no_account(aad_authority, id_token):
    result = assemble_result(payload(id_token=id_token), FIXED_NOW, aad_authority)
    assert result.account is None
    assert result.id_token == id_token


def test_no_id_token_means_no_account(aad_authority, client_info_blob):
    result = assemble_result(payload(client_info=client_info_blob), FIXED_NOW, aad_authority)
    assert result.account is None


def test_malformed_id_token_is_not_dropped(aad_authority, client_info_blob):
    with pytest.raises(TransportFailure):
        assemble_result(
            payload(id_token="garbage", client_info=client_info_blob), FIXED_NOW, aad_authority
        )


def test_malformed_id_token_without_client_info_is_transport_failure(aad_authority):
    with pytest.raises(TransportFailure):
        assemble_result(payload(id_token="garbage"), FIXED_NOW, aad_authority)


def test_deterministic_for_fixed_time(b2c_authority, id_token, client_info_blob):
    success = payload(
        id_token=id_token, client_info=client_info_blob, refresh_token="RT", ext_expires_in=10
    )
    first = assemble_result(success, FIXED_NOW, b2c_authority)
    second = assemble_result(success, FIXED_NOW, b2c_authority)
    assert first == second
    assert first.account.home_account_id == second.account.home_account_id


def test_is_expired(aad_authority):
    result = assemble_result(payload(expires_in=10), FIXED_NOW, aad_authority)
    assert not result.is_expired(FIXED_NOW + 9)
    assert result.is_expired(FIXED_NOW + 10)

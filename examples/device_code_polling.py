"""
Device-code polling with token-exchange-py.

The exchange core never retries. This example shows the caller-side loop
that a device-code flow needs: poll while the server answers Pending, stop
on success, and surface anything else.

To run this example:
    1. pip install -e .
    2. Obtain a device code from the authority's devicecode endpoint
    3. DEVICE_CODE=... CLIENT_ID=... python examples/device_code_polling.py
"""

import logging
import os
import time

from token_exchange import (
    Authority,
    DeviceCodeGrant,
    InteractionRequired,
    Pending,
    PublicClient,
    RequestHeaders,
    ServiceError,
    TokenExchanger,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 5
DEADLINE_SECONDS = 900


def poll_for_token(exchanger, authority, device_code, client_id):
    # One correlation id for the whole polling session
    headers = RequestHeaders()
    grant = DeviceCodeGrant(device_code, scopes=["User.Read"])
    client_auth = PublicClient(client_id)

    deadline = time.monotonic() + DEADLINE_SECONDS
    while time.monotonic() < deadline:
        try:
            return exchanger.execute_exchange(
                authority, grant, headers, client_auth, client_id=client_id
            )
        except Pending:
            time.sleep(POLL_INTERVAL_SECONDS)

    raise TimeoutError("User did not complete sign-in before the device code expired")


def main():
    exchanger = TokenExchanger()
    exchanger.telemetry.add_sink(
        lambda record: logger.info(
            "token request %s -> %s (%s)",
            record.http_path,
            record.response_status,
            record.oauth_error_code or "ok",
        )
    )
    authority = Authority.from_url("https://login.microsoftonline.com/organizations")

    try:
        result = poll_for_token(
            exchanger, authority, os.environ["DEVICE_CODE"], os.environ["CLIENT_ID"]
        )
    except InteractionRequired as e:
        print(f"Sign in interactively; claims challenge: {e.claims}")
        return
    except ServiceError as e:
        print(f"Token endpoint refused the request: {e.error_code} ({e.description})")
        return

    print(f"Signed in as {result.account.username if result.account else 'unknown'}")
    print(f"Access token expires at {result.expires_on}")


if __name__ == "__main__":
    main()

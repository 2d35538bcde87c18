import base64
import hashlib
import hmac
import threading
import time

import pytest
import requests

from azure_service_lab.core.transport.credentials import (
    ApiKeyCredential,
    ClientSecretCredential,
    SharedKeyCredential,
)
from azure_service_lab.core.transport.errors import AuthError, TransientNetworkError
from azure_service_lab.core.utils.misc import REDACTED, redact

from conftest import FakeSession, make_response


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _token_response(token, expires_in=3600):
    return make_response(200, {"access_token": token, "expires_in": expires_in, "token_type": "Bearer"})


def test_token_is_cached_until_expiry_then_fetched_exactly_once():
    session = FakeSession([_token_response("token-one"), _token_response("token-two")])
    clock = FakeClock()
    credential = ClientSecretCredential("tenant", "client", "secret-xyz", session=session,
                                        refresh_margin=300, clock=clock)

    assert credential.authorization() == "Bearer token-one"
    assert credential.authorization() == "Bearer token-one"
    assert len(session.requests) == 1

    # past expires_on - refresh_margin
    clock.now += 3600 - 300
    assert credential.authorization() == "Bearer token-two"
    assert credential.authorization() == "Bearer token-two"
    assert len(session.requests) == 2


def test_refreshed_token_replaces_the_old_one_in_the_log_redactor():
    session = FakeSession([_token_response("token-first-abc123"), _token_response("token-second-def456")])
    clock = FakeClock()
    credential = ClientSecretCredential("tenant", "client", "secret-xyz", session=session,
                                        refresh_margin=300, clock=clock)

    credential.get_token()
    assert redact("token-first-abc123") == REDACTED

    clock.now += 3600
    credential.get_token()

    assert redact("token-second-def456") == REDACTED
    assert redact("token-first-abc123") == "token-first-abc123"


def test_concurrent_first_use_fetches_a_single_token():
    def slow_token_endpoint(request):
        time.sleep(0.05)
        return _token_response("token-shared-789xyz")

    session = FakeSession(handler=slow_token_endpoint)
    credential = ClientSecretCredential("tenant", "client", "secret-xyz", session=session)
    barrier = threading.Barrier(6)
    tokens = []

    def use_credential():
        barrier.wait()
        tokens.append(credential.get_token().token)

    threads = [threading.Thread(target=use_credential) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert tokens == ["token-shared-789xyz"] * 6
    assert len(session.requests) == 1


def test_token_request_is_a_client_credentials_form_post():
    session = FakeSession([_token_response("token-one")])
    credential = ClientSecretCredential("tenant", "client", "secret-xyz", session=session)

    credential.get_token()

    request = session.requests[0]
    assert request.method == "POST"
    assert request.url == "https://login.microsoftonline.com/tenant/oauth2/v2.0/token"
    assert "grant_type=client_credentials" in request.body
    assert "scope=https%3A%2F%2Fmanagement.azure.com%2F.default" in request.body


def test_rejected_credential_raises_auth_error_with_description():
    session = FakeSession([make_response(401, {"error": "invalid_client",
                                               "error_description": "AADSTS7000215: Invalid client secret."})])
    credential = ClientSecretCredential("tenant", "client", "wrong-secret", session=session)

    with pytest.raises(AuthError) as excinfo:
        credential.get_token()

    assert excinfo.value.status == 401
    assert "AADSTS7000215" in excinfo.value.detail


def test_malformed_token_response_raises_auth_error():
    session = FakeSession([make_response(200, {"token_type": "Bearer"})])
    credential = ClientSecretCredential("tenant", "client", "secret-xyz", session=session)

    with pytest.raises(AuthError):
        credential.get_token()


def test_unreachable_identity_endpoint_is_transient():
    session = FakeSession([requests.ConnectionError("name resolution failed")])
    credential = ClientSecretCredential("tenant", "client", "secret-xyz", session=session)

    with pytest.raises(TransientNetworkError):
        credential.get_token()


def test_missing_identifiers_are_rejected():
    with pytest.raises(ValueError):
        ClientSecretCredential("tenant", "", "secret-xyz")


def test_repr_never_shows_the_secret():
    credential = ClientSecretCredential("tenant", "client", "very-secret-client-value", session=FakeSession())
    assert "very-secret-client-value" not in repr(credential)

    key = ApiKeyCredential("very-secret-api-key", header_name="api-key")
    assert "very-secret-api-key" not in repr(key)
    assert key.authorization() == "very-secret-api-key"


def test_shared_key_signature_covers_headers_and_canonical_resource():
    account_key = base64.b64encode(b"0123456789abcdef0123456789abcdef").decode("ascii")
    credential = SharedKeyCredential("acct", account_key)
    prepared = requests.Request(
        "PUT",
        "https://acct.blob.core.windows.net/uploads/report.txt?comp=block&blockid=QUFB",
        headers={
            "x-ms-date": "Sat, 17 Oct 2026 10:00:00 GMT",
            "x-ms-version": "2021-08-06",
            "Content-Type": "application/octet-stream",
        },
        data=b"abc",
    ).prepare()

    expected = (
        "PUT\n\n\n3\n\napplication/octet-stream\n\n\n\n\n\n\n"
        "x-ms-date:Sat, 17 Oct 2026 10:00:00 GMT\n"
        "x-ms-version:2021-08-06\n"
        "/acct/uploads/report.txt\nblockid:QUFB\ncomp:block"
    )
    assert credential.string_to_sign(prepared) == expected

    digest = hmac.new(b"0123456789abcdef0123456789abcdef", expected.encode("utf-8"), hashlib.sha256).digest()
    assert credential.authorization(prepared) == f"SharedKey acct:{base64.b64encode(digest).decode('ascii')}"


def test_shared_key_zero_content_length_is_signed_as_empty():
    account_key = base64.b64encode(b"k" * 32).decode("ascii")
    credential = SharedKeyCredential("acct", account_key)
    prepared = requests.Request("PUT", "https://acct.blob.core.windows.net/c/empty.txt",
                                headers={"Content-Length": "0"}).prepare()

    assert credential.string_to_sign(prepared).startswith("PUT\n\n\n\n")


def test_shared_key_rejects_a_key_that_is_not_base64():
    with pytest.raises(ValueError):
        SharedKeyCredential("acct", "not base64!!")

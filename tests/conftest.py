import base64
import json
import os
import sys
import threading

import pytest
import requests
from requests.structures import CaseInsensitiveDict


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


from azure_service_lab.core.transport.client import ApiClient  # noqa: E402
from azure_service_lab.core.transport.credentials import ApiKeyCredential  # noqa: E402
from azure_service_lab.core.utils.settings import AzureSettings  # noqa: E402


def make_response(status=200, body=None, headers=None, url=None) -> requests.Response:
    """Build a requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status
    if body is None:
        content = b""
    elif isinstance(body, bytes):
        content = body
    elif isinstance(body, str):
        content = body.encode("utf-8")
    else:
        content = json.dumps(body).encode("utf-8")
    response._content = content
    response.headers = CaseInsensitiveDict(headers or {})
    response.encoding = "utf-8"
    response.url = url
    return response


class FakeSession(requests.Session):
    """
    requests.Session that answers from a queue (or a handler) instead of the network.

    Queue items are Responses or exceptions (raised on send). Every prepared
    request is recorded together with the send() keyword arguments.
    """

    def __init__(self, responses=None, handler=None):
        super().__init__()
        self.responses = list(responses or [])
        self.handler = handler
        self.requests = []
        self.send_kwargs = []
        self._lock = threading.Lock()

    def queue(self, *args, **kwargs):
        self.responses.append(make_response(*args, **kwargs))
        return self

    def send(self, request, **kwargs):
        with self._lock:
            self.requests.append(request)
            self.send_kwargs.append(kwargs)
            if self.handler is None:
                if not self.responses:
                    raise AssertionError(f"Unexpected request: {request.method} {request.url}")
                item = self.responses.pop(0)
        if self.handler is not None:
            item = self.handler(request)
        if isinstance(item, Exception):
            raise item
        if item.url is None:
            item.url = request.url
        return item


def request_json(request):
    return json.loads(request.body.decode("utf-8") if isinstance(request.body, bytes) else request.body)


@pytest.fixture
def settings():
    return AzureSettings(
        subscription_id="sub-1",
        tenant_id="tenant-1",
        client_id="client-1",
        client_secret="client-secret-value",
        resource_group="rg1",
        openai_endpoint="https://example.openai.azure.com",
        openai_api_key="openai-key-value",
        openai_deployment="gpt-test",
        translator_key="translator-key-value",
        translator_region="eastasia",
        content_safety_endpoint="https://safety.example.com",
        content_safety_key="safety-key-value",
        storage_account="acct",
        storage_key=base64.b64encode(b"k" * 32).decode("ascii"),
        storage_container="uploads",
        poll_interval=5.0,
    )


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def arm_client(session):
    """Resource Manager client with a static bearer header."""
    return ApiClient(
        "https://management.azure.com",
        ApiKeyCredential("Bearer test-token", header_name="Authorization"),
        session=session,
    )

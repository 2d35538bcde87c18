# -*- coding: utf-8 -*-

"""
Typed request client.

``ApiClient`` is bound to one base endpoint and one credential. It
serializes request models to JSON, attaches the credential's header, sends
the request with a bounded timeout and decodes the response into a typed
model. Any status outside [200, 300) raises ``HTTPError`` carrying the status
code and the raw body verbatim.
"""

import json
import math
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import parse_qsl, urlparse

import requests

from ..utils.misc import redact
from .errors import DecodeError, HTTPError, TransientNetworkError
from .models import Model, to_wire
from .pager import Pager, arm_page_fetcher
from .poller import LROPoller, OperationHandle, arm_state, arm_status_fetcher, parse_retry_after

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "azure-service-lab/0.1.0"


@dataclass(frozen=True)
class ApiResponse:
    status: int
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError(f"Response from {self.url} is not valid JSON: {e}", body=self.text()) from e

    def header(self, name: str) -> str | None:
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return None


def decode_response(response: ApiResponse, response_type=None):
    """
    Decode a successful response.

    Args:
        response (ApiResponse): Response with a 2xx status.
        response_type: None for plain JSON, a Model subclass, or any callable
            taking the decoded JSON.

    Returns:
        The decoded payload, or None when the body is empty.
    """
    if not response.body or not response.body.strip():
        return None
    payload = response.json()
    if response_type is None:
        return payload
    if isinstance(response_type, type) and issubclass(response_type, Model):
        return response_type.from_wire(payload)
    try:
        return response_type(payload)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise DecodeError(f"Unexpected response shape from {response.url}: {e}", body=response.text()) from e


class ApiClient:
    """
    HTTP client for one Azure endpoint.

    Args:
        base_url (str): Endpoint root, e.g. "https://management.azure.com".
        credential: Credential provider, or None for anonymous calls.
        session (requests.Session): Optional session (connection pooling, tests).
        timeout (float): Per-request timeout in seconds. Must be finite and positive.
        default_params (dict): Query parameters added to every request whose
            URL does not already carry them (typically ``api-version``).
        headers (dict): Extra headers sent with every request.
    """

    def __init__(
        self,
        base_url: str,
        credential=None,
        *,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        default_params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ):
        if timeout is None or not math.isfinite(timeout) or timeout <= 0:
            raise ValueError(f"Request timeout must be a finite positive number of seconds, got {timeout!r}.")
        self.base_url = base_url.rstrip("/")
        self.credential = credential
        self.timeout = timeout
        self._session = session or requests.Session()
        self._default_params = dict(default_params or {})
        self._headers = {"User-Agent": USER_AGENT}
        self._headers.update(headers or {})

    def __repr__(self):
        return f"ApiClient(base_url={self.base_url!r}, credential={self.credential!r}, timeout={self.timeout})"

    def url_for(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return f"{self.base_url}/{path_or_url.lstrip('/')}"

    def _query_params(self, url: str, params: Mapping[str, Any] | None) -> dict:
        present = {name for name, _ in parse_qsl(urlparse(url).query, keep_blank_values=True)}
        query = {k: v for k, v in self._default_params.items() if k not in present}
        query.update({k: v for k, v in (params or {}).items() if v is not None})
        return query

    #=========================================================================
    # Requests
    #=========================================================================

    def request(self, method: str, url: str, body=None, *, params=None, headers=None) -> ApiResponse:
        """
        Send one request and return the raw response.

        Raises:
            HTTPError: Status outside [200, 300).
            TransientNetworkError: Connection-level failure or timeout.
        """
        full_url = self.url_for(url)
        request_headers = dict(self._headers)
        if self.credential is not None:
            request_headers.update(self.credential.required_headers())

        data = None
        if body is not None:
            if isinstance(body, (bytes, bytearray)):
                data = bytes(body)
            else:
                data = json.dumps(to_wire(body), ensure_ascii=False).encode("utf-8")
                request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})

        prepared = self._session.prepare_request(requests.Request(
            method=method.upper(),
            url=full_url,
            headers=request_headers,
            params=self._query_params(full_url, params),
            data=data,
        ))
        if self.credential is not None:
            prepared.headers[self.credential.header_name] = self.credential.authorization(prepared)

        logging.debug(f"{prepared.method} {redact(prepared.url)}")
        try:
            response = self._session.send(prepared, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientNetworkError(f"{prepared.method} {redact(full_url)} failed: {e}") from e

        api_response = ApiResponse(
            status=response.status_code,
            url=response.url or prepared.url,
            headers=dict(response.headers),
            body=response.content or b"",
        )
        logging.debug(f"{prepared.method} {redact(prepared.url)} -> {api_response.status}")
        if not 200 <= api_response.status < 300:
            raise HTTPError(api_response.status, api_response.text(), url=api_response.url)
        return api_response

    def send(self, method: str, url: str, body=None, *, params=None, headers=None, response_type=None):
        """
        Send a request and decode the response body.

        Args:
            method (str): HTTP verb.
            url (str): Absolute URL or path relative to base_url.
            body: Model, dict/list (sent as JSON), bytes (sent raw) or None.
            params (dict): Extra query parameters.
            headers (dict): Extra headers.
            response_type: See decode_response().

        Returns:
            The decoded response payload.
        """
        response = self.request(method, url, body, params=params, headers=headers)
        return decode_response(response, response_type)

    #=========================================================================
    # Long-Running Operations and Paging
    #=========================================================================

    def begin(self, method: str, url: str, body=None, *, params=None) -> OperationHandle:
        """
        Issue the initial call of a long-running operation.

        Returns:
            OperationHandle: Poll target derived from Azure-AsyncOperation,
                Location or, for PUT/PATCH without those headers, the resource
                URL itself when its provisioningState is not terminal yet.
        """
        method = method.upper()
        response = self.request(method, url, body, params=params)
        payload = decode_response(response)
        resource_url = response.url or self.url_for(url)
        async_url = response.header("Azure-AsyncOperation")
        location = response.header("Location")
        retry_after = parse_retry_after(response.headers)
        provisioning_state = None
        if isinstance(payload, dict):
            provisioning_state = (payload.get("properties") or {}).get("provisioningState")

        final_url = None
        if method in ("PUT", "PATCH"):
            final_url = resource_url
        elif method == "POST" and async_url and location:
            final_url = location

        if async_url:
            handle = OperationHandle(async_url, final_url, retry_after, "async", payload)
        elif location:
            handle = OperationHandle(location, final_url, retry_after, "location", payload)
        elif method in ("PUT", "PATCH") and provisioning_state and not arm_state(provisioning_state).is_terminal:
            handle = OperationHandle(resource_url, None, retry_after, "resource", payload)
        else:
            handle = OperationHandle(None, None, None, "done", payload)

        logging.debug(f"Began {method} operation, polling mode '{handle.mode}'")
        return handle

    def begin_poller(self, method: str, url: str, body=None, *, params=None, **poller_kwargs) -> LROPoller:
        """Begin an operation and return an ARM poller for it."""
        handle = self.begin(method, url, body, params=params)
        return LROPoller(arm_status_fetcher(self), handle, **poller_kwargs)

    def pages(self, url: str, item_type=None, params=None) -> Pager:
        """Return a Pager over a ``value``/``nextLink`` list endpoint."""
        return Pager(arm_page_fetcher(self, url, item_type=item_type, params=params))

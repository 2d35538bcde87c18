# -*- coding: utf-8 -*-

"""
Credential providers.

Every credential exposes the same small surface used by ``ApiClient``:

    header_name              -> name of the header the value goes into
    required_headers()       -> headers the request must carry before signing
    authorization(request)   -> header value for a prepared request

Three variants cover every service in this package:

    ClientSecretCredential   Microsoft Entra client-credentials grant (bearer token,
                             cached until expiry, refreshed lazily)
    ApiKeyCredential         Static API key (Cognitive Search, Translator, Content Safety)
    SharedKeyCredential      Azure Storage Shared Key, HMAC-signed per request
"""

import base64
import hashlib
import hmac
import logging
import threading
import time
from email.utils import formatdate
from typing import NamedTuple
from urllib.parse import parse_qsl, urlparse

import requests

from ..utils.misc import REDACTED, forget_secret, mask_secret, register_secret
from .errors import AuthError, TransientNetworkError

DEFAULT_AUTHORITY = "https://login.microsoftonline.com"
MANAGEMENT_SCOPE = "https://management.azure.com/.default"
STORAGE_API_VERSION = "2021-08-06"


class AccessToken(NamedTuple):
    token: str
    expires_on: float


#=============================================================================
# Bearer Token Credential
#=============================================================================

class ClientSecretCredential:
    """
    Exchanges a (tenant, client id, client secret) triple for a bearer token.

    The token is cached until ``expires_on - refresh_margin``; the next call
    after that point triggers exactly one new token request.
    """

    header_name = "Authorization"

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        scope: str = MANAGEMENT_SCOPE,
        authority: str = DEFAULT_AUTHORITY,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        refresh_margin: float = 300.0,
        clock=time.time,
    ):
        for name, value in (("tenant_id", tenant_id), ("client_id", client_id), ("client_secret", client_secret)):
            if not value:
                raise ValueError(f"ClientSecretCredential requires a non-empty {name}.")
        self.tenant_id = tenant_id
        self.client_id = client_id
        self._client_secret = client_secret
        self.scope = scope
        self.token_url = f"{authority.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self._session = session or requests.Session()
        self._timeout = timeout
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._token: AccessToken | None = None
        self._lock = threading.Lock()
        register_secret(client_secret)

    def __repr__(self):
        return (f"ClientSecretCredential(tenant_id={self.tenant_id!r}, client_id={self.client_id!r}, "
                f"client_secret={mask_secret(self._client_secret)!r})")

    def required_headers(self) -> dict:
        return {}

    def _is_fresh(self) -> bool:
        if self._token is None:
            return False
        return self._clock() < self._token.expires_on - self._refresh_margin

    def _fetch_token(self) -> AccessToken:
        logging.debug(f"Requesting access token for scope {self.scope}")
        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "scope": self.scope,
        }
        try:
            response = self._session.post(self.token_url, data=data, timeout=self._timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientNetworkError(f"Could not reach identity endpoint: {e}") from e

        if not 200 <= response.status_code < 300:
            detail = response.text
            try:
                payload = response.json()
                detail = payload.get("error_description") or payload.get("error") or detail
            except ValueError:
                pass
            raise AuthError(detail, status=response.status_code)

        try:
            payload = response.json()
            token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(f"Malformed token response: {e}", status=response.status_code) from e

        register_secret(token)
        access_token = AccessToken(token=token, expires_on=self._clock() + expires_in)
        logging.debug(f"Access token acquired, expires in {int(expires_in)} seconds")
        return access_token

    def get_token(self) -> AccessToken:
        """Return the cached token, fetching a new one when missing or expired."""
        with self._lock:
            if not self._is_fresh():
                previous = self._token
                self._token = self._fetch_token()
                if previous is not None and previous.token != self._token.token:
                    forget_secret(previous.token)
            return self._token

    def authorization(self, request=None) -> str:
        return f"Bearer {self.get_token().token}"


#=============================================================================
# Static Key Credentials
#=============================================================================

class ApiKeyCredential:
    """A fixed API key sent verbatim in a service-specific header."""

    def __init__(self, key: str, header_name: str = "api-key"):
        if not key:
            raise ValueError("ApiKeyCredential requires a non-empty key.")
        self._key = key
        self.header_name = header_name
        register_secret(key)

    def __repr__(self):
        return f"ApiKeyCredential(header_name={self.header_name!r}, key={mask_secret(self._key)!r})"

    def required_headers(self) -> dict:
        return {}

    def authorization(self, request=None) -> str:
        return self._key


class SharedKeyCredential:
    """
    Azure Storage Shared Key authorization.

    The signature covers the verb, the standard headers, every ``x-ms-*``
    header and the canonicalized resource, so it is recomputed per request.
    """

    header_name = "Authorization"

    def __init__(self, account_name: str, account_key: str, api_version: str = STORAGE_API_VERSION):
        if not account_name or not account_key:
            raise ValueError("SharedKeyCredential requires an account name and key.")
        try:
            self._key_bytes = base64.b64decode(account_key, validate=True)
        except ValueError as e:
            raise ValueError(f"Storage account key is not valid base64: {e}") from e
        self.account_name = account_name
        self.api_version = api_version
        register_secret(account_key)

    def __repr__(self):
        return f"SharedKeyCredential(account_name={self.account_name!r}, account_key='{REDACTED}')"

    def required_headers(self) -> dict:
        return {
            "x-ms-date": formatdate(usegmt=True),
            "x-ms-version": self.api_version,
        }

    def string_to_sign(self, request) -> str:
        headers = request.headers
        content_length = headers.get("Content-Length", "")
        if content_length == "0":
            content_length = ""

        standard = [
            request.method.upper(),
            headers.get("Content-Encoding", ""),
            headers.get("Content-Language", ""),
            content_length,
            headers.get("Content-MD5", ""),
            headers.get("Content-Type", ""),
            headers.get("Date", ""),
            headers.get("If-Modified-Since", ""),
            headers.get("If-Match", ""),
            headers.get("If-None-Match", ""),
            headers.get("If-Unmodified-Since", ""),
            headers.get("Range", ""),
        ]

        ms_headers = sorted(
            (name.lower().strip(), str(value).strip())
            for name, value in headers.items()
            if name.lower().startswith("x-ms-")
        )
        canonical_headers = "".join(f"{name}:{value}\n" for name, value in ms_headers)

        parsed = urlparse(request.url)
        canonical_resource = f"/{self.account_name}{parsed.path or '/'}"
        query = {}
        for name, value in parse_qsl(parsed.query, keep_blank_values=True):
            query.setdefault(name.lower(), []).append(value)
        for name in sorted(query):
            canonical_resource += f"\n{name}:{','.join(sorted(query[name]))}"

        return "\n".join(standard) + "\n" + canonical_headers + canonical_resource

    def authorization(self, request) -> str:
        digest = hmac.new(self._key_bytes, self.string_to_sign(request).encode("utf-8"), hashlib.sha256).digest()
        signature = base64.b64encode(digest).decode("ascii")
        return f"SharedKey {self.account_name}:{signature}"

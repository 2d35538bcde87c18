# -*- coding: utf-8 -*-

"""
Explicit configuration value.

All identifiers and secrets are read once into an immutable ``AzureSettings``
that is passed into every client factory and service call, so two settings
objects can coexist in the same process (tests, several subscriptions).
"""

import os
from dataclasses import dataclass, field, fields
from typing import Mapping

from .misc import mask_secret, register_secret

DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_OPENAI_API_VERSION = "2025-03-01-preview"

# attribute -> environment variable
ENV_VARS = {
    "subscription_id": "AZURE_SUBSCRIPTION_ID",
    "tenant_id": "AZURE_TENANT_ID",
    "client_id": "AZURE_CLIENT_ID",
    "client_secret": "AZURE_CLIENT_SECRET",
    "resource_group": "AZURE_RESOURCE_GROUP",
    "openai_endpoint": "AZURE_OPENAI_ENDPOINT",
    "openai_api_key": "AZURE_OPENAI_API_KEY",
    "openai_deployment": "AZURE_OPENAI_DEPLOYMENT",
    "openai_api_version": "AZURE_OPENAI_API_VERSION",
    "translator_key": "AZURE_TRANSLATOR_KEY",
    "translator_region": "AZURE_TRANSLATOR_REGION",
    "content_safety_endpoint": "AZURE_CONTENT_SAFETY_ENDPOINT",
    "content_safety_key": "AZURE_CONTENT_SAFETY_KEY",
    "storage_account": "AZURE_STORAGE_ACCOUNT",
    "storage_key": "AZURE_STORAGE_KEY",
    "storage_container": "AZURE_STORAGE_CONTAINER",
    "request_timeout": "AZLAB_REQUEST_TIMEOUT",
    "poll_interval": "AZLAB_POLL_INTERVAL",
}

SECRET_FIELDS = ("client_secret", "openai_api_key", "translator_key", "content_safety_key", "storage_key")


def _secret(**kwargs):
    return field(default=None, repr=False, **kwargs)


def _float_or_default(value, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


@dataclass(frozen=True)
class AzureSettings:
    subscription_id: str | None = None
    tenant_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = _secret()
    resource_group: str | None = None
    openai_endpoint: str | None = None
    openai_api_key: str | None = _secret()
    openai_deployment: str | None = None
    openai_api_version: str = DEFAULT_OPENAI_API_VERSION
    translator_key: str | None = _secret()
    translator_region: str | None = None
    content_safety_endpoint: str | None = None
    content_safety_key: str | None = _secret()
    storage_account: str | None = None
    storage_key: str | None = _secret()
    storage_container: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL

    def __post_init__(self):
        register_secret(*(getattr(self, name) or "" for name in SECRET_FIELDS))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AzureSettings":
        """
        Build settings from environment variables (see ENV_VARS).

        Args:
            environ (Mapping): Source mapping, defaults to os.environ.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name, env_var in ENV_VARS.items():
            raw = environ.get(env_var)
            if raw is None or raw.strip() == "":
                continue
            values[name] = raw.strip()

        values["request_timeout"] = _float_or_default(values.get("request_timeout"), DEFAULT_REQUEST_TIMEOUT)
        values["poll_interval"] = _float_or_default(values.get("poll_interval"), DEFAULT_POLL_INTERVAL)
        return cls(**values)

    def require(self, *names: str) -> None:
        """
        Raise ValueError naming the environment variables behind any unset attribute.
        """
        missing = [ENV_VARS.get(name, name) for name in names if not getattr(self, name)]
        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

    def redacted(self) -> dict:
        """Return all settings with secret values masked, safe to log or print."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = mask_secret(value) if f.name in SECRET_FIELDS else value
        return result

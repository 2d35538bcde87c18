# -*- coding: utf-8 -*-

import logging

import openai

from ..transport.client import ApiClient
from ..transport.credentials import (ApiKeyCredential, ClientSecretCredential,
                                     SharedKeyCredential, MANAGEMENT_SCOPE)
from .settings import AzureSettings

MANAGEMENT_ENDPOINT = "https://management.azure.com"
TRANSLATOR_ENDPOINT = "https://api.cognitive.microsofttranslator.com"


def create_management_credential(settings: AzureSettings) -> ClientSecretCredential:
    """
    Create the service-principal credential used against Azure Resource Manager.

    Args:
        settings (AzureSettings): Must carry tenant_id, client_id and client_secret.
    """
    settings.require("tenant_id", "client_id", "client_secret")
    return ClientSecretCredential(
        tenant_id=settings.tenant_id,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        scope=MANAGEMENT_SCOPE,
        timeout=settings.request_timeout,
    )


def create_management_client(settings: AzureSettings, credential=None, session=None) -> ApiClient:
    """
    Create an ApiClient for the Azure Resource Manager control plane.

    Args:
        settings (AzureSettings): Configuration; subscription_id is required.
        credential: Optional credential, defaults to the service-principal credential.
        session: Optional requests.Session.
    """
    settings.require("subscription_id")
    credential = credential or create_management_credential(settings)
    client = ApiClient(MANAGEMENT_ENDPOINT, credential, session=session, timeout=settings.request_timeout)
    logging.debug("Resource Manager client created.")
    return client


def create_translator_client(settings: AzureSettings, session=None) -> ApiClient:
    """Create an ApiClient for the Translator text API (key + region headers)."""
    settings.require("translator_key", "translator_region")
    return ApiClient(
        TRANSLATOR_ENDPOINT,
        ApiKeyCredential(settings.translator_key, header_name="Ocp-Apim-Subscription-Key"),
        session=session,
        timeout=settings.request_timeout,
        headers={"Ocp-Apim-Subscription-Region": settings.translator_region},
    )


def create_content_safety_client(settings: AzureSettings, session=None) -> ApiClient:
    """Create an ApiClient for the Content Safety text API."""
    settings.require("content_safety_endpoint", "content_safety_key")
    return ApiClient(
        settings.content_safety_endpoint,
        ApiKeyCredential(settings.content_safety_key, header_name="Ocp-Apim-Subscription-Key"),
        session=session,
        timeout=settings.request_timeout,
    )


def create_search_data_client(service_name: str, admin_key: str, settings: AzureSettings | None = None,
                              session=None) -> ApiClient:
    """Create an ApiClient for one Cognitive Search service's data plane."""
    timeout = settings.request_timeout if settings else 30.0
    return ApiClient(
        f"https://{service_name}.search.windows.net",
        ApiKeyCredential(admin_key, header_name="api-key"),
        session=session,
        timeout=timeout,
    )


def create_storage_client(account_name: str, account_key: str, timeout: float = 30.0, session=None) -> ApiClient:
    """Create an ApiClient for a storage account's blob endpoint (Shared Key)."""
    return ApiClient(
        f"https://{account_name}.blob.core.windows.net",
        SharedKeyCredential(account_name, account_key),
        session=session,
        timeout=timeout,
    )


def create_azure_openai_client(settings: AzureSettings):
    """
    Create an Azure OpenAI client for API calls.

    Args:
        settings (AzureSettings): Must carry openai_endpoint and openai_api_key.
    """
    settings.require("openai_endpoint", "openai_api_key")
    client = openai.AzureOpenAI(
        api_key=settings.openai_api_key,
        api_version=settings.openai_api_version,
        azure_endpoint=settings.openai_endpoint,
        timeout=settings.request_timeout,
    )
    logging.debug("Azure OpenAI client created successfully.")
    return client

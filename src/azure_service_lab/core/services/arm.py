# -*- coding: utf-8 -*-

"""
Helpers shared by the Resource Manager service callers.
"""

import logging
from urllib.parse import quote

from ..transport.client import ApiClient
from ..utils.settings import AzureSettings


def resolve_resource_group(settings: AzureSettings, resource_group: str | None = None) -> str:
    """Return the explicit resource group, falling back to AZURE_RESOURCE_GROUP."""
    resource_group = resource_group or settings.resource_group
    if not resource_group:
        raise ValueError("No resource group given and AZURE_RESOURCE_GROUP is not set.")
    return resource_group


def resource_url(settings: AzureSettings, resource_group: str, provider: str, *segments: str) -> str:
    """
    Build a resource path under a resource group.

    Example:
        resource_url(settings, "learn", "Microsoft.Network", "virtualNetworks", "vnet1")
        -> /subscriptions/<id>/resourceGroups/learn/providers/Microsoft.Network/virtualNetworks/vnet1
    """
    settings.require("subscription_id")
    path = (f"/subscriptions/{quote(settings.subscription_id)}"
            f"/resourceGroups/{quote(resource_group)}/providers/{provider}")
    for segment in segments:
        path += f"/{quote(segment)}"
    return path


def subscription_url(settings: AzureSettings, *segments: str) -> str:
    settings.require("subscription_id")
    path = f"/subscriptions/{quote(settings.subscription_id)}"
    for segment in segments:
        path += f"/{segment}"
    return path


def run_operation(client: ApiClient, settings: AzureSettings, method: str, url: str, body=None,
                  api_version: str | None = None, **poller_kwargs):
    """
    Begin a long-running operation and block until it is terminal.

    Args:
        client (ApiClient): Resource Manager client.
        settings (AzureSettings): Supplies the default poll interval.
        method (str): PUT, PATCH, POST or DELETE.
        url (str): Resource path.
        body: Request model, if any.
        api_version (str): Value of the api-version query parameter.
        poller_kwargs: Forwarded to LROPoller (sleep, cancel_event, deadline...).

    Returns:
        The final resource payload (None for deletes).
    """
    poller_kwargs.setdefault("interval", settings.poll_interval)
    params = {"api-version": api_version} if api_version else None
    poller = client.begin_poller(method, url, body, params=params, **poller_kwargs)
    payload = poller.result()
    logging.debug(f"{method} {url} finished after {poller.poll_count} status queries")
    return payload

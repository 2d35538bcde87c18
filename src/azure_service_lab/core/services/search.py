# -*- coding: utf-8 -*-

"""
Azure Cognitive Search management and index administration.

Management calls go to Resource Manager with a bearer token
(Microsoft.Search, api-version 2020-08-01). Index calls go to the service's
own endpoint ``https://<service>.search.windows.net`` with the admin
``api-key`` (api-version 2020-06-30).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from ..transport.client import ApiClient
from ..transport.errors import DecodeError
from ..transport.models import Model, wire
from ..transport.pager import Pager
from ..utils.settings import AzureSettings
from .arm import resolve_resource_group, resource_url, run_operation, subscription_url

SEARCH_MANAGEMENT_API_VERSION = "2020-08-01"
SEARCH_DATA_API_VERSION = "2020-06-30"
RESOURCE_GROUPS_API_VERSION = "2021-04-01"
CREATED_BY_TAG = "azure-service-lab"


#=============================================================================
# Management Models
#=============================================================================

@dataclass
class ResourceGroup(Model):
    name: str = wire("name")
    location: str | None = wire("location", omit_empty=True, default=None)
    id: str | None = wire("id", omit_empty=True, default=None)
    type: str | None = wire("type", omit_empty=True, default=None)


@dataclass
class SearchSku(Model):
    name: str = wire("name")


@dataclass
class SearchServiceProperties(Model):
    replica_count: int | None = wire("replicaCount", omit_empty=True, default=None)
    partition_count: int | None = wire("partitionCount", omit_empty=True, default=None)
    hosting_mode: str | None = wire("hostingMode", omit_empty=True, default=None)
    status: str | None = wire("status", omit_empty=True, default=None)
    status_details: str | None = wire("statusDetails", omit_empty=True, default=None)
    provisioning_state: str | None = wire("provisioningState", omit_empty=True, default=None)


@dataclass
class SearchService(Model):
    location: str = wire("location")
    sku: SearchSku | None = wire("sku", omit_empty=True, default=None)
    properties: SearchServiceProperties | None = wire("properties", omit_empty=True, default=None)
    tags: dict | None = wire("tags", omit_empty=True, default=None)
    id: str | None = wire("id", omit_empty=True, default=None)
    name: str | None = wire("name", omit_empty=True, default=None)
    type: str | None = wire("type", omit_empty=True, default=None)


@dataclass
class AdminKeys(Model):
    primary_key: str = wire("primaryKey")
    secondary_key: str | None = wire("secondaryKey", omit_empty=True, default=None)

    def __repr__(self):
        return "AdminKeys(primary_key=<hidden>, secondary_key=<hidden>)"


#=============================================================================
# Index Models
#=============================================================================

@dataclass
class SearchField(Model):
    name: str = wire("name")
    type: str = wire("type")
    key: bool = wire("key", omit_empty=True, default=False)
    searchable: bool = wire("searchable", omit_empty=True, default=False)
    filterable: bool = wire("filterable", omit_empty=True, default=False)
    sortable: bool = wire("sortable", omit_empty=True, default=False)
    facetable: bool = wire("facetable", omit_empty=True, default=False)
    retrievable: bool = wire("retrievable", omit_empty=True, default=False)
    analyzer_name: str | None = wire("analyzer", omit_empty=True, default=None)


@dataclass
class Suggester(Model):
    name: str = wire("name")
    source_fields: list[str] = wire("sourceFields", default_factory=list)
    search_mode: str = wire("searchMode", default="analyzingInfixMatching")


@dataclass
class CorsOptions(Model):
    allowed_origins: list[str] = wire("allowedOrigins", default_factory=list)
    max_age_in_seconds: int | None = wire("maxAgeInSeconds", omit_empty=True, default=None)


@dataclass
class SearchIndex(Model):
    name: str = wire("name")
    fields: list[SearchField] = wire("fields", default_factory=list)
    suggesters: list[Suggester] = wire("suggesters", omit_empty=True, default_factory=list)
    cors_options: CorsOptions | None = wire("corsOptions", omit_empty=True, default=None)


def default_index(name: str) -> SearchIndex:
    """Demo schema: a keyed document with title, content, category, rating and timestamp."""
    return SearchIndex(
        name=name,
        fields=[
            SearchField("id", "Edm.String", key=True, retrievable=True),
            SearchField("title", "Edm.String", searchable=True, filterable=True, sortable=True, retrievable=True),
            SearchField("content", "Edm.String", searchable=True, retrievable=True),
            SearchField("category", "Edm.String", searchable=True, filterable=True, sortable=True,
                        facetable=True, retrievable=True),
            SearchField("rating", "Edm.Int32", filterable=True, sortable=True, facetable=True, retrievable=True),
            SearchField("lastUpdated", "Edm.DateTimeOffset", filterable=True, sortable=True, retrievable=True),
        ],
        suggesters=[Suggester("sg", ["title", "category"])],
        cors_options=CorsOptions(allowed_origins=["*"], max_age_in_seconds=300),
    )


def _service_url(settings, resource_group, service_name, *segments):
    return resource_url(settings, resource_group, "Microsoft.Search", "searchServices", service_name, *segments)


def _management_params():
    return {"api-version": SEARCH_MANAGEMENT_API_VERSION}


#=============================================================================
# Management Plane
#=============================================================================

def list_resource_groups(client: ApiClient, settings: AzureSettings) -> Pager:
    url = subscription_url(settings, "resourcegroups")
    return client.pages(url, item_type=ResourceGroup, params={"api-version": RESOURCE_GROUPS_API_VERSION})


def list_search_services(client: ApiClient, settings: AzureSettings, resource_group: str | None = None) -> Pager:
    resource_group = resolve_resource_group(settings, resource_group)
    url = resource_url(settings, resource_group, "Microsoft.Search", "searchServices")
    return client.pages(url, item_type=SearchService, params=_management_params())


def get_search_service(client, settings, service_name: str, resource_group: str | None = None) -> SearchService:
    resource_group = resolve_resource_group(settings, resource_group)
    return client.send("GET", _service_url(settings, resource_group, service_name),
                       params=_management_params(), response_type=SearchService)


def _count_or_default(value) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 1
    return count if count >= 1 else 1


def create_search_service(
        client: ApiClient,
        settings: AzureSettings,
        service_name: str,
        location: str,
        resource_group: str | None = None,
        sku: str = "standard",
        replica_count=1,
        partition_count=1,
        wait: bool = False,
        created_at: datetime | None = None,
        **poller_kwargs
    ) -> SearchService:
    """
    Create a search service.

    Replica and partition counts below 1 (or not numbers at all) fall back to 1.
    Provisioning takes minutes; by default the call returns as soon as the
    request is accepted. Pass ``wait=True`` to block until it is terminal.

    Args:
        client (ApiClient): Resource Manager client.
        settings (AzureSettings): Configuration.
        service_name (str): Globally unique service name.
        location (str): Azure region.
        resource_group (str): Defaults to AZURE_RESOURCE_GROUP.
        sku (str): free, basic, standard, ...
        replica_count (int): Replicas.
        partition_count (int): Partitions.
        wait (bool): Poll until provisioning completes.
        created_at (datetime): Timestamp for the ``created-at`` tag, defaults to now.

    Returns:
        SearchService: The service as returned by the create call (or after provisioning).
    """
    resource_group = resolve_resource_group(settings, resource_group)
    created_at = created_at or datetime.now(timezone.utc)
    parameters = SearchService(
        location=location,
        sku=SearchSku(sku),
        properties=SearchServiceProperties(
            replica_count=_count_or_default(replica_count),
            partition_count=_count_or_default(partition_count),
            hosting_mode="default",
        ),
        tags={
            "created-by": CREATED_BY_TAG,
            "created-at": created_at.isoformat(timespec="seconds"),
        },
    )
    url = _service_url(settings, resource_group, service_name)

    logging.info(f"Creating search service {service_name} ({sku}) in {resource_group}...")
    if wait:
        payload = run_operation(client, settings, "PUT", url, parameters,
                                api_version=SEARCH_MANAGEMENT_API_VERSION, **poller_kwargs)
        logging.info(f"Search service {service_name} is ready.")
        return SearchService.from_wire(payload)

    service = client.send("PUT", url, parameters, params=_management_params(), response_type=SearchService)
    logging.info(f"Search service {service_name} creation submitted; provisioning takes a few minutes.")
    return service


def delete_search_service(client, settings, service_name: str, resource_group: str | None = None):
    resource_group = resolve_resource_group(settings, resource_group)
    logging.info(f"Deleting search service {service_name}...")
    client.send("DELETE", _service_url(settings, resource_group, service_name), params=_management_params())
    logging.info(f"Search service {service_name} deleted.")


def get_admin_key(client, settings, service_name: str, resource_group: str | None = None) -> str:
    """Return the primary admin key of a search service."""
    resource_group = resolve_resource_group(settings, resource_group)
    keys = client.send("POST", _service_url(settings, resource_group, service_name, "listAdminKeys"),
                       params=_management_params(), response_type=AdminKeys)
    if keys is None or not keys.primary_key:
        raise DecodeError(f"Search service {service_name} returned no admin key.")
    return keys.primary_key


#=============================================================================
# Data Plane (indexes)
#=============================================================================

def _data_params():
    return {"api-version": SEARCH_DATA_API_VERSION}


def list_indexes(data_client: ApiClient) -> list[SearchIndex]:
    body = data_client.send("GET", "/indexes", params=_data_params())
    if not isinstance(body, dict) or not isinstance(body.get("value"), list):
        raise DecodeError("Index list response has no 'value' array.", body=str(body))
    return [SearchIndex.from_wire(item) for item in body["value"]]


def create_index(data_client: ApiClient, index_name: str, index: SearchIndex | None = None) -> SearchIndex:
    """
    Create or update an index, using the demo schema unless one is given.

    Returns:
        SearchIndex: The index definition returned by the service (or the one
            sent when the service replies without a body).
    """
    index = index or default_index(index_name)
    logging.info(f"Creating index {index_name} with {len(index.fields)} fields...")
    created = data_client.send("PUT", f"/indexes/{index_name}", index,
                               params=_data_params(), response_type=SearchIndex)
    logging.info(f"Index {index_name} created.")
    return created or index


def delete_index(data_client: ApiClient, index_name: str):
    logging.info(f"Deleting index {index_name}...")
    data_client.send("DELETE", f"/indexes/{index_name}", params=_data_params())
    logging.info(f"Index {index_name} deleted.")

# -*- coding: utf-8 -*-

"""
AKS cluster and node pool lifecycle (Microsoft.ContainerService).
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from enum import Enum

from ..transport.client import ApiClient
from ..transport.errors import DecodeError
from ..transport.models import Model, wire
from ..transport.pager import Pager
from ..utils.settings import AzureSettings
from .arm import resolve_resource_group, resource_url, run_operation, subscription_url

AKS_API_VERSION = "2024-02-01"
DEFAULT_CLUSTER_NAME = "learn-ask-tmp1"
DEFAULT_VM_SIZE = "Standard_DS2_v2"


class AgentPoolMode(str, Enum):
    SYSTEM = "System"
    USER = "User"


class AgentPoolType(str, Enum):
    VIRTUAL_MACHINE_SCALE_SETS = "VirtualMachineScaleSets"
    AVAILABILITY_SET = "AvailabilitySet"


#=============================================================================
# Models
#=============================================================================

@dataclass
class AgentPoolProfile(Model):
    name: str = wire("name")
    count: int | None = wire("count", omit_empty=True, default=None)
    vm_size: str | None = wire("vmSize", omit_empty=True, default=None)
    mode: str | None = wire("mode", omit_empty=True, default=None)
    orchestrator_version: str | None = wire("orchestratorVersion", omit_empty=True, default=None)
    provisioning_state: str | None = wire("provisioningState", omit_empty=True, default=None)


@dataclass
class ServicePrincipalProfile(Model):
    client_id: str = wire("clientId")
    secret: str | None = wire("secret", omit_empty=True, default=None)

    def __repr__(self):
        return f"ServicePrincipalProfile(client_id={self.client_id!r}, secret=<hidden>)"


@dataclass
class ManagedClusterProperties(Model):
    dns_prefix: str | None = wire("dnsPrefix", omit_empty=True, default=None)
    kubernetes_version: str | None = wire("kubernetesVersion", omit_empty=True, default=None)
    agent_pool_profiles: list[AgentPoolProfile] = wire("agentPoolProfiles", omit_empty=True, default_factory=list)
    service_principal_profile: ServicePrincipalProfile | None = wire(
        "servicePrincipalProfile", omit_empty=True, default=None)
    provisioning_state: str | None = wire("provisioningState", omit_empty=True, default=None)
    fqdn: str | None = wire("fqdn", omit_empty=True, default=None)


@dataclass
class ManagedCluster(Model):
    location: str = wire("location")
    properties: ManagedClusterProperties | None = wire("properties", omit_empty=True, default=None)
    id: str | None = wire("id", omit_empty=True, default=None)
    name: str | None = wire("name", omit_empty=True, default=None)


@dataclass
class AgentPoolProperties(Model):
    count: int | None = wire("count", omit_empty=True, default=None)
    vm_size: str | None = wire("vmSize", omit_empty=True, default=None)
    mode: str | None = wire("mode", omit_empty=True, default=None)
    orchestrator_version: str | None = wire("orchestratorVersion", omit_empty=True, default=None)
    type: str | None = wire("type", omit_empty=True, default=None)
    provisioning_state: str | None = wire("provisioningState", omit_empty=True, default=None)


@dataclass
class AgentPool(Model):
    properties: AgentPoolProperties | None = wire("properties", omit_empty=True, default=None)
    id: str | None = wire("id", omit_empty=True, default=None)
    name: str | None = wire("name", omit_empty=True, default=None)


@dataclass
class CredentialResult(Model):
    name: str = wire("name")
    value: str = wire("value")

    def decoded(self) -> bytes:
        try:
            return base64.b64decode(self.value)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Kubeconfig '{self.name}' is not valid base64: {e}") from e


@dataclass
class CredentialResults(Model):
    kubeconfigs: list[CredentialResult] = wire("kubeconfigs", default_factory=list)


def _cluster_url(settings, resource_group, cluster_name, *segments):
    return resource_url(settings, resource_group, "Microsoft.ContainerService",
                        "managedClusters", cluster_name, *segments)


#=============================================================================
# Managed Clusters
#=============================================================================

def create_managed_cluster(
        client: ApiClient,
        settings: AzureSettings,
        cluster_name: str = DEFAULT_CLUSTER_NAME,
        resource_group: str | None = None,
        location: str = "eastus",
        node_count: int = 1,
        vm_size: str = DEFAULT_VM_SIZE,
        **poller_kwargs
    ) -> ManagedCluster:
    """
    Create an AKS cluster with a single system node pool and wait for it.

    The cluster authenticates to Azure with the same service principal the
    caller uses (client_id / client_secret from settings).

    Args:
        client (ApiClient): Resource Manager client.
        settings (AzureSettings): Configuration.
        cluster_name (str): Cluster name, also used as DNS prefix.
        resource_group (str): Defaults to AZURE_RESOURCE_GROUP.
        location (str): Azure region.
        node_count (int): Nodes in the system pool.
        vm_size (str): VM size of the system pool.

    Returns:
        ManagedCluster: The provisioned cluster.
    """
    resource_group = resolve_resource_group(settings, resource_group)
    settings.require("client_id", "client_secret")
    parameters = ManagedCluster(
        location=location,
        properties=ManagedClusterProperties(
            dns_prefix=cluster_name,
            agent_pool_profiles=[AgentPoolProfile(
                name="nodepool1",
                count=node_count,
                vm_size=vm_size,
                mode=AgentPoolMode.SYSTEM,
            )],
            service_principal_profile=ServicePrincipalProfile(
                client_id=settings.client_id,
                secret=settings.client_secret,
            ),
        ),
    )

    logging.info(f"Creating AKS cluster {cluster_name} in {resource_group} ({location})...")
    payload = run_operation(client, settings, "PUT", _cluster_url(settings, resource_group, cluster_name),
                            parameters, api_version=AKS_API_VERSION, **poller_kwargs)
    logging.info(f"Cluster {cluster_name} created successfully.")
    return ManagedCluster.from_wire(payload)


def delete_managed_cluster(client, settings, cluster_name=DEFAULT_CLUSTER_NAME, resource_group=None, **poller_kwargs):
    """Delete an AKS cluster and wait until the deletion is terminal."""
    resource_group = resolve_resource_group(settings, resource_group)
    logging.info(f"Deleting AKS cluster {cluster_name}...")
    run_operation(client, settings, "DELETE", _cluster_url(settings, resource_group, cluster_name),
                  api_version=AKS_API_VERSION, **poller_kwargs)
    logging.info(f"Cluster {cluster_name} deleted successfully.")


def list_managed_clusters(client: ApiClient, settings: AzureSettings) -> Pager:
    """List every AKS cluster in the subscription, lazily, page by page."""
    url = subscription_url(settings, "providers", "Microsoft.ContainerService", "managedClusters")
    return client.pages(url, item_type=ManagedCluster, params={"api-version": AKS_API_VERSION})


def list_cluster_user_credentials(client, settings, cluster_name=DEFAULT_CLUSTER_NAME, resource_group=None) -> list[bytes]:
    """
    Fetch the user kubeconfig(s) of a cluster.

    Returns:
        list[bytes]: Decoded kubeconfig documents.
    """
    resource_group = resolve_resource_group(settings, resource_group)
    url = _cluster_url(settings, resource_group, cluster_name, "listClusterUserCredential")
    results = client.send("POST", url, params={"api-version": AKS_API_VERSION}, response_type=CredentialResults)
    if results is None or not results.kubeconfigs:
        raise DecodeError(f"Cluster {cluster_name} returned no kubeconfig.")
    return [kubeconfig.decoded() for kubeconfig in results.kubeconfigs]


#=============================================================================
# Agent Pools
#=============================================================================

def create_agent_pool(
        client: ApiClient,
        settings: AzureSettings,
        pool_name: str = "userpool1",
        cluster_name: str = DEFAULT_CLUSTER_NAME,
        resource_group: str | None = None,
        count: int = 2,
        vm_size: str = DEFAULT_VM_SIZE,
        orchestrator_version: str | None = "1.30.10",
        **poller_kwargs
    ) -> AgentPool:
    """
    Add a user-mode node pool (virtual machine scale set) to a cluster and wait.

    Returns:
        AgentPool: The provisioned pool.
    """
    resource_group = resolve_resource_group(settings, resource_group)
    parameters = AgentPool(properties=AgentPoolProperties(
        count=count,
        vm_size=vm_size,
        mode=AgentPoolMode.USER,
        orchestrator_version=orchestrator_version,
        type=AgentPoolType.VIRTUAL_MACHINE_SCALE_SETS,
    ))

    logging.info(f"Creating node pool {pool_name} on cluster {cluster_name}...")
    url = _cluster_url(settings, resource_group, cluster_name, "agentPools", pool_name)
    payload = run_operation(client, settings, "PUT", url, parameters,
                            api_version=AKS_API_VERSION, **poller_kwargs)
    logging.info(f"Node pool {pool_name} created successfully.")
    return AgentPool.from_wire(payload)


def delete_agent_pool(client, settings, pool_name="userpool1", cluster_name=DEFAULT_CLUSTER_NAME,
                      resource_group=None, **poller_kwargs):
    """Delete a node pool and wait until the deletion is terminal."""
    resource_group = resolve_resource_group(settings, resource_group)
    logging.info(f"Deleting node pool {pool_name} from cluster {cluster_name}...")
    url = _cluster_url(settings, resource_group, cluster_name, "agentPools", pool_name)
    run_operation(client, settings, "DELETE", url, api_version=AKS_API_VERSION, **poller_kwargs)
    logging.info(f"Node pool {pool_name} deleted successfully.")


def list_agent_pools(client, settings, cluster_name=DEFAULT_CLUSTER_NAME, resource_group=None) -> Pager:
    resource_group = resolve_resource_group(settings, resource_group)
    url = _cluster_url(settings, resource_group, cluster_name, "agentPools")
    return client.pages(url, item_type=AgentPool, params={"api-version": AKS_API_VERSION})

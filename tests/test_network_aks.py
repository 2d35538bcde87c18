import base64
from dataclasses import replace

import pytest

from azure_service_lab.core.services import aks, network
from azure_service_lab.core.transport.errors import HTTPError, OperationFailed

from conftest import request_json

NSG_URL = ("https://management.azure.com/subscriptions/sub-1/resourceGroups/rg1/providers/"
           "Microsoft.Network/networkSecurityGroups/vm1-nsg?api-version=2023-09-01")


def _rule(name, direction):
    return {"name": name, "properties": {"protocol": "*", "access": "Allow", "priority": 100,
                                         "direction": direction, "provisioningState": "Succeeded"}}


def test_create_nsg_sends_two_open_rules_and_waits(arm_client, session, settings):
    final = {"name": "vm1-nsg", "location": "eastasia",
             "properties": {"provisioningState": "Succeeded",
                            "securityRules": [_rule("sample_inbound_22", "Inbound"),
                                              _rule("sample_outbound_22", "Outbound")]}}
    session.queue(201, {"name": "vm1-nsg", "location": "eastasia", "properties": {"provisioningState": "Updating"}},
                  headers={"Azure-AsyncOperation": "https://management.azure.com/ops/nsg1"})
    session.queue(200, {"status": "InProgress"})
    session.queue(200, {"status": "Succeeded"})
    session.queue(200, final)
    sleeps = []

    nsg = network.create_network_security_group(arm_client, settings, "vm1", sleep=sleeps.append)

    put = session.requests[0]
    assert put.method == "PUT"
    assert put.url == NSG_URL
    body = request_json(put)
    assert body["location"] == "eastasia"
    rules = body["properties"]["securityRules"]
    assert [r["name"] for r in rules] == ["sample_inbound_22", "sample_outbound_22"]
    assert [r["properties"]["direction"] for r in rules] == ["Inbound", "Outbound"]
    assert all(r["properties"]["access"] == "Allow" and r["properties"]["priority"] == 100
               and r["properties"]["protocol"] == "*" for r in rules)
    assert "id" not in body

    assert sleeps == [settings.poll_interval]
    assert session.requests[-1].url == NSG_URL
    assert nsg.name == "vm1-nsg"
    assert [r.name for r in nsg.properties.security_rules] == ["sample_inbound_22", "sample_outbound_22"]


def test_create_nsg_through_location_monitor_reads_the_resource(arm_client, session, settings):
    session.queue(202, headers={"Location": "https://management.azure.com/ops/nsg-monitor", "Retry-After": "2"})
    session.queue(202)
    session.queue(200)
    session.queue(200, {"name": "vm1-nsg", "location": "eastasia",
                        "properties": {"provisioningState": "Succeeded",
                                       "securityRules": [_rule("sample_inbound_22", "Inbound")]}})
    sleeps = []

    nsg = network.create_network_security_group(arm_client, settings, "vm1", sleep=sleeps.append)

    assert [(r.method, r.url) for r in session.requests[1:]] == [
        ("GET", "https://management.azure.com/ops/nsg-monitor"),
        ("GET", "https://management.azure.com/ops/nsg-monitor"),
        ("GET", NSG_URL),
    ]
    assert sleeps == [2.0, settings.poll_interval]
    assert nsg.name == "vm1-nsg"
    assert nsg.properties.provisioning_state == "Succeeded"


def test_failed_provisioning_surfaces_the_server_detail(arm_client, session, settings):
    session.queue(201, {"location": "eastasia"},
                  headers={"Azure-AsyncOperation": "https://management.azure.com/ops/nsg2"})
    session.queue(200, {"status": "Failed", "error": {"code": "QuotaExceeded", "message": "quota exceeded"}})

    with pytest.raises(OperationFailed) as excinfo:
        network.create_network_security_group(arm_client, settings, "vm1", sleep=lambda s: None)

    assert excinfo.value.detail == "quota exceeded"


def test_create_vnet_uses_the_default_address_space(arm_client, session, settings):
    session.queue(200, {"name": "vm1-vnet", "location": "eastasia",
                        "properties": {"provisioningState": "Succeeded",
                                       "addressSpace": {"addressPrefixes": ["10.1.0.0/16"]}}})

    name, vnet = network.create_virtual_network(arm_client, settings, "vm1")

    assert name == "vm1-vnet"
    assert request_json(session.requests[0])["properties"]["addressSpace"] == {"addressPrefixes": ["10.1.0.0/16"]}
    assert vnet.properties.address_space.address_prefixes == ["10.1.0.0/16"]


def test_missing_resource_group_is_a_configuration_error(arm_client, settings):
    with pytest.raises(ValueError):
        network.create_virtual_network(arm_client, replace(settings, resource_group=None), "vm1")


#=============================================================================
# AKS
#=============================================================================

def test_create_cluster_polls_the_resource_until_provisioned(arm_client, session, settings):
    session.queue(201, {"location": "eastus", "name": "learn-ask-tmp1",
                        "properties": {"provisioningState": "Creating"}})
    session.queue(200, {"location": "eastus", "properties": {"provisioningState": "Creating"}})
    session.queue(200, {"location": "eastus", "name": "learn-ask-tmp1",
                        "properties": {"provisioningState": "Succeeded", "fqdn": "demo.hcp.eastus.azmk8s.io"}})
    sleeps = []

    cluster = aks.create_managed_cluster(arm_client, settings, sleep=sleeps.append)

    body = request_json(session.requests[0])
    props = body["properties"]
    assert props["dnsPrefix"] == "learn-ask-tmp1"
    assert props["agentPoolProfiles"] == [{"name": "nodepool1", "count": 1,
                                           "vmSize": "Standard_DS2_v2", "mode": "System"}]
    assert props["servicePrincipalProfile"] == {"clientId": "client-1", "secret": "client-secret-value"}
    assert "managedClusters/learn-ask-tmp1?api-version=2024-02-01" in session.requests[0].url
    assert [r.method for r in session.requests] == ["PUT", "GET", "GET"]
    assert sleeps == [settings.poll_interval]
    assert cluster.properties.provisioning_state == "Succeeded"
    assert "client-secret-value" not in repr(cluster)


def test_delete_cluster_follows_location_header(arm_client, session, settings):
    session.queue(202, headers={"Location": "https://management.azure.com/ops/del1", "Retry-After": "1"})
    session.queue(202)
    session.queue(204)
    sleeps = []

    aks.delete_managed_cluster(arm_client, settings, "demo", sleep=sleeps.append)

    assert session.requests[0].method == "DELETE"
    assert sleeps == [1.0, settings.poll_interval]


def test_list_clusters_pages_through_next_link(arm_client, session, settings):
    session.queue(200, {"value": [{"name": "a", "location": "eastus"}, {"name": "b", "location": "westus"}],
                        "nextLink": "https://management.azure.com/next?page=2"})
    session.queue(200, {"value": [{"name": "c", "location": "eastus"}]})

    names = [cluster.name for cluster in aks.list_managed_clusters(arm_client, settings)]

    assert names == ["a", "b", "c"]
    assert session.requests[0].url == ("https://management.azure.com/subscriptions/sub-1/providers/"
                                       "Microsoft.ContainerService/managedClusters?api-version=2024-02-01")


def test_user_credentials_are_base64_decoded(arm_client, session, settings):
    kubeconfig = b"apiVersion: v1\nkind: Config\n"
    session.queue(200, {"kubeconfigs": [{"name": "clusterUser",
                                         "value": base64.b64encode(kubeconfig).decode("ascii")}]})

    configs = aks.list_cluster_user_credentials(arm_client, settings, "demo")

    assert configs == [kubeconfig]
    assert session.requests[0].method == "POST"
    assert "/managedClusters/demo/listClusterUserCredential?api-version=2024-02-01" in session.requests[0].url


def test_create_agent_pool_is_a_user_scale_set(arm_client, session, settings):
    session.queue(200, {"name": "userpool1", "properties": {"provisioningState": "Succeeded", "count": 2}})

    pool = aks.create_agent_pool(arm_client, settings, cluster_name="demo")

    body = request_json(session.requests[0])
    assert body == {"properties": {"count": 2, "vmSize": "Standard_DS2_v2", "mode": "User",
                                   "orchestratorVersion": "1.30.10", "type": "VirtualMachineScaleSets"}}
    assert "/managedClusters/demo/agentPools/userpool1?" in session.requests[0].url
    assert pool.properties.count == 2


def test_http_errors_from_the_begin_call_propagate(arm_client, session, settings):
    session.queue(409, '{"error":{"code":"Conflict"}}')

    with pytest.raises(HTTPError) as excinfo:
        aks.delete_agent_pool(arm_client, settings, cluster_name="demo")

    assert excinfo.value.status == 409

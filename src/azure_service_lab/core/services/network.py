# -*- coding: utf-8 -*-

"""
Network security groups and virtual networks (Microsoft.Network).
"""

import logging
from dataclasses import dataclass
from enum import Enum

from ..transport.client import ApiClient
from ..transport.models import Model, wire
from ..utils.settings import AzureSettings
from .arm import resolve_resource_group, resource_url, run_operation

NETWORK_API_VERSION = "2023-09-01"


class SecurityRuleProtocol(str, Enum):
    ANY = "*"
    TCP = "Tcp"
    UDP = "Udp"
    ICMP = "Icmp"


class SecurityRuleAccess(str, Enum):
    ALLOW = "Allow"
    DENY = "Deny"


class SecurityRuleDirection(str, Enum):
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"


#=============================================================================
# Models
#=============================================================================

@dataclass
class SecurityRuleProperties(Model):
    protocol: str = wire("protocol")
    access: str = wire("access")
    priority: int = wire("priority")
    direction: str = wire("direction")
    source_address_prefix: str | None = wire("sourceAddressPrefix", omit_empty=True, default=None)
    source_port_range: str | None = wire("sourcePortRange", omit_empty=True, default=None)
    destination_address_prefix: str | None = wire("destinationAddressPrefix", omit_empty=True, default=None)
    destination_port_range: str | None = wire("destinationPortRange", omit_empty=True, default=None)
    description: str | None = wire("description", omit_empty=True, default=None)
    provisioning_state: str | None = wire("provisioningState", omit_empty=True, default=None)


@dataclass
class SecurityRule(Model):
    name: str = wire("name")
    properties: SecurityRuleProperties | None = wire("properties", omit_empty=True, default=None)


@dataclass
class SecurityGroupProperties(Model):
    security_rules: list[SecurityRule] = wire("securityRules", omit_empty=True, default_factory=list)
    provisioning_state: str | None = wire("provisioningState", omit_empty=True, default=None)


@dataclass
class SecurityGroup(Model):
    location: str = wire("location")
    properties: SecurityGroupProperties | None = wire("properties", omit_empty=True, default=None)
    id: str | None = wire("id", omit_empty=True, default=None)
    name: str | None = wire("name", omit_empty=True, default=None)
    tags: dict | None = wire("tags", omit_empty=True, default=None)


@dataclass
class AddressSpace(Model):
    address_prefixes: list[str] = wire("addressPrefixes", default_factory=list)


@dataclass
class VirtualNetworkProperties(Model):
    address_space: AddressSpace | None = wire("addressSpace", omit_empty=True, default=None)
    provisioning_state: str | None = wire("provisioningState", omit_empty=True, default=None)


@dataclass
class VirtualNetwork(Model):
    location: str = wire("location")
    properties: VirtualNetworkProperties | None = wire("properties", omit_empty=True, default=None)
    id: str | None = wire("id", omit_empty=True, default=None)
    name: str | None = wire("name", omit_empty=True, default=None)
    tags: dict | None = wire("tags", omit_empty=True, default=None)


def open_rule(name: str, direction: SecurityRuleDirection, priority: int = 100, description: str = None) -> SecurityRule:
    """An Allow rule matching any protocol, port and address in one direction."""
    return SecurityRule(
        name=name,
        properties=SecurityRuleProperties(
            source_address_prefix="0.0.0.0/0",
            source_port_range="*",
            destination_address_prefix="0.0.0.0/0",
            destination_port_range="*",
            protocol=SecurityRuleProtocol.ANY,
            access=SecurityRuleAccess.ALLOW,
            priority=priority,
            description=description,
            direction=direction,
        ),
    )


#=============================================================================
# Operations
#=============================================================================

def create_network_security_group(
        client: ApiClient,
        settings: AzureSettings,
        vm_name: str,
        resource_group: str | None = None,
        location: str = "eastasia",
        **poller_kwargs
    ) -> SecurityGroup:
    """
    Create (or update) the network security group ``<vm_name>-nsg``.

    The group carries one inbound and one outbound rule allowing any traffic,
    and the call blocks until provisioning reaches a terminal state.

    Args:
        client (ApiClient): Resource Manager client.
        settings (AzureSettings): Configuration (subscription, poll interval).
        vm_name (str): Base name; the group is named "<vm_name>-nsg".
        resource_group (str): Target resource group, defaults to AZURE_RESOURCE_GROUP.
        location (str): Azure region.

    Returns:
        SecurityGroup: The provisioned group.
    """
    resource_group = resolve_resource_group(settings, resource_group)
    nsg_name = f"{vm_name}-nsg"
    parameters = SecurityGroup(
        location=location,
        properties=SecurityGroupProperties(security_rules=[
            open_rule("sample_inbound_22", SecurityRuleDirection.INBOUND,
                      description="Allow inbound traffic from any address and port"),
            open_rule("sample_outbound_22", SecurityRuleDirection.OUTBOUND,
                      description="Allow outbound traffic to any address and port"),
        ]),
    )

    logging.info(f"Creating network security group {nsg_name} in {resource_group} ({location})...")
    url = resource_url(settings, resource_group, "Microsoft.Network", "networkSecurityGroups", nsg_name)
    payload = run_operation(client, settings, "PUT", url, parameters,
                            api_version=NETWORK_API_VERSION, **poller_kwargs)
    logging.info(f"Network security group {nsg_name} is ready.")
    return SecurityGroup.from_wire(payload)


def create_virtual_network(
        client: ApiClient,
        settings: AzureSettings,
        vm_name: str,
        resource_group: str | None = None,
        location: str = "eastasia",
        address_prefixes=("10.1.0.0/16",),
        **poller_kwargs
    ) -> tuple[str, VirtualNetwork]:
    """
    Create (or update) the virtual network ``<vm_name>-vnet``.

    Returns:
        tuple: (network name, VirtualNetwork)
    """
    resource_group = resolve_resource_group(settings, resource_group)
    vnet_name = f"{vm_name}-vnet"
    parameters = VirtualNetwork(
        location=location,
        properties=VirtualNetworkProperties(
            address_space=AddressSpace(address_prefixes=list(address_prefixes))
        ),
    )

    logging.info(f"Creating virtual network {vnet_name} in {resource_group} ({location})...")
    url = resource_url(settings, resource_group, "Microsoft.Network", "virtualNetworks", vnet_name)
    payload = run_operation(client, settings, "PUT", url, parameters,
                            api_version=NETWORK_API_VERSION, **poller_kwargs)
    logging.info(f"Virtual network {vnet_name} is ready.")
    return vnet_name, VirtualNetwork.from_wire(payload)

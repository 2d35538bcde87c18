"""
Azure Service Lab - command-line demos for Azure control- and data-plane APIs

A small toolkit that drives a handful of Azure services from Python: network
security groups and virtual networks, AKS clusters, node pools and
workloads, blob upload, Azure OpenAI chat, Cognitive Search, Translator and
Content Safety. Every service caller is built on one shared transport core.

Package Structure:
    transport: Credentials, typed request client, long-running-operation
               poller and paged lister
    services:  One module per Azure service
    utils:     Settings, client factories, environment and log redaction

Example Usage:

    Long-running operation:
        import azure_service_lab as azlab

        settings = azlab.utils.settings.AzureSettings.from_env()
        client = azlab.utils.clients.create_management_client(settings)
        nsg = azlab.services.network.create_network_security_group(
            client, settings, vm_name="demo", resource_group="learn"
        )

    Paged listing:
        for cluster in azlab.services.aks.list_managed_clusters(client, settings):
            print(cluster.name)

    CLI Usage:
        $ azlab network nsg-create demo --resource-group learn
        $ azlab aks list
        $ azlab translate "Hello, world!" --to ko

Environment Setup:
    Credentials and identifiers are read from environment variables
    (AZURE_SUBSCRIPTION_ID, AZURE_TENANT_ID, AZURE_CLIENT_ID,
    AZURE_CLIENT_SECRET, ...). They can be set via .env files in:
    - Current working directory (.env, .env.local)
    - Project root directory
"""

__version__ = "0.1.0"

# Load environment on package import
from .core.utils.environment import setup_environment
setup_environment()

# Export core API modules
from . import core
transport = core.transport
services = core.services
utils = core.utils
AzureSettings = core.AzureSettings

__all__ = [
    '__version__',
    'transport',       # azlab.transport.*
    'services',        # azlab.services.*
    'utils',           # azlab.utils.*
    'AzureSettings',   # azlab.AzureSettings.from_env()
]

# Clean up namespace
del setup_environment, core

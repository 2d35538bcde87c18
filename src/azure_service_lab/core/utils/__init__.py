"""
Shared utilities for Azure Service Lab.

Submodules:
    settings:    AzureSettings, the explicit configuration value
    clients:     Client factories (Resource Manager, data planes, Azure OpenAI)
    misc:        Secret redaction and output helpers (internal)
    environment: .env loading and validation (internal)
"""

from . import settings   # AzureSettings
from . import clients    # Client factories

__all__ = [
    'settings',     # azlab.utils.settings.AzureSettings
    'clients',      # azlab.utils.clients.create_*_client
]

# Internal modules not exported:
# - misc (redaction, YAML output)
# - environment (internal environment setup)

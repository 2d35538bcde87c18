"""
Core functionality for Azure Service Lab.

Architecture:
    transport/  - Shared request machinery
      ├── credentials/ - Bearer token, API key and Shared Key credentials
      ├── client/      - Typed request client (ApiClient)
      ├── poller/      - Long-running-operation poller (LROPoller)
      ├── pager/       - Lazy paged lister (Pager)
      ├── models/      - Dataclass request/response models
      └── errors/      - Error hierarchy

    services/   - One caller module per Azure service
      ├── network/, aks/, kube/, blob/
      └── chat/, search/, translator/, content_safety/

    utils/      - Shared utilities and infrastructure
      ├── settings/    - Explicit configuration value (AzureSettings)
      ├── clients/     - Client factories
      ├── misc/        - Secret redaction, YAML output, paths (internal)
      └── environment/ - .env loading (internal)
"""

# utils first: the client factories pull in the transport package
from . import utils
from . import transport
from . import services

from .utils.settings import AzureSettings

__all__ = [
    'transport',     # Credentials, client, poller, pager, errors
    'services',      # Azure service callers
    'utils',         # Settings and client factories
    'AzureSettings', # Explicit configuration value
]

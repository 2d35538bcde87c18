"""
Azure service callers.

Each module builds the request for one service, sends it through the
transport core and returns typed results:

    network:        Network security groups and virtual networks
    aks:            AKS clusters, node pools and user kubeconfigs
    kube:           Deployments and services inside a cluster
    blob:           Block blob upload
    chat:           Azure OpenAI chat sessions
    search:         Cognitive Search services and indexes
    translator:     Text translation
    content_safety: Text moderation
"""

from . import network
from . import aks
from . import kube
from . import blob
from . import chat
from . import search
from . import translator
from . import content_safety

__all__ = [
    'network',
    'aks',
    'kube',
    'blob',
    'chat',
    'search',
    'translator',
    'content_safety',
]

# Internal modules not exported:
# - arm (resource paths and the blocking operation helper)

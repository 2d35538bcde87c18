"""
Command-line interface for Azure Service Lab.

Command Groups:
    network:   nsg-create, vnet-create
    aks:       create, delete, list, credentials
    nodepool:  create, delete, list
    deploy:    create, delete, list (Kubernetes workloads on a cluster)
    blob:      upload
    search:    groups, services, show, create, delete,
               indexes, create-index, delete-index
    safety:    analyze

Single Commands:
    chat:      Interactive Azure OpenAI chat
    translate: Translate a text

Environment Requirements:
    - AZURE_SUBSCRIPTION_ID, AZURE_TENANT_ID, AZURE_CLIENT_ID, AZURE_CLIENT_SECRET
      (network, aks, nodepool, deploy, search)
    - Service keys for chat, translate, safety and blob (see `azlab --help`)

Example Workflow:
    # 1. Create a cluster and a user node pool
    $ azlab aks create --name demo -g learn
    $ azlab nodepool -c demo -g learn create --count 2

    # 2. Deploy nginx behind a load balancer
    $ azlab deploy -c demo -g learn create --replicas 2

    # 3. Clean up
    $ azlab aks delete --name demo -g learn --yes

The CLI provides help for each command:
    $ azlab --help
    $ azlab search create --help
"""

from .cli import cli

__all__ = [
    'cli',  # Main CLI interface (Click command group)
]

# -*- coding: utf-8 -*-

import sys
import click
import logging
from pathlib import Path

import openai

from ..core.services import (
    aks,
    blob,
    chat,
    content_safety,
    kube,
    network,
    search,
    translator,
)
from ..core.utils.clients import (
    create_azure_openai_client,
    create_content_safety_client,
    create_management_client,
    create_search_data_client,
    create_storage_client,
    create_translator_client,
)
from ..core.utils.environment import setup_environment
from ..core.utils.misc import assert_required_path, mask_path, write_private_file
from ..core.utils.settings import AzureSettings
from .utils import (
    setup_logging,
    _validate_positive_integer_callback,
    _get_settings,
    _confirm_deletion,
    _reported_errors,
    _echo_yaml,
)


@click.group()
@click.option(
    '-v', '--verbose', is_flag=True,
    help='Enable verbose (DEBUG) logging'
)
@click.option(
    '-q', '--quiet', is_flag=True,
    help='Only show warnings and errors'
)
@click.option(
    '--env-file', type=click.Path(dir_okay=False), default=None,
    help='Load environment variables from this .env file.'
)
@click.pass_context
def cli(ctx, verbose, quiet, env_file):
    """
    Azure Service Lab CLI - drive Azure services from the command line.

    Create network security groups and virtual networks, manage AKS clusters,
    node pools and workloads, upload blobs, chat with an Azure OpenAI
    deployment, administer Cognitive Search, translate text and run content
    moderation.

    \b
    Credentials are read from environment variables (or a .env file):
    - AZURE_SUBSCRIPTION_ID, AZURE_TENANT_ID, AZURE_CLIENT_ID, AZURE_CLIENT_SECRET
    - AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_KEY, AZURE_OPENAI_DEPLOYMENT
    - AZURE_TRANSLATOR_KEY, AZURE_TRANSLATOR_REGION
    - AZURE_CONTENT_SAFETY_ENDPOINT, AZURE_CONTENT_SAFETY_KEY
    - AZURE_STORAGE_ACCOUNT, AZURE_STORAGE_KEY
    """
    # Set up logging first
    setup_logging(verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)
    if env_file:
        if not setup_environment(verbose=verbose, env_file=env_file):
            raise SystemExit(1)

    # Skip loading settings if --help/-h is requested
    if any(arg in sys.argv for arg in ['--help', '-h']):
        return

    if 'settings' not in ctx.obj:
        ctx.obj['settings'] = AzureSettings.from_env()
    logging.debug(f"Settings: {ctx.obj['settings'].redacted()}")


def _resource_group_option(func):
    return click.option(
        '-g', '--resource-group', default=None,
        help='Resource group (defaults to AZURE_RESOURCE_GROUP).'
    )(func)


#=======================================================================
# Network Commands
#=======================================================================

@cli.group(name='network')
def network_group():
    """Network security groups and virtual networks."""


@network_group.command(name='nsg-create')
@click.argument('vm_name')
@_resource_group_option
@click.option('--location', default='eastasia', show_default=True, help='Azure region.')
@click.pass_context
def nsg_create(ctx, vm_name, resource_group, location):
    """
    Create the network security group VM_NAME-nsg.

    The group allows any inbound and outbound traffic (rules
    sample_inbound_22 and sample_outbound_22, priority 100).
    """
    settings = _get_settings(ctx)
    with _reported_errors("Network security group creation"):
        client = create_management_client(settings)
        nsg = network.create_network_security_group(
            client, settings, vm_name, resource_group=resource_group, location=location
        )
    _echo_yaml(nsg)


@network_group.command(name='vnet-create')
@click.argument('vm_name')
@_resource_group_option
@click.option('--location', default='eastasia', show_default=True, help='Azure region.')
@click.option(
    '--address-prefix', 'address_prefixes', multiple=True, default=['10.1.0.0/16'], show_default=True,
    help='Address prefix of the network. Repeat for several prefixes.'
)
@click.pass_context
def vnet_create(ctx, vm_name, resource_group, location, address_prefixes):
    """Create the virtual network VM_NAME-vnet."""
    settings = _get_settings(ctx)
    with _reported_errors("Virtual network creation"):
        client = create_management_client(settings)
        name, vnet = network.create_virtual_network(
            client, settings, vm_name, resource_group=resource_group,
            location=location, address_prefixes=address_prefixes
        )
    logging.info(f"Virtual network {name} created.")
    _echo_yaml(vnet)


#=======================================================================
# AKS Commands
#=======================================================================

@cli.group(name='aks')
def aks_group():
    """AKS managed clusters."""


@aks_group.command(name='create')
@click.option('-n', '--name', default=aks.DEFAULT_CLUSTER_NAME, show_default=True, help='Cluster name.')
@_resource_group_option
@click.option('--location', default='eastus', show_default=True, help='Azure region.')
@click.option(
    '--node-count', type=int, default=1, show_default=True,
    callback=_validate_positive_integer_callback,
    help='Nodes in the system node pool.'
)
@click.option('--vm-size', default=aks.DEFAULT_VM_SIZE, show_default=True, help='Node VM size.')
@click.pass_context
def aks_create(ctx, name, resource_group, location, node_count, vm_size):
    """Create a cluster and wait until it is provisioned."""
    settings = _get_settings(ctx)
    with _reported_errors(f"Creation of cluster {name}"):
        client = create_management_client(settings)
        cluster = aks.create_managed_cluster(
            client, settings, cluster_name=name, resource_group=resource_group,
            location=location, node_count=node_count, vm_size=vm_size
        )
    _echo_yaml(cluster)


@aks_group.command(name='delete')
@click.option('-n', '--name', default=aks.DEFAULT_CLUSTER_NAME, show_default=True, help='Cluster name.')
@_resource_group_option
@click.option('--yes', is_flag=True, help='Do not ask for confirmation.')
@click.pass_context
def aks_delete(ctx, name, resource_group, yes):
    """Delete a cluster and wait until it is gone."""
    settings = _get_settings(ctx)
    _confirm_deletion(f"AKS cluster {name}", yes)
    with _reported_errors(f"Deletion of cluster {name}"):
        client = create_management_client(settings)
        aks.delete_managed_cluster(client, settings, cluster_name=name, resource_group=resource_group)


@aks_group.command(name='list')
@click.pass_context
def aks_list(ctx):
    """List every cluster in the subscription."""
    settings = _get_settings(ctx)
    with _reported_errors("Cluster listing"):
        client = create_management_client(settings)
        count = 0
        for cluster in aks.list_managed_clusters(client, settings):
            state = cluster.properties.provisioning_state if cluster.properties else None
            click.echo(f"{cluster.name}\t{cluster.location}\t{state or '-'}")
            count += 1
    logging.info(f"Found {count} cluster(s).")


@aks_group.command(name='credentials')
@click.option('-n', '--name', default=aks.DEFAULT_CLUSTER_NAME, show_default=True, help='Cluster name.')
@_resource_group_option
@click.option(
    '-o', '--output', type=click.Path(dir_okay=False), default='kubeconfig', show_default=True,
    help='File the user kubeconfig is written to.'
)
@click.pass_context
def aks_credentials(ctx, name, resource_group, output):
    """Save the cluster's user kubeconfig to a file (mode 600)."""
    settings = _get_settings(ctx)
    with _reported_errors(f"Credential retrieval for cluster {name}"):
        client = create_management_client(settings)
        kubeconfigs = aks.list_cluster_user_credentials(
            client, settings, cluster_name=name, resource_group=resource_group
        )
    output_path = Path(output)
    write_private_file(output_path, kubeconfigs[0])
    logging.info(f"Kubeconfig written to {mask_path(output_path)}")


#=======================================================================
# Node Pool Commands
#=======================================================================

@cli.group(name='nodepool')
@click.option('-c', '--cluster', default=aks.DEFAULT_CLUSTER_NAME, show_default=True, help='Cluster name.')
@_resource_group_option
@click.pass_context
def nodepool_group(ctx, cluster, resource_group):
    """User node pools of an AKS cluster."""
    ctx.obj['cluster'] = cluster
    ctx.obj['resource_group'] = resource_group


@nodepool_group.command(name='create')
@click.option('-n', '--name', default='userpool1', show_default=True, help='Node pool name.')
@click.option(
    '--count', type=int, default=2, show_default=True,
    callback=_validate_positive_integer_callback,
    help='Number of nodes.'
)
@click.option('--vm-size', default=aks.DEFAULT_VM_SIZE, show_default=True, help='Node VM size.')
@click.option('--kubernetes-version', default='1.30.10', show_default=True, help='Orchestrator version.')
@click.pass_context
def nodepool_create(ctx, name, count, vm_size, kubernetes_version):
    """Add a user node pool (scale set) and wait until it is provisioned."""
    settings = _get_settings(ctx)
    with _reported_errors(f"Creation of node pool {name}"):
        client = create_management_client(settings)
        pool = aks.create_agent_pool(
            client, settings, pool_name=name, cluster_name=ctx.obj['cluster'],
            resource_group=ctx.obj['resource_group'], count=count,
            vm_size=vm_size, orchestrator_version=kubernetes_version
        )
    _echo_yaml(pool)


@nodepool_group.command(name='delete')
@click.option('-n', '--name', default='userpool1', show_default=True, help='Node pool name.')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation.')
@click.pass_context
def nodepool_delete(ctx, name, yes):
    """Delete a node pool and wait until it is gone."""
    settings = _get_settings(ctx)
    _confirm_deletion(f"node pool {name}", yes)
    with _reported_errors(f"Deletion of node pool {name}"):
        client = create_management_client(settings)
        aks.delete_agent_pool(
            client, settings, pool_name=name, cluster_name=ctx.obj['cluster'],
            resource_group=ctx.obj['resource_group']
        )


@nodepool_group.command(name='list')
@click.pass_context
def nodepool_list(ctx):
    """List the node pools of the cluster."""
    settings = _get_settings(ctx)
    with _reported_errors("Node pool listing"):
        client = create_management_client(settings)
        for pool in aks.list_agent_pools(client, settings, cluster_name=ctx.obj['cluster'],
                                         resource_group=ctx.obj['resource_group']):
            props = pool.properties or aks.AgentPoolProperties()
            click.echo(f"{pool.name}\t{props.mode or '-'}\t{props.count or 0} x {props.vm_size or '-'}"
                       f"\t{props.provisioning_state or '-'}")


#=======================================================================
# Workload Commands
#=======================================================================

@cli.group(name='deploy')
@click.option('-c', '--cluster', default=aks.DEFAULT_CLUSTER_NAME, show_default=True, help='Cluster name.')
@_resource_group_option
@click.option(
    '--kubeconfig', type=click.Path(exists=True, dir_okay=False), default=None,
    help='Use this kubeconfig instead of fetching user credentials from AKS.'
)
@click.option('--namespace', default=kube.DEFAULT_NAMESPACE, show_default=True, help='Kubernetes namespace.')
@click.pass_context
def deploy_group(ctx, cluster, resource_group, kubeconfig, namespace):
    """Deployments and LoadBalancer services on an AKS cluster."""
    ctx.obj['cluster'] = cluster
    ctx.obj['resource_group'] = resource_group
    ctx.obj['kubeconfig'] = kubeconfig
    ctx.obj['namespace'] = namespace


def _kube_api_client(ctx):
    """Cluster client from --kubeconfig, or from the cluster's user credentials."""
    if ctx.obj.get('kubeconfig'):
        return kube.load_api_client(Path(ctx.obj['kubeconfig']).read_bytes())
    settings = _get_settings(ctx)
    client = create_management_client(settings)
    kubeconfigs = aks.list_cluster_user_credentials(
        client, settings, cluster_name=ctx.obj['cluster'], resource_group=ctx.obj['resource_group']
    )
    return kube.load_api_client(kubeconfigs[0])


@deploy_group.command(name='create')
@click.option('-n', '--name', default=kube.DEFAULT_DEPLOYMENT_NAME, show_default=True, help='Deployment name.')
@click.option(
    '--replicas', type=int, default=2, show_default=True,
    callback=_validate_positive_integer_callback,
    help='Number of pods.'
)
@click.option('--image', default=kube.DEFAULT_IMAGE, show_default=True, help='Container image.')
@click.pass_context
def deploy_create(ctx, name, replicas, image):
    """Create a deployment and expose it with a LoadBalancer service on port 80."""
    with _reported_errors(f"Deployment of {name}"):
        api_client = _kube_api_client(ctx)
        kube.create_deployment(api_client, name=name, replicas=replicas, image=image,
                               namespace=ctx.obj['namespace'])
        kube.create_service(api_client, name=name, namespace=ctx.obj['namespace'])


@deploy_group.command(name='delete')
@click.option('-n', '--name', default=kube.DEFAULT_DEPLOYMENT_NAME, show_default=True, help='Deployment name.')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation.')
@click.pass_context
def deploy_delete(ctx, name, yes):
    """Delete a deployment and its service."""
    _confirm_deletion(f"deployment {name}", yes)
    with _reported_errors(f"Deletion of {name}"):
        api_client = _kube_api_client(ctx)
        kube.delete_service(api_client, name=name, namespace=ctx.obj['namespace'])
        kube.delete_deployment(api_client, name=name, namespace=ctx.obj['namespace'])


@deploy_group.command(name='list')
@click.pass_context
def deploy_list(ctx):
    """List deployments in the namespace."""
    with _reported_errors("Deployment listing"):
        api_client = _kube_api_client(ctx)
        deployments = kube.list_deployments(api_client, namespace=ctx.obj['namespace'])
    for deployment in deployments:
        click.echo(f"{deployment.name}\t{deployment.replicas}\t{deployment.image or '-'}")
    logging.info(f"Found {len(deployments)} deployment(s) in namespace {ctx.obj['namespace']}.")


#=======================================================================
# Blob Commands
#=======================================================================

@cli.group(name='blob')
def blob_group():
    """Blob storage."""


@blob_group.command(name='upload')
@click.argument('file', type=click.Path(dir_okay=False))
@click.option('--container', default=None, help='Target container (defaults to AZURE_STORAGE_CONTAINER).')
@click.option('--blob-name', default=None, help='Blob name (defaults to the file name).')
@click.option(
    '--block-size', type=int, default=4, show_default=True,
    callback=_validate_positive_integer_callback,
    help='Block size in MiB.'
)
@click.option(
    '--concurrency', type=int, default=blob.DEFAULT_MAX_CONCURRENCY, show_default=True,
    callback=_validate_positive_integer_callback,
    help='Parallel block uploads.'
)
@click.pass_context
def blob_upload(ctx, file, container, blob_name, block_size, concurrency):
    """Upload FILE as a block blob."""
    settings = _get_settings(ctx)
    try:
        assert_required_path(file, "Upload file")
    except FileNotFoundError:
        raise SystemExit(1)

    container = container or settings.storage_container
    if not container:
        logging.error("No container given. Use --container or set AZURE_STORAGE_CONTAINER.")
        raise SystemExit(1)

    with _reported_errors(f"Upload of {Path(file).name}"):
        settings.require("storage_account", "storage_key")
        client = create_storage_client(settings.storage_account, settings.storage_key,
                                       timeout=settings.request_timeout)
        result = blob.upload_file(
            client, file, container, blob_name=blob_name,
            block_size=block_size * 1024 * 1024, max_concurrency=concurrency
        )
    click.echo(f"Uploaded {result.size} bytes to {result.container}/{result.blob_name} (etag {result.etag})")


#=======================================================================
# Chat Command
#=======================================================================

@cli.command(name='chat')
@click.option('--system-prompt', default=chat.DEFAULT_SYSTEM_PROMPT, help='System message opening the conversation.')
@click.option(
    '--max-completion-tokens', type=int, default=chat.DEFAULT_MAX_COMPLETION_TOKENS, show_default=True,
    callback=_validate_positive_integer_callback,
    help='Maximum number of tokens per reply.'
)
@click.pass_context
def chat_command(ctx, system_prompt, max_completion_tokens):
    """
    Interactive chat with the Azure OpenAI deployment.

    Type 'exit' or 'quit' (or send EOF) to leave.
    """
    settings = _get_settings(ctx)
    with _reported_errors("Chat setup"):
        settings.require("openai_deployment")
        client = create_azure_openai_client(settings)
    session = chat.ChatSession(client, settings.openai_deployment, system_prompt=system_prompt,
                               max_completion_tokens=max_completion_tokens)

    click.echo("Azure OpenAI chat. Type 'exit' or 'quit' to leave.")
    click.echo("-" * 30)
    while True:
        try:
            text = click.prompt("You", prompt_suffix=": ")
        except click.Abort:
            break
        if chat.is_exit_command(text):
            break

        try:
            reply = session.ask(text)
        except openai.OpenAIError as e:
            logging.error(f"Chat completion failed: {e}")
            continue

        if reply is None:
            click.echo("AI: Sorry, I could not generate a reply.")
        else:
            click.echo(f"AI: {reply}")


#=======================================================================
# Search Commands
#=======================================================================

@cli.group(name='search')
def search_group():
    """Cognitive Search services and indexes."""


@search_group.command(name='groups')
@click.pass_context
def search_groups(ctx):
    """List resource groups in the subscription."""
    settings = _get_settings(ctx)
    with _reported_errors("Resource group listing"):
        client = create_management_client(settings)
        for group in search.list_resource_groups(client, settings):
            click.echo(f"{group.name}\t{group.location or '-'}")


@search_group.command(name='services')
@_resource_group_option
@click.pass_context
def search_services(ctx, resource_group):
    """List search services in a resource group."""
    settings = _get_settings(ctx)
    with _reported_errors("Search service listing"):
        client = create_management_client(settings)
        for service in search.list_search_services(client, settings, resource_group=resource_group):
            sku = service.sku.name if service.sku else '-'
            status = service.properties.status if service.properties else None
            click.echo(f"{service.name}\t{service.location}\t{sku}\t{status or '-'}")


@search_group.command(name='show')
@click.argument('service_name')
@_resource_group_option
@click.pass_context
def search_show(ctx, service_name, resource_group):
    """Show the details of a search service."""
    settings = _get_settings(ctx)
    with _reported_errors(f"Lookup of search service {service_name}"):
        client = create_management_client(settings)
        service = search.get_search_service(client, settings, service_name, resource_group=resource_group)
    _echo_yaml(service)


@search_group.command(name='create')
@click.argument('service_name')
@_resource_group_option
@click.option('--location', required=True, help='Azure region.')
@click.option(
    '--sku', default='standard', show_default=True,
    type=click.Choice(['free', 'basic', 'standard', 'standard2', 'standard3',
                       'storage_optimized_l1', 'storage_optimized_l2'], case_sensitive=False),
    help='Pricing tier.'
)
@click.option('--replicas', type=int, default=1, show_default=True, help='Replica count (values below 1 become 1).')
@click.option('--partitions', type=int, default=1, show_default=True, help='Partition count (values below 1 become 1).')
@click.option('--wait', is_flag=True, help='Wait until provisioning completes.')
@click.pass_context
def search_create(ctx, service_name, resource_group, location, sku, replicas, partitions, wait):
    """Create a search service."""
    settings = _get_settings(ctx)
    with _reported_errors(f"Creation of search service {service_name}"):
        client = create_management_client(settings)
        service = search.create_search_service(
            client, settings, service_name, location, resource_group=resource_group,
            sku=sku.lower(), replica_count=replicas, partition_count=partitions, wait=wait
        )
    if service is not None:
        _echo_yaml(service)


@search_group.command(name='delete')
@click.argument('service_name')
@_resource_group_option
@click.option('--yes', is_flag=True, help='Do not ask for confirmation.')
@click.pass_context
def search_delete(ctx, service_name, resource_group, yes):
    """Delete a search service. This cannot be undone."""
    settings = _get_settings(ctx)
    _confirm_deletion(f"search service {service_name}", yes)
    with _reported_errors(f"Deletion of search service {service_name}"):
        client = create_management_client(settings)
        search.delete_search_service(client, settings, service_name, resource_group=resource_group)


def _search_data_client(ctx, service_name, resource_group):
    settings = _get_settings(ctx)
    management = create_management_client(settings)
    admin_key = search.get_admin_key(management, settings, service_name, resource_group=resource_group)
    return create_search_data_client(service_name, admin_key, settings)


@search_group.command(name='indexes')
@click.argument('service_name')
@_resource_group_option
@click.pass_context
def search_indexes(ctx, service_name, resource_group):
    """List the indexes of a search service."""
    with _reported_errors(f"Index listing on {service_name}"):
        data_client = _search_data_client(ctx, service_name, resource_group)
        indexes = search.list_indexes(data_client)
    for index in indexes:
        click.echo(f"{index.name}\t{len(index.fields)} fields")
        for field in index.fields:
            click.echo(f"  - {field.name} ({field.type})")


@search_group.command(name='create-index')
@click.argument('service_name')
@click.argument('index_name')
@_resource_group_option
@click.pass_context
def search_create_index(ctx, service_name, index_name, resource_group):
    """Create INDEX_NAME on SERVICE_NAME with the demo schema."""
    with _reported_errors(f"Creation of index {index_name}"):
        data_client = _search_data_client(ctx, service_name, resource_group)
        index = search.create_index(data_client, index_name)
    _echo_yaml(index)


@search_group.command(name='delete-index')
@click.argument('service_name')
@click.argument('index_name')
@_resource_group_option
@click.option('--yes', is_flag=True, help='Do not ask for confirmation.')
@click.pass_context
def search_delete_index(ctx, service_name, index_name, resource_group, yes):
    """Delete INDEX_NAME from SERVICE_NAME. This cannot be undone."""
    _confirm_deletion(f"index {index_name}", yes)
    with _reported_errors(f"Deletion of index {index_name}"):
        data_client = _search_data_client(ctx, service_name, resource_group)
        search.delete_index(data_client, index_name)


#=======================================================================
# Translator Command
#=======================================================================

@cli.command(name='translate')
@click.argument('text', default=translator.DEFAULT_TEXT)
@click.option('--to', 'target_language', default=translator.DEFAULT_TARGET_LANGUAGE, show_default=True,
              help='Target language code.')
@click.pass_context
def translate_command(ctx, text, target_language):
    """Translate TEXT (default: "Hello, world!")."""
    settings = _get_settings(ctx)
    with _reported_errors("Translation"):
        client = create_translator_client(settings)
        translated = translator.translate_text(client, text, target_language)
    click.echo(f"Source: {text}")
    click.echo(f"Translation: {translated}")


#=======================================================================
# Content Safety Commands
#=======================================================================

@cli.group(name='safety')
def safety_group():
    """Content moderation."""


def _echo_analysis(text, analysis):
    click.echo(f"Text: {text}")
    for category in analysis.categories_analysis:
        click.echo(f"  - {category.category}: severity {category.severity}")
    for match in analysis.blocklists_match:
        click.echo(f"  - blocklist {match.blocklist_name}: {match.blocklist_item_text}")


@safety_group.command(name='analyze')
@click.argument('text', required=False)
@click.option('--samples', is_flag=True, help='Analyze the built-in sample texts.')
@click.option('--category', 'categories', multiple=True,
              type=click.Choice(['Hate', 'SelfHarm', 'Sexual', 'Violence']),
              help='Restrict the analysis to these categories.')
@click.pass_context
def safety_analyze(ctx, text, samples, categories):
    """Analyze TEXT for harmful content."""
    texts = list(content_safety.SAMPLE_VIOLATING_TEXTS) if samples else []
    if text:
        texts.insert(0, text)
    if not texts:
        raise click.UsageError("Give a TEXT to analyze or use --samples.")

    settings = _get_settings(ctx)
    with _reported_errors("Content analysis"):
        client = create_content_safety_client(settings)
        for item in texts:
            analysis = content_safety.analyze_text(client, item, categories=categories)
            _echo_analysis(item, analysis)

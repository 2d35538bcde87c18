# -*- coding: utf-8 -*-

"""
Kubernetes workloads on an AKS cluster.

Clusters are reached through the kubeconfig returned by
``aks.list_cluster_user_credentials``. Each call builds an isolated
``kubernetes.client.ApiClient`` so the SDK's global configuration is never
touched.
"""

import os
import logging
import tempfile
from typing import NamedTuple

from kubernetes import client as k8s
from kubernetes.config import new_client_from_config

DEFAULT_DEPLOYMENT_NAME = "demo-app"
DEFAULT_IMAGE = "nginx:latest"
DEFAULT_NAMESPACE = "default"


class DeploymentSummary(NamedTuple):
    name: str
    replicas: int
    image: str | None


def load_api_client(kubeconfig: bytes) -> k8s.ApiClient:
    """
    Build an ApiClient from raw kubeconfig bytes.

    The document is written to a temporary file only for the duration of the
    load; the file is removed before returning.
    """
    with tempfile.NamedTemporaryFile("wb", suffix=".kubeconfig", delete=False) as handle:
        handle.write(kubeconfig)
        path = handle.name
    try:
        return new_client_from_config(config_file=path)
    finally:
        os.remove(path)


def _labels(name):
    return {"app": name}


#=============================================================================
# Deployments
#=============================================================================

def create_deployment(
        api_client: k8s.ApiClient,
        name: str = DEFAULT_DEPLOYMENT_NAME,
        replicas: int = 2,
        image: str = DEFAULT_IMAGE,
        namespace: str = DEFAULT_NAMESPACE,
        container_port: int = 80
    ) -> k8s.V1Deployment:
    """
    Create a single-container deployment.

    Args:
        api_client (ApiClient): Client bound to the target cluster.
        name (str): Deployment name, also the ``app`` label.
        replicas (int): Desired pod count.
        image (str): Container image.
        namespace (str): Target namespace.
        container_port (int): Port exposed by the container.

    Returns:
        V1Deployment: The created deployment as returned by the API server.
    """
    deployment = k8s.V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=k8s.V1ObjectMeta(name=name),
        spec=k8s.V1DeploymentSpec(
            replicas=replicas,
            selector=k8s.V1LabelSelector(match_labels=_labels(name)),
            template=k8s.V1PodTemplateSpec(
                metadata=k8s.V1ObjectMeta(labels=_labels(name)),
                spec=k8s.V1PodSpec(containers=[
                    k8s.V1Container(
                        name=name,
                        image=image,
                        ports=[k8s.V1ContainerPort(container_port=container_port)],
                    )
                ]),
            ),
        ),
    )
    logging.info(f"Creating deployment {name} ({replicas} x {image}) in namespace {namespace}...")
    created = k8s.AppsV1Api(api_client).create_namespaced_deployment(namespace=namespace, body=deployment)
    logging.info(f"Deployment {name} created.")
    return created


def delete_deployment(api_client, name=DEFAULT_DEPLOYMENT_NAME, namespace=DEFAULT_NAMESPACE):
    logging.info(f"Deleting deployment {name} from namespace {namespace}...")
    k8s.AppsV1Api(api_client).delete_namespaced_deployment(name=name, namespace=namespace)
    logging.info(f"Deployment {name} deleted.")


def list_deployments(api_client, namespace: str = DEFAULT_NAMESPACE) -> list[DeploymentSummary]:
    """List deployments in a namespace as (name, replicas, first container image)."""
    result = k8s.AppsV1Api(api_client).list_namespaced_deployment(namespace=namespace)
    summaries = []
    for item in result.items:
        containers = item.spec.template.spec.containers if item.spec and item.spec.template else []
        image = containers[0].image if containers else None
        summaries.append(DeploymentSummary(item.metadata.name, item.spec.replicas or 0, image))
    return summaries


#=============================================================================
# Services
#=============================================================================

def create_service(
        api_client: k8s.ApiClient,
        name: str = DEFAULT_DEPLOYMENT_NAME,
        namespace: str = DEFAULT_NAMESPACE,
        port: int = 80,
        target_port: int = 80
    ) -> k8s.V1Service:
    """Expose a deployment through a LoadBalancer service selecting ``app=<name>``."""
    service = k8s.V1Service(
        api_version="v1",
        kind="Service",
        metadata=k8s.V1ObjectMeta(name=name),
        spec=k8s.V1ServiceSpec(
            type="LoadBalancer",
            selector=_labels(name),
            ports=[k8s.V1ServicePort(port=port, target_port=target_port)],
        ),
    )
    logging.info(f"Creating LoadBalancer service {name} ({port} -> {target_port})...")
    created = k8s.CoreV1Api(api_client).create_namespaced_service(namespace=namespace, body=service)
    logging.info(f"Service {name} created.")
    return created


def delete_service(api_client, name=DEFAULT_DEPLOYMENT_NAME, namespace=DEFAULT_NAMESPACE):
    logging.info(f"Deleting service {name} from namespace {namespace}...")
    k8s.CoreV1Api(api_client).delete_namespaced_service(name=name, namespace=namespace)
    logging.info(f"Service {name} deleted.")

"""Builders for the Kubernetes objects used by the end-to-end scenarios."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

TEST_IMAGE = "quay.io/dougbtv/alpine:latest"
NETWORK_ATTACHMENT_ANNOTATION = "k8s.v1.cni.cncf.io/networks"
PARALLEL_POD_MANAGEMENT = "Parallel"

_SAMPLE_POD_NAME = "samplepod"
_APP_LABEL_KEY = "app"


def _container_command() -> list[str]:
    return ["/bin/ash", "-c", "trap : TERM INT; sleep infinity & wait"]


def _container(name: str) -> dict[str, Any]:
    return {"name": name, "command": _container_command(), "image": TEST_IMAGE}


def _pod_spec(container_name: str) -> dict[str, Any]:
    return {"containers": [_container(container_name)]}


def _copy(mapping: Mapping[str, str] | None) -> dict[str, str]:
    return dict(mapping) if mapping else {}


def _pod_meta(
    pod_name: str,
    namespace: str,
    labels: Mapping[str, str] | None,
    annotations: Mapping[str, str] | None,
) -> dict[str, Any]:
    return {
        "name": pod_name,
        "namespace": namespace,
        "labels": _copy(labels),
        "annotations": _copy(annotations),
    }


def pod_object(
    pod_name: str,
    namespace: str,
    labels: Mapping[str, str] | None,
    annotations: Mapping[str, str] | None,
) -> dict[str, Any]:
    """Return a single-container pod manifest."""
    return {
        "metadata": _pod_meta(pod_name, namespace, labels, annotations),
        "spec": _pod_spec(_SAMPLE_POD_NAME),
    }


def stateful_set_spec(
    stateful_set_name: str,
    namespace: str,
    service_name: str,
    replica_number: int,
    annotations: Mapping[str, str] | None,
) -> dict[str, Any]:
    """Return a stateful set manifest whose pods are labelled ``app=<service_name>``."""
    web_app_labels = {_APP_LABEL_KEY: service_name}
    return {
        "metadata": {"name": service_name},
        "spec": {
            "replicas": int(replica_number),
            "selector": {"matchLabels": dict(web_app_labels)},
            "template": {
                "metadata": _pod_meta(
                    stateful_set_name, namespace, web_app_labels, annotations
                ),
                "spec": _pod_spec(stateful_set_name),
            },
            "serviceName": service_name,
            "podManagementPolicy": PARALLEL_POD_MANAGEMENT,
        },
    }


def replica_set_object(
    replica_count: int,
    rs_name: str,
    namespace: str,
    labels: Mapping[str, str] | None,
    annotations: Mapping[str, str] | None,
) -> dict[str, Any]:
    """Return a replica set manifest selecting pods by ``labels``."""
    return {
        "apiVersion": "v1",
        "kind": "ReplicaSet",
        "metadata": {
            "name": rs_name,
            "namespace": namespace,
            "labels": _copy(labels),
        },
        "spec": {
            "replicas": int(replica_count),
            "selector": {"matchLabels": _copy(labels)},
            "template": {
                "metadata": {
                    "labels": _copy(labels),
                    "annotations": _copy(annotations),
                    "namespace": namespace,
                },
                "spec": _pod_spec(_SAMPLE_POD_NAME),
            },
        },
    }


def replica_set_query(rs_name: str) -> str:
    """Return the label selector matching the pods of a replica set."""
    return "tier=" + rs_name


def pod_network_selection_elements(*network_names: str) -> dict[str, str]:
    """Return the pod annotation that attaches the given networks."""
    return {NETWORK_ATTACHMENT_ANNOTATION: ",".join(network_names)}
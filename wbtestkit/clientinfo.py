"""High-level operations against a cluster used by the end-to-end scenarios.

:class:`ClientInfo` drives three API clients. Each one is duck-typed and
raises :class:`~wbtestkit.waiting.NotFoundError` for objects that do not exist.

The core client provides ``get_pod``, ``list_pods``, ``create_pod``,
``delete_pod``, ``get_replica_set``, ``create_replica_set``,
``update_replica_set``, ``delete_replica_set``, ``get_stateful_set``,
``create_stateful_set``, ``update_stateful_set``, ``delete_stateful_set``
and ``list_nodes``.

The network client provides ``create_net_attach_def`` and
``delete_net_attach_def``.

The whereabouts client provides ``get_node_slice_pool``.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from wbtestkit.entities import (
    pod_network_selection_elements,
    pod_object,
    replica_set_object,
    replica_set_query,
    stateful_set_spec,
)
from wbtestkit.waiting import (
    NotFoundError,
    is_stateful_set_ready_predicate,
    wait_for_node_slice_ready,
    wait_for_pod_by_selector,
    wait_for_pod_ready,
    wait_for_pod_to_disappear,
    wait_for_replica_set_to_disappear,
    wait_for_stateful_set_condition,
    wait_for_stateful_set_gone,
)

KubeObject = Mapping[str, Any]

CREATE_TIMEOUT = 10.0
DELETE_TIMEOUT = 2 * CREATE_TIMEOUT
RS_CREATE_TIMEOUT = 600.0
NODE_SLICE_CREATE_TIMEOUT = 5.0

POD_CREATE_TIMEOUT = 10.0
POD_DELETE_TIMEOUT = 20.0
RS_DELETE_TIMEOUT = 2 * RS_CREATE_TIMEOUT
STATEFUL_SET_CREATE_TIMEOUT = 60 * CREATE_TIMEOUT
STATEFUL_SET_DELETE_TIMEOUT = 6 * DELETE_TIMEOUT

FOREGROUND_PROPAGATION = "Foreground"


def _metadata(obj: KubeObject) -> Mapping[str, Any]:
    return obj.get("metadata") or {}


def _namespace(obj: KubeObject) -> str:
    return _metadata(obj).get("namespace", "")


def _name(obj: KubeObject) -> str:
    return _metadata(obj).get("name", "")


@dataclass
class ClientInfo:
    """The clients needed to drive a cluster, bundled with scenario operations."""

    client: Any
    net_client: Any = None
    wb_client: Any = None

    def __post_init__(self) -> None:
        if self.net_client is None:
            self.net_client = self.client
        if self.wb_client is None:
            self.wb_client = self.client

    def get_node_slice_pool(self, name: str, namespace: str) -> KubeObject:
        """Wait for the node slice pool to exist and return it."""
        wait_for_node_slice_ready(
            self.wb_client, namespace, name, NODE_SLICE_CREATE_TIMEOUT
        )
        return self.wb_client.get_node_slice_pool(namespace, name)

    def add_net_attach_def(self, net_attach_def: KubeObject) -> KubeObject:
        """Create a network attachment definition in its own namespace."""
        return self.net_client.create_net_attach_def(
            _namespace(net_attach_def), net_attach_def
        )

    def del_net_attach_def(self, net_attach_def: KubeObject) -> None:
        """Delete a network attachment definition."""
        self.net_client.delete_net_attach_def(
            _namespace(net_attach_def), _name(net_attach_def)
        )

    def node_slice_deleted(self, name: str, namespace: str) -> None:
        """Raise unless the node slice pool is reported as not found."""
        try:
            self.wb_client.get_node_slice_pool(namespace, name)
        except NotFoundError:
            return
        except Exception as exc:
            raise RuntimeError("expected not found nodeslice") from exc
        raise RuntimeError("expected not found nodeslice")

    def provision_pod(
        self,
        pod_name: str,
        namespace: str,
        labels: Mapping[str, str] | None,
        annotations: Mapping[str, str] | None,
    ) -> KubeObject:
        """Create a pod, wait for it to run and return its current state."""
        pod = pod_object(pod_name, namespace, labels, annotations)
        created = self.client.create_pod(_namespace(pod), pod)
        created_ns, created_name = _namespace(created), _name(created)
        wait_for_pod_ready(self.client, created_ns, created_name, POD_CREATE_TIMEOUT)
        return self.client.get_pod(created_ns, created_name)

    def delete_pod(self, pod: KubeObject) -> None:
        """Delete a pod and wait until it is gone."""
        namespace, name = _namespace(pod), _name(pod)
        self.client.delete_pod(namespace, name)
        wait_for_pod_to_disappear(self.client, namespace, name, POD_DELETE_TIMEOUT)

    def provision_replica_set(
        self,
        rs_name: str,
        namespace: str,
        replica_count: int,
        labels: Mapping[str, str] | None,
        annotations: Mapping[str, str] | None,
    ) -> KubeObject:
        """Create a replica set, wait for its pods to run and return it."""
        created = self.client.create_replica_set(
            namespace,
            replica_set_object(replica_count, rs_name, namespace, labels, annotations),
        )
        wait_for_pod_by_selector(
            self.client, namespace, replica_set_query(rs_name), RS_CREATE_TIMEOUT
        )
        return self.client.get_replica_set(namespace, _name(created))

    def update_replica_set(self, replica_set: KubeObject) -> KubeObject:
        """Store a changed replica set and return what the cluster holds."""
        return self.client.update_replica_set(_namespace(replica_set), replica_set)

    def delete_replica_set(self, replica_set: KubeObject) -> None:
        """Delete a replica set and wait until it is gone."""
        namespace, name = _namespace(replica_set), _name(replica_set)
        self.client.delete_replica_set(namespace, name)
        wait_for_replica_set_to_disappear(self.client, namespace, name, RS_DELETE_TIMEOUT)

    def provision_stateful_set(
        self,
        stateful_set_name: str,
        namespace: str,
        service_name: str,
        replicas: int,
        *network_names: str,
    ) -> KubeObject:
        """Create a stateful set attached to the networks and wait for it to be ready."""
        created = self.client.create_stateful_set(
            namespace,
            stateful_set_spec(
                stateful_set_name,
                namespace,
                service_name,
                replicas,
                pod_network_selection_elements(*network_names),
            ),
        )
        wait_for_stateful_set_condition(
            self.client,
            namespace,
            service_name,
            replicas,
            STATEFUL_SET_CREATE_TIMEOUT,
            is_stateful_set_ready_predicate,
        )
        return created

    def delete_stateful_set(
        self, namespace: str, service_name: str, label_selector: str
    ) -> None:
        """Delete a stateful set at once and wait until its pods are gone."""
        self.client.delete_stateful_set(
            namespace,
            service_name,
            grace_period_seconds=0,
            propagation_policy=FOREGROUND_PROPAGATION,
        )
        wait_for_stateful_set_gone(
            self.client,
            namespace,
            service_name,
            label_selector,
            STATEFUL_SET_DELETE_TIMEOUT,
        )

    def scale_stateful_set(
        self, stateful_set_name: str, namespace: str, delta_instance: int
    ) -> None:
        """Change the stateful set's replica count by ``delta_instance``."""
        stateful_set = copy.deepcopy(
            self.client.get_stateful_set(namespace, stateful_set_name)
        )
        spec = stateful_set.setdefault("spec", {})
        spec["replicas"] = int(spec.get("replicas") or 0) + int(delta_instance)
        self.client.update_stateful_set(namespace, stateful_set)
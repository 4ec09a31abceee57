"""Polling helpers that wait for cluster objects to reach a wanted state.

The functions take a client object with these methods, each raising
:class:`NotFoundError` when the object does not exist:

* ``get_pod(namespace, name)``
* ``list_pods(namespace, label_selector)``
* ``get_replica_set(namespace, name)``
* ``get_stateful_set(namespace, name)``
* ``get_node_slice_pool(namespace, name)``

Objects are plain mappings shaped like the Kubernetes JSON representation.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

KubeObject = Mapping[str, Any]

_POLL_INTERVAL = 1.0

_POD_RUNNING = "Running"
_POD_FAILED = "Failed"
_POD_SUCCEEDED = "Succeeded"


class NotFoundError(LookupError):
    """The requested object does not exist in the cluster."""


class PollTimeoutError(TimeoutError):
    """A polled condition was not met before the timeout."""


class _Client(Protocol):
    def get_pod(self, namespace: str, name: str) -> KubeObject: ...

    def list_pods(self, namespace: str, label_selector: str) -> Sequence[KubeObject]: ...

    def get_replica_set(self, namespace: str, name: str) -> KubeObject: ...

    def get_stateful_set(self, namespace: str, name: str) -> KubeObject: ...

    def get_node_slice_pool(self, namespace: str, name: str) -> KubeObject: ...


def _section(obj: KubeObject | None, key: str) -> Mapping[str, Any]:
    if not obj:
        return {}
    return obj.get(key) or {}


def _int_field(obj: KubeObject | None, section: str, key: str) -> int:
    return int(_section(obj, section).get(key) or 0)


def poll_until(
    condition: Callable[[], bool],
    timeout: float,
    interval: float = _POLL_INTERVAL,
) -> None:
    """Call ``condition`` at once and then every ``interval`` seconds until it holds.

    Errors raised by ``condition`` end the wait and propagate.
    Raises :class:`PollTimeoutError` when ``timeout`` seconds pass first.
    """
    deadline = time.monotonic() + timeout
    while True:
        if condition():
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        time.sleep(min(interval, remaining))
        if time.monotonic() >= deadline:
            break
    raise PollTimeoutError("timed out waiting for the condition")


def list_pods(client: _Client, namespace: str, selector: str) -> list[KubeObject]:
    """Return the pods in ``namespace`` matching the label ``selector``."""
    return list(client.list_pods(namespace, selector))


def _is_pod_running(client: _Client, pod_name: str, namespace: str) -> Callable[[], bool]:
    def condition() -> bool:
        pod = client.get_pod(namespace, pod_name)
        phase = _section(pod, "status").get("phase")
        if phase == _POD_RUNNING:
            return True
        if phase == _POD_FAILED:
            raise RuntimeError("pod failed")
        if phase == _POD_SUCCEEDED:
            raise RuntimeError("pod succeeded")
        return False

    return condition


def _is_pod_gone(client: _Client, pod_name: str, namespace: str) -> Callable[[], bool]:
    def condition() -> bool:
        try:
            client.get_pod(namespace, pod_name)
        except NotFoundError:
            return True
        except Exception as exc:
            raise RuntimeError(
                "something weird happened with the pod, which is in state: []. "
                f"Errors: {exc}"
            ) from exc
        return False

    return condition


def wait_for_pod_ready(client: _Client, namespace: str, pod_name: str, timeout: float) -> None:
    """Wait until the pod is running; a failed or finished pod is an error."""
    poll_until(_is_pod_running(client, pod_name, namespace), timeout)


def wait_for_pod_to_disappear(
    client: _Client, namespace: str, pod_name: str, timeout: float
) -> None:
    """Wait until the pod no longer exists."""
    poll_until(_is_pod_gone(client, pod_name, namespace), timeout)


def wait_for_pod_by_selector(
    client: _Client, namespace: str, selector: str, timeout: float
) -> None:
    """Wait until every pod matching ``selector`` is running; no pods means done."""
    for pod in list_pods(client, namespace, selector):
        name = _section(pod, "metadata").get("name", "")
        wait_for_pod_ready(client, namespace, name, timeout)


def is_replica_set_synchronized(replica_set: KubeObject, pods: Sequence[KubeObject]) -> bool:
    """Tell whether ready replicas and matching pods both equal the wanted count."""
    wanted = _int_field(replica_set, "spec", "replicas")
    ready = _int_field(replica_set, "status", "readyReplicas")
    return ready == wanted and len(pods) == wanted


def _is_replica_set_steady(
    client: _Client, replica_set_name: str, namespace: str, label: str
) -> Callable[[], bool]:
    def condition() -> bool:
        pods = list_pods(client, namespace, label)
        replica_set = client.get_replica_set(namespace, replica_set_name)
        return is_replica_set_synchronized(replica_set, pods)

    return condition


def _is_replica_set_gone(client: _Client, rs_name: str, namespace: str) -> Callable[[], bool]:
    def condition() -> bool:
        try:
            client.get_replica_set(namespace, rs_name)
        except NotFoundError:
            return True
        except Exception as exc:
            raise RuntimeError(
                "something weird happened with the replicaset, which is in state: []. "
                f"Errors: {exc}"
            ) from exc
        return False

    return condition


def wait_for_replica_set_steady_state(
    client: _Client,
    namespace: str,
    label: str,
    replica_set: KubeObject,
    timeout: float,
) -> None:
    """Wait until the replica set's ready replicas and pods match its spec."""
    name = _section(replica_set, "metadata").get("name", "")
    poll_until(_is_replica_set_steady(client, name, namespace, label), timeout)


def wait_for_replica_set_to_disappear(
    client: _Client, namespace: str, rs_name: str, timeout: float
) -> None:
    """Wait until the replica set no longer exists."""
    poll_until(_is_replica_set_gone(client, rs_name, namespace), timeout)


def _is_stateful_set_gone(
    client: _Client, service_name: str, namespace: str, label_selector: str
) -> Callable[[], bool]:
    def condition() -> bool:
        try:
            stateful_set: KubeObject | None = client.get_stateful_set(namespace, service_name)
        except NotFoundError:
            stateful_set = None
        except Exception as exc:
            raise RuntimeError(
                "something weird happened with the stateful set whose status is: []. "
                f"Errors: {exc}"
            ) from exc
        pods = client.list_pods(namespace, label_selector)
        empty = _int_field(stateful_set, "status", "currentReplicas") == 0
        return empty and len(pods) == 0

    return condition


def wait_for_stateful_set_gone(
    client: _Client,
    namespace: str,
    service_name: str,
    label_selector: str,
    timeout: float,
) -> None:
    """Wait until the stateful set has no replicas and no labelled pods remain."""
    poll_until(
        _is_stateful_set_gone(client, service_name, namespace, label_selector), timeout
    )


def wait_for_stateful_set_condition(
    client: _Client,
    namespace: str,
    service_name: str,
    expected_replicas: int,
    timeout: float,
    predicate: Callable[[KubeObject, int], bool],
) -> None:
    """Wait until ``predicate(stateful_set, expected_replicas)`` holds."""

    def condition() -> bool:
        stateful_set = client.get_stateful_set(namespace, service_name)
        return predicate(stateful_set, expected_replicas)

    poll_until(condition, timeout)


def is_stateful_set_ready_predicate(stateful_set: KubeObject, expected_replicas: int) -> bool:
    """Tell whether exactly ``expected_replicas`` replicas are ready."""
    return _int_field(stateful_set, "status", "readyReplicas") == expected_replicas


def is_stateful_set_degraded_predicate(
    stateful_set: KubeObject, expected_replicas: int
) -> bool:
    """Tell whether fewer than ``expected_replicas`` replicas are ready."""
    return _int_field(stateful_set, "status", "readyReplicas") < expected_replicas


def get_node_subnet(client: _Client, node_name: str, slice_name: str, namespace: str) -> str:
    """Return the slice range the node slice pool assigns to ``node_name``."""
    node_slice = client.get_node_slice_pool(namespace, slice_name)
    for allocation in _section(node_slice, "status").get("allocations") or []:
        if allocation.get("nodeName") == node_name:
            return allocation.get("sliceRange", "")
    raise LookupError("slice range not found for node")


def wait_for_node_slice_ready(
    client: _Client, namespace: str, node_slice_name: str, timeout: float
) -> None:
    """Wait until the node slice pool exists."""

    def condition() -> bool:
        try:
            client.get_node_slice_pool(namespace, node_slice_name)
        except NotFoundError:
            return False
        return True

    poll_until(condition, timeout)
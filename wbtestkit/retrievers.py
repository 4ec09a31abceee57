"""Reading secondary interface addresses out of pod annotations."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

NETWORK_STATUS_ANNOTATION = "k8s.v1.cni.cncf.io/network-status"


class NetworkStatusError(ValueError):
    """The pod's network status does not yield the requested addresses."""


def _annotations(pod: Mapping[str, Any]) -> Mapping[str, str]:
    metadata = pod.get("metadata") or {}
    return metadata.get("annotations") or {}


def secondary_iface_ip_value(pod: Mapping[str, Any], if_name: str) -> list[str]:
    """Return the IPs reported for interface ``if_name`` of ``pod``."""
    annotations = _annotations(pod)
    if NETWORK_STATUS_ANNOTATION not in annotations:
        raise NetworkStatusError(
            "the pod must feature the `networks-status` annotation"
        )

    try:
        statuses = json.loads(annotations[NETWORK_STATUS_ANNOTATION])
    except json.JSONDecodeError as exc:
        raise NetworkStatusError(f"invalid network status annotation: {exc}") from exc
    if statuses is None:
        statuses = []
    if not isinstance(statuses, list) or not all(
        isinstance(status, dict) for status in statuses
    ):
        raise NetworkStatusError("the network status annotation must be a list of objects")

    status = next(
        (status for status in statuses if status.get("interface", "") == if_name),
        None,
    )
    if status is None:
        raise NetworkStatusError("the pod does not have the requested secondary interface")

    ips = status.get("ips") or []
    if not ips:
        raise NetworkStatusError("the pod does not have IPs for its secondary interfaces")
    return list(ips)
"""Shared helpers for the end-to-end scenarios."""

from __future__ import annotations

import ipaddress
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from wbtestkit.waiting import get_node_subnet

CREATE_POD_TIMEOUT = 10.0

KubeObject = Mapping[str, Any]


def allocation_for_pod_ref(pod_ref: str, ip_pool: KubeObject) -> Mapping[str, Any] | None:
    """Return the first allocation of the pool that belongs to ``pod_ref``."""
    allocations = (ip_pool.get("spec") or {}).get("allocations") or {}
    return next(
        (a for a in allocations.values() if a.get("podRef") == pod_ref), None
    )


def cluster_config(environ: Mapping[str, str] | None = None) -> str:
    """Return the kubeconfig path named by ``KUBECONFIG``; the file must exist."""
    env = os.environ if environ is None else environ
    if "KUBECONFIG" not in env:
        raise LookupError(
            "must provide the path to the kubeconfig via the `KUBECONFIG` env variable"
        )
    path = env["KUBECONFIG"]
    if not Path(path).is_file():
        raise FileNotFoundError(f"kubeconfig not found: {path}")
    return path


def pod_tier_label(pod_tier: str) -> dict[str, str]:
    """Return the ``tier`` label for a pod."""
    return {"tier": pod_tier}


def validate_node_slice_pool_slices_created_and_nodes_assigned(
    node_slice_name: str,
    node_slice_namespace: str,
    expected_subnets: int,
    client_info: Any,
) -> None:
    """Check the slice count, slice uniqueness and that every node got a slice.

    Requires that there are not more nodes than subnets in the pool.
    """
    node_slice = client_info.get_node_slice_pool(node_slice_name, node_slice_namespace)
    allocations = (node_slice.get("status") or {}).get("allocations") or []
    if len(allocations) != expected_subnets:
        raise ValueError(
            f"expected allocations {expected_subnets} but got allocations {len(allocations)}"
        )

    seen_ranges: set[str] = set()
    assigned_nodes: set[str] = set()
    for allocation in allocations:
        slice_range = allocation.get("sliceRange", "")
        node_name = allocation.get("nodeName", "")
        if slice_range in seen_ranges:
            raise ValueError(f"error allocation has duplication in subnet {slice_range}")
        if node_name and node_name in seen_ranges:
            raise ValueError(f"error allocation has duplication in nodes {node_name}")
        seen_ranges.add(slice_range)
        assigned_nodes.add(node_name)

    for node in client_info.client.list_nodes():
        name = (node.get("metadata") or {}).get("name", "")
        if name not in assigned_nodes:
            raise ValueError(f"node not assigned to slice {name}")


def generate_net_attach_def_spec(name: str, namespace: str, config: str) -> dict[str, Any]:
    """Return a network attachment definition carrying ``config``."""
    return {
        "apiVersion": "v1",
        "kind": "NetworkAttachmentDefinition",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"config": config},
    }


def _json_bool(value: bool) -> str:
    return "true" if value else "false"


def macvlan_network_with_whereabouts_ipam_network(
    network_name: str,
    namespace_name: str,
    ip_range: str,
    ip_ranges: Iterable[str],
    pool_name: str,
    enable_overlapping_ranges: bool,
) -> dict[str, Any]:
    """Return a macvlan network definition using whereabouts IPAM."""
    config = f"""{{
        "cniVersion": "0.3.0",
        "disableCheck": true,
        "plugins": [
            {{
                "type": "macvlan",
                "master": "eth0",
                "mode": "bridge",
                "ipam": {{
                    "type": "whereabouts",
                    "leader_lease_duration": 1500,
                    "leader_renew_deadline": 1000,
                    "leader_retry_period": 500,
                    "range": "{ip_range}",
                    "ipRanges": {create_ip_ranges(ip_ranges)},
                    "log_level": "debug",
                    "log_file": "/tmp/wb",
                    "network_name": "{pool_name}",
                    "enable_overlapping_ranges": {_json_bool(enable_overlapping_ranges)}
                }}
            }}
        ]
    }}"""
    return generate_net_attach_def_spec(network_name, namespace_name, config)


def macvlan_network_with_node_slice(
    network_name: str,
    namespace_name: str,
    ip_range: str,
    pool_name: str,
    slice_size: str,
) -> dict[str, Any]:
    """Return a macvlan network definition whose range is sliced per node."""
    config = f"""{{
        "cniVersion": "0.3.0",
        "disableCheck": true,
        "plugins": [
            {{
                "type": "macvlan",
                "master": "eth0",
                "mode": "bridge",
                "ipam": {{
                    "type": "whereabouts",
                    "leader_lease_duration": 1500,
                    "leader_renew_deadline": 1000,
                    "leader_retry_period": 500,
                    "range": "{ip_range}",
                    "log_level": "debug",
                    "log_file": "/tmp/wb",
                    "network_name": "{pool_name}",
                    "node_slice_size": "{slice_size}"
                }}
            }}
        ]
    }}"""
    return generate_net_attach_def_spec(network_name, namespace_name, config)


def in_node_range(
    client_info: Any, node_name: str, slice_name: str, namespace: str, ip: str
) -> None:
    """Raise unless ``ip`` lies in the slice assigned to ``node_name``."""
    cidr = get_node_subnet(client_info.wb_client, node_name, slice_name, namespace)
    in_range(cidr, ip)


def _contains(network: ipaddress.IPv4Network | ipaddress.IPv6Network, ip: str) -> bool:
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    if address.version != network.version:
        mapped = getattr(address, "ipv4_mapped", None)
        if network.version == 4 and mapped is not None:
            address = mapped
        else:
            return False
    return address in network


def in_range(cidr: str, ip: str) -> None:
    """Raise :class:`ValueError` unless ``ip`` lies in ``cidr``."""
    if "/" not in cidr:
        raise ValueError(f"invalid CIDR address: {cidr}")
    try:
        network = ipaddress.ip_network(cidr, strict=False)
    except ValueError as exc:
        raise ValueError(f"invalid CIDR address: {cidr}") from exc
    if not _contains(network, ip):
        raise ValueError(f"ip [{ip}] is NOT in range {cidr}")


def create_ip_ranges(ranges: Iterable[str]) -> str:
    """Return the JSON list of ``{"range": ...}`` objects for ``ranges``."""
    return "[" + ",".join(f'{{"range": "{r}"}}' for r in ranges) + "]"
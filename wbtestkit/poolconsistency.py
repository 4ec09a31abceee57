"""Comparing IP pool allocations with the addresses live pods report."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

from wbtestkit.retrievers import NetworkStatusError, secondary_iface_ip_value

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_SECONDARY_INTERFACE = "net1"


@dataclass
class IPReservation:
    """One allocated address in a pool."""

    ip: IPAddress | str | None = None
    container_id: str = ""
    pod_ref: str = ""
    if_name: str = ""
    is_allocated: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.ip, str):
            self.ip = ipaddress.ip_address(self.ip)

    @property
    def ip_text(self) -> str:
        return "<nil>" if self.ip is None else str(self.ip)


class _Pool(Protocol):
    def allocations(self) -> Sequence[IPReservation]: ...


@dataclass
class IPPool:
    """An in-memory pool of reservations."""

    reservations: list[IPReservation] = field(default_factory=list)

    def allocations(self) -> list[IPReservation]:
        return list(self.reservations)

    def update(self, reservations: Iterable[IPReservation]) -> None:
        self.reservations = list(reservations)


Pod = Mapping[str, Any]


def _pod_ip(pod: Pod) -> str:
    return secondary_iface_ip_value(pod, _SECONDARY_INTERFACE)[-1]


def _live_ips(pods: Iterable[Pod]) -> list[str]:
    ips = []
    for pod in pods:
        try:
            ips.append(_pod_ip(pod))
        except NetworkStatusError:
            continue
    return ips


class Checker:
    """Checks a single pool against the pods it serves."""

    def __init__(self, ip_pool: _Pool, pods: Iterable[Pod]) -> None:
        self.ip_pool = ip_pool
        self.pods = list(pods)

    def missing_ips(self) -> list[str]:
        """Return pod addresses that the pool does not hold."""
        reserved = {allocation.ip_text for allocation in self.ip_pool.allocations()}
        missing = []
        for pod in self.pods:
            try:
                pod_ip = _pod_ip(pod)
            except NetworkStatusError:
                return []
            if pod_ip not in reserved:
                missing.append(pod_ip)
        return missing

    def stale_ips(self) -> list[str]:
        """Return pool addresses that no live pod uses."""
        live = set(_live_ips(self.pods))
        return [
            allocation.ip_text
            for allocation in self.ip_pool.allocations()
            if allocation.ip_text not in live
        ]


class NodeSliceChecker:
    """Checks the per-node pools of a sliced network against its pods."""

    def __init__(self, ip_pools: Iterable[_Pool], pods: Iterable[Pod]) -> None:
        self.ip_pools = list(ip_pools)
        self.pods = list(pods)

    def _reservations(self) -> list[IPReservation]:
        return [
            allocation for pool in self.ip_pools for allocation in pool.allocations()
        ]

    def missing_ips(self) -> list[str]:
        """Return pod addresses held by none of the pools."""
        reserved = {allocation.ip_text for allocation in self._reservations()}
        missing = []
        for pod in self.pods:
            try:
                pod_ip = _pod_ip(pod)
            except NetworkStatusError:
                return []
            if pod_ip not in reserved:
                missing.append(pod_ip)
        return missing

    def stale_ips(self) -> list[str]:
        """Return addresses in any pool that no live pod uses."""
        live = set(_live_ips(self.pods))
        return [
            allocation.ip_text
            for allocation in self._reservations()
            if allocation.ip_text not in live
        ]
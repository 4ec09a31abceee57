"""Test environment settings taken from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping, Sized
from dataclasses import dataclass

_MAX_PODS_PER_NODE = 110
_INTEGER = re.compile(r"[+-]?[0-9]+")


def _atoi(name: str, value: str) -> int:
    if not _INTEGER.fullmatch(value):
        raise ValueError(f"invalid integer for {name}: {value!r}")
    return int(value)


@dataclass(frozen=True)
class Configuration:
    """Settings of the cluster the end-to-end scenarios run against."""

    kubeconfig_path: str
    num_compute_nodes: int
    fill_percent_capacity: int
    number_of_iterations: int

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Configuration":
        """Read the configuration, falling back to defaults for unset variables."""
        env = os.environ if environ is None else environ
        return cls(
            kubeconfig_path=env.get("KUBECONFIG", "${HOME}/.kube/config"),
            num_compute_nodes=_atoi(
                "NUMBER_OF_COMPUTE_NODES", env.get("NUMBER_OF_COMPUTE_NODES", "2")
            ),
            fill_percent_capacity=_atoi(
                "FILL_PERCENT_CAPACITY", env.get("FILL_PERCENT_CAPACITY", "50")
            ),
            number_of_iterations=_atoi(
                "NUMBER_OF_THRASH_ITER", env.get("NUMBER_OF_THRASH_ITER", "1")
            ),
        )

    def max_replicas(self, all_pods: Sized) -> int:
        """Return how many replicas fill the configured share of free pod slots."""
        free = self.num_compute_nodes * _MAX_PODS_PER_NODE - len(all_pods)
        scaled = free * self.fill_percent_capacity
        quotient = abs(scaled) // 100
        return quotient if scaled >= 0 else -quotient
# wbtestkit

Helpers for writing end-to-end tests against a Kubernetes cluster running an
IP address management (IPAM) plugin that hands out addresses from IP pools,
optionally split into per-node slices.

Kubernetes objects are handled as plain dictionaries shaped like their JSON
form (`metadata`, `spec`, `status`, ...).

## Modules

- `wbtestkit.entities` — manifest builders: `pod_object`,
  `replica_set_object`, `stateful_set_spec`; `replica_set_query(name)` returns
  the selector `"tier=<name>"`, and `pod_network_selection_elements(*names)`
  returns the `k8s.v1.cni.cncf.io/networks` annotation joining the names with
  commas.
- `wbtestkit.retrievers` — `secondary_iface_ip_value(pod, if_name)` reads the
  IPs of one interface from the pod's `k8s.v1.cni.cncf.io/network-status`
  annotation and raises `NetworkStatusError` when the annotation, the
  interface or its IPs are missing.
- `wbtestkit.testenvironment` — `Configuration.from_env(environ=None)` reads
  `KUBECONFIG` (default `${HOME}/.kube/config`), `NUMBER_OF_COMPUTE_NODES`
  (default 2), `FILL_PERCENT_CAPACITY` (default 50) and
  `NUMBER_OF_THRASH_ITER` (default 1), raising `ValueError` for non-integers.
  `max_replicas(all_pods)` returns the configured percentage of the free pod
  slots, counting 110 pods per node.
- `wbtestkit.poolconsistency` — `IPReservation` and an in-memory `IPPool`;
  `Checker(ip_pool, pods)` and `NodeSliceChecker(ip_pools, pods)` report
  `missing_ips()` (pod addresses on `net1` that no pool holds) and
  `stale_ips()` (pool addresses no live pod uses). Any object with an
  `allocations()` method can serve as a pool.
- `wbtestkit.waiting` — `poll_until(condition, timeout, interval=1.0)` and
  `wait_for_*` helpers for pods, replica sets, stateful sets and node slice
  pools, plus `list_pods`, `get_node_subnet`, `is_replica_set_synchronized`
  and the stateful set predicates. A wait that runs out raises
  `PollTimeoutError`; client calls signal missing objects with
  `NotFoundError`.
- `wbtestkit.clientinfo` — `ClientInfo(client, net_client=None,
  wb_client=None)` provisions, updates, scales and deletes pods, replica sets,
  stateful sets and network attachment definitions, waiting for each change
  to settle. Unset clients fall back to `client`.
- `wbtestkit.util` — `generate_net_attach_def_spec`,
  `macvlan_network_with_whereabouts_ipam_network`,
  `macvlan_network_with_node_slice`, `create_ip_ranges`, `in_range` and
  `in_node_range` (raise `ValueError` when the address lies outside),
  `pod_tier_label`, `allocation_for_pod_ref`, `cluster_config` and
  `validate_node_slice_pool_slices_created_and_nodes_assigned`.

## Clients

The waiting helpers and `ClientInfo` call duck-typed client objects. The
methods used are, for the core client: `get_pod`, `list_pods`, `create_pod`,
`delete_pod`, `get_replica_set`, `create_replica_set`, `update_replica_set`,
`delete_replica_set`, `get_stateful_set`, `create_stateful_set`,
`update_stateful_set`, `delete_stateful_set`, `list_nodes`; for the network
client: `create_net_attach_def`, `delete_net_attach_def`; for the whereabouts
client: `get_node_slice_pool`. Each takes the namespace first, then the name
or object.

## What it does not do

The package ships no Kubernetes API client and never connects to a cluster:
you supply the client objects, whether a wrapper around a real API or an
in-memory fake. `cluster_config` only checks that the file named by
`KUBECONFIG` exists and returns its path. It contains no ready-made test
scenarios and no command-line tool.

## Example

```python
from wbtestkit.entities import pod_network_selection_elements, replica_set_query
from wbtestkit.poolconsistency import Checker, IPPool, IPReservation
from wbtestkit.util import in_range

in_range("10.10.0.0/16", "10.10.3.7")  # raises ValueError if outside

annotations = pod_network_selection_elements("net-a", "net-b")
selector = replica_set_query("scale-test")  # "tier=scale-test"

pool = IPPool([IPReservation(ip="192.168.200.2")])
checker = Checker(pool, pods=[])
assert checker.missing_ips() == []
assert checker.stale_ips() == ["192.168.200.2"]
```

## Running the tests

```
pip install -e ".[test]"
pytest
```
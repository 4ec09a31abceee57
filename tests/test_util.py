import json

import pytest

from wbtestkit.clientinfo import ClientInfo
from wbtestkit.util import (
    allocation_for_pod_ref,
    cluster_config,
    create_ip_ranges,
    generate_net_attach_def_spec,
    in_node_range,
    in_range,
    macvlan_network_with_node_slice,
    macvlan_network_with_whereabouts_ipam_network,
    pod_tier_label,
    validate_node_slice_pool_slices_created_and_nodes_assigned,
)
from wbtestkit.waiting import NotFoundError


class FakeCluster:
    def __init__(self, allocations, nodes):
        self.pool = {"metadata": {"name": "net1"}, "status": {"allocations": allocations}}
        self.nodes = nodes

    def get_node_slice_pool(self, namespace, name):
        if name != "net1":
            raise NotFoundError(name)
        return self.pool

    def list_nodes(self):
        return [{"metadata": {"name": n}} for n in self.nodes]


def _info(allocations, nodes):
    return ClientInfo(FakeCluster(allocations, nodes))


def test_in_range_accepts_member():
    assert in_range("10.10.0.0/16", "10.10.3.4") is None
    assert in_range("abcd::0/64", "abcd::5") is None


def test_in_range_rejects_outsider():
    with pytest.raises(ValueError, match=r"ip \[10.11.0.1\] is NOT in range 10.10.0.0/16"):
        in_range("10.10.0.0/16", "10.11.0.1")


def test_in_range_rejects_unparsable_ip_and_mixed_families():
    with pytest.raises(ValueError, match="NOT in range"):
        in_range("10.10.0.0/16", "not-an-ip")
    with pytest.raises(ValueError, match="NOT in range"):
        in_range("abcd::0/64", "10.10.0.1")


def test_in_range_rejects_bad_cidr():
    with pytest.raises(ValueError, match="invalid CIDR"):
        in_range("10.10.0.0", "10.10.0.1")
    with pytest.raises(ValueError, match="invalid CIDR"):
        in_range("garbage/8", "10.10.0.1")


def test_create_ip_ranges():
    assert create_ip_ranges([]) == "[]"
    ranges = ["11.11.0.0/16", "abcd::0/64"]
    assert json.loads(create_ip_ranges(ranges)) == [{"range": r} for r in ranges]


def test_pod_tier_label():
    assert pod_tier_label("whereabouts-basic-test") == {"tier": "whereabouts-basic-test"}


def test_generate_net_attach_def_spec():
    nad = generate_net_attach_def_spec("wa-nad", "default", "{}")
    assert nad["kind"] == "NetworkAttachmentDefinition"
    assert nad["metadata"] == {"name": "wa-nad", "namespace": "default"}
    assert nad["spec"]["config"] == "{}"


@pytest.mark.parametrize("overlapping", [True, False])
def test_macvlan_whereabouts_config_round_trip(overlapping):
    nad = macvlan_network_with_whereabouts_ipam_network(
        "wa-nad", "default", "10.10.0.0/16", ["11.11.0.0/16"], "named-range", overlapping
    )
    config = json.loads(nad["spec"]["config"])
    ipam = config["plugins"][0]["ipam"]
    assert ipam["type"] == "whereabouts"
    assert ipam["range"] == "10.10.0.0/16"
    assert ipam["ipRanges"] == [{"range": "11.11.0.0/16"}]
    assert ipam["network_name"] == "named-range"
    assert ipam["enable_overlapping_ranges"] is overlapping
    assert nad["metadata"]["name"] == "wa-nad"


def test_macvlan_node_slice_config_round_trip():
    nad = macvlan_network_with_node_slice("net1", "kube-system", "10.0.0.0/8", "net1", "/20")
    ipam = json.loads(nad["spec"]["config"])["plugins"][0]["ipam"]
    assert ipam["node_slice_size"] == "/20"
    assert ipam["range"] == "10.0.0.0/8"
    assert nad["metadata"]["namespace"] == "kube-system"


def test_allocation_for_pod_ref():
    pool = {
        "spec": {
            "allocations": {
                "1": {"podRef": "default/a", "ifName": "net1"},
                "2": {"podRef": "default/b", "ifName": "net1"},
            }
        }
    }
    assert allocation_for_pod_ref("default/b", pool) == {"podRef": "default/b", "ifName": "net1"}
    assert allocation_for_pod_ref("default/c", pool) is None


def test_cluster_config(tmp_path):
    with pytest.raises(LookupError, match="KUBECONFIG"):
        cluster_config({})
    path = tmp_path / "kubeconfig"
    path.write_text("apiVersion: v1\n")
    assert cluster_config({"KUBECONFIG": str(path)}) == str(path)
    with pytest.raises(FileNotFoundError):
        cluster_config({"KUBECONFIG": str(tmp_path / "missing")})


def test_validate_node_slices_success():
    info = _info(
        [
            {"sliceRange": "10.0.0.0/20", "nodeName": "node-a"},
            {"sliceRange": "10.0.16.0/20", "nodeName": "node-b"},
        ],
        ["node-a", "node-b"],
    )
    assert (
        validate_node_slice_pool_slices_created_and_nodes_assigned("net1", "kube-system", 2, info)
        is None
    )


def test_validate_node_slices_wrong_count():
    info = _info([{"sliceRange": "10.0.0.0/20", "nodeName": "node-a"}], ["node-a"])
    with pytest.raises(ValueError, match="expected allocations 2 but got allocations 1"):
        validate_node_slice_pool_slices_created_and_nodes_assigned("net1", "kube-system", 2, info)


def test_validate_node_slices_duplicate_range():
    info = _info(
        [
            {"sliceRange": "10.0.0.0/20", "nodeName": "node-a"},
            {"sliceRange": "10.0.0.0/20", "nodeName": "node-b"},
        ],
        ["node-a", "node-b"],
    )
    with pytest.raises(ValueError, match="duplication in subnet"):
        validate_node_slice_pool_slices_created_and_nodes_assigned("net1", "kube-system", 2, info)


def test_validate_node_slices_unassigned_node():
    info = _info(
        [
            {"sliceRange": "10.0.0.0/20", "nodeName": "node-a"},
            {"sliceRange": "10.0.16.0/20", "nodeName": ""},
        ],
        ["node-a", "node-b"],
    )
    with pytest.raises(ValueError, match="node-b"):
        validate_node_slice_pool_slices_created_and_nodes_assigned("net1", "kube-system", 2, info)


def test_in_node_range():
    info = _info([{"sliceRange": "10.0.16.0/20", "nodeName": "node-b"}], ["node-b"])
    assert in_node_range(info, "node-b", "net1", "kube-system", "10.0.17.1") is None
    with pytest.raises(ValueError, match="NOT in range"):
        in_node_range(info, "node-b", "net1", "kube-system", "10.0.0.1")
    with pytest.raises(LookupError, match="slice range not found"):
        in_node_range(info, "node-z", "net1", "kube-system", "10.0.17.1")
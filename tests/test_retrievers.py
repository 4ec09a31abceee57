import json

import pytest

from wbtestkit.retrievers import (
    NETWORK_STATUS_ANNOTATION,
    NetworkStatusError,
    secondary_iface_ip_value,
)


def make_pod(statuses):
    return {
        "metadata": {
            "name": "p",
            "namespace": "ns",
            "annotations": {NETWORK_STATUS_ANNOTATION: json.dumps(statuses)},
        }
    }


def test_returns_ips_of_requested_interface():
    pod = make_pod(
        [
            {"name": "default", "interface": "eth0", "ips": ["10.244.0.5"]},
            {"name": "wa-nad", "interface": "net1", "ips": ["10.10.0.1", "abcd::1"]},
        ]
    )
    assert secondary_iface_ip_value(pod, "net1") == ["10.10.0.1", "abcd::1"]
    assert secondary_iface_ip_value(pod, "eth0") == ["10.244.0.5"]


def test_first_matching_interface_wins():
    pod = make_pod(
        [
            {"interface": "net1", "ips": ["1.1.1.1"]},
            {"interface": "net1", "ips": ["2.2.2.2"]},
        ]
    )
    assert secondary_iface_ip_value(pod, "net1") == ["1.1.1.1"]


def test_missing_annotation_raises():
    pod = {"metadata": {"name": "p", "annotations": {}}}
    with pytest.raises(NetworkStatusError, match="networks-status"):
        secondary_iface_ip_value(pod, "net1")


def test_missing_metadata_raises():
    with pytest.raises(NetworkStatusError):
        secondary_iface_ip_value({}, "net1")


def test_unknown_interface_raises():
    pod = make_pod([{"interface": "net1", "ips": ["1.1.1.1"]}])
    with pytest.raises(NetworkStatusError, match="requested secondary interface"):
        secondary_iface_ip_value(pod, "net2")


def test_interface_without_ips_raises():
    pod = make_pod([{"interface": "net1", "ips": []}])
    with pytest.raises(NetworkStatusError, match="does not have IPs"):
        secondary_iface_ip_value(pod, "net1")


def test_malformed_json_raises():
    pod = {"metadata": {"annotations": {NETWORK_STATUS_ANNOTATION: "{not json"}}}
    with pytest.raises(NetworkStatusError):
        secondary_iface_ip_value(pod, "net1")
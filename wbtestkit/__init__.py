"""Helpers for end-to-end testing of an IPAM plugin on Kubernetes."""

__version__ = "0.1.0"
__all__ = [
    "clientinfo",
    "entities",
    "poolconsistency",
    "retrievers",
    "testenvironment",
    "util",
    "waiting",
]
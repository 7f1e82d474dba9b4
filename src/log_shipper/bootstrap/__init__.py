"""Connectivity probe and index template provisioning module."""

from log_shipper.bootstrap.probe import ConnectivityProbe, ProbeState
from log_shipper.bootstrap.templates import default_template

__all__ = [
    "ConnectivityProbe",
    "ProbeState",
    "default_template",
]

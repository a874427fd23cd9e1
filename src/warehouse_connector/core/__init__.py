"""Core package: layout provisioning on top of the connector."""

from .provisioner import Provisioner, ProvisionResult

__all__ = [
    "Provisioner",
    "ProvisionResult"
]

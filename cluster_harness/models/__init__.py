"""Data models for machines, command results and node snapshots."""

from cluster_harness.models.machine import CommandResult, MachineSpec
from cluster_harness.models.snapshot import NodeSnapshot

__all__ = [
    "CommandResult",
    "MachineSpec",
    "NodeSnapshot",
]

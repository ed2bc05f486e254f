"""Strategies for choosing which control-plane machine runs a command."""

from collections.abc import Sequence
from typing import Protocol

from cluster_harness.exceptions import ValidationError
from cluster_harness.machine import Machine


class TargetSelector(Protocol):
    def select(self, masters: Sequence[Machine]) -> Machine: ...


def _require_masters(masters: Sequence[Machine]) -> None:
    if not masters:
        raise ValidationError(
            "Cluster has no control-plane machines",
            "At least one control-plane machine is required to run commands",
        )


class FixedPrimarySelector:
    """Always pick the first control-plane machine."""

    def select(self, masters: Sequence[Machine]) -> Machine:
        _require_masters(masters)
        return masters[0]


class RoundRobinSelector:
    """Rotate through control-plane machines, one per call."""

    def __init__(self):
        self._next = 0

    def select(self, masters: Sequence[Machine]) -> Machine:
        _require_masters(masters)
        machine = masters[self._next % len(masters)]
        self._next += 1
        return machine


def get_selector(name: str) -> TargetSelector:
    """Build a selector from its config name ('fixed-primary' or 'round-robin')."""
    if name == "fixed-primary":
        return FixedPrimarySelector()
    if name == "round-robin":
        return RoundRobinSelector()
    raise ValidationError(f"Unknown target selector: {name}", "Use fixed-primary or round-robin")

"""Node membership as reported by the cluster's own tooling."""

from collections.abc import Iterable

from pydantic import BaseModel, Field

from cluster_harness.exceptions import DivergenceError, MissingNodeError


class NodeSnapshot(BaseModel):
    """Set of node addresses observed in a single ``kubectl get nodes`` call."""

    addresses: frozenset[str] = Field(default_factory=frozenset)

    @classmethod
    def from_kubectl_output(cls, output: str) -> "NodeSnapshot":
        """Parse tabular ``get nodes`` output.

        The first line is the column header. Every following non-blank line
        contributes its first whitespace-delimited field, the node name, which
        is expected to be the node's private address.
        """
        addresses = set()
        for line in output.splitlines()[1:]:
            fields = line.split()
            if fields:
                addresses.add(fields[0])
        return cls(addresses=frozenset(addresses))

    def verify(self, expected: Iterable[str]) -> None:
        """Check that the snapshot matches the expected addresses exactly.

        Args:
            expected: Addresses of every known machine, in membership order

        Raises:
            DivergenceError: If the number of distinct addresses differs
            MissingNodeError: If an expected address was not observed
        """
        expected = list(expected)
        expected_set = set(expected)

        if len(self.addresses) != len(expected_set):
            raise DivergenceError(set(self.addresses), expected_set)

        for address in expected:
            if address not in self.addresses:
                raise MissingNodeError(address, set(self.addresses))

    def __contains__(self, address: object) -> bool:
        return address in self.addresses

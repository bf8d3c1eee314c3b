"""Membership reconciliation for gauge families with varying label cardinality."""
from typing import Iterable, List
import logging

from mongodb_exporter.series import LabelSet

logger = logging.getLogger(__name__)


class MembershipReconciler:
    """Tracks the label sets observed in the previous successful pull.

    Families reconciled this way are not reset after every pull. Instead,
    label sets that disappear between pulls (a replica-set member removed
    from the config, say) are explicitly deleted from every family in the
    group, so a departed entity never lingers at its last value.

    Must be driven from inside the owning gauge set's ``locked()`` scope.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self.families: List = []
        self._previous: frozenset = frozenset()

    def bind(self, families: Iterable) -> None:
        self.families = list(families)

    @property
    def previous(self) -> frozenset:
        return self._previous

    def reconcile(self, current: Iterable[LabelSet]) -> frozenset:
        """Delete stale label sets and remember ``current`` for the next pull.

        Returns the label sets that were evicted.
        """
        current = frozenset(current)
        # Held label sets include any left by an interrupted export.
        held = frozenset().union(*(family.label_sets() for family in self.families))
        stale = (held | self._previous) - current

        for labels in stale:
            for family in self.families:
                family.remove(labels)

        if stale:
            logger.info(
                f"Reconciler '{self.name}': removed {len(stale)} stale series: "
                f"{sorted(str(labels) for labels in stale)}"
            )

        self._previous = current
        return stale

"""Scrape-scoped gauge families and their snapshot/publish/reset lifecycle."""
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union
import logging
import threading

from prometheus_client.core import GaugeMetricFamily, Metric

from mongodb_exporter.series import LabelSet

logger = logging.getLogger(__name__)

NAMESPACE = "mongodb"

Labels = Union[LabelSet, Mapping[str, object], None]


def build_name(namespace: str, subsystem: str, name: str) -> str:
    """Join non-empty name segments the way prometheus_client does."""
    return "_".join(part for part in (namespace, subsystem, name) if part)


class MetricFamily:
    """A named, dimensioned gauge holding one value per label set."""

    def __init__(
        self,
        name: str,
        documentation: str,
        labelnames: Sequence[str] = (),
        namespace: str = NAMESPACE,
        subsystem: str = "",
    ):
        self.name = name
        self.full_name = build_name(namespace, subsystem, name)
        self.documentation = documentation
        self.labelnames: Tuple[str, ...] = tuple(labelnames)
        self._values: Dict[LabelSet, float] = {}

    def _label_set(self, labels: Labels) -> LabelSet:
        label_set = labels if isinstance(labels, LabelSet) else LabelSet.of(labels or {})
        if set(label_set.names()) != set(self.labelnames):
            raise ValueError(
                f"{self.full_name}: expected labels {list(self.labelnames)}, "
                f"got {list(label_set.names())}"
            )
        return label_set

    def set(self, labels: Labels, value: float) -> None:
        """Upsert the value for a label set."""
        self._values[self._label_set(labels)] = float(value)

    def remove(self, labels: Labels) -> bool:
        """Delete a label set. Returns whether it was present."""
        return self._values.pop(self._label_set(labels), None) is not None

    def clear(self) -> None:
        self._values.clear()

    def get(self, labels: Labels) -> Optional[float]:
        return self._values.get(self._label_set(labels))

    def label_sets(self) -> frozenset:
        return frozenset(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def describe(self) -> GaugeMetricFamily:
        return GaugeMetricFamily(self.full_name, self.documentation, labels=list(self.labelnames))

    def collect(self) -> GaugeMetricFamily:
        family = self.describe()
        for labels, value in sorted(self._values.items(), key=lambda item: item[0].key()):
            family.add_metric(list(labels.values_for(self.labelnames)), value)
        return family


class SnapshotGaugeSet:
    """The metric families that together make up one sub-collector's output.

    Every set -> export (-> reset) sequence must run inside ``locked()`` so
    concurrent pulls only interleave at the granularity of the whole group.
    """

    def __init__(self, *families: MetricFamily, reconciler=None):
        self.families: Dict[str, MetricFamily] = {}
        for family in families:
            if family.name in self.families:
                raise ValueError(f"Duplicate metric family in gauge set: {family.name}")
            self.families[family.name] = family
        self.reconciler = reconciler
        if reconciler is not None:
            reconciler.bind(self.families.values())
        self._lock = threading.Lock()

    @contextmanager
    def locked(self):
        """Hold the group lock. If the body raises, reset-every-pull
        families are cleared so partial values never reach a later pull.

        Reconciled groups keep their state; stray label sets are evicted by
        the next reconciliation.
        """
        with self._lock:
            try:
                yield self
            except BaseException:
                if self.reconciler is None:
                    for family in self.families.values():
                        family.clear()
                raise

    def set(self, name: str, labels: Labels, value: float) -> None:
        self.families[name].set(labels, value)

    def set_many(self, name: str, values: Iterable[Tuple[Labels, float]]) -> None:
        family = self.families[name]
        for labels, value in values:
            family.set(labels, value)

    def reconcile(self, current: Iterable[LabelSet]) -> frozenset:
        """Evict label sets not observed in this pull from every family."""
        if self.reconciler is None:
            raise RuntimeError("Gauge set has no membership reconciler attached")
        return self.reconciler.reconcile(current)

    def _snapshot(self) -> List[Metric]:
        return [family.collect() for family in self.families.values() if len(family)]

    def export(self) -> Iterator[Metric]:
        """Snapshot every family that holds a value, leaving state intact."""
        return iter(self._snapshot())

    def export_and_reset(self) -> Iterator[Metric]:
        """Snapshot every family that holds a value, then clear them all."""
        snapshot = self._snapshot()
        for family in self.families.values():
            family.clear()
        return iter(snapshot)

    def describe(self) -> List[Metric]:
        return [family.describe() for family in self.families.values()]

    def __getitem__(self, name: str) -> MetricFamily:
        return self.families[name]

"""Label identity for metric series."""
from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional, Tuple


@dataclass(frozen=True)
class LabelSet:
    """Immutable label mapping identifying one series within a family.

    Items are kept sorted by label name, so two label sets compare (and hash)
    equal exactly when their canonical serializations match.
    """
    items: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def of(cls, labels: Optional[Mapping[str, object]] = None, **kwargs) -> "LabelSet":
        """Build a label set from a mapping and/or keyword labels."""
        merged: Dict[str, str] = {}
        if labels:
            merged.update({k: str(v) for k, v in labels.items()})
        merged.update({k: str(v) for k, v in kwargs.items()})
        return cls(tuple(sorted(merged.items())))

    def key(self) -> str:
        """Canonical serialization, e.g. ``host=a:27017,id=rs0``."""
        return ",".join(f"{k}={v}" for k, v in self.items)

    def names(self) -> Tuple[str, ...]:
        return tuple(k for k, _ in self.items)

    def values_for(self, label_names: Tuple[str, ...]) -> Tuple[str, ...]:
        """Label values ordered by the given label names."""
        lookup = dict(self.items)
        return tuple(lookup[name] for name in label_names)

    def as_dict(self) -> Dict[str, str]:
        return dict(self.items)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __str__(self) -> str:
        return "{" + self.key() + "}"


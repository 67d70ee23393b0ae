# src/aggregator/elements.py
import threading
from typing import Any, Dict

from aggregator.attributes import Attributes
from ingest.model import Node


class ElementStat:
    """Statistics for one element path: occurrence count, attributes and child elements."""

    def __init__(self):
        self.count: int = 0
        self.attributes = Attributes()
        self.children = Elements()

    def __repr__(self) -> str:
        return f"<ElementStat count={self.count} attributes={self.attributes.len()} children={self.children.len()}>"


class Elements:
    """
    Thread-safe, recursively nested map of tag name -> ElementStat.

    Every instance owns its own lock, so workers merging unrelated branches
    of the tree never contend; a lock is held only for one insert-or-update.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, ElementStat] = {}

    def add(self, node: Node) -> None:
        """
        Merges `node` and its whole subtree into the aggregate.

        The subtree is walked with an explicit stack of (level, node) pairs,
        so nesting depth is not bounded by the interpreter's recursion limit.
        """
        pending = [(self, node)]
        while pending:
            level, current = pending.pop()
            stat = level._count(current.name)

            for attr in current.attributes:
                stat.attributes.add(attr.name)

            for child in current.children:
                pending.append((stat.children, child))

    def _count(self, name: str) -> ElementStat:
        """Inserts-or-fetches the stat for `name` and counts one occurrence, in one critical section."""
        with self._lock:
            stat = self._items.get(name)
            if stat is None:
                stat = ElementStat()
                self._items[name] = stat
            stat.count += 1
            return stat

    def get(self) -> Dict[str, ElementStat]:
        """Returns a snapshot copy of tag -> ElementStat."""
        with self._lock:
            return dict(self._items)

    def len(self) -> int:
        with self._lock:
            return len(self._items)

    def __len__(self) -> int:
        return self.len()

    def total(self) -> int:
        """Sum of the counts at this level; at the top level, the number of roots merged."""
        with self._lock:
            return sum(stat.count for stat in self._items.values())

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict of the aggregate, for export and comparisons."""
        return {
            tag: {
                "count": stat.count,
                "attributes": stat.attributes.get(),
                "children": stat.children.to_dict(),
            }
            for tag, stat in sorted(self.get().items())
        }

    def __repr__(self) -> str:
        return f"<Elements {sorted(self.get())}>"

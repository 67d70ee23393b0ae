# src/aggregator/attributes.py
import threading
from typing import Dict


class Attributes:
    """
    Corpus-wide attribute frequencies for one element path.

    Maps attribute name to the number of times it was seen on elements at
    that path. Safe for concurrent `add` calls; counts only grow.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {}

    def add(self, name: str) -> None:
        with self._lock:
            self._counts[name] = self._counts.get(name, 0) + 1

    def get(self) -> Dict[str, int]:
        """Returns a snapshot copy of name -> count."""
        with self._lock:
            return dict(self._counts)

    def len(self) -> int:
        with self._lock:
            return len(self._counts)

    def __len__(self) -> int:
        return self.len()

    def __repr__(self) -> str:
        return f"<Attributes {self.get()}>"

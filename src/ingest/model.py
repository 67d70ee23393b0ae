# ============================================
# file: src/ingest/model.py
# ============================================
from typing import List, Optional

from pydantic import BaseModel, Field


class Attribute(BaseModel):
    name: str
    value: str = ""


class Node(BaseModel):
    """
    A single XML element in the parsed tree.

    Attributes keep document order and duplicates; children are owned
    exclusively by this node. `text` holds the last trimmed character-data
    run found directly inside the element (mixed content is not modelled).
    """
    name: str
    attributes: List[Attribute] = Field(default_factory=list)
    children: List['Node'] = Field(default_factory=list)
    text: Optional[str] = None

    def find_first(self, name: str) -> Optional['Node']:
        """Returns the first node named `name` in depth-first pre-order (self included)."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node.name == name:
                return node
            stack.extend(reversed(node.children))
        return None


class Document(BaseModel):
    """Parser output for one XML source. `root` is None when the input held no element."""
    root: Optional[Node] = None
    proc_inst: Optional[str] = None
    directives: List[str] = Field(default_factory=list)
    source: Optional[str] = None

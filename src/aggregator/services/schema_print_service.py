# src/aggregator/services/schema_print_service.py
import io
import sys
from typing import Optional, TextIO

from aggregator.attributes import Attributes
from aggregator.elements import Elements

INDENT = "  "


def _render_attributes(attributes: Attributes) -> str:
    return "".join(f' {name}="{count}"' for name, count in sorted(attributes.get().items()))


def print_schema(
        elements: Elements,
        depth: int = 0,
        parent_count: Optional[int] = None,
        out: Optional[TextIO] = None,
) -> None:
    """
    Renders the aggregate tree as annotated pseudo-XML.

    Each element line carries its occurrence count and, when it occurs fewer
    times than its parent, an `_optional="true"` marker. This compares total
    counts, not per-parent presence, so a child repeated inside some parents
    can hide its absence from others and still be reported as required.

    Args:
        elements: The level of the aggregate to render.
        depth: Indentation level of this call.
        parent_count: Count of the enclosing element; the top-level call
                      defaults to the number of roots merged.
        out: Text sink, defaults to stdout.
    """
    out = out or sys.stdout
    if parent_count is None:
        parent_count = elements.total()

    indent = INDENT * depth
    for tag, stat in sorted(elements.get().items()):
        line = f'{indent}<{tag} _count="{stat.count}"'
        if stat.count < parent_count:
            line += ' _optional="true"'
        line += _render_attributes(stat.attributes)

        if stat.children.len() > 0:
            out.write(line + ">\n")
            print_schema(stat.children, depth + 1, stat.count, out)
            out.write(f"{indent}</{tag}>\n")
        else:
            out.write(line + " />\n")


def render_schema(elements: Elements) -> str:
    """Returns the schema sketch as a string instead of writing it out."""
    buf = io.StringIO()
    print_schema(elements, out=buf)
    return buf.getvalue()

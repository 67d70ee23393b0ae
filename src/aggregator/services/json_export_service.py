import json

from aggregator.elements import Elements


def export_json(elements: Elements, indent: int = 2, ensure_ascii: bool = False) -> str:
    """
    Convert the aggregate tree to a JSON string.

    Args:
        elements: Top level of the aggregate.
        indent: Indentation level for pretty-printing (default: 2)
        ensure_ascii: If True, escape non-ASCII chars (default: False)

    Returns:
        str: JSON of the form {tag: {"count", "attributes", "children"}}
    """
    return json.dumps(elements.to_dict(), ensure_ascii=ensure_ascii, indent=indent, sort_keys=True)

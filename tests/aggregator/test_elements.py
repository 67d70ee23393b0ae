# tests/aggregator/test_elements.py
import io
import itertools
import sys
from concurrent.futures import ThreadPoolExecutor

import pytest

from aggregator.attributes import Attributes
from aggregator.elements import Elements
from ingest.services.xml_parse_service import XmlParseService


def node_of(xml: str):
    return XmlParseService().parse(io.BytesIO(xml.encode())).root


@pytest.fixture
def documents():
    return [
        node_of('<a id="1"><b/><c x="1"/></a>'),
        node_of('<a><b/></a>'),
        node_of('<a id="2" kind="k"><b><d/></b></a>'),
        node_of('<a><c/><c/></a>'),
    ]


def test_add_counts_every_path(documents):
    """Counts are totals per element path across all merged trees."""
    elements = Elements()
    for doc in documents:
        elements.add(doc)

    a = elements.get()["a"]
    assert a.count == 4
    assert a.children.get()["b"].count == 3
    assert a.children.get()["c"].count == 3
    assert a.children.get()["b"].children.get()["d"].count == 1
    assert elements.total() == 4
    assert elements.len() == 1


def test_add_keeps_paths_separate():
    """The same tag under different parents is tracked per path."""
    elements = Elements()
    elements.add(node_of("<r><x><name/></x><y><name/><name/></y></r>"))

    r = elements.get()["r"]
    assert r.children.get()["x"].children.get()["name"].count == 1
    assert r.children.get()["y"].children.get()["name"].count == 2


def test_attribute_counts_are_independent():
    """An attribute on 5 of 10 occurrences counts 5, regardless of other attributes."""
    elements = Elements()
    for i in range(10):
        attrs = ' id="%d"' % i if i % 2 else ""
        elements.add(node_of(f'<x{attrs} always="y"/>'))

    x = elements.get()["x"]
    assert x.count == 10
    assert x.attributes.get() == {"id": 5, "always": 10}
    assert x.attributes.len() == 2


def test_aggregate_is_order_independent(documents):
    """Any permutation of the same documents yields the same aggregate."""
    expected = None
    for perm in itertools.permutations(documents):
        elements = Elements()
        for doc in perm:
            elements.add(doc)
        if expected is None:
            expected = elements.to_dict()
        assert elements.to_dict() == expected


def test_concurrent_adds_lose_nothing(documents):
    """Many threads merging at once produce exact counts."""
    elements = Elements()
    batch = documents * 250

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(elements.add, batch))

    sequential = Elements()
    for doc in batch:
        sequential.add(doc)

    assert elements.to_dict() == sequential.to_dict()
    assert elements.get()["a"].count == 1000
    assert elements.get()["a"].attributes.get() == {"id": 500, "kind": 250}


def test_to_dict_shape():
    elements = Elements()
    elements.add(node_of('<a k="v"><b/></a>'))

    assert elements.to_dict() == {
        "a": {"count": 1, "attributes": {"k": 1}, "children": {"b": {"count": 1, "attributes": {}, "children": {}}}},
    }


def test_attributes_get_returns_snapshot():
    attributes = Attributes()
    attributes.add("id")
    attributes.add("id")

    snapshot = attributes.get()
    snapshot["id"] = 99
    attributes.add("lang")

    assert attributes.get() == {"id": 2, "lang": 1}
    assert len(attributes) == 2


def test_concurrent_attribute_adds():
    attributes = Attributes()

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(attributes.add, ["id", "name"] * 2000))

    assert attributes.get() == {"id": 2000, "name": 2000}


def test_add_merges_nesting_deeper_than_the_recursion_limit():
    """The subtree walk is iterative; depth is bounded by memory only."""
    depth = sys.getrecursionlimit() + 500
    root = node_of("<n>" * depth + "</n>" * depth)

    elements = Elements()
    elements.add(root)
    elements.add(root)

    level, seen = elements, 0
    while level.len():
        stat = level.get()["n"]
        assert stat.count == 2
        level, seen = stat.children, seen + 1
    assert seen == depth

# src/ingest/services/xml_parse_service.py
import codecs
import logging
import re
from typing import BinaryIO, Iterable, List, Optional, Tuple

from lxml import etree

from ingest.errors import ParseError, StructuralError
from ingest.model import Attribute, Document, Node

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

# Input that contains nothing but a prolog (declaration, PIs, comments, doctype).
PROLOG_ONLY_PATTERN = re.compile(
    rb"\s*(?:(?:<\?.*?\?>|<!--.*?-->|<!DOCTYPE[^>\[]*(?:\[.*?\])?\s*>)\s*)*",
    re.DOTALL,
)

# lxml does not report the XML declaration as a PI, so it is read from the raw prefix.
XML_DECLARATION_PATTERN = re.compile(rb"<\?xml\s+(.*?)\?>", re.DOTALL)


def _local_name(tag: str) -> str:
    """Strips the '{namespace}' prefix lxml puts in front of qualified names."""
    return etree.QName(tag).localname


def _last_text_run(elem: etree._Element) -> Optional[str]:
    """
    Returns the last character-data run directly inside `elem`, trimmed.

    That is the tail of the last child carrying one, or the element's own
    leading text when no child has a tail. Comments count as children, so
    they split runs: `<a>x<!--c-->y</a>` gives "y".
    """
    run = elem.text
    for child in elem:
        if child.tail is not None:
            run = child.tail
    return run.strip() if run is not None else None


class _TreeBuilder:
    """Turns lxml pull events into a Node tree using an explicit open-node stack."""

    def __init__(self, source: Optional[str]):
        self.source = source
        self.root: Optional[Node] = None
        self.stack: List[Node] = []
        self.proc_inst: Optional[str] = None

    @property
    def started(self) -> bool:
        return self.root is not None

    def consume(self, events: Iterable[Tuple[str, etree._Element]]) -> None:
        for event, elem in events:
            if event == "start":
                self._start(elem)
            elif event == "end":
                self._end(elem)
            elif event == "pi":
                self.proc_inst = f"<?{elem.target} {elem.text or ''}?>"

    def _start(self, elem: etree._Element) -> None:
        node = Node(
            name=_local_name(elem.tag),
            attributes=[Attribute(name=_local_name(k), value=v) for k, v in elem.attrib.items()],
        )
        if self.stack:
            self.stack[-1].children.append(node)
        elif self.root is None:
            self.root = node
        self.stack.append(node)

    def _end(self, elem: etree._Element) -> None:
        if not self.stack:
            raise StructuralError(self.source, f"end tag </{_local_name(elem.tag)}> without an open element")
        node = self.stack.pop()
        text = _last_text_run(elem)
        if text is not None:
            node.text = text
        # The Node subtree now holds everything we need; release lxml's copy.
        del elem[:]


class XmlParseService:
    """
    Streaming XML parser producing a Document/Node tree.

    The byte stream is fed chunk by chunk into an lxml pull parser, which
    detects and transcodes the encoding declared in the prolog or BOM.
    libxml2's depth and text-size limits are lifted (`huge_tree`), so only
    malformed input is rejected.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size

    def parse_file(self, path: str) -> Document:
        """Opens `path` in binary mode and parses it. I/O errors surface as ParseError."""
        try:
            with open(path, "rb") as f:
                return self.parse(f, source=str(path))
        except OSError as e:
            raise ParseError(str(path), e) from e

    def parse(self, stream: BinaryIO, source: Optional[str] = None) -> Document:
        """
        Parses one XML byte stream.

        Returns a Document with a None root when the input holds no element
        at all. Raises ParseError for malformed input and StructuralError for
        corrupt nesting.
        """
        pull = etree.XMLPullParser(
            events=("start", "end", "pi"),
            remove_comments=False,
            resolve_entities=False,
            no_network=True,
            huge_tree=True,
        )
        builder = _TreeBuilder(source)
        prefix = bytearray()

        try:
            while True:
                chunk = stream.read(self.chunk_size)
                if not chunk:
                    break
                if not builder.started:
                    prefix.extend(chunk)
                pull.feed(chunk)
                builder.consume(pull.read_events())
            result = pull.close()
            builder.consume(pull.read_events())
        except etree.XMLSyntaxError as e:
            if not builder.started and self._is_prolog_only(bytes(prefix)):
                logger.debug("No element found in %s; returning empty document.", source)
                return Document(proc_inst=builder.proc_inst or self._declaration(prefix), source=source)
            raise ParseError(source, e) from e

        if builder.stack:
            raise StructuralError(source, f"element <{builder.stack[-1].name}> was never closed")

        directives: List[str] = []
        if result is not None:
            doctype = result.getroottree().docinfo.doctype
            if doctype:
                directives.append(doctype)

        return Document(
            root=builder.root,
            # The declaration always comes first, so any other PI is the later one.
            proc_inst=builder.proc_inst or self._declaration(prefix),
            directives=directives,
            source=source,
        )

    @staticmethod
    def _is_prolog_only(data: bytes) -> bool:
        return PROLOG_ONLY_PATTERN.fullmatch(data.removeprefix(codecs.BOM_UTF8)) is not None

    @staticmethod
    def _declaration(prefix: bytearray) -> Optional[str]:
        """Renders a leading `<?xml ...?>` declaration the same way as other PIs."""
        match = XML_DECLARATION_PATTERN.match(bytes(prefix).removeprefix(codecs.BOM_UTF8))
        if match is None:
            return None
        return f"<?xml {match.group(1).decode('latin-1')}?>"

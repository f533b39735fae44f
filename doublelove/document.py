"""
In-memory editorial XML document with a tag index.

Wraps an ElementTree root so repeated tag lookups (every ``clip``, every
``width``, every ``sequence`` by id) do not rescan the tree. Mutations made
through the document mark the tag index stale; it is rebuilt in document
order on the next ``by_tag``. The id index only goes stale when an inserted
or removed subtree carries ``id`` attributes, so per-clip sequence lookups
keep using it while labels are copied around.
"""

import copy
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Union

from .safe_xml import safe_fromstring

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'


def text_content(elem: Optional[ET.Element]) -> str:
    """Concatenated text of an element and all its descendants."""
    if elem is None:
        return ""
    return "".join(elem.itertext())


def set_text_content(elem: ET.Element, value: str) -> None:
    """Replace everything inside ``elem`` with a single text node.

    Attributes and the element's tail are kept.
    """
    for child in list(elem):
        elem.remove(child)
    elem.text = value


def _carries_ids(elems) -> bool:
    return any(e.get('id') is not None for elem in elems for e in elem.iter())


class XMLDocument:
    """
    Parsed document owned by a single processing run.

    Usage:
        doc = XMLDocument.from_string(xml_text)
        for clip in doc.by_tag('clip'):
            ...
        output = doc.serialize()
    """

    def __init__(self, root: ET.Element):
        self.root = root
        self._index: Dict[str, List[ET.Element]] = {}
        self._ids: Dict[tuple, ET.Element] = {}
        self._tags_stale = True
        self._ids_stale = True

    @classmethod
    def from_string(cls, content: Union[str, bytes]) -> 'XMLDocument':
        """Parse raw upload content. Raises XMLProcessError (INVALID_XML)."""
        return cls(safe_fromstring(content))

    def _build_index(self) -> None:
        """Index every element by tag and (tag, id), in document order."""
        self._index = {}
        self._ids = {}
        for elem in self.root.iter():
            if not isinstance(elem.tag, str):
                continue  # comments and processing instructions
            self._index.setdefault(elem.tag, []).append(elem)
            elem_id = elem.get('id')
            if elem_id is not None:
                self._ids.setdefault((elem.tag, elem_id), elem)
        self._tags_stale = False
        self._ids_stale = False

    def invalidate(self, ids: bool = True) -> None:
        self._tags_stale = True
        if ids:
            self._ids_stale = True

    def by_tag(self, tag: str) -> List[ET.Element]:
        """Snapshot list of all elements with ``tag``, in document order.

        The returned list is a copy, so callers may mutate the tree while
        iterating over it.
        """
        if self._tags_stale:
            self._build_index()
        return list(self._index.get(tag, ()))

    def find_by_id(self, tag: str, elem_id: str) -> Optional[ET.Element]:
        """First element with ``tag`` whose id attribute equals ``elem_id``."""
        if self._ids_stale:
            self._build_index()
        return self._ids.get((tag, elem_id))

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def set_text(self, elem: ET.Element, value: str) -> None:
        if len(elem):
            self.invalidate(ids=_carries_ids(elem[:]))
        set_text_content(elem, value)

    def append_copy(self, parent: ET.Element, source: ET.Element) -> ET.Element:
        """Append a deep copy of ``source`` as the last child of ``parent``."""
        clone = copy.deepcopy(source)
        clone.tail = None
        parent.append(clone)
        self.invalidate(ids=_carries_ids([clone]))
        return clone

    def replace_inner(self, target: ET.Element, source: ET.Element) -> None:
        """Replace the content of ``target`` with copies of ``source``'s content.

        ``target`` keeps its own tag, attributes and tail.
        """
        removed = list(target)
        for child in removed:
            target.remove(child)
        target.text = source.text
        for child in source:
            target.append(copy.deepcopy(child))
        self.invalidate(ids=_carries_ids(removed) or _carries_ids(source[:]))

    # ========================================================================
    # SERIALIZATION
    # ========================================================================

    def serialize(self) -> str:
        """Root element as text, prefixed with the UTF-8 XML declaration."""
        return XML_HEADER + ET.tostring(self.root, encoding='unicode')

"""
In-memory document model consumed by the accessibility tree builder.

The builder never talks to a browser directly. Drivers capture the live page
into these lightweight node objects (or ``parse_html`` builds them from
markup), and the tree builder, role oracle and action executors work on them.
Every node carries a ``node_id`` that identifies the underlying node for its
lifetime in the document; reference caching is keyed on it.
"""

import itertools
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Union

_node_ids = itertools.count(1)


@dataclass
class ComputedStyle:
    """The handful of computed CSS properties the tree builder reads."""

    display: str = "inline"
    visibility: str = "visible"
    cursor: str = "auto"
    pointer_events: str = "auto"


class DomNode:
    """Base class for every node in a captured document."""

    def __init__(self, node_id: Optional[Union[int, str]] = None):
        self.node_id = node_id if node_id is not None else next(_node_ids)
        self.parent: Optional["DomNode"] = None
        self.owner_document: Optional["DomDocument"] = None
        self.assigned_slot: Optional["DomElement"] = None

    @property
    def parent_element(self) -> Optional["DomElement"]:
        parent = self.parent
        if isinstance(parent, DomShadowRoot):
            return parent.host
        return parent if isinstance(parent, DomElement) else None


class DomText(DomNode):
    """A text node."""

    def __init__(self, text: str, node_id: Optional[Union[int, str]] = None):
        super().__init__(node_id)
        self.text = text

    def __repr__(self) -> str:
        return f"DomText({self.text!r})"


class DomElement(DomNode):
    """
    An element node.

    ``tag`` is stored upper-cased, like ``Element.nodeName`` for HTML documents.
    Form controls keep their live state (``value``, ``checked``, ``selected``)
    separately from attributes, since actions mutate the property and not the
    markup.
    """

    def __init__(
        self,
        tag: str,
        attributes: Optional[Dict[str, str]] = None,
        style: Optional[ComputedStyle] = None,
        node_id: Optional[Union[int, str]] = None,
    ):
        super().__init__(node_id)
        self.tag = tag.upper()
        self.attributes: Dict[str, str] = dict(attributes or {})
        self.children: List[DomNode] = []
        self.shadow_root: Optional["DomShadowRoot"] = None
        self.assigned_nodes: List[DomNode] = []
        self.style = style or ComputedStyle()
        self.before_content: Optional[str] = None
        self.after_content: Optional[str] = None
        # None: no layout information captured, visibility follows style
        self.visible: Optional[bool] = None

        self.value: str = self.attributes.get("value", "")
        self.checked: bool = "checked" in self.attributes
        self.selected: bool = "selected" in self.attributes
        self.indeterminate: bool = False

    def __repr__(self) -> str:
        return f"DomElement(<{self.tag.lower()}> id={self.node_id})"

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = value

    def remove_attribute(self, name: str) -> None:
        self.attributes.pop(name, None)

    @property
    def input_type(self) -> str:
        """Lower-cased ``type`` of an INPUT element (``text`` when absent)."""
        return (self.attributes.get("type") or "text").lower()

    # ------------------------------------------------------------------
    # Tree mutation
    # ------------------------------------------------------------------

    def append_child(self, child: DomNode) -> DomNode:
        child.parent = self
        _set_owner(child, self.owner_document)
        self.children.append(child)
        return child

    def remove_child(self, child: DomNode) -> None:
        self.children.remove(child)
        child.parent = None
        _set_owner(child, None)

    def attach_shadow(self) -> "DomShadowRoot":
        self.shadow_root = DomShadowRoot(self)
        self.shadow_root.owner_document = self.owner_document
        return self.shadow_root

    # ------------------------------------------------------------------
    # Traversal helpers
    # ------------------------------------------------------------------

    def iter_descendants(self) -> Iterator["DomElement"]:
        """Depth-first walk over light-DOM and shadow-DOM descendant elements."""
        for child in self.children:
            if isinstance(child, DomElement):
                yield child
                yield from child.iter_descendants()
        if self.shadow_root is not None:
            for child in self.shadow_root.children:
                if isinstance(child, DomElement):
                    yield child
                    yield from child.iter_descendants()

    def text_content(self) -> str:
        parts: List[str] = []
        for child in self.children:
            if isinstance(child, DomText):
                parts.append(child.text)
            elif isinstance(child, DomElement):
                parts.append(child.text_content())
        return "".join(parts)

    def root_node(self) -> DomNode:
        node: DomNode = self
        while node.parent is not None:
            node = node.parent
        return node


class DomShadowRoot(DomNode):
    """An open shadow root attached to a host element."""

    def __init__(self, host: DomElement, node_id: Optional[Union[int, str]] = None):
        super().__init__(node_id)
        self.host = host
        self.children: List[DomNode] = []

    def append_child(self, child: DomNode) -> DomNode:
        child.parent = self
        _set_owner(child, self.owner_document)
        self.children.append(child)
        return child

    def get_element_by_id(self, element_id: str) -> Optional[DomElement]:
        for child in self.children:
            if not isinstance(child, DomElement):
                continue
            if child.get_attribute("id") == element_id:
                return child
            for element in child.iter_descendants():
                if element.get_attribute("id") == element_id:
                    return element
        return None


class DomDocument:
    """A captured document: the root element plus id lookup."""

    def __init__(self, document_element: DomElement, url: str = "about:blank"):
        self.document_element = document_element
        self.url = url
        _set_owner(document_element, self)

    @property
    def body(self) -> Optional[DomElement]:
        for child in self.document_element.children:
            if isinstance(child, DomElement) and child.tag == "BODY":
                return child
        return None

    def iter_elements(self) -> Iterator[DomElement]:
        yield self.document_element
        yield from self.document_element.iter_descendants()

    def get_element_by_id(self, element_id: str) -> Optional[DomElement]:
        """Light-DOM lookup, like ``document.getElementById``."""
        return _find_light_by_id(self.document_element, element_id)

    def find_by_node_id(self, node_id: Union[int, str]) -> Optional[DomElement]:
        for element in self.iter_elements():
            if element.node_id == node_id:
                return element
        return None


def _find_light_by_id(element: DomElement, element_id: str) -> Optional[DomElement]:
    if element.get_attribute("id") == element_id:
        return element
    for child in element.children:
        if isinstance(child, DomElement):
            found = _find_light_by_id(child, element_id)
            if found is not None:
                return found
    return None


def id_scope(element: DomElement):
    """The node whose ``get_element_by_id`` resolves IDREFs for ``element``."""
    root = element.root_node()
    if isinstance(root, DomShadowRoot):
        return root
    return element.owner_document


def _set_owner(node: DomNode, document: Optional[DomDocument]) -> None:
    node.owner_document = document
    if isinstance(node, DomElement):
        for child in node.children:
            _set_owner(child, document)
        if node.shadow_root is not None:
            _set_owner(node.shadow_root, document)
    elif isinstance(node, DomShadowRoot):
        for child in node.children:
            _set_owner(child, document)

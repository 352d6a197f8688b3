"""
Accessibility tree construction and normalization.

``TreeBuilder.build`` walks a document subtree depth first and produces an
``AriaSnapshot``: a tree of ``AriaNode`` objects (children are nested nodes or
literal text runs, in document order) plus the map from reference to live
element. After the walk two normalizer passes run: adjacent text runs are
coalesced, then generic wrappers that add no structure are collapsed.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union

from ..exceptions import InvalidRootError
from .dom import DomElement, DomNode, DomText
from .refs import ReferenceAssigner
from .roles import DefaultRoleOracle, RoleOracle, normalize_whitespace, state_fields_for_role

logger = logging.getLogger(__name__)

CLICKABLE_ROLES = ("button", "link", "menuitem", "tab", "option", "checkbox", "radio", "switch")


@dataclass
class Box:
    """Geometry summary: whether the element renders and which cursor it shows."""

    visible: bool = True
    cursor: str = "auto"


@dataclass
class AriaNode:
    """One materialized accessible node."""

    role: str
    name: str = ""
    ref: Optional[str] = None
    children: List[Union["AriaNode", str]] = field(default_factory=list)
    props: Dict[str, str] = field(default_factory=dict)
    checked: Optional[Union[bool, str]] = None
    disabled: Optional[bool] = None
    expanded: Optional[bool] = None
    level: Optional[int] = None
    pressed: Optional[Union[bool, str]] = None
    selected: Optional[bool] = None
    clickable: Optional[bool] = None
    box: Box = field(default_factory=Box)
    receives_pointer_events: bool = True
    element: Optional[DomElement] = field(default=None, repr=False, compare=False)

    def iter_nodes(self) -> Iterator["AriaNode"]:
        """Pre-order walk over this node and its descendant nodes."""
        yield self
        for child in self.children:
            if isinstance(child, AriaNode):
                yield from child.iter_nodes()


@dataclass(frozen=True)
class AriaSnapshot:
    """One build of the accessible tree plus its reference map."""

    root: AriaNode
    elements: Dict[str, DomElement]

    def element_for(self, ref: str) -> Optional[DomElement]:
        return self.elements.get(ref)

    def node_for(self, ref: str) -> Optional[AriaNode]:
        for node in self.root.iter_nodes():
            if node.ref == ref:
                return node
        return None


def receives_pointer_events(node: AriaNode) -> bool:
    """A node is pointer-reachable when it renders and pointer events reach it."""
    return node.box.visible and node.receives_pointer_events


def has_pointer_cursor(node: AriaNode) -> bool:
    return node.box.cursor == "pointer"


class TreeBuilder:
    """
    Builds accessibility snapshots from a document subtree.

    Args:
        oracle: Role/name/state oracle. Defaults to ``DefaultRoleOracle``.
        ref_assigner: Reference assigner kept across builds so references stay stable
                      for a session. A private one is created when omitted.
    """

    def __init__(
        self,
        oracle: Optional[RoleOracle] = None,
        ref_assigner: Optional[ReferenceAssigner] = None,
    ):
        self.oracle = oracle if oracle is not None else DefaultRoleOracle()
        self.ref_assigner = ref_assigner if ref_assigner is not None else ReferenceAssigner()

    def build(
        self,
        root: DomNode,
        for_ai: bool = False,
        ref_prefix: Optional[str] = None,
    ) -> AriaSnapshot:
        """
        Build a normalized snapshot of ``root``.

        Args:
            root: Element to snapshot (usually the document element).
            for_ai: Mint references, materialize generic containers, and keep
                    elements that are visible even when hidden for assistive technology.
            ref_prefix: Prefix for newly minted references.

        Returns:
            The snapshot.

        Raises:
            InvalidRootError: If root is not an element.
        """
        if not isinstance(root, DomElement):
            raise InvalidRootError(node_type=type(root).__name__)

        visited = set()
        elements: Dict[str, DomElement] = {}
        snapshot_root = AriaNode(
            role="fragment",
            element=root,
            box=self._box(root),
            receives_pointer_events=True,
        )

        def visit(aria_node: AriaNode, node: DomNode) -> None:
            if id(node) in visited:
                return
            visited.add(id(node))

            if isinstance(node, DomText):
                # A textbox reports its value, not its literal text children
                if node.text and aria_node.role != "textbox":
                    aria_node.children.append(node.text)
                return

            if not isinstance(node, DomElement):
                return

            element = node
            is_visible = not self.oracle.is_hidden_for_aria(element)
            if for_ai:
                is_visible = is_visible or self.oracle.is_visible(element)
            if not is_visible:
                return

            aria_children: List[DomElement] = []
            owns = element.get_attribute("aria-owns")
            if owns and root.owner_document is not None:
                for owned_id in owns.split():
                    owned = root.owner_document.get_element_by_id(owned_id)
                    if owned is not None:
                        aria_children.append(owned)

            child_node = self._to_aria_node(element, for_ai, ref_prefix)
            if child_node is not None:
                if child_node.ref:
                    elements[child_node.ref] = element
                aria_node.children.append(child_node)
            process_element(child_node or aria_node, element, aria_children)

        def process_element(aria_node: AriaNode, element: DomElement, aria_children: List[DomElement]) -> None:
            display = self.oracle.computed_display(element)
            treat_as_block = " " if display != "inline" or element.tag == "BR" else ""
            if treat_as_block:
                aria_node.children.append(treat_as_block)

            aria_node.children.append(self.oracle.css_content(element, "::before"))
            assigned = element.assigned_nodes if element.tag == "SLOT" else []
            if assigned:
                for child in assigned:
                    visit(aria_node, child)
            else:
                for child in element.children:
                    if child.assigned_slot is None:
                        visit(aria_node, child)
                if element.shadow_root is not None:
                    for child in element.shadow_root.children:
                        visit(aria_node, child)

            for owned in aria_children:
                visit(aria_node, owned)

            aria_node.children.append(self.oracle.css_content(element, "::after"))

            if treat_as_block:
                aria_node.children.append(treat_as_block)

            if len(aria_node.children) == 1 and aria_node.name == aria_node.children[0]:
                aria_node.children = []

            if aria_node.role == "link" and element.has_attribute("href"):
                aria_node.props["url"] = element.get_attribute("href")

        visit(snapshot_root, root)

        normalize_string_children(snapshot_root)
        normalize_generic_roles(snapshot_root)

        logger.debug(
            f"Built aria snapshot: {sum(1 for _ in snapshot_root.iter_nodes()) - 1} nodes, "
            f"{len(elements)} refs"
        )
        return AriaSnapshot(root=snapshot_root, elements=elements)

    def _box(self, element: DomElement) -> Box:
        return Box(visible=self.oracle.is_visible(element), cursor=element.style.cursor)

    def _to_aria_node(self, element: DomElement, for_ai: bool, ref_prefix: Optional[str]) -> Optional[AriaNode]:
        if element.tag == "IFRAME":
            return AriaNode(
                role="iframe",
                ref=self.ref_assigner.ref_for(element, "iframe", "", for_ai, ref_prefix),
                element=element,
                box=self._box(element),
                receives_pointer_events=True,
            )

        default_role = "generic" if for_ai else None
        role = self.oracle.get_role(element) or default_role
        if not role or role in ("presentation", "none"):
            return None

        name = normalize_whitespace(self.oracle.get_name(element) or "")
        pointer = self.oracle.receives_pointer_events(element)

        node = AriaNode(
            role=role,
            name=name,
            ref=self.ref_assigner.ref_for(element, role, name, for_ai, ref_prefix),
            element=element,
            box=self._box(element),
            receives_pointer_events=pointer,
        )

        for state_field in state_fields_for_role(role):
            setattr(node, state_field, self.oracle.get_state(element, state_field))

        node.clickable = pointer and (
            role in CLICKABLE_ROLES
            or element.has_attribute("onclick")
            or (element.get_attribute("role") or "") in ("button", "link")
        )

        if element.tag in ("INPUT", "TEXTAREA"):
            input_type = element.input_type if element.tag == "INPUT" else "textarea"
            if input_type not in ("checkbox", "radio") and (
                input_type != "file" or self.oracle.input_file_role_textbox
            ):
                node.children = [element.value]

        return node


# =============================================================================
# NORMALIZERS
# =============================================================================

def normalize_string_children(root: AriaNode) -> None:
    """Coalesce adjacent text runs and drop a sole text child that repeats the node's name."""

    def flush(buffer: List[str], normalized: List[Union[AriaNode, str]]) -> None:
        if not buffer:
            return
        text = normalize_whitespace("".join(buffer))
        if text:
            normalized.append(text)
        buffer.clear()

    def visit(aria_node: AriaNode) -> None:
        normalized: List[Union[AriaNode, str]] = []
        buffer: List[str] = []
        for child in aria_node.children:
            if isinstance(child, str):
                buffer.append(child)
            else:
                flush(buffer, normalized)
                visit(child)
                normalized.append(child)
        flush(buffer, normalized)
        aria_node.children = normalized
        if len(aria_node.children) == 1 and aria_node.children[0] == aria_node.name:
            aria_node.children = []

    visit(root)


def normalize_generic_roles(root: AriaNode) -> None:
    """
    Remove generic wrappers that enclose at most one pointer-reachable node.

    The wrapper's children take its place in the parent. Wrappers around text,
    or around several nodes, are kept since they still group content.
    """

    def normalize(aria_node: AriaNode) -> List[Union[AriaNode, str]]:
        result: List[Union[AriaNode, str]] = []
        for child in aria_node.children:
            if isinstance(child, str):
                result.append(child)
                continue
            result.extend(normalize(child))

        remove_self = (
            aria_node.role == "generic"
            and len(result) <= 1
            and all(not isinstance(c, str) and receives_pointer_events(c) for c in result)
        )
        if remove_self:
            return result
        aria_node.children = result
        return [aria_node]

    normalize(root)


def generate_aria_tree(
    root: DomNode,
    for_ai: bool = False,
    ref_prefix: str = "",
    oracle: Optional[RoleOracle] = None,
    ref_assigner: Optional[ReferenceAssigner] = None,
) -> AriaSnapshot:
    """One-shot build with a throwaway builder."""
    return TreeBuilder(oracle, ref_assigner).build(root, for_ai=for_ai, ref_prefix=ref_prefix)

"""
Declarative aria templates and the matcher that evaluates them against a tree.

A template is either a text matcher or a role matcher (role plus optional
state, name and url constraints, nested child templates and a container
mode). Container modes:

- ``contain`` (default): child templates must appear in order as a
  not-necessarily-contiguous subsequence of the node's children.
- ``equal``: same length, matched pairwise in order.
- ``deep-equal``: like ``equal``, and enforced on every descendant list
  regardless of the child templates' own modes.

Templates can be built from the dataclasses directly or parsed from the YAML
surface with ``parse_template``::

    - heading /Issues \\d+/ [level=2]
    - list:
      - /children: equal
      - listitem: one
      - listitem: two
    - link "Home":
      - /url: /home
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

import yaml

from ..exceptions import TemplateError
from .dom import DomElement
from .render import render_text
from .roles import RoleOracle, normalize_whitespace
from .tree import AriaNode, AriaSnapshot, TreeBuilder

logger = logging.getLogger(__name__)

ContainerMode = Literal["contain", "equal", "deep-equal"]
CONTAINER_MODES = ("contain", "equal", "deep-equal")


@dataclass
class AriaRegex:
    pattern: str


TextMatcher = Union[str, AriaRegex]


@dataclass
class AriaTemplateTextNode:
    text: Optional[TextMatcher] = None
    kind: str = field(default="text", init=False)


@dataclass
class AriaTemplateRoleNode:
    role: str
    name: Optional[TextMatcher] = None
    checked: Optional[Union[bool, str]] = None
    disabled: Optional[bool] = None
    expanded: Optional[bool] = None
    level: Optional[int] = None
    pressed: Optional[Union[bool, str]] = None
    selected: Optional[bool] = None
    props: Dict[str, TextMatcher] = field(default_factory=dict)
    container_mode: Optional[ContainerMode] = None
    children: List["AriaTemplateNode"] = field(default_factory=list)
    kind: str = field(default="role", init=False)


AriaTemplateNode = Union[AriaTemplateTextNode, AriaTemplateRoleNode]


@dataclass
class MatcherReceived:
    raw: str
    regex: str


@dataclass
class MatchResult:
    matches: List[AriaNode]
    received: MatcherReceived


# =============================================================================
# MATCHING
# =============================================================================

def matches_text(text: Optional[str], template: Optional[TextMatcher]) -> bool:
    if not template:
        return True
    if not text:
        return False
    if isinstance(template, str):
        return text == template
    return re.search(template.pattern, text) is not None


def matches_node(node: Union[AriaNode, str], template: AriaTemplateNode, is_deep_equal: bool) -> bool:
    if isinstance(node, str):
        if isinstance(template, AriaTemplateTextNode):
            return matches_text(node, template.text)
        return False
    if not isinstance(template, AriaTemplateRoleNode):
        return False

    if template.role != "fragment" and template.role != node.role:
        return False
    for state_field in ("checked", "disabled", "expanded", "level", "pressed", "selected"):
        expected = getattr(template, state_field)
        if expected is not None and expected != getattr(node, state_field):
            return False
    if not matches_text(node.name, template.name):
        return False
    if not matches_text(node.props.get("url"), template.props.get("url")):
        return False

    if is_deep_equal or template.container_mode == "deep-equal":
        return list_equal(node.children, template.children, True)
    if template.container_mode == "equal":
        return list_equal(node.children, template.children, False)
    return contains_list(node.children, template.children)


def list_equal(
    children: List[Union[AriaNode, str]],
    template: List[AriaTemplateNode],
    is_deep_equal: bool,
) -> bool:
    if len(template) != len(children):
        return False
    return all(matches_node(child, t, is_deep_equal) for child, t in zip(children, template))


def contains_list(children: List[Union[AriaNode, str]], template: List[AriaTemplateNode]) -> bool:
    """Greedy in-order subsequence match: each template consumes children until it matches."""
    if len(template) > len(children):
        return False
    index = 0
    for t in template:
        while index < len(children):
            child = children[index]
            index += 1
            if matches_node(child, t, False):
                break
        else:
            return False
    return True


def matches_node_deep(
    root: AriaNode,
    template: AriaTemplateNode,
    collect_all: bool,
    is_deep_equal: bool = False,
) -> List[AriaNode]:
    """
    Search the tree for nodes matching ``template``.

    A matching text run reports its parent node. Stops at the first match
    unless ``collect_all`` is set.
    """
    results: List[AriaNode] = []

    def visit(node: Union[AriaNode, str], parent: Optional[AriaNode]) -> bool:
        if matches_node(node, template, is_deep_equal):
            result = parent if isinstance(node, str) else node
            if result is not None:
                results.append(result)
            return not collect_all
        if isinstance(node, str):
            return False
        for child in node.children:
            if visit(child, node):
                return True
        return False

    visit(root, None)
    return results


def match_snapshot(snapshot: AriaSnapshot, template: AriaTemplateNode, collect_all: bool = False) -> List[AriaNode]:
    return matches_node_deep(snapshot.root, template, collect_all)


def matches_aria_tree(
    root: DomElement,
    template: AriaTemplateNode,
    oracle: Optional[RoleOracle] = None,
) -> MatchResult:
    """Build a reference-free snapshot of ``root`` and return the first match with both text renderings."""
    snapshot = TreeBuilder(oracle).build(root)
    matches = matches_node_deep(snapshot.root, template, False)
    return MatchResult(
        matches=matches,
        received=MatcherReceived(
            raw=render_text(snapshot, mode="raw"),
            regex=render_text(snapshot, mode="regex"),
        ),
    )


def get_all_by_aria(
    root: DomElement,
    template: AriaTemplateNode,
    oracle: Optional[RoleOracle] = None,
) -> List[DomElement]:
    """Every element under ``root`` whose node matches ``template``."""
    snapshot = TreeBuilder(oracle).build(root)
    return [node.element for node in matches_node_deep(snapshot.root, template, True)]


# =============================================================================
# PARSING
# =============================================================================

_KEY_RE = re.compile(r"^(?P<role>[a-z]+)(?P<rest>.*)$")
_QUOTED_NAME_RE = re.compile(r'^"(?:[^"\\]|\\.)*"')
_REGEX_NAME_RE = re.compile(r"^/(?:[^/\\]|\\.)+/")
_ATTRIBUTE_RE = re.compile(r"^\[(?P<name>[a-z]+)(?:=(?P<value>[^\]]*))?\]")


def _parse_text_matcher(value: str) -> TextMatcher:
    if len(value) >= 2 and value.startswith("/") and value.endswith("/"):
        return AriaRegex(value[1:-1])
    return normalize_whitespace(value)


def _parse_bool(attribute: str, value: Optional[str], source: str, allow_mixed: bool = False) -> Union[bool, str]:
    if value is None or value == "true":
        return True
    if value == "false":
        return False
    if allow_mixed and value == "mixed":
        return "mixed"
    raise TemplateError(f'Unsupported value "{value}" for attribute "{attribute}"', source=source)


def _apply_attribute(node: AriaTemplateRoleNode, attribute: str, value: Optional[str], source: str) -> None:
    if attribute in ("checked", "pressed"):
        setattr(node, attribute, _parse_bool(attribute, value, source, allow_mixed=True))
    elif attribute in ("disabled", "expanded", "selected"):
        setattr(node, attribute, _parse_bool(attribute, value, source))
    elif attribute == "level":
        try:
            node.level = int(value or "")
        except ValueError as e:
            raise TemplateError(f'Value of "level" attribute must be a number, got "{value}"', source=source) from e
    else:
        raise TemplateError(f'Unsupported attribute [{attribute}]', source=source)


def parse_role_key(key: str) -> AriaTemplateRoleNode:
    """Parse ``role "name" [attr]...`` into a role template node."""
    match = _KEY_RE.match(key.strip())
    if not match:
        raise TemplateError(f"Expected a role at the start of {key!r}", source=key)
    node = AriaTemplateRoleNode(role=match.group("role"))
    rest = match.group("rest").strip()

    name_match = _QUOTED_NAME_RE.match(rest)
    if name_match:
        node.name = normalize_whitespace(json.loads(name_match.group(0)))
        rest = rest[name_match.end():].strip()
    else:
        regex_match = _REGEX_NAME_RE.match(rest)
        if regex_match:
            node.name = AriaRegex(regex_match.group(0)[1:-1])
            rest = rest[regex_match.end():].strip()

    while rest:
        attribute_match = _ATTRIBUTE_RE.match(rest)
        if not attribute_match:
            raise TemplateError(f"Unexpected input {rest!r} in {key!r}", source=key)
        _apply_attribute(node, attribute_match.group("name"), attribute_match.group("value"), key)
        rest = rest[attribute_match.end():].strip()
    return node


def _parse_items(items: Any, container: AriaTemplateRoleNode, source: str) -> None:
    if not isinstance(items, list):
        raise TemplateError("Aria template must be a YAML list", source=source)

    for item in items:
        if isinstance(item, str):
            container.children.append(parse_role_key(item))
            continue
        if not isinstance(item, dict) or len(item) != 1:
            raise TemplateError(f"Each template entry must be a string or a single-key mapping, got {item!r}", source=source)

        key, value = next(iter(item.items()))
        key = str(key)
        if key == "text":
            container.children.append(AriaTemplateTextNode(text=_parse_text_matcher(str(value))))
        elif key == "/url":
            container.props["url"] = _parse_text_matcher(str(value))
        elif key == "/children":
            if value not in CONTAINER_MODES:
                raise TemplateError(f'Unknown container mode "{value}"', source=source)
            container.container_mode = value
        elif key.startswith("/"):
            raise TemplateError(f"Unsupported property {key}", source=source)
        else:
            node = parse_role_key(key)
            if isinstance(value, list):
                _parse_items(value, node, source)
            elif value is not None:
                node.children.append(AriaTemplateTextNode(text=_parse_text_matcher(str(value))))
            container.children.append(node)


def parse_template(source: Union[str, List[Any]]) -> AriaTemplateNode:
    """
    Parse the YAML template surface into template nodes.

    Args:
        source: Template text, or an already loaded YAML list.

    Returns:
        The single top-level template node, or a ``fragment`` node wrapping
        several top-level entries.

    Raises:
        TemplateError: On YAML syntax errors or unsupported entries.
    """
    text = source if isinstance(source, str) else yaml.safe_dump(source)
    if isinstance(source, str):
        try:
            items = yaml.safe_load(source)
        except yaml.YAMLError as e:
            raise TemplateError(f"Invalid template YAML: {e}", source=text) from e
    else:
        items = source

    fragment = AriaTemplateRoleNode(role="fragment")
    _parse_items(items if items is not None else [], fragment, text)
    if len(fragment.children) == 1 and fragment.container_mode is None and not fragment.props:
        return fragment.children[0]
    return fragment

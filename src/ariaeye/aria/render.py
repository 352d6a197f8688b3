"""
Text and object-graph renderings of an accessibility snapshot.

Both projections share key construction: ``role "name"`` followed by state
annotations in a fixed order and, for pointer-reachable nodes of a snapshot
built with references, ``[ref=...]`` and ``[cursor=pointer]``.

In ``regex`` mode numeric, size and duration-like substrings are replaced
with a best-guess pattern so snapshots that only drift in numbers compare
equal, and text runs that merely repeat the node's name are dropped.
"""

import json
import re
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from .roles import get_role_purpose
from .supported_actions import supported_actions
from .tree import AriaNode, AriaSnapshot, has_pointer_cursor, receives_pointer_events

RenderMode = Literal["raw", "regex"]

# YAML keys are limited to 1024 characters; leave room for role and attributes
MAX_NAME_LENGTH = 900


# =============================================================================
# STRING HELPERS
# =============================================================================

_REGEXP_SPECIALS = re.compile(r"[.*+?^${}()|\[\]\\/]")


def escape_regexp(text: str) -> str:
    return _REGEXP_SPECIALS.sub(lambda m: "\\" + m.group(0), text)


def longest_common_substring(s1: str, s2: str) -> str:
    n1, n2 = len(s1), len(s2)
    max_len = 0
    ending_index = 0
    previous = [0] * (n2 + 1)
    for i in range(1, n1 + 1):
        current = [0] * (n2 + 1)
        for j in range(1, n2 + 1):
            if s1[i - 1] == s2[j - 1]:
                current[j] = previous[j - 1] + 1
                if current[j] > max_len:
                    max_len = current[j]
                    ending_index = i
        previous = current
    return s1[ending_index - max_len:ending_index]


_JS_NUMBER = re.compile(
    r"^\s*(?:[+-]?(?:\d+\.?\d*(?:e[+-]?\d+)?|\.\d+(?:e[+-]?\d+)?|Infinity)|0x[0-9a-f]+|0o[0-7]+|0b[01]+)\s*$",
    re.IGNORECASE,
)
_YAML_KEYWORDS = {"y", "n", "yes", "no", "true", "false", "on", "off", "null"}


def _yaml_needs_quotes(text: str) -> bool:
    if not text:
        return True
    if re.search(r"^\s|\s$", text):
        return True
    if re.search(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", text):
        return True
    if text.startswith("-"):
        return True
    if re.search(r"[\n:](\s|$)", text):
        return True
    if re.search(r"\s#", text):
        return True
    if re.search(r"[\n\r]", text):
        return True
    if re.search(r"^[&*\],?!>|@\"'#%]", text):
        return True
    if re.search(r"[{}`]", text):
        return True
    if text.startswith("["):
        return True
    if _JS_NUMBER.match(text) or text.lower() in _YAML_KEYWORDS:
        return True
    return False


def yaml_escape_key(text: str) -> str:
    """Single-quote a YAML mapping key when it would not parse as a plain scalar."""
    if not _yaml_needs_quotes(text):
        return text
    return "'" + text.replace("'", "''") + "'"


_VALUE_ESCAPES = {"\\": "\\\\", '"': '\\"', "\b": "\\b", "\f": "\\f", "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def yaml_escape_value(text: str) -> str:
    """Double-quote a YAML value when it would not parse as a plain scalar."""
    if not _yaml_needs_quotes(text):
        return text

    def escape(match: "re.Match") -> str:
        char = match.group(0)
        return _VALUE_ESCAPES.get(char, "\\x%02x" % ord(char))

    return '"' + re.sub(r'[\\"\x00-\x1f\x7f-\x9f]', escape, text) + '"'


# =============================================================================
# BEST-GUESS PATTERNS
# =============================================================================

_DYNAMIC_CONTENT = [
    # 2mb
    (r"\b[\d,.]+[bkmBKM]+\b", r"[\d,.]+[bkmBKM]+"),
    # 2ms, 20s
    (r"\b\d+[hmsp]+\b", r"\d+[hmsp]+"),
    (r"\b[\d,.]+[hmsp]+\b", r"[\d,.]+[hmsp]+"),
    # Single digits stay literal; 2+ digits: 22, 22.3, 2.33, 2,333
    (r"\b\d+,\d+\b", r"\d+,\d+"),
    (r"\b\d+\.\d{2,}\b", r"\d+\.\d+"),
    (r"\b\d{2,}\.\d+\b", r"\d+\.\d+"),
    (r"\b\d{2,}\b", r"\d+"),
]

_DYNAMIC_CONTENT_RE = re.compile(
    "|".join("(" + source + ")" for source, _ in _DYNAMIC_CONTENT),
    re.ASCII,
)


def convert_to_best_guess_regex(text: str) -> str:
    """
    Replace dynamic numeric substrings with patterns.

    Returns ``text`` unchanged when nothing dynamic was found, otherwise a
    slash-delimited pattern such as ``/Issues \\d+/``.
    """
    pattern = ""
    last_index = 0
    for match in _DYNAMIC_CONTENT_RE.finditer(text):
        pattern += escape_regexp(text[last_index:match.start()])
        for index, (_, replacement) in enumerate(_DYNAMIC_CONTENT):
            if match.group(index + 1):
                pattern += replacement
                break
        last_index = match.end()
    if not pattern:
        return text
    pattern += escape_regexp(text[last_index:])
    return "/" + pattern + "/"


def text_contributes_info(node: AriaNode, text: str) -> bool:
    """
    Whether a text run adds information beyond the node's own name.

    After removing the longest run shared with the name, more than 10% of the
    text's characters must remain.
    """
    if not text:
        return False
    if not node.name:
        return True
    if len(node.name) > len(text):
        return False

    # longest_common_substring is quadratic; only compare short strings
    substr = longest_common_substring(text, node.name) if len(text) <= 200 and len(node.name) <= 200 else ""
    filtered = text
    while substr and substr in filtered:
        filtered = filtered.replace(substr, "", 1)
    return len(filtered.strip()) / len(text) > 0.1


def _include_all(node: AriaNode, text: str) -> bool:
    return True


def _identity(text: str) -> str:
    return text


def _mode_functions(mode: RenderMode):
    if mode == "regex":
        return text_contributes_info, convert_to_best_guess_regex
    return _include_all, _identity


# =============================================================================
# KEY CONSTRUCTION
# =============================================================================

def node_key(node: AriaNode, render_string: Callable[[str], str] = _identity, for_ai: bool = False) -> str:
    """Build the unescaped ``role "name" [state]...`` key for a node."""
    key = node.role
    if node.name and len(node.name) <= MAX_NAME_LENGTH:
        name = render_string(node.name)
        if name:
            quoted = name if name.startswith("/") and name.endswith("/") else json.dumps(name, ensure_ascii=False)
            key += " " + quoted

    if node.checked == "mixed":
        key += " [checked=mixed]"
    elif node.checked is True:
        key += " [checked]"
    if node.clickable:
        key += " [clickable]"
    if node.disabled:
        key += " [disabled]"
    if node.expanded:
        key += " [expanded]"
    if node.level:
        key += f" [level={node.level}]"
    if node.pressed == "mixed":
        key += " [pressed=mixed]"
    elif node.pressed is True:
        key += " [pressed]"
    if node.selected is True:
        key += " [selected]"

    if for_ai and receives_pointer_events(node) and node.ref:
        key += f" [ref={node.ref}]"
        if has_pointer_cursor(node):
            key += " [cursor=pointer]"
    return key


# =============================================================================
# TEXT FORM
# =============================================================================

def render_text(snapshot: AriaSnapshot, mode: RenderMode = "raw", for_ai: bool = False) -> str:
    """
    Render a snapshot as indented YAML-style text.

    Args:
        snapshot: The snapshot to render.
        mode: ``raw`` or ``regex`` (best-guess patterns for dynamic text).
        for_ai: Include ``[ref=...]`` and ``[cursor=pointer]`` annotations.

    Returns:
        Lines joined with newlines, two spaces of indentation per level.
    """
    include_text, render_string = _mode_functions(mode)
    lines: List[str] = []

    def visit(node: Union[AriaNode, str], parent: Optional[AriaNode], indent: str) -> None:
        if isinstance(node, str):
            if parent is not None and not include_text(parent, node):
                return
            text = yaml_escape_value(render_string(node))
            if text:
                lines.append(indent + "- text: " + text)
            return

        escaped_key = indent + "- " + yaml_escape_key(node_key(node, render_string, for_ai))
        has_props = bool(node.props)
        if not node.children and not has_props:
            lines.append(escaped_key)
        elif len(node.children) == 1 and isinstance(node.children[0], str) and not has_props:
            text = render_string(node.children[0]) if include_text(node, node.children[0]) else None
            if text:
                lines.append(escaped_key + ": " + yaml_escape_value(text))
            else:
                lines.append(escaped_key)
        else:
            lines.append(escaped_key + ":")
            for prop_name, value in node.props.items():
                lines.append(indent + "  - /" + prop_name + ": " + yaml_escape_value(value))
            for child in node.children:
                visit(child, node, indent + "  ")

    root = snapshot.root
    if root.role == "fragment":
        for child in root.children:
            visit(child, root, "")
    else:
        visit(root, None, "")
    return "\n".join(lines)


# =============================================================================
# OBJECT-GRAPH FORM
# =============================================================================

def describe_node(node: AriaNode, parent_context: str, render_string: Callable[[str], str] = _identity) -> str:
    """Natural-language summary of a node: identity, purpose, location, state and ref."""
    sentences: List[str] = []
    rendered_name = render_string(node.name) if node.name else ""
    named = f' named "{rendered_name}"' if rendered_name else ""
    sentences.append(f"This is a {node.role}{named}.")

    purpose = get_role_purpose(node.role)
    if purpose:
        sentences.append(purpose)

    if parent_context:
        sentences.append(f"It is located inside {parent_context}.")
    else:
        sentences.append("It is a top-level element on the page.")

    states: List[str] = []
    if node.checked is not None:
        states.append("checked" if node.checked else "unchecked")
    if node.clickable is not None:
        states.append("clickable" if node.clickable else "not clickable")
    if node.expanded is not None:
        states.append("expanded" if node.expanded else "collapsed")
    if node.disabled:
        states.append("disabled")
    if node.pressed:
        states.append("pressed")
    if node.selected:
        states.append("selected")
    if states:
        sentences.append(f"Currently, its state is {' and '.join(states)}.")

    if node.ref:
        sentences.append("Attributes: " + json.dumps({"ref": node.ref}, separators=(",", ":")))
    return " ".join(sentences)


def render_object_graph(
    snapshot: AriaSnapshot,
    mode: RenderMode = "raw",
    for_ai: bool = False,
) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
    """
    Render a snapshot as a JSON-compatible object graph.

    Every node carries ``role``, ``name``, ``props``, ``prompt`` (its text-form
    line) and ``descriptivePrompt``; pointer-reachable nodes with a reference
    also carry ``supportedActions``. Text runs become ``{text, prompt,
    descriptivePrompt}`` leaves.

    Returns:
        A list of top-level objects when the root is the synthetic fragment,
        otherwise the root object.
    """
    include_text, render_string = _mode_functions(mode)

    def build(node: Union[AriaNode, str], parent_context: str) -> Optional[Dict[str, Any]]:
        if isinstance(node, str):
            if not include_text(AriaNode(role="text"), node):
                return None
            text = render_string(node)
            if not text:
                return None
            location = f"located inside {parent_context}" if parent_context else "at the top level of the page"
            return {
                "text": text,
                "prompt": "text: " + yaml_escape_value(text),
                "descriptivePrompt": f'This is the text content "{text}" {location}.',
            }

        json_node: Dict[str, Any] = {
            "role": node.role,
            "descriptivePrompt": describe_node(node, parent_context, render_string),
            "name": node.name,
            "props": dict(node.props),
        }

        if receives_pointer_events(node):
            actions = supported_actions(node)
            if actions:
                json_node["supportedActions"] = actions

        if node.name:
            name = render_string(node.name)
            if name:
                json_node["name"] = name
        if node.checked is not None:
            json_node["checked"] = node.checked
        if node.clickable is not None:
            json_node["clickable"] = node.clickable
        if node.disabled:
            json_node["disabled"] = node.disabled
        if node.expanded:
            json_node["expanded"] = node.expanded
        if node.level:
            json_node["level"] = node.level
        if node.pressed is not None:
            json_node["pressed"] = node.pressed
        if node.selected:
            json_node["selected"] = node.selected

        if for_ai and receives_pointer_events(node):
            if node.ref:
                json_node["ref"] = node.ref
            if has_pointer_cursor(node):
                json_node["cursor"] = "pointer"

        escaped_key = yaml_escape_key(node_key(node, render_string, for_ai))
        has_props = bool(node.props)
        if not node.children and not has_props:
            json_node["prompt"] = escaped_key
        elif len(node.children) == 1 and isinstance(node.children[0], str) and not has_props:
            text = render_string(node.children[0]) if include_text(node, node.children[0]) else None
            json_node["prompt"] = escaped_key + ": " + yaml_escape_value(text) if text else escaped_key
        else:
            json_node["prompt"] = escaped_key + ":"

        if node.children:
            child_context = f"the {node.role}"
            if node.name:
                child_context += f' named "{render_string(node.name)}"'
            children = [built for built in (build(child, child_context) for child in node.children) if built is not None]
            if children:
                json_node["children"] = children

        return json_node

    root = snapshot.root
    if root.role == "fragment":
        return [built for built in (build(child, "") for child in root.children) if built is not None]
    return build(root, "")


def render_json(snapshot: AriaSnapshot, mode: RenderMode = "raw", for_ai: bool = False) -> str:
    """The object graph serialized with two-space indentation."""
    return json.dumps(render_object_graph(snapshot, mode=mode, for_ai=for_ai), indent=2, ensure_ascii=False)

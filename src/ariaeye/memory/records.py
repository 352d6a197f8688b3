"""
Memory records derived from a rendered snapshot.

Each actionable node of the object graph yields one record per supported
action. The record content doubles as the search document and as the
carrier of the node's reference: the ``Attributes:`` JSON suffix is parsed
back by ``parse_prompt`` when a search result is resolved.
"""

import dataclasses
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

_ATTRIBUTES_RE = re.compile(r"Attributes:\s*(\{.*\})", re.DOTALL)
_SELECTOR_RE = re.compile(r"\[(?:selector|ref)=([^\]]+)\]")


@dataclasses.dataclass
class MemoryRecord:
    """One description stored in the semantic store."""

    content: str
    role: str = "user"
    id: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.content, str):
            raise ValueError("Memory record content must be a string")
        if not self.role:
            raise ValueError("Memory record role cannot be empty")

    @property
    def key(self) -> Tuple[str, str]:
        """Identity used for diffing: role and content, byte for byte."""
        return (self.role, self.content)

    def to_dict(self) -> Dict[str, Any]:
        result = {"role": self.role, "content": self.content}
        if self.id is not None:
            result["id"] = self.id
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryRecord":
        return cls(
            content=data["content"],
            role=data.get("role", "user"),
            id=data.get("id"),
        )


def format_element_content(
    action: str,
    name: str,
    role: str,
    ref: str,
    additional_attributes: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Format the searchable description of one (element, action) pair.

    Example:
        ``click Sign in button, with Attributes: {"ref":"e12","action":"click",...}``
    """
    attributes: Dict[str, Any] = {"ref": ref, "action": action}
    attributes.update(additional_attributes or {})
    return f"{action} {name} {role}, with Attributes: {json.dumps(attributes, separators=(',', ':'), ensure_ascii=False)}"


def flatten_tree(graph: Union[Dict[str, Any], List[Any]]) -> List[Dict[str, Any]]:
    """Depth-first list of the object-graph nodes, each copied without its children."""
    flat: List[Dict[str, Any]] = []

    def visit(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                visit(item)
            return
        if not isinstance(node, dict):
            return
        flat.append({k: v for k, v in node.items() if k != "children"})
        for child in node.get("children") or []:
            visit(child)

    visit(graph)
    return flat


def extract_memory_records(graph: Union[Dict[str, Any], List[Any]]) -> List[MemoryRecord]:
    """
    Build one record per supported action of every reference-bearing node.

    Args:
        graph: Output of ``render_object_graph`` (a list of top-level nodes or a single node).

    Returns:
        Records in document order.
    """
    records: List[MemoryRecord] = []
    for node in flatten_tree(graph):
        if "role" not in node:
            continue
        ref = node.get("ref")
        actions = node.get("supportedActions") or []
        if not ref or not actions:
            continue

        additional: Dict[str, Any] = {}
        if node.get("descriptivePrompt"):
            additional["descriptivePrompt"] = node["descriptivePrompt"]
        if "clickable" in node:
            additional["clickable"] = node["clickable"]
        if "disabled" in node:
            additional["disabled"] = node["disabled"]

        for action in actions:
            content = format_element_content(action, node.get("name") or "", node.get("role") or "", ref, additional)
            records.append(MemoryRecord(content=content))
    return records


def parse_prompt(content: str) -> Dict[str, Any]:
    """
    Extract the ``Attributes:`` JSON object from record content.

    Returns:
        The parsed attributes, or an empty dict when absent or malformed.
    """
    match = _ATTRIBUTES_RE.search(content or "")
    if not match:
        return {}
    try:
        attributes = json.loads(match.group(1))
    except json.JSONDecodeError:
        logger.debug(f"Malformed attributes payload in memory content: {content[:200]}")
        return {}
    return attributes if isinstance(attributes, dict) else {}


def parse_ref(content: str) -> Optional[str]:
    """Reference carried by record content: the ``ref`` attribute, else a ``[selector=...]`` tag."""
    ref = parse_prompt(content).get("ref")
    if ref:
        return str(ref)
    match = _SELECTOR_RE.search(content or "")
    if match and match.group(1) != "N/A":
        return match.group(1)
    return None

"""
Accessibility-tree engine: document model, role oracle, tree builder,
reference assignment, renderers and template matching.
"""

from .dom import ComputedStyle, DomDocument, DomElement, DomNode, DomShadowRoot, DomText
from .html import parse_html
from .refs import ReferenceAssigner
from .render import render_json, render_object_graph, render_text
from .roles import DefaultRoleOracle, RoleOracle, state_fields_for_role
from .supported_actions import BrowserAction, supported_actions
from .template import (
    AriaRegex,
    AriaTemplateRoleNode,
    AriaTemplateTextNode,
    get_all_by_aria,
    match_snapshot,
    matches_aria_tree,
    parse_template,
)
from .tree import AriaNode, AriaSnapshot, Box, TreeBuilder, generate_aria_tree

__all__ = [
    "AriaNode",
    "AriaRegex",
    "AriaSnapshot",
    "AriaTemplateRoleNode",
    "AriaTemplateTextNode",
    "Box",
    "BrowserAction",
    "ComputedStyle",
    "DefaultRoleOracle",
    "DomDocument",
    "DomElement",
    "DomNode",
    "DomShadowRoot",
    "DomText",
    "ReferenceAssigner",
    "RoleOracle",
    "TreeBuilder",
    "generate_aria_tree",
    "get_all_by_aria",
    "match_snapshot",
    "matches_aria_tree",
    "parse_html",
    "parse_template",
    "render_json",
    "render_object_graph",
    "render_text",
    "state_fields_for_role",
    "supported_actions",
]

"""
Build a DomDocument from HTML markup.

Parsing is delegated to BeautifulSoup with the lxml parser; this module only
maps the parsed tree onto the document model and computes the small part of
the cascade the tree builder needs (UA ``display`` defaults, inline styles,
inherited ``visibility``/``cursor``/``pointer-events``). Declarative shadow
roots (``<template shadowrootmode="open">``) and slot assignment are
supported so component-style markup can be captured without a browser.
"""

import logging
from typing import Dict, List, Optional

from bs4 import BeautifulSoup
from bs4.element import CData, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from .dom import ComputedStyle, DomDocument, DomElement, DomNode, DomShadowRoot, DomText

logger = logging.getLogger(__name__)

_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction, CData)

BLOCK_TAGS = {
    "html", "body", "div", "p", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol",
    "nav", "main", "header", "footer", "section", "article", "aside", "form",
    "fieldset", "dialog", "details", "summary", "hr", "pre", "blockquote",
    "figure", "figcaption", "dl", "dd", "dt", "address", "legend", "option",
    "center", "menu",
}

UA_DISPLAY = {
    "li": "list-item",
    "table": "table",
    "thead": "table-header-group",
    "tbody": "table-row-group",
    "tfoot": "table-footer-group",
    "tr": "table-row",
    "td": "table-cell",
    "th": "table-cell",
    "caption": "table-caption",
    "button": "inline-block",
    "input": "inline-block",
    "select": "inline-block",
    "textarea": "inline-block",
    "img": "inline",
    "slot": "contents",
}

NEVER_RENDERED = {"head", "script", "style", "title", "meta", "link", "template", "noscript", "base"}


def parse_inline_style(style: Optional[str]) -> Dict[str, str]:
    """Split a ``style`` attribute into lower-cased property/value pairs."""
    declarations: Dict[str, str] = {}
    if not style:
        return declarations
    for declaration in style.split(";"):
        if ":" not in declaration:
            continue
        prop, _, value = declaration.partition(":")
        prop = prop.strip().lower()
        value = value.replace("!important", "").strip().lower()
        if prop and value:
            declarations[prop] = value
    return declarations


def compute_style(tag: str, attributes: Dict[str, str], parent: Optional[ComputedStyle]) -> ComputedStyle:
    """Resolve the computed style subset for an element from UA defaults and its inline style."""
    tag = tag.lower()
    declared = parse_inline_style(attributes.get("style"))

    if tag in NEVER_RENDERED:
        display = "none"
    elif "hidden" in attributes:
        display = "none"
    elif tag in BLOCK_TAGS:
        display = "block"
    else:
        display = UA_DISPLAY.get(tag, "inline")
    if tag == "input" and (attributes.get("type") or "").lower() == "hidden":
        display = "none"
    display = declared.get("display", display)

    inherited_cursor = parent.cursor if parent else "auto"
    if tag == "a" and "href" in attributes:
        inherited_cursor = "pointer"

    return ComputedStyle(
        display=display,
        visibility=declared.get("visibility", parent.visibility if parent else "visible"),
        cursor=declared.get("cursor", inherited_cursor),
        pointer_events=declared.get("pointer-events", parent.pointer_events if parent else "auto"),
    )


def _is_declarative_shadow_root(tag: Tag) -> bool:
    return tag.name == "template" and (
        tag.has_attr("shadowrootmode") or tag.has_attr("shadowroot")
    )


def _attributes(tag: Tag) -> Dict[str, str]:
    attributes: Dict[str, str] = {}
    for name, value in tag.attrs.items():
        # bs4 returns multi-valued attributes (class, rel) as lists
        attributes[name] = " ".join(value) if isinstance(value, list) else str(value)
    return attributes


def _convert(tag: Tag, parent_style: Optional[ComputedStyle]) -> DomElement:
    attributes = _attributes(tag)
    element = DomElement(tag.name, attributes, compute_style(tag.name, attributes, parent_style))

    for child in tag.children:
        if isinstance(child, Tag):
            if _is_declarative_shadow_root(child) and element.shadow_root is None:
                shadow = element.attach_shadow()
                for shadow_child in _convert_children(child, element.style):
                    shadow.append_child(shadow_child)
                continue
            element.append_child(_convert(child, element.style))
        elif isinstance(child, NavigableString) and not isinstance(child, _SKIPPED_STRINGS):
            element.append_child(DomText(str(child)))

    _init_form_state(element)
    if element.shadow_root is not None:
        _assign_slots(element)
    return element


def _convert_children(tag: Tag, parent_style: Optional[ComputedStyle]) -> List[DomNode]:
    nodes: List[DomNode] = []
    for child in tag.children:
        if isinstance(child, Tag):
            nodes.append(_convert(child, parent_style))
        elif isinstance(child, NavigableString) and not isinstance(child, _SKIPPED_STRINGS):
            nodes.append(DomText(str(child)))
    return nodes


def _init_form_state(element: DomElement) -> None:
    if element.tag == "TEXTAREA":
        element.value = element.text_content()
    elif element.tag == "SELECT":
        options = [el for el in element.iter_descendants() if el.tag == "OPTION"]
        chosen = next((opt for opt in options if opt.selected), None)
        if chosen is None and options and not element.has_attribute("multiple"):
            chosen = options[0]
        if chosen is not None:
            element.value = chosen.get_attribute("value") or chosen.text_content().strip()
    elif element.tag == "OPTION" and not element.has_attribute("value"):
        element.value = element.text_content().strip()


def _assign_slots(host: DomElement) -> None:
    shadow: DomShadowRoot = host.shadow_root
    slots: List[DomElement] = []
    for child in shadow.children:
        if isinstance(child, DomElement):
            if child.tag == "SLOT":
                slots.append(child)
            slots.extend(el for el in child.iter_descendants() if el.tag == "SLOT")

    named = {}
    default_slot = None
    for slot in slots:
        name = slot.get_attribute("name")
        if name:
            named.setdefault(name, slot)
        elif default_slot is None:
            default_slot = slot

    for child in host.children:
        slot_name = child.get_attribute("slot") if isinstance(child, DomElement) else None
        slot = named.get(slot_name) if slot_name else default_slot
        if slot is None:
            continue
        child.assigned_slot = slot
        slot.assigned_nodes.append(child)


def parse_html(markup: str, url: str = "about:blank") -> DomDocument:
    """
    Parse HTML markup into a DomDocument.

    Args:
        markup: HTML source. Fragments are wrapped into html/body by the parser.
        url: URL recorded on the document.

    Returns:
        The parsed document.
    """
    soup = BeautifulSoup(markup, "lxml")
    html = soup.find("html")
    if html is None:
        html = soup.new_tag("html")
        body = soup.new_tag("body")
        html.append(body)

    document = DomDocument(_convert(html, None), url=url)
    logger.debug(f"Parsed document {url} with {sum(1 for _ in document.iter_elements())} elements")
    return document

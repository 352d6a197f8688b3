"""
Role/State Oracle for the accessibility tree builder.

The builder asks an oracle for a node's accessible role, name, state flags and
visibility predicates. ``RoleOracle`` is the contract; ``DefaultRoleOracle``
implements the WAI-ARIA / HTML-AAM mappings needed for typical pages on top of
the in-memory document model. State field applicability per role is table
driven (``ROLE_STATE_FIELDS``) so it can be tested on its own.
"""

import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple, Union

from .dom import DomElement, DomNode, DomText, id_scope

Mixed = Union[bool, str]

# =============================================================================
# ROLE TABLES
# =============================================================================

ARIA_CHECKED_ROLES = [
    "checkbox", "menuitemcheckbox", "option", "radio", "switch", "menuitemradio", "treeitem",
]

ARIA_DISABLED_ROLES = [
    "application", "button", "composite", "gridcell", "group", "input", "link", "menuitem",
    "scrollbar", "separator", "tab", "checkbox", "columnheader", "combobox", "grid", "listbox",
    "menu", "menubar", "menuitemcheckbox", "menuitemradio", "option", "radio", "radiogroup",
    "row", "rowheader", "searchbox", "select", "slider", "spinbutton", "switch", "tablist",
    "textbox", "toolbar", "tree", "treegrid", "treeitem",
]

ARIA_EXPANDED_ROLES = [
    "application", "button", "checkbox", "combobox", "gridcell", "link", "listbox", "menuitem",
    "row", "rowheader", "tab", "treeitem", "columnheader", "menuitemcheckbox", "menuitemradio",
    "switch",
]

ARIA_LEVEL_ROLES = ["heading", "listitem", "row", "treeitem"]

ARIA_PRESSED_ROLES = ["button"]

ARIA_SELECTED_ROLES = [
    "gridcell", "option", "row", "tab", "rowheader", "columnheader", "treeitem",
]

STATE_FIELDS = ("checked", "disabled", "expanded", "level", "pressed", "selected")


def _build_state_table() -> Dict[str, Tuple[str, ...]]:
    by_field = {
        "checked": ARIA_CHECKED_ROLES,
        "disabled": ARIA_DISABLED_ROLES,
        "expanded": ARIA_EXPANDED_ROLES,
        "level": ARIA_LEVEL_ROLES,
        "pressed": ARIA_PRESSED_ROLES,
        "selected": ARIA_SELECTED_ROLES,
    }
    table: Dict[str, List[str]] = {}
    for state_field in STATE_FIELDS:
        for role in by_field[state_field]:
            table.setdefault(role, []).append(state_field)
    return {role: tuple(fields) for role, fields in table.items()}


ROLE_STATE_FIELDS: Dict[str, Tuple[str, ...]] = _build_state_table()


def state_fields_for_role(role: str) -> Tuple[str, ...]:
    """State fields (subset of checked/disabled/expanded/level/pressed/selected) applicable to a role."""
    return ROLE_STATE_FIELDS.get(role, ())


VALID_ROLES = {
    "alert", "alertdialog", "application", "article", "banner", "blockquote", "button",
    "caption", "cell", "checkbox", "code", "columnheader", "combobox", "complementary",
    "contentinfo", "definition", "deletion", "dialog", "directory", "document", "emphasis",
    "feed", "figure", "form", "generic", "grid", "gridcell", "group", "heading", "img",
    "insertion", "link", "list", "listbox", "listitem", "log", "main", "mark", "marquee",
    "math", "meter", "menu", "menubar", "menuitem", "menuitemcheckbox", "menuitemradio",
    "navigation", "none", "note", "option", "paragraph", "presentation", "progressbar",
    "radio", "radiogroup", "region", "row", "rowgroup", "rowheader", "scrollbar", "search",
    "searchbox", "separator", "slider", "spinbutton", "status", "strong", "subscript",
    "superscript", "switch", "tab", "table", "tablist", "tabpanel", "term", "textbox",
    "time", "timer", "toolbar", "tooltip", "tree", "treegrid", "treeitem",
}

NAME_FROM_CONTENT_ROLES = {
    "button", "cell", "checkbox", "columnheader", "gridcell", "heading", "link", "menuitem",
    "menuitemcheckbox", "menuitemradio", "option", "radio", "row", "rowheader", "switch",
    "tab", "tooltip", "treeitem",
}

ROLE_PURPOSES: Dict[str, str] = {
    "button": "It performs an action when activated.",
    "link": "It navigates to another page or location when followed.",
    "textbox": "It accepts free-form text input.",
    "searchbox": "It accepts a search query.",
    "combobox": "It lets the user type or pick a value from a list of options.",
    "checkbox": "It toggles an option on or off.",
    "radio": "It selects one option from a group of mutually exclusive choices.",
    "switch": "It turns a setting on or off.",
    "slider": "It selects a value from a continuous range.",
    "spinbutton": "It adjusts a numeric value step by step.",
    "listbox": "It presents a list of options to choose from.",
    "option": "It is a selectable choice within a list.",
    "menu": "It offers a list of commands.",
    "menubar": "It holds a row of menus.",
    "menuitem": "It runs a command from a menu.",
    "menuitemcheckbox": "It toggles a setting from a menu.",
    "menuitemradio": "It picks one setting from a group inside a menu.",
    "tab": "It switches the visible panel of a tabbed interface.",
    "tablist": "It groups the tabs of a tabbed interface.",
    "tabpanel": "It holds the content shown for the selected tab.",
    "heading": "It titles a section of the page.",
    "img": "It shows an image.",
    "navigation": "It groups links for navigating the site.",
    "main": "It holds the main content of the page.",
    "banner": "It holds site-wide introductory content such as the logo and header.",
    "contentinfo": "It holds footer information about the page.",
    "complementary": "It holds content related to the main content.",
    "search": "It holds the site search controls.",
    "form": "It groups controls for submitting information.",
    "region": "It marks a significant section of the page.",
    "dialog": "It is a window asking the user for input or attention.",
    "alertdialog": "It is an urgent window that interrupts the user.",
    "alert": "It announces important and usually time-sensitive information.",
    "list": "It groups a list of items.",
    "listitem": "It is an item within a list.",
    "table": "It arranges data in rows and columns.",
    "grid": "It arranges interactive cells in rows and columns.",
    "row": "It is a row of cells.",
    "cell": "It is a cell of a table.",
    "gridcell": "It is an interactive cell of a grid.",
    "columnheader": "It labels a column of a table.",
    "rowheader": "It labels a row of a table.",
    "paragraph": "It is a paragraph of text.",
    "progressbar": "It shows the progress of a task.",
    "tree": "It presents a hierarchical list.",
    "treeitem": "It is an item within a hierarchical list.",
    "toolbar": "It groups frequently used controls.",
    "tooltip": "It shows a short description for another element.",
    "separator": "It divides content into sections.",
    "group": "It groups related elements.",
    "article": "It is a self-contained piece of content.",
    "iframe": "It embeds another document.",
}


def get_role_purpose(role: str) -> str:
    """A one-sentence description of what elements with this role are for ('' when unknown)."""
    return ROLE_PURPOSES.get(role, "")


_INVISIBLE = re.compile("[\u200b\u00ad]")
_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Drop zero-width characters, collapse whitespace runs to single spaces and trim."""
    return _WHITESPACE.sub(" ", _INVISIBLE.sub("", text).strip())


# =============================================================================
# ORACLE CONTRACT
# =============================================================================

class RoleOracle(ABC):
    """
    Contract for the capability that answers role, name and state questions.

    Any implementation conforming to the accessibility specifications can be
    plugged into the tree builder.
    """

    # Report <input type=file> as a textbox carrying its value, instead of a button
    input_file_role_textbox: bool = True

    @abstractmethod
    def get_role(self, element: DomElement) -> Optional[str]:
        """Accessible role, or None for elements with no (generic) role."""

    @abstractmethod
    def get_name(self, element: DomElement) -> str:
        """Computed accessible name."""

    @abstractmethod
    def get_checked(self, element: DomElement) -> Mixed:
        pass

    @abstractmethod
    def get_disabled(self, element: DomElement) -> bool:
        pass

    @abstractmethod
    def get_expanded(self, element: DomElement) -> Optional[bool]:
        pass

    @abstractmethod
    def get_level(self, element: DomElement) -> int:
        pass

    @abstractmethod
    def get_pressed(self, element: DomElement) -> Mixed:
        pass

    @abstractmethod
    def get_selected(self, element: DomElement) -> bool:
        pass

    @abstractmethod
    def is_hidden_for_aria(self, element: DomElement) -> bool:
        pass

    @abstractmethod
    def is_visible(self, element: DomElement) -> bool:
        pass

    @abstractmethod
    def receives_pointer_events(self, element: DomElement) -> bool:
        pass

    @abstractmethod
    def css_content(self, element: DomElement, pseudo: str) -> str:
        """Generated text for ``::before`` / ``::after``."""

    def computed_display(self, element: DomElement) -> str:
        return element.style.display or "inline"

    def get_state(self, element: DomElement, state_field: str):
        """Dispatch to the getter for one of the STATE_FIELDS."""
        getter: Callable = getattr(self, f"get_{state_field}")
        return getter(element)


# =============================================================================
# DEFAULT ORACLE
# =============================================================================

_LANDMARK_BLOCKERS_TAGS = {"ARTICLE", "ASIDE", "MAIN", "NAV", "SECTION"}
_LANDMARK_BLOCKERS_ROLES = {"article", "complementary", "main", "navigation", "region"}

_INPUT_TYPE_ROLES = {
    "button": "button",
    "checkbox": "checkbox",
    "image": "button",
    "number": "spinbutton",
    "radio": "radio",
    "range": "slider",
    "reset": "button",
    "submit": "button",
}

_NATIVELY_DISABLEABLE = {"BUTTON", "INPUT", "SELECT", "TEXTAREA", "OPTION", "OPTGROUP", "FIELDSET"}

_ALWAYS_HIDDEN_TAGS = {"STYLE", "SCRIPT", "NOSCRIPT", "TEMPLATE"}


def _has_explicit_name(element: DomElement) -> bool:
    return bool(element.get_attribute("aria-label") or element.get_attribute("aria-labelledby"))


def _landmark_blocked(element: DomElement) -> bool:
    node = element.parent_element
    while node is not None:
        role_attr = (node.get_attribute("role") or "").strip()
        if (node.tag in _LANDMARK_BLOCKERS_TAGS and not role_attr) or role_attr in _LANDMARK_BLOCKERS_ROLES:
            return True
        node = node.parent_element
    return False


def _closest(element: DomElement, predicate: Callable[[DomElement], bool]) -> Optional[DomElement]:
    node: Optional[DomElement] = element
    while node is not None:
        if predicate(node):
            return node
        node = node.parent_element
    return None


def _id_refs(element: DomElement, value: Optional[str]) -> List[DomElement]:
    if not value:
        return []
    scope = id_scope(element)
    if scope is None:
        return []
    refs = []
    for element_id in value.split():
        found = scope.get_element_by_id(element_id)
        if found is not None:
            refs.append(found)
    return refs


def _input_role(element: DomElement, input_file_role_textbox: bool) -> Optional[str]:
    input_type = element.input_type
    if input_type == "search":
        return "combobox" if element.has_attribute("list") else "searchbox"
    if input_type in ("email", "tel", "text", "url", ""):
        lists = _id_refs(element, element.get_attribute("list"))
        return "combobox" if lists and lists[0].tag == "DATALIST" else "textbox"
    if input_type == "hidden":
        return None
    if input_type == "file" and not input_file_role_textbox:
        return "button"
    return _INPUT_TYPE_ROLES.get(input_type, "textbox")


def _img_role(element: DomElement) -> str:
    if element.get_attribute("alt") == "" and not element.get_attribute("title") and not _has_explicit_name(element):
        return "presentation"
    return "img"


def _select_role(element: DomElement) -> str:
    size = element.get_attribute("size") or "0"
    try:
        size_value = int(size)
    except ValueError:
        size_value = 0
    return "listbox" if element.has_attribute("multiple") or size_value > 1 else "combobox"


def _cell_role(element: DomElement) -> str:
    table = _closest(element, lambda e: e.tag == "TABLE" or e.get_attribute("role") in ("grid", "treegrid", "table"))
    if table is not None and table.get_attribute("role") in ("grid", "treegrid"):
        return "gridcell"
    return "cell"


def _header_cell_role(element: DomElement) -> str:
    scope = (element.get_attribute("scope") or "").lower()
    if scope in ("row", "rowgroup"):
        return "rowheader"
    return "columnheader"


IMPLICIT_ROLES: Dict[str, Callable[[DomElement], Optional[str]]] = {
    "A": lambda e: "link" if e.has_attribute("href") else None,
    "AREA": lambda e: "link" if e.has_attribute("href") else None,
    "ARTICLE": lambda e: "article",
    "ASIDE": lambda e: "complementary",
    "BLOCKQUOTE": lambda e: "blockquote",
    "BUTTON": lambda e: "button",
    "CAPTION": lambda e: "caption",
    "CODE": lambda e: "code",
    "DATALIST": lambda e: "listbox",
    "DD": lambda e: "definition",
    "DEL": lambda e: "deletion",
    "DETAILS": lambda e: "group",
    "DFN": lambda e: "term",
    "DIALOG": lambda e: "dialog",
    "DT": lambda e: "term",
    "EM": lambda e: "emphasis",
    "FIELDSET": lambda e: "group",
    "FIGURE": lambda e: "figure",
    "FOOTER": lambda e: None if _landmark_blocked(e) else "contentinfo",
    "FORM": lambda e: "form" if _has_explicit_name(e) else None,
    "H1": lambda e: "heading",
    "H2": lambda e: "heading",
    "H3": lambda e: "heading",
    "H4": lambda e: "heading",
    "H5": lambda e: "heading",
    "H6": lambda e: "heading",
    "HEADER": lambda e: None if _landmark_blocked(e) else "banner",
    "HR": lambda e: "separator",
    "HTML": lambda e: "document",
    "IMG": _img_role,
    "INS": lambda e: "insertion",
    "LI": lambda e: "listitem",
    "MAIN": lambda e: "main",
    "MARK": lambda e: "mark",
    "MATH": lambda e: "math",
    "MENU": lambda e: "list",
    "METER": lambda e: "meter",
    "NAV": lambda e: "navigation",
    "OL": lambda e: "list",
    "OPTGROUP": lambda e: "group",
    "OPTION": lambda e: "option",
    "OUTPUT": lambda e: "status",
    "P": lambda e: "paragraph",
    "PROGRESS": lambda e: "progressbar",
    "SEARCH": lambda e: "search",
    "SECTION": lambda e: "region" if _has_explicit_name(e) else None,
    "SELECT": _select_role,
    "STRONG": lambda e: "strong",
    "SUB": lambda e: "subscript",
    "SUP": lambda e: "superscript",
    "SVG": lambda e: "img",
    "TABLE": lambda e: "table",
    "TBODY": lambda e: "rowgroup",
    "TD": _cell_role,
    "TEXTAREA": lambda e: "textbox",
    "TFOOT": lambda e: "rowgroup",
    "TH": _header_cell_role,
    "THEAD": lambda e: "rowgroup",
    "TIME": lambda e: "time",
    "TR": lambda e: "row",
    "UL": lambda e: "list",
}


class DefaultRoleOracle(RoleOracle):
    """Role/name/state computation over the in-memory document model."""

    def __init__(self, input_file_role_textbox: bool = True):
        self.input_file_role_textbox = input_file_role_textbox

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def _explicit_role(self, element: DomElement) -> Optional[str]:
        for token in (element.get_attribute("role") or "").split():
            if token in VALID_ROLES:
                return token
        return None

    def _implicit_role(self, element: DomElement) -> Optional[str]:
        if element.tag == "INPUT":
            return _input_role(element, self.input_file_role_textbox)
        factory = IMPLICIT_ROLES.get(element.tag)
        return factory(element) if factory else None

    def _is_focusable(self, element: DomElement) -> bool:
        if element.has_attribute("tabindex"):
            return True
        if element.tag in ("BUTTON", "INPUT", "SELECT", "TEXTAREA"):
            return not element.has_attribute("disabled")
        return element.tag in ("A", "AREA") and element.has_attribute("href")

    def get_role(self, element: DomElement) -> Optional[str]:
        explicit = self._explicit_role(element)
        if explicit is None:
            return self._implicit_role(element)
        if explicit in ("none", "presentation") and self._is_focusable(element):
            # Presentational role conflict: focusable elements keep their semantics
            return self._implicit_role(element)
        return explicit

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def get_name(self, element: DomElement) -> str:
        return normalize_whitespace(self._text_alternative(element, set(), in_labelled_by=False, in_content=False))

    def _labels(self, element: DomElement) -> List[DomElement]:
        labels: List[DomElement] = []
        element_id = element.get_attribute("id")
        document = element.owner_document
        if element_id and document is not None:
            for candidate in document.iter_elements():
                if candidate.tag == "LABEL" and candidate.get_attribute("for") == element_id:
                    labels.append(candidate)
        wrapping = _closest(element.parent_element, lambda e: e.tag == "LABEL") if element.parent_element else None
        if wrapping is not None and not wrapping.has_attribute("for") and wrapping not in labels:
            labels.append(wrapping)
        return labels

    def _text_alternative(
        self,
        element: DomElement,
        visited: set,
        in_labelled_by: bool,
        in_content: bool,
    ) -> str:
        if element.node_id in visited:
            return ""
        visited.add(element.node_id)

        if in_content and self.is_hidden_for_aria(element):
            return ""

        if not in_labelled_by:
            labelled_by = _id_refs(element, element.get_attribute("aria-labelledby"))
            if labelled_by:
                parts = [
                    self._text_alternative(ref, visited, in_labelled_by=True, in_content=False)
                    for ref in labelled_by
                ]
                return " ".join(part for part in parts if part)

        role = self.get_role(element) or ""

        # Embedded controls contribute their value when computing a content name
        if in_content or in_labelled_by:
            if role in ("textbox", "searchbox") and element.tag in ("INPUT", "TEXTAREA"):
                return element.value
            if role in ("combobox", "listbox") and element.tag == "SELECT":
                selected = [
                    opt.text_content().strip()
                    for opt in element.iter_descendants()
                    if opt.tag == "OPTION" and (opt.selected or opt.get_attribute("value") == element.value)
                ]
                return " ".join(selected[:1]) if role == "combobox" else " ".join(selected)
            if role in ("slider", "spinbutton"):
                return element.get_attribute("aria-valuetext") or element.get_attribute("aria-valuenow") or element.value

        aria_label = (element.get_attribute("aria-label") or "").strip()
        if aria_label:
            return aria_label

        native = self._native_name(element, visited)
        if native is not None:
            return native

        if role in NAME_FROM_CONTENT_ROLES or in_content or in_labelled_by:
            content = self._content_text(element, visited)
            if content.strip():
                return content

        return element.get_attribute("title") or ""

    def _native_name(self, element: DomElement, visited: set) -> Optional[str]:
        tag = element.tag
        if tag == "INPUT":
            input_type = element.input_type
            if input_type in ("button", "submit", "reset"):
                value = element.get_attribute("value")
                if value:
                    return value
                if input_type == "submit":
                    return "Submit"
                if input_type == "reset":
                    return "Reset"
                return element.get_attribute("title") or ""
            if input_type == "image":
                return element.get_attribute("alt") or element.get_attribute("title") or "Submit"
        if tag in ("INPUT", "TEXTAREA", "SELECT"):
            labels = self._labels(element)
            if labels:
                parts = [self._content_text(label, visited) for label in labels]
                return " ".join(part.strip() for part in parts if part.strip())
            use_placeholder = (
                tag == "INPUT" and element.input_type in ("text", "password", "search", "tel", "email", "url")
            ) or tag == "TEXTAREA"
            title = element.get_attribute("title") or ""
            if not use_placeholder or title:
                return title
            return element.get_attribute("placeholder") or ""
        if tag == "IMG":
            alt = element.get_attribute("alt")
            if alt:
                return alt
            return None
        for container, caption_tag in (("FIELDSET", "LEGEND"), ("TABLE", "CAPTION"), ("FIGURE", "FIGCAPTION")):
            if tag == container:
                for child in element.children:
                    if isinstance(child, DomElement) and child.tag == caption_tag:
                        return self._content_text(child, visited)
        return None

    def _content_text(self, element: DomElement, visited: set) -> str:
        parts: List[str] = [self.css_content(element, "::before")]
        if element.tag == "SLOT" and element.assigned_nodes:
            children: List[DomNode] = list(element.assigned_nodes)
        else:
            children = [child for child in element.children if child.assigned_slot is None]
            if element.shadow_root is not None:
                children.extend(element.shadow_root.children)
        for child in children:
            if isinstance(child, DomText):
                parts.append(child.text)
            elif isinstance(child, DomElement):
                text = self._text_alternative(child, visited, in_labelled_by=False, in_content=True)
                if self.computed_display(child) != "inline" or child.tag == "BR":
                    text = " " + text + " "
                parts.append(text)
        parts.append(self.css_content(element, "::after"))
        return "".join(parts)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def get_checked(self, element: DomElement) -> Mixed:
        if element.tag == "INPUT" and element.input_type in ("checkbox", "radio"):
            if element.input_type == "checkbox" and element.indeterminate:
                return "mixed"
            return element.checked
        role = self.get_role(element) or ""
        if role in ARIA_CHECKED_ROLES:
            value = element.get_attribute("aria-checked")
            if value == "true":
                return True
            if value == "mixed" and role in ("checkbox", "menuitemcheckbox"):
                return "mixed"
        return False

    def get_disabled(self, element: DomElement) -> bool:
        if element.tag in _NATIVELY_DISABLEABLE and self._natively_disabled(element):
            return True
        node: Optional[DomElement] = element
        while node is not None:
            if node.get_attribute("aria-disabled") == "true":
                return True
            node = node.parent_element
        return False

    def _natively_disabled(self, element: DomElement) -> bool:
        if element.has_attribute("disabled"):
            return True
        if element.tag == "OPTION":
            group = _closest(element, lambda e: e.tag == "OPTGROUP")
            if group is not None and group.has_attribute("disabled"):
                return True
        fieldset = _closest(element.parent_element, lambda e: e.tag == "FIELDSET") if element.parent_element else None
        if fieldset is not None and fieldset.has_attribute("disabled"):
            legend = next(
                (c for c in fieldset.children if isinstance(c, DomElement) and c.tag == "LEGEND"),
                None,
            )
            inside_legend = legend is not None and _closest(element, lambda e: e is legend) is not None
            return not inside_legend
        return False

    def get_expanded(self, element: DomElement) -> Optional[bool]:
        if element.tag == "DETAILS":
            return element.has_attribute("open")
        if (self.get_role(element) or "") in ARIA_EXPANDED_ROLES:
            value = element.get_attribute("aria-expanded")
            if value is None:
                return None
            return value == "true"
        return None

    def get_level(self, element: DomElement) -> int:
        native = {"H1": 1, "H2": 2, "H3": 3, "H4": 4, "H5": 5, "H6": 6}.get(element.tag)
        if native:
            return native
        if (self.get_role(element) or "") in ARIA_LEVEL_ROLES:
            try:
                value = int(element.get_attribute("aria-level") or "")
            except ValueError:
                return 0
            if value >= 1:
                return value
        return 0

    def get_pressed(self, element: DomElement) -> Mixed:
        if (self.get_role(element) or "") in ARIA_PRESSED_ROLES:
            value = element.get_attribute("aria-pressed")
            if value == "true":
                return True
            if value == "mixed":
                return "mixed"
        return False

    def get_selected(self, element: DomElement) -> bool:
        if element.tag == "OPTION":
            return element.selected
        if (self.get_role(element) or "") in ARIA_SELECTED_ROLES:
            return element.get_attribute("aria-selected") == "true"
        return False

    # ------------------------------------------------------------------
    # Visibility and pointer predicates
    # ------------------------------------------------------------------

    def _style_visible(self, element: DomElement) -> bool:
        return element.style.visibility == "visible"

    def is_hidden_for_aria(self, element: DomElement) -> bool:
        if element.tag in _ALWAYS_HIDDEN_TAGS:
            return True
        is_slot = element.tag == "SLOT"
        if element.style.display == "contents" and not is_slot:
            for child in element.children:
                if isinstance(child, DomElement) and not self.is_hidden_for_aria(child):
                    return False
                if isinstance(child, DomText) and child.text.strip():
                    return False
            return True
        option_in_select = element.tag == "OPTION" and _closest(element, lambda e: e.tag == "SELECT") is not None
        if not option_in_select and not is_slot and not self._style_visible(element):
            return True
        return self._belongs_to_hidden_subtree(element)

    def _belongs_to_hidden_subtree(self, element: DomElement) -> bool:
        node: Optional[DomElement] = element
        while node is not None:
            if node.style.display == "none":
                return True
            if node.get_attribute("aria-hidden") == "true":
                return True
            parent = node.parent
            if isinstance(parent, DomElement) and parent.shadow_root is not None and node.assigned_slot is None:
                # Light-DOM child of a shadow host that no slot renders
                return True
            node = node.parent_element
        return False

    def is_visible(self, element: DomElement) -> bool:
        if element.visible is not None:
            return element.visible
        if element.style.display == "contents":
            for child in element.children:
                if isinstance(child, DomElement) and self.is_visible(child):
                    return True
                if isinstance(child, DomText) and child.text.strip():
                    return True
            return False
        if not self._style_visible(element):
            return False
        node: Optional[DomElement] = element
        while node is not None:
            if node.style.display == "none":
                return False
            node = node.parent_element
        return True

    def receives_pointer_events(self, element: DomElement) -> bool:
        # pointer-events is inherited, so the computed value already reflects ancestors
        return element.style.pointer_events != "none"

    def css_content(self, element: DomElement, pseudo: str) -> str:
        if pseudo == "::before":
            return element.before_content or ""
        if pseudo == "::after":
            return element.after_content or ""
        raise ValueError(f"Unknown pseudo element: {pseudo}")

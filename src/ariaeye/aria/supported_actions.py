"""
Supported-action inference for accessible nodes.

The mapping from role to base actions is a lookup table so it can be checked
exhaustively; ``supported_actions`` applies the state-dependent rules on top.
"""

from enum import Enum
from typing import Dict, List, Tuple

from .tree import AriaNode, receives_pointer_events


class BrowserAction(str, Enum):
    CLICK = "click"
    TYPE = "type"
    PRESS_KEY = "press_key"
    HOVER = "hover"
    SELECT_OPTION = "select_option"
    DRAG = "drag"
    FILE_UPLOAD = "file_upload"

    def __str__(self) -> str:
        return self.value


BROWSER_ACTIONS: Tuple[str, ...] = tuple(action.value for action in BrowserAction)

# Actions a role adds on top of click (clickable nodes) and hover (every reachable node)
ROLE_ACTIONS: Dict[str, Tuple[BrowserAction, ...]] = {
    "textbox": (BrowserAction.TYPE,),
    "searchbox": (BrowserAction.TYPE,),
    "combobox": (BrowserAction.TYPE, BrowserAction.SELECT_OPTION),
    "button": (BrowserAction.PRESS_KEY,),
    "link": (BrowserAction.DRAG,),
    "listbox": (BrowserAction.SELECT_OPTION,),
    "option": (BrowserAction.SELECT_OPTION,),
    "slider": (BrowserAction.TYPE,),
    "spinbutton": (BrowserAction.TYPE,),
    "menuitem": (BrowserAction.PRESS_KEY,),
    "tab": (BrowserAction.PRESS_KEY,),
}

# Toggle roles are clickable only when they expose a checked state
CHECKABLE_ROLES = ("checkbox", "radio", "switch")


def supported_actions(node: AriaNode) -> List[str]:
    """
    Infer the browser actions a node supports.

    Only pointer-reachable nodes carrying a reference get actions. Disabled
    nodes are reduced to hover.

    Args:
        node: Normalized accessible node.

    Returns:
        De-duplicated action names, in inference order.
    """
    if not receives_pointer_events(node) or not node.ref:
        return []

    actions: List[BrowserAction] = []
    if node.clickable:
        actions.append(BrowserAction.CLICK)
    actions.append(BrowserAction.HOVER)

    actions.extend(ROLE_ACTIONS.get(node.role, ()))
    if node.role in CHECKABLE_ROLES and node.checked is not None:
        actions.append(BrowserAction.CLICK)

    if node.disabled:
        return [BrowserAction.HOVER.value]

    if node.role == "textbox" and node.name and "file" in node.name.lower():
        actions.append(BrowserAction.FILE_UPLOAD)

    if actions:
        actions.append(BrowserAction.DRAG)

    return list(dict.fromkeys(action.value for action in actions))

"""
Structured action requests and the free-text fallback parser.

``ActionRequest`` is the primary way to tell ``Eye.act`` what to do. When a
caller only passes a sentence ("type "hello" into the search box"), the parser
below pulls out what it can with a handful of regular expressions. It is a
best-effort fallback: ambiguous phrasing (several quoted strings, a target
phrase that itself contains " to ") can be mis-parsed.
"""

import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from ..aria.supported_actions import BrowserAction

_QUOTED_RE = re.compile(r"\"([^\"]+)\"|“([^”]+)”|(?<!\w)'([^']+)'(?!\w)")
_PRESS_RE = re.compile(r"\bpress(?:es|ing)?\s+(?:the\s+)?(?:key\s+)?[\"']?([A-Za-z0-9+_\-]+)", re.IGNORECASE)
_DRAG_TARGET_RE = re.compile(r"\s(?:onto|into|to)\s+(.+)$", re.IGNORECASE)
_PATH_RE = re.compile(r"(?<!\S)((?:~|\.{1,2})?[\w\-.~/\\:]*[/\\]?[\w\-.]+\.[A-Za-z0-9]{1,8})(?!\S)")

_KEY_NAMES = {
    "enter": "Enter",
    "return": "Enter",
    "tab": "Tab",
    "escape": "Escape",
    "esc": "Escape",
    "backspace": "Backspace",
    "delete": "Delete",
    "space": "Space",
    "up": "ArrowUp",
    "down": "ArrowDown",
    "left": "ArrowLeft",
    "right": "ArrowRight",
    "home": "Home",
    "end": "End",
    "pageup": "PageUp",
    "pagedown": "PageDown",
}

# Checked in order; the first keyword found wins
_ACTION_KEYWORDS: List[Tuple[BrowserAction, Tuple[str, ...]]] = [
    (BrowserAction.DRAG, ("drag",)),
    (BrowserAction.FILE_UPLOAD, ("upload", "attach")),
    (BrowserAction.PRESS_KEY, ("press",)),
    (BrowserAction.SELECT_OPTION, ("select", "choose", "pick")),
    (BrowserAction.HOVER, ("hover", "mouse over")),
    (BrowserAction.TYPE, ("type", "fill", "enter", "write", "input")),
]


class ActionRequest(BaseModel):
    """
    What ``Eye.act`` should do with the element it resolves.

    Every field is optional; missing ones are filled from the matched record
    and then from the free-text fallback.
    """

    action: Optional[str] = None
    text: Optional[str] = None
    key: Optional[str] = None
    values: List[str] = Field(default_factory=list)
    paths: List[str] = Field(default_factory=list)
    target: Optional[str] = None
    submit: bool = False
    slowly: bool = False

    @field_validator("action")
    @classmethod
    def normalize_action(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip().lower().replace(" ", "_").replace("-", "_")
        return value or None

    def merged_with(self, fallback: "ActionRequest") -> "ActionRequest":
        """Fields set on this request win; the rest come from ``fallback``."""
        return ActionRequest(
            action=self.action or fallback.action,
            text=self.text if self.text is not None else fallback.text,
            key=self.key or fallback.key,
            values=self.values or fallback.values,
            paths=self.paths or fallback.paths,
            target=self.target or fallback.target,
            submit=self.submit or fallback.submit,
            slowly=self.slowly or fallback.slowly,
        )


def quoted_substrings(text: str) -> List[str]:
    """All quoted substrings, in order (double, curly or standalone single quotes)."""
    return [next(group for group in match.groups() if group is not None) for match in _QUOTED_RE.finditer(text)]


def detect_action(description: str) -> str:
    """Guess the action type from keywords; ``click`` when nothing matches."""
    lowered = description.lower()
    for action, keywords in _ACTION_KEYWORDS:
        for keyword in keywords:
            if re.search(rf"\b{re.escape(keyword)}\b", lowered):
                return action.value
    return BrowserAction.CLICK.value


def normalize_key(key: str) -> str:
    return _KEY_NAMES.get(key.lower(), key if len(key) == 1 else key[:1].upper() + key[1:])


def split_drag_target(description: str) -> Tuple[str, Optional[str]]:
    """
    Split "drag X to Y" into the source phrase and the target phrase.

    Returns:
        ``(source, target)``; target is None when no " to " / " onto " / " into " is found.
    """
    match = _DRAG_TARGET_RE.search(description)
    if not match:
        return description, None
    return description[: match.start()].strip(), match.group(1).strip()


def extract_paths(description: str) -> List[str]:
    quoted = quoted_substrings(description)
    if quoted:
        return quoted
    return [match.group(1) for match in _PATH_RE.finditer(description)]


def parse_action_text(description: str, action: Optional[str] = None) -> ActionRequest:
    """
    Best-effort extraction of action parameters from a sentence.

    Args:
        description: Free-text action description.
        action: Action type already decided by the caller or the matched record.
                Detected from keywords when omitted.

    Returns:
        An ``ActionRequest`` with whatever could be extracted.
    """
    action = action or detect_action(description)
    request = ActionRequest(action=action)
    lowered = description.lower()

    if request.action == BrowserAction.TYPE.value:
        quoted = quoted_substrings(description)
        request.text = quoted[0] if quoted else None
        request.submit = bool(re.search(r"\b(?:submit|and press enter)\b", lowered))
        request.slowly = "slowly" in lowered
    elif request.action == BrowserAction.SELECT_OPTION.value:
        request.values = quoted_substrings(description)
    elif request.action == BrowserAction.FILE_UPLOAD.value:
        request.paths = extract_paths(description)
    elif request.action == BrowserAction.PRESS_KEY.value:
        match = _PRESS_RE.search(description)
        if match:
            request.key = normalize_key(match.group(1))
    elif request.action == BrowserAction.DRAG.value:
        _, request.target = split_drag_target(description)
    return request

"""
Document drivers: the evaluation capability the Eye works through.

A driver captures the current document into the in-memory model, hands out
live handles for captured elements, and performs browser actions on them.
``NativeDriver`` operates on an in-memory ``DomDocument`` (actions mutate it
and are recorded in ``history``); ``PlaywrightDriver`` drives a real page.
"""

import logging
import ntpath
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..aria.dom import DomDocument, DomElement
from ..exceptions import ActionExecutionError, DriverNotReadyError

logger = logging.getLogger(__name__)


class DocumentDriver(ABC):
    """Contract every platform driver satisfies."""

    name: str = "driver"

    @abstractmethod
    async def install(self) -> None:
        """Make sure the capture capability is present in the evaluation context."""

    @abstractmethod
    async def capture(self) -> DomDocument:
        """Capture the current document. Node ids stay stable across captures of the same node."""

    @abstractmethod
    async def get_handle(self, element: DomElement) -> Any:
        """Live handle for a captured element, or None when it is gone."""

    async def release_handle(self, handle: Any) -> None:
        """Release a handle obtained from ``get_handle``. Drivers without remote handles do nothing."""

    @abstractmethod
    async def highlight(self, element: DomElement, duration_ms: int, handle: Any = None) -> None:
        """Highlight an element, reusing ``handle`` when the caller already holds one."""

    @abstractmethod
    async def click(self, element: DomElement) -> None:
        pass

    @abstractmethod
    async def type_text(self, element: DomElement, text: str, submit: bool = False, slowly: bool = False) -> None:
        pass

    @abstractmethod
    async def press_key(self, key: str, element: Optional[DomElement] = None) -> None:
        pass

    @abstractmethod
    async def hover(self, element: DomElement) -> None:
        pass

    @abstractmethod
    async def select_option(self, element: DomElement, values: List[str]) -> List[str]:
        """Select options by value or label. Returns the values now selected."""

    @abstractmethod
    async def drag(self, source: DomElement, target: DomElement) -> None:
        pass

    @abstractmethod
    async def set_input_files(self, element: DomElement, paths: List[str]) -> None:
        pass

    async def close(self) -> None:
        """Release platform resources."""


_EDITABLE_INPUT_TYPES = {
    "text", "search", "email", "tel", "url", "password", "number", "date", "time",
    "datetime-local", "month", "week", "color", "range",
}


class NativeDriver(DocumentDriver):
    """
    Driver over an in-memory document.

    Captures return the same document object, so node identity (and with it
    reference stability) carries over from one capture to the next. Actions
    update form state the way a browser would and append to ``history``.

    Args:
        document: The document to drive. Can be replaced later with ``load``.
    """

    name = "native"

    def __init__(self, document: Optional[DomDocument] = None):
        self.document = document
        self.installed = False
        self.focused: Optional[DomElement] = None
        self.history: List[Dict[str, Any]] = []

    def load(self, document: DomDocument) -> None:
        """Navigate to a new document."""
        self.document = document
        self.focused = None
        self.history.append({"action": "load", "url": document.url})

    async def install(self) -> None:
        self.installed = True

    async def capture(self) -> DomDocument:
        if self.document is None:
            raise DriverNotReadyError("capture")
        return self.document

    def _check_attached(self, element: DomElement, action: str) -> None:
        if self.document is None:
            raise DriverNotReadyError(action)
        if element.owner_document is not self.document:
            raise ActionExecutionError(
                f"Element {element!r} is not attached to the current document",
                action=action,
                execution_error="detached element",
            )

    async def get_handle(self, element: DomElement) -> Any:
        if self.document is None or element.owner_document is not self.document:
            return None
        return element

    async def highlight(self, element: DomElement, duration_ms: int, handle: Any = None) -> None:
        self.history.append({"action": "highlight", "node_id": element.node_id, "duration_ms": duration_ms})

    async def click(self, element: DomElement) -> None:
        self._check_attached(element, "click")
        self.focused = element
        if element.tag == "INPUT" and element.input_type == "checkbox":
            element.checked = not element.checked
            element.indeterminate = False
        elif element.tag == "INPUT" and element.input_type == "radio":
            self._check_radio(element)
        elif element.tag == "OPTION":
            await self._choose_options(self._owning_select(element), [element])
        elif element.tag == "DETAILS" or (element.tag == "SUMMARY" and element.parent_element is not None):
            details = element if element.tag == "DETAILS" else element.parent_element
            if details.tag == "DETAILS":
                if details.has_attribute("open"):
                    details.remove_attribute("open")
                else:
                    details.set_attribute("open", "")
        self.history.append({"action": "click", "node_id": element.node_id})

    def _check_radio(self, element: DomElement) -> None:
        group = element.get_attribute("name")
        if group and self.document is not None:
            for other in self.document.iter_elements():
                if other is not element and other.tag == "INPUT" and other.input_type == "radio" and other.get_attribute("name") == group:
                    other.checked = False
        element.checked = True

    def _owning_select(self, option: DomElement) -> Optional[DomElement]:
        node = option.parent_element
        while node is not None and node.tag != "SELECT":
            node = node.parent_element
        return node

    async def type_text(self, element: DomElement, text: str, submit: bool = False, slowly: bool = False) -> None:
        self._check_attached(element, "type")
        editable = (
            element.tag == "TEXTAREA"
            or (element.tag == "INPUT" and element.input_type in _EDITABLE_INPUT_TYPES)
            or element.get_attribute("contenteditable") in ("", "true")
        )
        if not editable:
            raise ActionExecutionError(
                "Element is not an <input>, <textarea> or [contenteditable] element",
                action="type",
                execution_error=f"<{element.tag.lower()}> is not editable",
            )
        self.focused = element
        element.value = text
        self.history.append({"action": "type", "node_id": element.node_id, "text": text, "slowly": slowly})
        if submit:
            await self.press_key("Enter", element)

    async def press_key(self, key: str, element: Optional[DomElement] = None) -> None:
        if element is not None:
            self._check_attached(element, "press_key")
            self.focused = element
        target = self.focused
        self.history.append({"action": "press_key", "key": key, "node_id": target.node_id if target else None})

    async def hover(self, element: DomElement) -> None:
        self._check_attached(element, "hover")
        self.history.append({"action": "hover", "node_id": element.node_id})

    async def select_option(self, element: DomElement, values: List[str]) -> List[str]:
        self._check_attached(element, "select_option")
        if element.tag != "SELECT":
            raise ActionExecutionError(
                "Element is not a select element",
                action="select_option",
                execution_error=f"<{element.tag.lower()}> is not a <select>",
            )
        options = [el for el in element.iter_descendants() if el.tag == "OPTION"]
        chosen: List[DomElement] = []
        for value in values:
            for option in options:
                if option.value == value or option.text_content().strip() == value:
                    chosen.append(option)
                    break
        if values and not chosen:
            raise ActionExecutionError(
                f"No options matching {values} in select",
                action="select_option",
                execution_error="no matching option",
            )
        selected = await self._choose_options(element, chosen)
        self.history.append({"action": "select_option", "node_id": element.node_id, "values": selected})
        return selected

    async def _choose_options(self, select: Optional[DomElement], chosen: List[DomElement]) -> List[str]:
        if select is None:
            for option in chosen:
                option.selected = True
            return [option.value for option in chosen]
        options = [el for el in select.iter_descendants() if el.tag == "OPTION"]
        if not select.has_attribute("multiple"):
            for option in options:
                option.selected = False
            chosen = chosen[:1]
        for option in chosen:
            option.selected = True
        selected = [option.value for option in options if option.selected]
        select.value = selected[0] if selected else ""
        return selected

    async def drag(self, source: DomElement, target: DomElement) -> None:
        self._check_attached(source, "drag")
        self._check_attached(target, "drag")
        self.history.append({"action": "drag", "source": source.node_id, "target": target.node_id})

    async def set_input_files(self, element: DomElement, paths: List[str]) -> None:
        self._check_attached(element, "file_upload")
        if element.tag != "INPUT" or element.input_type != "file":
            raise ActionExecutionError(
                "Element is not an <input type=file> element",
                action="file_upload",
                execution_error=f"<{element.tag.lower()}> does not accept files",
            )
        names = [os.path.basename(path) or ntpath.basename(path) for path in paths]
        element.value = "C:\\fakepath\\" + names[0] if names else ""
        self.history.append({"action": "file_upload", "node_id": element.node_id, "files": list(paths)})

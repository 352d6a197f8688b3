"""
Playwright-backed document driver.

The page side keeps a small capture helper on ``window.__ariaEye``: it assigns
each DOM node a stable integer id (held in a WeakMap, so the same node keeps
its id across captures), serializes the live document together with the
computed-style subset the role oracle needs, and maps ids back to nodes for the
nodes seen in the latest capture. The Python side rebuilds a ``DomDocument``
whose ``node_id`` values are those page ids, which is what keeps references
stable between snapshots.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from playwright.async_api import Browser, BrowserContext, ElementHandle, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from ..aria.dom import ComputedStyle, DomDocument, DomElement, DomNode, DomText
from ..exceptions import ActionExecutionError, DriverError, DriverNotReadyError
from .driver import DocumentDriver

logger = logging.getLogger(__name__)


CAPTURE_SCRIPT = r"""
() => {
  if (window.__ariaEye) return false;
  const ids = new WeakMap();
  let nextId = 1;
  let nodes = new Map();

  const idOf = (node) => {
    let id = ids.get(node);
    if (id === undefined) {
      id = nextId++;
      ids.set(node, id);
    }
    nodes.set(id, node);
    return id;
  };

  const pseudo = (el, which) => {
    const content = getComputedStyle(el, which).content;
    if (!content || content === 'none' || content === 'normal') return null;
    if (content.length >= 2 && content[0] === '"' && content[content.length - 1] === '"')
      return content.slice(1, -1);
    return null;
  };

  const serialize = (node) => {
    if (node.nodeType === Node.TEXT_NODE)
      return { t: 't', id: idOf(node), text: node.nodeValue };
    if (node.nodeType !== Node.ELEMENT_NODE) return null;
    const el = node;
    const style = getComputedStyle(el);
    const attrs = {};
    for (const attr of el.attributes) attrs[attr.name] = attr.value;
    let visible = null;
    if (style.display !== 'contents') {
      const rect = el.getBoundingClientRect();
      visible = rect.width > 0 && rect.height > 0 && style.visibility === 'visible';
    }
    const out = {
      t: 'e',
      id: idOf(el),
      tag: el.tagName,
      attrs,
      style: {
        display: style.display,
        visibility: style.visibility,
        cursor: style.cursor,
        pointerEvents: style.pointerEvents,
      },
      visible,
      before: pseudo(el, '::before'),
      after: pseudo(el, '::after'),
      children: [],
      shadow: null,
      assigned: null,
    };
    if ('value' in el && typeof el.value === 'string') out.value = el.value;
    if (el.tagName === 'INPUT') {
      out.checked = !!el.checked;
      out.indeterminate = !!el.indeterminate;
    }
    if (el.tagName === 'OPTION') out.selected = !!el.selected;
    for (const child of el.childNodes) {
      const serialized = serialize(child);
      if (serialized) out.children.push(serialized);
    }
    if (el.shadowRoot)
      out.shadow = [...el.shadowRoot.childNodes].map(serialize).filter(Boolean);
    if (el.tagName === 'SLOT')
      out.assigned = el.assignedNodes().map(idOf);
    return out;
  };

  window.__ariaEye = {
    capture() {
      nodes = new Map();
      return { url: location.href, root: serialize(document.documentElement) };
    },
    nodeById(id) {
      const node = nodes.get(id);
      return node && node.isConnected ? node : null;
    },
    highlight(el, duration) {
      const rect = el.getBoundingClientRect();
      const overlay = document.createElement('div');
      overlay.setAttribute('data-aria-eye-highlight', '');
      Object.assign(overlay.style, {
        position: 'fixed',
        left: rect.left + 'px',
        top: rect.top + 'px',
        width: rect.width + 'px',
        height: rect.height + 'px',
        border: '2px solid #ff5722',
        background: 'rgba(255, 87, 34, 0.15)',
        pointerEvents: 'none',
        zIndex: '2147483647',
      });
      document.documentElement.appendChild(overlay);
      setTimeout(() => overlay.remove(), duration);
    },
  };
  return true;
}
"""


def _build_node(data: Dict[str, Any], by_id: Dict[int, DomNode], slots: List[Tuple[DomElement, List[int]]]) -> DomNode:
    if data["t"] == "t":
        text = DomText(data.get("text") or "", node_id=data.get("id"))
        by_id[text.node_id] = text
        return text

    raw_style = data.get("style") or {}
    style = ComputedStyle(
        display=raw_style.get("display") or "inline",
        visibility=raw_style.get("visibility") or "visible",
        cursor=raw_style.get("cursor") or "auto",
        pointer_events=raw_style.get("pointerEvents") or "auto",
    )
    element = DomElement(data["tag"], data.get("attrs") or {}, style=style, node_id=data["id"])
    element.visible = data.get("visible")
    element.before_content = data.get("before")
    element.after_content = data.get("after")
    if "value" in data:
        element.value = data["value"]
    if "checked" in data:
        element.checked = bool(data["checked"])
    if "indeterminate" in data:
        element.indeterminate = bool(data["indeterminate"])
    if "selected" in data:
        element.selected = bool(data["selected"])
    by_id[element.node_id] = element

    for child in data.get("children") or []:
        element.append_child(_build_node(child, by_id, slots))
    if data.get("shadow") is not None:
        shadow = element.attach_shadow()
        for child in data["shadow"]:
            shadow.append_child(_build_node(child, by_id, slots))
    if data.get("assigned"):
        slots.append((element, data["assigned"]))
    return element


def document_from_capture(payload: Dict[str, Any]) -> DomDocument:
    """
    Rebuild a ``DomDocument`` from the page-side capture payload.

    Args:
        payload: ``{"url": ..., "root": <serialized element>}`` as produced by
                 ``window.__ariaEye.capture()``.

    Returns:
        The document, with node ids equal to the page-side ids.

    Raises:
        DriverError: If the payload holds no document element.
    """
    root = (payload or {}).get("root")
    if not root or root.get("t") != "e":
        raise DriverError("Page capture returned no document element", context={"payload_keys": list(payload or {})})

    by_id: Dict[int, DomNode] = {}
    slots: List[Tuple[DomElement, List[int]]] = []
    document_element = _build_node(root, by_id, slots)
    for slot, assigned_ids in slots:
        for assigned_id in assigned_ids:
            node = by_id.get(assigned_id)
            if node is None:
                continue
            node.assigned_slot = slot
            slot.assigned_nodes.append(node)
    return DomDocument(document_element, url=payload.get("url") or "about:blank")


class PlaywrightDriver(DocumentDriver):
    """
    Drives a live Playwright page.

    Args:
        page: The page to snapshot and act on.
        playwright: Playwright instance owned by this driver (set by ``launch``).
        browser: Browser owned by this driver (set by ``launch``).
        context: Browser context the page belongs to.
    """

    name = "playwright"

    def __init__(
        self,
        page: Page,
        playwright: Optional[Playwright] = None,
        browser: Optional[Browser] = None,
        context: Optional[BrowserContext] = None,
    ):
        self.page = page
        self.playwright = playwright
        self.browser = browser
        self.context = context
        self.history: List[Dict[str, Any]] = []

    @classmethod
    async def launch(
        cls,
        url: Optional[str] = None,
        default_browser: str = "chrome",
        headless: bool = True,
        viewport: Optional[Dict[str, int]] = None,
    ) -> "PlaywrightDriver":
        """
        Start Playwright, open a browser page and optionally navigate it.

        Parameters:
            url (Optional[str]): Page to open. The page stays on about:blank when omitted.
            default_browser (str): Browser channel to use.
            headless (bool): Whether to launch the browser in headless mode.
            viewport (Optional[Dict[str, int]]): Browser viewport dimensions.

        Returns:
            PlaywrightDriver: A driver owning the browser it launched.
        """
        playwright = await async_playwright().start()
        browser = await playwright.chromium.launch(channel=default_browser, headless=headless)
        context_kwargs = {}
        if viewport:
            context_kwargs["viewport"] = viewport
        context: BrowserContext = await browser.new_context(**context_kwargs)
        page: Page = await context.new_page()
        driver = cls(page, playwright=playwright, browser=browser, context=context)
        if url:
            await page.goto(url)
            driver.history.append({"action": "goto", "url": url})
        return driver

    async def install(self) -> None:
        if self.page is None:
            raise DriverNotReadyError("install")
        installed = await self.page.evaluate(CAPTURE_SCRIPT)
        if installed:
            logger.debug(f"Installed capture helper on {self.page.url}")

    async def capture(self) -> DomDocument:
        if self.page is None:
            raise DriverNotReadyError("capture")
        payload = await self.page.evaluate("() => window.__ariaEye.capture()")
        return document_from_capture(payload)

    async def get_handle(self, element: DomElement) -> Optional[ElementHandle]:
        if self.page is None:
            raise DriverNotReadyError("get_handle")
        handle = await self.page.evaluate_handle("(id) => window.__ariaEye.nodeById(id)", element.node_id)
        live = handle.as_element()
        if live is None:
            await handle.dispose()
        return live

    async def release_handle(self, handle: Optional[ElementHandle]) -> None:
        if handle is None:
            return
        try:
            await handle.dispose()
        except PlaywrightError as e:
            # The page navigated or closed; the remote object is already gone.
            logger.debug(f"Ignoring failed handle dispose: {e}")

    async def _require_handle(self, element: DomElement, action: str) -> ElementHandle:
        handle = await self.get_handle(element)
        if handle is None:
            raise ActionExecutionError(
                f"Element {element!r} is no longer attached to the page",
                action=action,
                execution_error="detached element",
            )
        return handle

    async def highlight(self, element: DomElement, duration_ms: int, handle: Optional[ElementHandle] = None) -> None:
        owned = handle is None
        if owned:
            handle = await self.get_handle(element)
            if handle is None:
                return
        try:
            await self.page.evaluate(
                "([el, duration]) => window.__ariaEye.highlight(el, duration)", [handle, duration_ms]
            )
        finally:
            if owned:
                await self.release_handle(handle)

    async def click(self, element: DomElement) -> None:
        handle = await self._require_handle(element, "click")
        try:
            await handle.click()
        except PlaywrightError as e:
            raise ActionExecutionError(f"Click failed: {e}", action="click", execution_error=str(e)) from e
        finally:
            await self.release_handle(handle)
        self.history.append({"action": "click", "node_id": element.node_id})

    async def type_text(self, element: DomElement, text: str, submit: bool = False, slowly: bool = False) -> None:
        handle = await self._require_handle(element, "type")
        try:
            if slowly:
                await handle.type(text)
            else:
                await handle.fill(text)
            if submit:
                await handle.press("Enter")
        except PlaywrightError as e:
            raise ActionExecutionError(f"Typing failed: {e}", action="type", execution_error=str(e)) from e
        finally:
            await self.release_handle(handle)
        self.history.append({"action": "type", "node_id": element.node_id, "text": text, "submit": submit})

    async def press_key(self, key: str, element: Optional[DomElement] = None) -> None:
        if element is None:
            try:
                await self.page.keyboard.press(key)
            except PlaywrightError as e:
                raise ActionExecutionError(f"Key press failed: {e}", action="press_key", execution_error=str(e)) from e
        else:
            handle = await self._require_handle(element, "press_key")
            try:
                await handle.press(key)
            except PlaywrightError as e:
                raise ActionExecutionError(f"Key press failed: {e}", action="press_key", execution_error=str(e)) from e
            finally:
                await self.release_handle(handle)
        self.history.append({"action": "press_key", "key": key})

    async def hover(self, element: DomElement) -> None:
        handle = await self._require_handle(element, "hover")
        try:
            await handle.hover()
        except PlaywrightError as e:
            raise ActionExecutionError(f"Hover failed: {e}", action="hover", execution_error=str(e)) from e
        finally:
            await self.release_handle(handle)
        self.history.append({"action": "hover", "node_id": element.node_id})

    async def select_option(self, element: DomElement, values: List[str]) -> List[str]:
        if element.tag != "SELECT":
            raise ActionExecutionError(
                "Element is not a select element",
                action="select_option",
                execution_error=f"<{element.tag.lower()}> is not a <select>",
            )
        handle = await self._require_handle(element, "select_option")
        try:
            selected = await handle.select_option(values)
        except PlaywrightError as e:
            raise ActionExecutionError(f"Select failed: {e}", action="select_option", execution_error=str(e)) from e
        finally:
            await self.release_handle(handle)
        self.history.append({"action": "select_option", "node_id": element.node_id, "values": selected})
        return selected

    async def drag(self, source: DomElement, target: DomElement) -> None:
        source_handle = await self._require_handle(source, "drag")
        target_handle = None
        try:
            target_handle = await self._require_handle(target, "drag")
            await source_handle.scroll_into_view_if_needed()
            source_box = await source_handle.bounding_box()
            target_box = await target_handle.bounding_box()
            if source_box is None or target_box is None:
                raise ActionExecutionError(
                    "Drag source or target is not rendered",
                    action="drag",
                    execution_error="missing bounding box",
                )
            start_x = source_box["x"] + source_box["width"] / 2
            start_y = source_box["y"] + source_box["height"] / 2
            end_x = target_box["x"] + target_box["width"] / 2
            end_y = target_box["y"] + target_box["height"] / 2
            await self.page.mouse.move(start_x, start_y, steps=5)
            await self.page.mouse.down()
            await self.page.mouse.move(end_x, end_y, steps=10)
            await self.page.mouse.up()
        except PlaywrightError as e:
            raise ActionExecutionError(f"Drag failed: {e}", action="drag", execution_error=str(e)) from e
        finally:
            await self.release_handle(source_handle)
            await self.release_handle(target_handle)
        self.history.append({"action": "drag", "source": source.node_id, "target": target.node_id})

    async def set_input_files(self, element: DomElement, paths: List[str]) -> None:
        handle = await self._require_handle(element, "file_upload")
        try:
            await handle.set_input_files(paths)
        except PlaywrightError as e:
            raise ActionExecutionError(f"File upload failed: {e}", action="file_upload", execution_error=str(e)) from e
        finally:
            await self.release_handle(handle)
        self.history.append({"action": "file_upload", "node_id": element.node_id, "files": list(paths)})

    async def close(self) -> None:
        """
        Close the browser and stop the Playwright instance this driver launched.
        """
        if self.browser is not None:
            await self.browser.close()
        if self.playwright is not None:
            await self.playwright.stop()
        self.history.append({"action": "close"})

"""
Action executors.

One coroutine per browser action type, each taking the action context, a
human-readable label for logs, the target reference and type-specific
parameters. Executors look the reference up in the context's snapshot, run
the action through the driver and return a small result dict.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..aria.dom import DomElement
from ..aria.supported_actions import BrowserAction
from ..aria.tree import AriaSnapshot
from ..exceptions import (
    ActionExecutionError,
    ActionValidationError,
    DanglingReferenceError,
    UnsupportedActionError,
)
from .driver import DocumentDriver

logger = logging.getLogger(__name__)


@dataclass
class ActionContext:
    """What an executor needs: the driver and the snapshot the refs came from."""

    driver: DocumentDriver
    snapshot: AriaSnapshot
    session_name: Optional[str] = None

    def element_for(self, ref: str) -> DomElement:
        element = self.snapshot.element_for(ref)
        if element is None:
            raise DanglingReferenceError(ref, session_name=self.session_name)
        return element


ActionExecutor = Callable[[ActionContext, str, str, Dict[str, Any]], Awaitable[Dict[str, Any]]]


def _result(action: BrowserAction, label: str, ref: str, **extra) -> Dict[str, Any]:
    result = {"action": action.value, "label": label, "ref": ref, "success": True}
    result.update(extra)
    logger.info(f"Executed {action.value} on {label} [ref={ref}]")
    return result


async def browser_click(ctx: ActionContext, label: str, ref: str, params: Dict[str, Any]) -> Dict[str, Any]:
    await ctx.driver.click(ctx.element_for(ref))
    return _result(BrowserAction.CLICK, label, ref)


async def browser_type(ctx: ActionContext, label: str, ref: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """Type ``params["text"]`` into the element; ``submit`` presses Enter, ``slowly`` types key by key."""
    text = params.get("text")
    if text is None:
        raise ActionValidationError(
            "No text to type: quote the text in the description or pass ActionRequest.text",
            action=BrowserAction.TYPE.value,
            invalid_params={"text": text},
        )
    submit = bool(params.get("submit", False))
    slowly = bool(params.get("slowly", False))
    await ctx.driver.type_text(ctx.element_for(ref), str(text), submit=submit, slowly=slowly)
    return _result(BrowserAction.TYPE, label, ref, text=text, submit=submit)


async def browser_press_key(ctx: ActionContext, label: str, ref: str, params: Dict[str, Any]) -> Dict[str, Any]:
    key = params.get("key")
    if not key:
        raise ActionValidationError(
            "No key to press",
            action=BrowserAction.PRESS_KEY.value,
            invalid_params={"key": key},
        )
    await ctx.driver.press_key(key, ctx.element_for(ref))
    return _result(BrowserAction.PRESS_KEY, label, ref, key=key)


async def browser_hover(ctx: ActionContext, label: str, ref: str, params: Dict[str, Any]) -> Dict[str, Any]:
    await ctx.driver.hover(ctx.element_for(ref))
    return _result(BrowserAction.HOVER, label, ref)


async def browser_select_option(ctx: ActionContext, label: str, ref: str, params: Dict[str, Any]) -> Dict[str, Any]:
    values: List[str] = list(params.get("values") or [])
    if not values:
        raise ActionValidationError(
            "No option values to select",
            action=BrowserAction.SELECT_OPTION.value,
            invalid_params={"values": values},
        )
    selected = await ctx.driver.select_option(ctx.element_for(ref), values)
    return _result(BrowserAction.SELECT_OPTION, label, ref, values=selected)


async def browser_drag(ctx: ActionContext, label: str, ref: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """Drag the element onto ``params["target_ref"]`` (already resolved by the caller)."""
    target_ref = params.get("target_ref")
    if not target_ref:
        raise ActionValidationError(
            "No drop target for drag",
            action=BrowserAction.DRAG.value,
            invalid_params={"target_ref": target_ref},
        )
    await ctx.driver.drag(ctx.element_for(ref), ctx.element_for(target_ref))
    return _result(BrowserAction.DRAG, label, ref, target_ref=target_ref)


async def browser_file_upload(ctx: ActionContext, label: str, ref: str, params: Dict[str, Any]) -> Dict[str, Any]:
    paths: List[str] = list(params.get("paths") or [])
    if not paths:
        raise ActionValidationError(
            "No file paths to upload",
            action=BrowserAction.FILE_UPLOAD.value,
            invalid_params={"paths": paths},
        )
    await ctx.driver.set_input_files(ctx.element_for(ref), paths)
    return _result(BrowserAction.FILE_UPLOAD, label, ref, paths=paths)


ACTION_EXECUTORS: Dict[str, ActionExecutor] = {
    BrowserAction.CLICK.value: browser_click,
    BrowserAction.TYPE.value: browser_type,
    BrowserAction.PRESS_KEY.value: browser_press_key,
    BrowserAction.HOVER.value: browser_hover,
    BrowserAction.SELECT_OPTION.value: browser_select_option,
    BrowserAction.DRAG.value: browser_drag,
    BrowserAction.FILE_UPLOAD.value: browser_file_upload,
}


async def execute_action(
    action_type: str,
    ctx: ActionContext,
    label: str,
    ref: str,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Dispatch to the executor registered for ``action_type``.

    Raises:
        UnsupportedActionError: If no executor handles the action type.
        ActionValidationError: If required parameters are missing.
        ActionExecutionError: If the driver fails to perform the action.
        DanglingReferenceError: If a reference is not in the snapshot.
    """
    executor = ACTION_EXECUTORS.get(str(action_type))
    if executor is None:
        raise UnsupportedActionError(str(action_type), session_name=ctx.session_name)
    try:
        return await executor(ctx, label, ref, params or {})
    except (ActionExecutionError, ActionValidationError, DanglingReferenceError):
        raise
    except (RuntimeError, ValueError, TypeError) as e:
        raise ActionExecutionError(
            f"{action_type} on {label} failed: {e}",
            action=str(action_type),
            ref=ref,
            execution_error=str(e),
            session_name=ctx.session_name,
        ) from e

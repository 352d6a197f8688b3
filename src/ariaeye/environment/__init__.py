"""
Platform drivers and the browser action executors that run on top of them.
"""

from .actions import ACTION_EXECUTORS, ActionContext, execute_action
from .driver import DocumentDriver, NativeDriver
from .parsing import ActionRequest, parse_action_text
from .playwright_driver import PlaywrightDriver, document_from_capture

__all__ = [
    "ACTION_EXECUTORS",
    "ActionContext",
    "ActionRequest",
    "DocumentDriver",
    "NativeDriver",
    "PlaywrightDriver",
    "document_from_capture",
    "execute_action",
    "parse_action_text",
]

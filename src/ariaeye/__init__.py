"""
ariaeye: find and drive web page elements from plain-language descriptions.

The package builds accessibility-tree snapshots of a document, keeps short
natural-language descriptions of every actionable element in a semantic
store, and resolves free-text queries back to live elements.
"""

__version__ = "0.1.0"

from .aria import AriaSnapshot, TreeBuilder, parse_html, parse_template, render_object_graph, render_text
from .config import EmbedderConfig, EyeConfig
from .environment import ActionRequest, DocumentDriver, NativeDriver, PlaywrightDriver
from .exceptions import (
    AriaEyeError,
    DanglingReferenceError,
    LookupTimeoutError,
    ResolutionFailureError,
    UnsupportedActionError,
)
from .eye import Eye, EyeState, ResolvedElement
from .memory import InMemorySemanticStore, OpenAICompatibleEmbedder, TokenHashEmbedder
from .utils import init_eye_logging

__all__ = [
    "ActionRequest",
    "AriaEyeError",
    "AriaSnapshot",
    "DanglingReferenceError",
    "DocumentDriver",
    "EmbedderConfig",
    "Eye",
    "EyeConfig",
    "EyeState",
    "InMemorySemanticStore",
    "LookupTimeoutError",
    "NativeDriver",
    "OpenAICompatibleEmbedder",
    "PlaywrightDriver",
    "ResolutionFailureError",
    "ResolvedElement",
    "TokenHashEmbedder",
    "TreeBuilder",
    "UnsupportedActionError",
    "init_eye_logging",
    "parse_html",
    "parse_template",
    "render_object_graph",
    "render_text",
]

"""
ariaeye Exception Hierarchy

This module defines the exception hierarchy used across the accessibility-tree
engine, the semantic memory layer and the look/wait/act engine. Every error
carries enough context (query text, threshold, scores, candidate list, action
type) to be actionable without re-running the failing step.

The hierarchy is designed to:
1. Separate tree-building, resolution, memory-store and action failures
2. Include rich context information (session names, refs, timestamps)
3. Tell callers whether an error is worth retrying
4. Maintain consistent error message formats
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorAction(Enum):
    """What action can be taken for this error."""

    # User can potentially fix and retry
    USER_FIXABLE = "user_fixable"

    # Cannot be fixed on-the-fly, must terminate
    TERMINAL = "terminal"

    # System should retry automatically (no user interaction)
    AUTO_RETRY = "auto_retry"


class AriaEyeError(Exception):
    """
    Base exception class for all ariaeye errors.

    Attributes:
        error_code: Unique error code for programmatic handling
        session_name: Name of the Eye session where the error occurred (if applicable)
        timestamp: When the error occurred
        context: Additional context information
        user_message: User-friendly error message
        developer_message: Detailed technical error message
        suggestion: Suggested fix or next steps (if applicable)
    """

    def __init__(
        self,
        message: str,
        error_code: str = "ARIAEYE_ERROR",
        session_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.session_name = session_name
        self.timestamp = time.time()
        self.context = context or {}
        self.user_message = user_message or message
        self.developer_message = message
        self.suggestion = suggestion

    @property
    def message(self) -> str:
        return self.developer_message

    def get_error_action(self) -> ErrorAction:
        """Most errors need a human decision before retrying."""
        return ErrorAction.USER_FIXABLE

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.developer_message,
            "user_message": self.user_message,
            "session_name": self.session_name,
            "timestamp": self.timestamp,
            "context": self.context,
            "suggestion": self.suggestion,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}]"]
        if self.session_name:
            parts.append(f"Session:{self.session_name}")
        parts.append(self.developer_message)
        return " ".join(parts)


# =============================================================================
# TREE ERRORS
# =============================================================================

class TreeError(AriaEyeError):
    """Base class for accessibility tree construction errors."""

    def __init__(self, message: str, **kwargs):
        error_code = kwargs.pop("error_code", "TREE_ERROR")
        super().__init__(message, error_code=error_code, **kwargs)


class InvalidRootError(TreeError):
    """
    Raised when a tree build is requested on something that is not an element.

    Examples:
    - A text node passed as the build root
    - A shadow root or document object instead of its element
    """

    def __init__(self, node_type: Optional[str] = None, **kwargs):
        self.node_type = node_type

        context = kwargs.pop("context", {})
        if node_type:
            context["node_type"] = node_type

        super().__init__(
            "Can only capture aria snapshot of Element nodes.",
            error_code="INVALID_ROOT_ERROR",
            context=context,
            user_message="The snapshot root must be an element.",
            suggestion="Pass the document element or another element node as the root.",
            **kwargs
        )

    def get_error_action(self) -> ErrorAction:
        return ErrorAction.TERMINAL


class TemplateError(TreeError):
    """Raised when a template cannot be parsed into template nodes."""

    def __init__(self, message: str, source: Optional[str] = None, **kwargs):
        self.source = source

        context = kwargs.pop("context", {})
        if source:
            context["source"] = source[:200] + "..." if len(source) > 200 else source

        super().__init__(
            message,
            error_code="TEMPLATE_ERROR",
            context=context,
            user_message="The aria template is malformed.",
            suggestion="Check template indentation, quoting and attribute brackets.",
            **kwargs
        )


# =============================================================================
# RESOLUTION ERRORS
# =============================================================================

class ResolutionFailureError(AriaEyeError):
    """
    Raised when a description cannot be turned into a live element.

    Examples:
    - The semantic store returned no candidate
    - The best candidate scored below the similarity threshold
    - The winning record carries no reference
    """

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        score: Optional[float] = None,
        threshold: Optional[float] = None,
        candidates: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ):
        self.query = query
        self.score = score
        self.threshold = threshold
        self.candidates = candidates or []

        context = kwargs.pop("context", {})
        if query is not None:
            context["query"] = query
        if score is not None:
            context["score"] = score
        if threshold is not None:
            context["threshold"] = threshold
        if self.candidates:
            context["candidates"] = self.candidates

        error_code = kwargs.pop("error_code", "RESOLUTION_FAILURE_ERROR")
        kwargs.setdefault("user_message", "No element on the page matches the description.")
        kwargs.setdefault("suggestion", "Rephrase the description or lower the similarity threshold.")
        super().__init__(
            message,
            error_code=error_code,
            context=context,
            **kwargs
        )


class DanglingReferenceError(ResolutionFailureError):
    """Raised when a stored reference no longer maps to a node of the current snapshot."""

    def __init__(self, ref: str, query: Optional[str] = None, **kwargs):
        self.ref = ref

        context = kwargs.pop("context", {})
        context["ref"] = ref

        super().__init__(
            f'Element with ref "{ref}" not found in the current snapshot',
            query=query,
            error_code="DANGLING_REFERENCE_ERROR",
            context=context,
            user_message="The matched element is no longer on the page.",
            suggestion="Retry once the page has settled, or use wait() for dynamic content.",
            **kwargs
        )


class LookupTimeoutError(AriaEyeError):
    """Raised by wait() when no qualifying element appeared within the time budget."""

    def __init__(
        self,
        description: str,
        timeout_ms: float,
        elapsed_ms: Optional[float] = None,
        attempts: Optional[int] = None,
        last_error: Optional[str] = None,
        **kwargs
    ):
        self.description = description
        self.timeout_ms = timeout_ms
        self.elapsed_ms = elapsed_ms
        self.attempts = attempts
        self.last_error = last_error

        context = kwargs.pop("context", {})
        context["description"] = description
        context["timeout_ms"] = timeout_ms
        if elapsed_ms is not None:
            context["elapsed_ms"] = elapsed_ms
        if attempts is not None:
            context["attempts"] = attempts
        if last_error:
            context["last_error"] = last_error

        super().__init__(
            f'Timeout: Element matching description "{description}" not found within {timeout_ms}ms',
            error_code="LOOKUP_TIMEOUT_ERROR",
            context=context,
            user_message=f"Element did not appear within {timeout_ms}ms.",
            suggestion="Increase the timeout or check that the page actually renders the element.",
            **kwargs
        )


# =============================================================================
# MEMORY STORE ERRORS
# =============================================================================

class StoreError(AriaEyeError):
    """Base class for semantic store errors."""

    def __init__(self, message: str, **kwargs):
        error_code = kwargs.pop("error_code", "STORE_ERROR")
        super().__init__(message, error_code=error_code, **kwargs)


class StoreTransientError(StoreError):
    """
    Raised when a store or embedder round-trip fails in a way that may succeed later.

    Examples:
    - Connection refused by the embedding endpoint
    - HTTP 429 / 5xx responses
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        self.operation = operation
        self.status_code = status_code

        context = kwargs.pop("context", {})
        if operation:
            context["operation"] = operation
        if status_code is not None:
            context["status_code"] = status_code

        super().__init__(
            message,
            error_code="STORE_TRANSIENT_ERROR",
            context=context,
            user_message="The semantic store is temporarily unavailable.",
            suggestion="Check that the embedding service is running and retry.",
            **kwargs
        )

    def get_error_action(self) -> ErrorAction:
        return ErrorAction.AUTO_RETRY


# =============================================================================
# ACTION ERRORS
# =============================================================================

class ActionError(AriaEyeError):
    """Base class for action dispatch and execution errors."""

    def __init__(self, message: str, **kwargs):
        error_code = kwargs.pop("error_code", "ACTION_ERROR")
        super().__init__(message, error_code=error_code, **kwargs)


class UnsupportedActionError(ActionError):
    """Raised when act() resolves to an action type with no executor."""

    def __init__(self, action_type: str, **kwargs):
        self.action_type = action_type

        context = kwargs.pop("context", {})
        context["action_type"] = action_type

        super().__init__(
            f"Unsupported action type: {action_type}",
            error_code="UNSUPPORTED_ACTION_ERROR",
            context=context,
            user_message=f"The action '{action_type}' is not supported.",
            suggestion="Use one of: click, type, press_key, hover, select_option, drag, file_upload.",
            **kwargs
        )

    def get_error_action(self) -> ErrorAction:
        return ErrorAction.TERMINAL


class ActionValidationError(ActionError):
    """
    Raised when an action is missing parameters it needs.

    Examples:
    - type without any text
    - drag without a target description
    """

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        invalid_params: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        self.action = action
        self.invalid_params = invalid_params

        context = kwargs.pop("context", {})
        if action:
            context["action"] = action
        if invalid_params:
            context["invalid_params"] = invalid_params

        super().__init__(
            message,
            error_code="ACTION_VALIDATION_ERROR",
            context=context,
            user_message="The action request is incomplete.",
            suggestion="Pass a structured ActionRequest with the parameters the action needs.",
            **kwargs
        )


class ActionExecutionError(ActionError):
    """Raised when the driver fails while executing an action."""

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        ref: Optional[str] = None,
        execution_error: Optional[str] = None,
        **kwargs
    ):
        self.action = action
        self.ref = ref
        self.execution_error = execution_error

        context = kwargs.pop("context", {})
        if action:
            context["action"] = action
        if ref:
            context["ref"] = ref
        if execution_error:
            context["execution_error"] = execution_error

        super().__init__(
            message,
            error_code="ACTION_EXECUTION_ERROR",
            context=context,
            user_message="The action could not be performed on the page.",
            suggestion="Check that the element is visible and enabled.",
            **kwargs
        )


# =============================================================================
# DRIVER ERRORS
# =============================================================================

class DriverError(AriaEyeError):
    """Base class for document driver errors."""

    def __init__(self, message: str, **kwargs):
        error_code = kwargs.pop("error_code", "DRIVER_ERROR")
        super().__init__(message, error_code=error_code, **kwargs)


class DriverNotReadyError(DriverError):
    """Raised when the driver is used before its page/document is available."""

    def __init__(self, operation: Optional[str] = None, **kwargs):
        self.operation = operation

        context = kwargs.pop("context", {})
        if operation:
            context["attempted_operation"] = operation

        message = f"Driver not ready for operation: {operation}" if operation else "Driver not ready"

        super().__init__(
            message,
            error_code="DRIVER_NOT_READY_ERROR",
            context=context,
            user_message="The document driver needs a live page before use.",
            suggestion="Launch or attach the driver before taking snapshots.",
            **kwargs
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def get_error_summary(error: AriaEyeError) -> Dict[str, Any]:
    """
    Get a summary of error information for logging/reporting.

    Args:
        error: Error to summarize

    Returns:
        Dictionary with error summary information
    """
    return {
        "error_code": error.error_code,
        "error_type": type(error).__name__,
        "session_name": error.session_name,
        "user_message": error.user_message,
        "suggestion": error.suggestion,
        "timestamp": error.timestamp,
        "error_action": error.get_error_action().value,
    }

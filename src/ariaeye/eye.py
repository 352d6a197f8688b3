"""
The Eye: find page elements from a free-text description and act on them.

Every ``look``/``wait``/``act`` call runs one cycle of a small state machine:

    Idle -> Setup -> Searching -> Gating -> Resolving -> (Executing) -> Done | Failed

Setup captures the document, rebuilds the accessibility snapshot and brings the
semantic store in step with it. Searching ranks element descriptions against
the caller's text, Gating enforces the similarity threshold, and Resolving maps
the winning record's reference back to a live element. A session runs at most
one cycle at a time; a per-session lock serializes concurrent callers.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .aria.dom import DomElement
from .aria.refs import ReferenceAssigner
from .aria.render import render_object_graph, render_text
from .aria.roles import RoleOracle
from .aria.tree import AriaNode, AriaSnapshot, TreeBuilder
from .config import EyeConfig, RenderMode
from .environment.actions import ActionContext, execute_action
from .environment.driver import DocumentDriver
from .environment.parsing import ActionRequest, detect_action, parse_action_text, split_drag_target
from .exceptions import (
    DanglingReferenceError,
    DriverNotReadyError,
    LookupTimeoutError,
    ResolutionFailureError,
    StoreTransientError,
)
from .memory.records import MemoryRecord, extract_memory_records, parse_prompt, parse_ref
from .memory.store import BaseSemanticStore, InMemorySemanticStore, SearchResponse
from .memory.sync import MemorySynchronizer, SyncPlan
from .utils import session_extra, truncate

logger = logging.getLogger(__name__)


class EyeState(Enum):
    IDLE = "idle"
    SETUP = "setup"
    SEARCHING = "searching"
    GATING = "gating"
    RESOLVING = "resolving"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ResolvedElement:
    """
    An element found from a description.

    ``handle`` is the driver's live handle. Handles returned by ``look`` and
    ``wait`` stay valid until the session is reset or closed.
    """

    ref: str
    query: str
    score: float
    node: Optional[AriaNode]
    element: DomElement
    handle: Any = field(repr=False)
    record: MemoryRecord = field(repr=False)

    @property
    def action(self) -> Optional[str]:
        """Action type stored with the matched record."""
        return parse_prompt(self.record.content).get("action")


class Eye:
    """
    A look/wait/act session over one document driver.

    Args:
        driver: Platform driver (``NativeDriver``, ``PlaywrightDriver``).
        store: Semantic store. Defaults to an ``InMemorySemanticStore``.
        config: Session configuration. Defaults to ``EyeConfig()``.
        session_name: Name used to tag log records and errors.
        oracle: Role oracle for tree builds. Defaults to ``DefaultRoleOracle``.
    """

    def __init__(
        self,
        driver: DocumentDriver,
        store: Optional[BaseSemanticStore] = None,
        config: Optional[EyeConfig] = None,
        session_name: str = "eye",
        oracle: Optional[RoleOracle] = None,
    ):
        self.driver = driver
        self.store = store if store is not None else InMemorySemanticStore()
        self.config = config or EyeConfig()
        self.session_name = session_name
        self.ref_assigner = ReferenceAssigner(prefix=self.config.ref_prefix)
        self.tree_builder = TreeBuilder(oracle=oracle, ref_assigner=self.ref_assigner)
        self.synchronizer = MemorySynchronizer(self.store, self.config.scope_id, session_name=session_name)
        self.state = EyeState.IDLE
        self.current_snapshot: Optional[AriaSnapshot] = None
        self.last_sync: Optional[SyncPlan] = None
        # Handles returned to callers by look/wait, released on reset/close
        self._issued_handles: List[Any] = []
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # State machine plumbing
    # ------------------------------------------------------------------

    def _transition(self, state: EyeState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}", extra=session_extra(self.session_name))
        self.state = state

    async def _build_snapshot(self) -> AriaSnapshot:
        await self.driver.install()
        document = await self.driver.capture()
        snapshot = self.tree_builder.build(
            document.document_element, for_ai=True, ref_prefix=self.config.ref_prefix
        )
        self.ref_assigner.prune(element.node_id for element in document.iter_elements())
        self.current_snapshot = snapshot
        logger.debug(
            f"Built snapshot of {document.url}: {len(snapshot.elements)} references",
            extra=session_extra(self.session_name),
        )
        return snapshot

    async def _setup(self) -> AriaSnapshot:
        self._transition(EyeState.SETUP)
        if self.config.settle_delay_ms:
            await asyncio.sleep(self.config.settle_delay_ms / 1000)
        snapshot = await self._build_snapshot()
        graph = render_object_graph(snapshot, mode=self.config.render_mode, for_ai=True)
        records = extract_memory_records(graph)
        self.last_sync = await self.synchronizer.sync(records)
        return snapshot

    async def _search(self, query: str) -> SearchResponse:
        self._transition(EyeState.SEARCHING)
        return await self.store.search(query, scope_id=self.config.scope_id, limit=self.config.search_limit)

    def _candidates(self, response: SearchResponse) -> List[Dict[str, Any]]:
        return [
            {"content": truncate(result.content, 200), "score": result.score}
            for result in response.results[: self.config.candidate_dump_limit]
        ]

    def _gate(self, query: str, response: SearchResponse, threshold: float) -> MemoryRecord:
        self._transition(EyeState.GATING)
        top = response.top
        if top is None:
            raise ResolutionFailureError(
                f'No element descriptions matched "{query}"',
                query=query,
                threshold=threshold,
                session_name=self.session_name,
            )
        if top.score < threshold:
            raise ResolutionFailureError(
                f'Best match for "{query}" scored {top.score} which is below the threshold {threshold}',
                query=query,
                score=top.score,
                threshold=threshold,
                candidates=self._candidates(response),
                session_name=self.session_name,
            )
        return top.to_record()

    async def _resolve(self, query: str, record: MemoryRecord, score: float, snapshot: AriaSnapshot) -> ResolvedElement:
        self._transition(EyeState.RESOLVING)
        ref = parse_ref(record.content)
        if ref is None:
            raise ResolutionFailureError(
                f'Matched record for "{query}" carries no element reference',
                query=query,
                score=score,
                candidates=[{"content": truncate(record.content, 200), "score": score}],
                session_name=self.session_name,
            )
        element = snapshot.element_for(ref)
        if element is None:
            raise DanglingReferenceError(ref, query=query, session_name=self.session_name)
        handle = await self.driver.get_handle(element)
        if handle is None:
            raise DanglingReferenceError(ref, query=query, session_name=self.session_name)

        if self.config.highlight:
            try:
                await self.driver.highlight(element, self.config.highlight_duration_ms, handle=handle)
            except Exception:
                await self.driver.release_handle(handle)
                raise
        logger.info(f'Resolved "{query}" to ref {ref} (score {score:.3f})', extra=session_extra(self.session_name))
        return ResolvedElement(
            ref=ref,
            query=query,
            score=score,
            node=snapshot.node_for(ref),
            element=element,
            handle=handle,
            record=record,
        )

    async def _locate(self, query: str, threshold: float, snapshot: AriaSnapshot) -> ResolvedElement:
        response = await self._search(query)
        record = self._gate(query, response, threshold)
        return await self._resolve(query, record, response.top.score, snapshot)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def look(self, description: str, threshold: Optional[float] = None) -> ResolvedElement:
        """
        Find the element best matching a description.

        Args:
            description: Free-text description ("the search box", "submit button").
            threshold: Minimum similarity score. Defaults to ``config.look_threshold``.

        Returns:
            The resolved element.

        Raises:
            ResolutionFailureError: No candidate, or the best one is below the threshold.
            DanglingReferenceError: The matched reference is not on the current page.
        """
        threshold = self.config.look_threshold if threshold is None else threshold
        async with self._lock:
            try:
                snapshot = await self._setup()
                resolved = await self._locate(description, threshold, snapshot)
            except Exception:
                self._transition(EyeState.FAILED)
                raise
            self._issued_handles.append(resolved.handle)
            self._transition(EyeState.DONE)
            return resolved

    async def wait(
        self,
        description: str,
        timeout_ms: Optional[int] = None,
        polling_interval_ms: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> ResolvedElement:
        """
        Poll until an element matching the description appears.

        Each attempt rebuilds the snapshot, syncs the store and searches.
        Resolution failures and transient store errors are logged and retried
        until the time budget runs out.

        Args:
            description: Free-text description of the element.
            timeout_ms: Time budget. Defaults to ``config.wait_timeout_ms``.
            polling_interval_ms: Pause between attempts. Defaults to ``config.polling_interval_ms``.
            threshold: Minimum similarity score. Defaults to ``config.wait_threshold``.

        Returns:
            The resolved element.

        Raises:
            LookupTimeoutError: If nothing qualified within the budget.
        """
        timeout_ms = self.config.wait_timeout_ms if timeout_ms is None else timeout_ms
        polling_interval_ms = polling_interval_ms or self.config.polling_interval_ms
        threshold = self.config.wait_threshold if threshold is None else threshold

        async with self._lock:
            start = time.monotonic()
            attempts = 0
            last_error: Optional[str] = None
            while (time.monotonic() - start) * 1000 < timeout_ms:
                attempts += 1
                logger.debug(f'wait attempt {attempts} for "{description}"', extra=session_extra(self.session_name))
                try:
                    snapshot = await self._setup()
                    resolved = await self._locate(description, threshold, snapshot)
                    self._issued_handles.append(resolved.handle)
                    self._transition(EyeState.DONE)
                    return resolved
                except (ResolutionFailureError, StoreTransientError) as e:
                    last_error = e.message
                    logger.warning(
                        f"Error while waiting for element: {e}", extra=session_extra(self.session_name)
                    )
                except Exception:
                    self._transition(EyeState.FAILED)
                    raise
                await asyncio.sleep(polling_interval_ms / 1000)

            self._transition(EyeState.FAILED)
            raise LookupTimeoutError(
                description,
                timeout_ms,
                elapsed_ms=(time.monotonic() - start) * 1000,
                attempts=attempts,
                last_error=last_error,
                session_name=self.session_name,
            )

    async def act(
        self,
        description: str,
        request: Optional[ActionRequest] = None,
        threshold: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Resolve an element from a description and perform an action on it.

        The action type comes from ``request.action``, then from the matched
        record, then from keywords in the description. Parameters missing from
        ``request`` are extracted from the description as a fallback.

        Args:
            description: What to do, in words ("type "hello" into the search box").
            request: Structured action parameters.
            threshold: Minimum similarity score. Defaults to ``config.act_threshold``.

        Returns:
            The executor's result dict, with the resolved reference and score.

        Raises:
            ResolutionFailureError: The element (or drag target) could not be resolved.
            UnsupportedActionError: The action type has no executor.
            ActionValidationError: Parameters the action needs are missing.
            ActionExecutionError: The driver failed to perform the action.
        """
        request = request or ActionRequest()
        threshold = self.config.act_threshold if threshold is None else threshold

        query = description
        if (request.action or detect_action(description)) == "drag" and not request.target:
            query, _ = split_drag_target(description)

        async with self._lock:
            resolved: Optional[ResolvedElement] = None
            target: Optional[ResolvedElement] = None
            try:
                snapshot = await self._setup()
                resolved = await self._locate(query, threshold, snapshot)

                action_type = request.action or resolved.action or detect_action(description)
                params = request.merged_with(parse_action_text(description, action_type))
                call_params: Dict[str, Any] = params.model_dump()
                if action_type == "drag" and params.target:
                    target = await self._locate(params.target, threshold, snapshot)
                    call_params["target_ref"] = target.ref

                self._transition(EyeState.EXECUTING)
                context = ActionContext(self.driver, snapshot, session_name=self.session_name)
                result = await execute_action(action_type, context, description, resolved.ref, call_params)
            except Exception:
                self._transition(EyeState.FAILED)
                raise
            finally:
                # Executors take their own handles; the resolution handles are not returned.
                for held in (resolved, target):
                    if held is not None:
                        await self.driver.release_handle(held.handle)
            self._transition(EyeState.DONE)

        result["score"] = resolved.score
        return result

    async def snapshot(self, yaml: bool = False, mode: Optional[RenderMode] = None) -> Union[str, List[Dict[str, Any]], Dict[str, Any]]:
        """
        Capture the page and return its accessibility snapshot.

        Args:
            yaml: Return the indented text form instead of the object graph.
            mode: ``raw`` or ``regex`` rendering. Defaults to ``config.render_mode``.
        """
        mode = mode or self.config.render_mode
        async with self._lock:
            snapshot = await self._build_snapshot()
        if yaml:
            return render_text(snapshot, mode=mode, for_ai=True)
        return render_object_graph(snapshot, mode=mode, for_ai=True)

    async def blink(self, duration_ms: Optional[int] = None) -> None:
        """Pause for ``duration_ms`` (400ms by default, an average human blink)."""
        duration_ms = self.config.blink_ms if duration_ms is None else duration_ms
        await asyncio.sleep(duration_ms / 1000)

    async def reset(self) -> None:
        """Forget stored descriptions and issued references. Earlier refs become invalid."""
        async with self._lock:
            await self._release_issued_handles()
            await self.store.delete_all(self.config.scope_id)
            self.ref_assigner.reset()
            self.current_snapshot = None
            self.last_sync = None
            self.state = EyeState.IDLE

    async def _release_issued_handles(self) -> None:
        handles, self._issued_handles = self._issued_handles, []
        for handle in handles:
            await self.driver.release_handle(handle)

    async def close(self) -> None:
        await self._release_issued_handles()
        await self.driver.close()

    def element_for(self, ref: str) -> DomElement:
        """Look a reference up in the latest snapshot."""
        if self.current_snapshot is None:
            raise DriverNotReadyError("element_for")
        element = self.current_snapshot.element_for(ref)
        if element is None:
            raise DanglingReferenceError(ref, session_name=self.session_name)
        return element

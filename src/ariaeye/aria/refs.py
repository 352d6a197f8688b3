import itertools
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Union

from .dom import DomElement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedRef:
    """The (role, name, ref) triple last minted for a node."""

    role: str
    name: str
    ref: str


class ReferenceAssigner:
    """
    Mints and reuses opaque element references for one session.

    A reference is reused across builds only while the node keeps the same
    (role, name) identity; a role or name change is a new logical element and
    gets a fresh reference. The counter belongs to this instance, so two
    sessions never hand out colliding references.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self._counter = itertools.count(1)
        self._cache: Dict[Union[int, str], CachedRef] = {}
        self.last_ref = 0

    def ref_for(
        self,
        element: DomElement,
        role: str,
        name: str,
        for_ai: bool = True,
        prefix: Optional[str] = None,
    ) -> Optional[str]:
        """
        Return the reference for ``element`` under its current (role, name).

        Args:
            element: The node being materialized.
            role: Its computed role.
            name: Its normalized accessible name.
            for_ai: References are only produced when minting was requested for the build.
            prefix: Overrides the assigner's prefix for newly minted references.

        Returns:
            The cached reference when role and name are unchanged, a new one otherwise,
            or None when minting is off.
        """
        if not for_ai:
            return None

        cached = self._cache.get(element.node_id)
        if cached is None or cached.role != role or cached.name != name:
            self.last_ref = next(self._counter)
            ref_prefix = self.prefix if prefix is None else prefix
            cached = CachedRef(role=role, name=name, ref=f"{ref_prefix}e{self.last_ref}")
            self._cache[element.node_id] = cached
        return cached.ref

    def cached(self, element: DomElement) -> Optional[CachedRef]:
        return self._cache.get(element.node_id)

    def prune(self, live_ids: Iterable[Union[int, str]]) -> int:
        """
        Drop cached references of nodes that are no longer in the document.

        Hidden nodes that are still attached keep their reference.

        Returns:
            Number of entries dropped.
        """
        live = set(live_ids)
        stale = [node_id for node_id in self._cache if node_id not in live]
        for node_id in stale:
            del self._cache[node_id]
        if stale:
            logger.debug(f"Pruned {len(stale)} references of detached nodes")
        return len(stale)

    def reset(self) -> None:
        """Forget every issued reference and restart the counter. Previously issued refs become invalid."""
        logger.debug(f"Resetting reference assigner after {self.last_ref} references")
        self._counter = itertools.count(1)
        self._cache.clear()
        self.last_ref = 0

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .records import MemoryRecord
from .store import BaseSemanticStore

logger = logging.getLogger(__name__)


@dataclass
class SyncPlan:
    """Records to add and stored records to delete."""

    to_add: List[MemoryRecord] = field(default_factory=list)
    to_delete: List[MemoryRecord] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_delete


class MemorySynchronizer:
    """
    Keeps a store scope in step with the current snapshot's records.

    Records are compared by (role, content). Records present on both sides are
    left untouched; there is no update in place.

    Args:
        store: The semantic store.
        scope_id: Store partition owned by this synchronizer.
        session_name: Tag for log records.
    """

    def __init__(self, store: BaseSemanticStore, scope_id: str, session_name: Optional[str] = None):
        self.store = store
        self.scope_id = scope_id
        self.session_name = session_name

    @staticmethod
    def diff(current: List[MemoryRecord], previous: List[MemoryRecord]) -> SyncPlan:
        """
        Compute the minimal add/delete sets.

        Args:
            current: Records derived from the current snapshot.
            previous: Records held by the store.

        Returns:
            ``to_add``: current records absent from previous (first occurrence of each).
            ``to_delete``: previous records absent from current, plus duplicate copies.
        """
        current_keys = {record.key for record in current}
        previous_keys = set()
        to_delete: List[MemoryRecord] = []
        for record in previous:
            if record.key not in current_keys or record.key in previous_keys:
                to_delete.append(record)
            previous_keys.add(record.key)

        to_add: List[MemoryRecord] = []
        seen = set()
        for record in current:
            if record.key in previous_keys or record.key in seen:
                continue
            seen.add(record.key)
            to_add.append(record)
        return SyncPlan(to_add=to_add, to_delete=to_delete)

    async def sync(self, current: List[MemoryRecord]) -> SyncPlan:
        """
        Apply the diff between ``current`` and the store's scope.

        Adds complete before deletes start, so a failure leaves stale
        duplicates rather than missing entries. Deletes run concurrently.
        """
        previous = await self.store.get_all(self.scope_id)
        plan = self.diff(current, previous)
        logger.debug(
            f"Memory sync for scope '{self.scope_id}': +{len(plan.to_add)} -{len(plan.to_delete)} "
            f"({len(previous)} stored, {len(current)} current)",
            extra={"session_name": self.session_name},
        )

        if plan.to_add:
            await self.store.add(plan.to_add, scope_id=self.scope_id, infer=False)

        deletable = [record for record in plan.to_delete if record.id]
        if deletable:
            await asyncio.gather(*(self.store.delete(record.id) for record in deletable))
        return plan

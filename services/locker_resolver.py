from typing import Dict, List, Optional

from services.inventory_store import GroupingStore
from services.sync_context import SyncContext


class LockerResolver:
    """
    Locker name -> locker id for one warehouse, creating lockers on first sight.

    The cache is loaded once from the store and mutated on every create, so an
    instance belongs to a single sync and must be called sequentially.
    """

    def __init__(self, store: GroupingStore, warehouse_id: str):
        self.store = store
        self.warehouse_id = warehouse_id
        self._ids: Dict[str, str] = {l.name: l.locker_id for l in store.list(warehouse_id)}
        self.created: List[str] = []

    def peek(self, name: str) -> Optional[str]:
        """Cached id for ``name`` without creating anything."""
        return self._ids.get(name)

    def resolve(self, ctx: SyncContext, name: str) -> str:
        locker_id = self._ids.get(name)
        if locker_id is not None:
            return locker_id

        locker_id = self.store.create(self.warehouse_id, name)
        self._ids[name] = locker_id
        self.created.append(locker_id)
        ctx.logger.info("Created locker '%s' -> %s", name, locker_id)
        return locker_id

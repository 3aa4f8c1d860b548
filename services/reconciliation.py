# services/reconciliation.py
"""
Row-by-row diff between the inventory tab and the ``medicines`` table.

Rows are matched to records by a business key: the medicine id in identifier
mode, the address otherwise. The mode is fixed when the planner is built. For
each row the outcome is one of create / update / skip; a row whose create or
update fails is recorded as ``failed`` and the loop moves on, so a later run
picks it up again.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from services.database import DatabaseError
from services.exceptions import PartialRowError
from services.inventory_models import (
    ACTION_CREATE,
    ACTION_FAILED,
    ACTION_SKIP,
    ACTION_UPDATE,
    InventoryRecord,
    RowOutcome,
    SheetRow,
)
from services.inventory_store import InventoryStore
from services.locker_resolver import LockerResolver
from services.sync_context import SyncContext

WriteID = Callable[[SyncContext, SheetRow, str], None]


@dataclass
class Plan:
    creates: List[SheetRow] = field(default_factory=list)
    updates: List[SheetRow] = field(default_factory=list)
    skips: List[SheetRow] = field(default_factory=list)


class ReconciliationPlanner:
    def __init__(self, unique_by_id: bool = True):
        self.unique_by_id = unique_by_id

    def key_of_row(self, row: SheetRow) -> str:
        return row.medicine_id if self.unique_by_id else row.address

    def key_of_record(self, record: InventoryRecord) -> str:
        return record.medicine_id if self.unique_by_id else record.address

    def index(self, existing: List[InventoryRecord]) -> Dict[str, InventoryRecord]:
        return {self.key_of_record(r): r for r in existing if self.key_of_record(r)}

    def decide(self, row: SheetRow, index: Dict[str, InventoryRecord],
               locker_id: Optional[str]) -> Tuple[str, Optional[InventoryRecord]]:
        key = self.key_of_row(row)
        match = index.get(key) if key else None
        if match is None:
            return ACTION_CREATE, None
        if row.differs_from(match, locker_id):
            return ACTION_UPDATE, match
        return ACTION_SKIP, match

    @staticmethod
    def record_for(row: SheetRow, warehouse_id: str, locker_id: Optional[str],
                   match: Optional[InventoryRecord]) -> InventoryRecord:
        """The record ``row`` should persist as; id and image come from ``match``."""
        return InventoryRecord(
            medicine_id=match.medicine_id if match else "",
            warehouse_id=warehouse_id,
            locker_id=locker_id,
            floor=row.floor,
            position=row.position,
            address=row.address,
            description=row.description,
            medical_name=row.medical_name,
            label=row.label,
            image_ref=match.image_ref if match else None,
        )

    def plan(self, existing: List[InventoryRecord], rows: List[SheetRow],
             locker_lookup: Callable[[str], Optional[str]]) -> Plan:
        """
        Decide every row without writing anything. ``locker_lookup`` returns
        None for lockers that do not exist yet.
        """
        index = self.index(existing)
        result = Plan()
        for row in rows:
            locker_id = locker_lookup(row.locker_name)
            action, match = self.decide(row, index, locker_id)
            if action == ACTION_CREATE:
                result.creates.append(row)
                record = self.record_for(row, "", locker_id, None)
                if self.key_of_record(record):
                    index[self.key_of_record(record)] = record
            elif action == ACTION_UPDATE:
                result.updates.append(row)
                index[self.key_of_record(match)] = self.record_for(row, match.warehouse_id, locker_id, match)
            else:
                result.skips.append(row)
        return result

    def apply(self, ctx: SyncContext, warehouse_id: str, rows: List[SheetRow],
              existing: List[InventoryRecord], resolver: LockerResolver,
              store: InventoryStore, write_id: Optional[WriteID] = None) -> List[RowOutcome]:
        """
        Resolve, decide and persist each row in sheet order.

        Store failures (locker or medicine) become ``failed`` outcomes. Errors
        from ``write_id`` and an expired deadline propagate and end the run.
        """
        index = self.index(existing)
        outcomes: List[RowOutcome] = []

        for row in rows:
            ctx.check_deadline(f"row {row.row_number}")

            try:
                locker_id = resolver.resolve(ctx, row.locker_name)
            except DatabaseError as e:
                outcomes.append(self._failed(ctx, row, f"locker '{row.locker_name}' could not be created: {e}"))
                continue

            action, match = self.decide(row, index, locker_id)
            if action == ACTION_SKIP:
                outcomes.append(RowOutcome(row.row_number, ACTION_SKIP, match.medicine_id))
                continue

            record = self.record_for(row, warehouse_id, locker_id, match)
            try:
                if action == ACTION_CREATE:
                    store.create(record)
                else:
                    store.update(record)
            except DatabaseError as e:
                outcomes.append(self._failed(ctx, row, f"{action} failed: {e}"))
                continue

            index[self.key_of_record(record)] = record
            ctx.logger.debug("Row %d: %s %s", row.row_number, action, record.medicine_id)
            if action == ACTION_CREATE and write_id is not None:
                write_id(ctx, row, record.medicine_id)
            outcomes.append(RowOutcome(row.row_number, action, record.medicine_id))

        return outcomes

    @staticmethod
    def _failed(ctx: SyncContext, row: SheetRow, message: str) -> RowOutcome:
        ctx.logger.error("Row %d (%s): %s", row.row_number, row.address, message)
        return RowOutcome(row.row_number, ACTION_FAILED, error=PartialRowError(message, position=row.row_number))

import logging
import uuid
from datetime import datetime, timezone

from services.database import DatabaseManager
from services.inventory_models import WarehouseSheetBinding

logger = logging.getLogger(__name__)


class WarehouseStore:
    """Warehouses and their sheet bindings (``warehouse_sheets``)."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    # -- warehouses ----------------------------------------------------------

    def get(self, warehouse_id):
        rows = self.db.get_item("warehouses", {"warehouse_id": warehouse_id})
        return dict(rows[0]) if rows else None

    def create(self, name) -> str:
        warehouse_id = str(uuid.uuid4())
        self.db.insert_item("warehouses", {
            "warehouse_id": warehouse_id,
            "name": name,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
        return warehouse_id

    def delete(self, warehouse_id) -> int:
        return self.db.delete_item("warehouses", {"warehouse_id": warehouse_id})

    # -- bindings ------------------------------------------------------------

    def get_binding(self, warehouse_id):
        rows = self.db.get_item("warehouse_sheets", {"warehouse_id": warehouse_id})
        if not rows:
            return None
        r = rows[0]
        return WarehouseSheetBinding(
            warehouse_id=r["warehouse_id"],
            spreadsheet_id=r["spreadsheet_id"],
            tab_id=r["medicine_sheet_id"],
            latest_synced_at=datetime.fromisoformat(r["latest_synced_at"]),
            locker_tab_id=r["locker_sheet_id"],
            brand_tab_id=r["brand_sheet_id"],
            history_tab_id=r["history_sheet_id"],
        )

    def upsert_binding(self, binding: WarehouseSheetBinding):
        """One binding per warehouse: insert, or replace every column of the existing row."""
        query = '''
            INSERT INTO warehouse_sheets (
                warehouse_id, spreadsheet_id, medicine_sheet_id, locker_sheet_id,
                brand_sheet_id, history_sheet_id, latest_synced_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (warehouse_id) DO UPDATE SET
                spreadsheet_id = excluded.spreadsheet_id,
                medicine_sheet_id = excluded.medicine_sheet_id,
                locker_sheet_id = excluded.locker_sheet_id,
                brand_sheet_id = excluded.brand_sheet_id,
                history_sheet_id = excluded.history_sheet_id,
                latest_synced_at = excluded.latest_synced_at
        '''
        self.db.execute_query(query, (
            binding.warehouse_id,
            binding.spreadsheet_id,
            binding.tab_id,
            binding.locker_tab_id,
            binding.brand_tab_id,
            binding.history_tab_id,
            binding.latest_synced_at.isoformat(),
        ), auto_commit=True)

    def delete_binding(self, warehouse_id) -> int:
        return self.db.delete_item("warehouse_sheets", {"warehouse_id": warehouse_id})

    def is_tab_bound_elsewhere(self, warehouse_id, spreadsheet_id, tab_id) -> bool:
        """True if any other warehouse uses (spreadsheet_id, tab_id) in any sheet role."""
        query = '''
            SELECT 1 FROM warehouse_sheets
            WHERE spreadsheet_id = ?
              AND warehouse_id != ?
              AND (medicine_sheet_id = ? OR locker_sheet_id = ?
                   OR brand_sheet_id = ? OR history_sheet_id = ?)
            LIMIT 1
        '''
        cursor = self.db.execute_query(
            query, (spreadsheet_id, warehouse_id, tab_id, tab_id, tab_id, tab_id)
        )
        return cursor.fetchone() is not None

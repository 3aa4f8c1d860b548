from services.batch_cleanup import BatchCleanup, CleanupReport
from services.exceptions import NotFoundError, ValidationError
from services.inventory_store import GroupingStore, InventoryStore
from services.sync_context import SyncContext
from services.warehouse_store import WarehouseStore


class WarehouseService:
    """Warehouse and locker lifecycle outside the sheet sync."""

    def __init__(self, warehouse_store: WarehouseStore, inventory_store: InventoryStore,
                 grouping_store: GroupingStore, cleanup: BatchCleanup):
        self.warehouses = warehouse_store
        self.inventory = inventory_store
        self.lockers = grouping_store
        self.cleanup = cleanup

    def create_warehouse(self, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("warehouse name is required")
        return self.warehouses.create(name)

    def delete_warehouse(self, ctx: SyncContext, warehouse_id: str) -> CleanupReport:
        """
        Remove a warehouse with its medicines, lockers and sheet binding.
        Picture deletion failures are only logged; the rows go regardless.
        """
        if not self.warehouses.get(warehouse_id):
            raise NotFoundError(f"warehouse {warehouse_id} not found")

        records = self.inventory.list(warehouse_id=warehouse_id)
        report = self.cleanup.cleanup(ctx, [r.image_ref for r in records])

        with self.inventory.db.transaction():
            self.inventory.delete(warehouse_id=warehouse_id)
            self.lockers.delete(warehouse_id=warehouse_id)
            self.warehouses.delete_binding(warehouse_id)
            self.warehouses.delete(warehouse_id)
        ctx.logger.info(
            "Deleted warehouse %s (%d medicine(s), %d picture(s) failed to delete)",
            warehouse_id, len(records), len(report.failed),
        )
        return report

    def delete_locker(self, ctx: SyncContext, warehouse_id: str, locker_id: str) -> CleanupReport:
        locker = self.lockers.get(locker_id)
        if locker is None or locker.warehouse_id != warehouse_id:
            raise NotFoundError(f"locker {locker_id} not found in warehouse {warehouse_id}")

        records = self.inventory.list(locker_id=locker_id)
        report = self.cleanup.cleanup(ctx, [r.image_ref for r in records])

        with self.inventory.db.transaction():
            self.inventory.delete(locker_id=locker_id)
            self.lockers.delete(locker_id=locker_id)
        ctx.logger.info("Deleted locker %s (%d medicine(s))", locker.name, len(records))
        return report

from services.exceptions import ConflictError
from services.sync_context import SyncContext
from services.warehouse_store import WarehouseStore


class ConflictGuard:
    """
    Refuses to bind a sheet tab that another warehouse already uses, in any role
    (medicines, lockers, pictures, blister dates).

    The check reads the bindings and the sync writes its own binding later, with
    no lock in between: two warehouses binding the same tab at the same moment
    can both pass. Callers that need stronger guarantees must serialize binds.
    """

    def __init__(self, warehouse_store: WarehouseStore):
        self.store = warehouse_store

    def check_conflict(self, warehouse_id: str, spreadsheet_id: str, tab_id: int) -> bool:
        return self.store.is_tab_bound_elsewhere(warehouse_id, spreadsheet_id, tab_id)

    def ensure_available(self, ctx: SyncContext, warehouse_id: str, spreadsheet_id: str, tab_id: int):
        if self.check_conflict(warehouse_id, spreadsheet_id, tab_id):
            ctx.logger.warning(
                "Tab %s of %s is already bound to another warehouse; refusing %s",
                tab_id, spreadsheet_id, warehouse_id,
            )
            raise ConflictError(f"sheet tab {tab_id} of {spreadsheet_id} is already bound to another warehouse")

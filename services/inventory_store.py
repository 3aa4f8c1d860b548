import logging
import uuid
from datetime import datetime, timezone

from services.database import DatabaseManager
from services.inventory_models import InventoryRecord, Locker

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc).isoformat()


def _criteria(warehouse_id=None, locker_id=None):
    criteria = {}
    if warehouse_id is not None:
        criteria["warehouse_id"] = warehouse_id
    if locker_id is not None:
        criteria["locker_id"] = locker_id
    if not criteria:
        raise ValueError("warehouse_id or locker_id is required")
    return criteria


class InventoryStore:
    """Medicine rows of the ``medicines`` table."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def list(self, warehouse_id=None, locker_id=None) -> list[InventoryRecord]:
        rows = self.db.get_item("medicines", _criteria(warehouse_id, locker_id))
        return [InventoryRecord.from_row(r) for r in rows]

    def create(self, record: InventoryRecord) -> str:
        """Insert ``record`` under a freshly generated id and return the id."""
        medicine_id = str(uuid.uuid4())
        self.db.insert_item("medicines", {
            "medicine_id": medicine_id,
            "warehouse_id": record.warehouse_id,
            "locker_id": record.locker_id,
            "floor": record.floor,
            "no": record.position,
            "address": record.address,
            "description": record.description,
            "medical_name": record.medical_name,
            "label": record.label,
            "image_ref": record.image_ref,
            "created_at": _now(),
        })
        record.medicine_id = medicine_id
        return medicine_id

    def update(self, record: InventoryRecord) -> int:
        """Overwrite the domain fields of an existing record; the id and image stay put."""
        return self.db.update_item(
            "medicines",
            {
                "locker_id": record.locker_id,
                "floor": record.floor,
                "no": record.position,
                "address": record.address,
                "description": record.description,
                "medical_name": record.medical_name,
                "label": record.label,
                "updated_at": _now(),
            },
            {"medicine_id": record.medicine_id},
        )

    def delete(self, warehouse_id=None, locker_id=None) -> int:
        return self.db.delete_item("medicines", _criteria(warehouse_id, locker_id))


class GroupingStore:
    """Lockers of a warehouse."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def list(self, warehouse_id) -> list[Locker]:
        rows = self.db.get_item("lockers", {"warehouse_id": warehouse_id})
        return [Locker(r["locker_id"], r["warehouse_id"], r["name"]) for r in rows]

    def get(self, locker_id):
        rows = self.db.get_item("lockers", {"locker_id": locker_id})
        return Locker(rows[0]["locker_id"], rows[0]["warehouse_id"], rows[0]["name"]) if rows else None

    def create(self, warehouse_id, name) -> str:
        locker_id = str(uuid.uuid4())
        self.db.insert_item("lockers", {
            "locker_id": locker_id,
            "warehouse_id": warehouse_id,
            "name": name,
            "created_at": _now(),
        })
        logger.info(f"Created locker '{name}' ({locker_id}) in warehouse {warehouse_id}")
        return locker_id

    def delete(self, warehouse_id=None, locker_id=None) -> int:
        return self.db.delete_item("lockers", _criteria(warehouse_id, locker_id))

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from services.exceptions import PartialRowError, ValidationError

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_SKIP = "skip"
ACTION_FAILED = "failed"


# ---------- grid ----------

@dataclass(frozen=True)
class Cell:
    formatted_value: str = ""
    user_format: Optional[Dict[str, Any]] = None


@dataclass
class Tab:
    id: int
    title: str
    cells: List[List[Cell]] = field(default_factory=list)
    column_metadata: List[Dict[str, Any]] = field(default_factory=list)
    column_count: int = 26                  # grid width reported by the API, not the used width

    @property
    def header(self) -> List[Cell]:
        return self.cells[0] if self.cells else []


@dataclass
class Spreadsheet:
    id: str
    title: str
    tabs: List[Tab] = field(default_factory=list)

    def tab_by_id(self, tab_id: int) -> Optional[Tab]:
        return next((t for t in self.tabs if t.id == tab_id), None)

    def tab_by_title(self, title: str) -> Optional[Tab]:
        return next((t for t in self.tabs if t.title == title), None)


@dataclass(frozen=True)
class GridColumn:
    label: str
    cell_format: Optional[Dict[str, Any]] = None


# ---------- requests into the spreadsheet client ----------

@dataclass(frozen=True)
class UpdateCellsRequest:
    """Write ``values`` into one tab starting at ``start_cell`` (A1 notation)."""
    tab_id: int
    tab_title: str
    values: List[List[Any]]
    start_cell: str = "A2"
    append: bool = False                    # ignore start_cell, write below the last used row
    font_size: int = 10
    wrap_text: bool = False
    bold: bool = False

    def __post_init__(self):
        if not self.tab_title:
            raise ValidationError("tab_title is required")
        if not self.values or not any(self.values):
            raise ValidationError("values must contain at least one row")
        if self.font_size <= 0:
            raise ValidationError("font_size must be positive")


@dataclass(frozen=True)
class AppendColumnRequest:
    """Add a labelled header cell at ``column_index`` (0-based) and size the column."""
    tab_id: int
    tab_title: str
    column_index: int
    label: str
    width: int = 500
    font_size: int = 10
    grid_column_count: int = 26

    def __post_init__(self):
        if not self.tab_title:
            raise ValidationError("tab_title is required")
        if self.column_index < 0:
            raise ValidationError("column_index must be >= 0")
        if not self.label:
            raise ValidationError("label is required")
        if self.width <= 0:
            raise ValidationError("width must be positive")


# ---------- domain ----------

@dataclass
class SheetRow:
    row_number: int                         # 1-based position among the data rows of the tab
    locker_name: str = ""
    floor: int = 0
    position: int = 0
    address: str = ""
    description: str = ""
    medical_name: str = ""
    label: str = ""
    medicine_id: str = ""

    def is_invalid(self) -> bool:
        return not self.locker_name or not self.address

    def differs_from(self, record: InventoryRecord, locker_id: Optional[str]) -> bool:
        return (
            locker_id != record.locker_id
            or self.floor != record.floor
            or self.position != record.position
            or self.address != record.address
            or self.description != record.description
            or self.medical_name != record.medical_name
            or self.label != record.label
        )


@dataclass
class InventoryRecord:
    medicine_id: str
    warehouse_id: str
    locker_id: str
    floor: int
    position: int
    address: str
    description: str = ""
    medical_name: str = ""
    label: str = ""
    image_ref: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> InventoryRecord:
        return cls(
            medicine_id=row["medicine_id"],
            warehouse_id=row["warehouse_id"],
            locker_id=row["locker_id"],
            floor=row["floor"],
            position=row["no"],
            address=row["address"],
            description=row["description"] or "",
            medical_name=row["medical_name"] or "",
            label=row["label"] or "",
            image_ref=row["image_ref"],
        )


@dataclass
class Locker:
    locker_id: str
    warehouse_id: str
    name: str


@dataclass
class WarehouseSheetBinding:
    warehouse_id: str
    spreadsheet_id: str
    tab_id: int
    latest_synced_at: datetime
    locker_tab_id: Optional[int] = None
    brand_tab_id: Optional[int] = None
    history_tab_id: Optional[int] = None

    @property
    def sheet_url(self) -> str:
        return f"https://docs.google.com/spreadsheets/d/{self.spreadsheet_id}/edit#gid={self.tab_id}"

    def to_dict(self) -> dict:
        return {
            "warehouseID": self.warehouse_id,
            "spreadsheetID": self.spreadsheet_id,
            "tabID": self.tab_id,
            "sheetURL": self.sheet_url,
            "lastSyncedAt": self.latest_synced_at.isoformat(),
        }


# ---------- results ----------

@dataclass
class RowOutcome:
    row_number: int
    action: str
    medicine_id: Optional[str] = None
    error: Optional[PartialRowError] = None

    @property
    def failed(self) -> bool:
        return self.action == ACTION_FAILED

    def to_dict(self) -> dict:
        out = {"row": self.row_number, "action": self.action, "medicineID": self.medicine_id}
        if self.error is not None:
            out["error"] = self.error.message
        return out


@dataclass
class SyncResult:
    binding: WarehouseSheetBinding
    outcomes: List[RowOutcome] = field(default_factory=list)
    lockers_created: List[str] = field(default_factory=list)
    id_column_index: Optional[int] = None

    def count(self, action: str) -> int:
        return sum(1 for o in self.outcomes if o.action == action)

    @property
    def failed_rows(self) -> List[RowOutcome]:
        return [o for o in self.outcomes if o.failed]

    def to_dict(self) -> dict:
        return {
            "binding": self.binding.to_dict(),
            "totalRows": len(self.outcomes),
            "newCount": self.count(ACTION_CREATE),
            "updatedCount": self.count(ACTION_UPDATE),
            "skippedCount": self.count(ACTION_SKIP),
            "failedCount": self.count(ACTION_FAILED),
            "lockersCreated": list(self.lockers_created),
            "rows": [o.to_dict() for o in self.outcomes],
        }


@dataclass(frozen=True)
class SyncSummary:
    title: str
    tab_name: str
    total_rows: int
    new_count: int
    updated_count: int
    skipped_count: int

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "tabName": self.tab_name,
            "totalRows": self.total_rows,
            "newCount": self.new_count,
            "updatedCount": self.updated_count,
            "skippedCount": self.skipped_count,
        }

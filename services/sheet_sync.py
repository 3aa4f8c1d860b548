# services/sheet_sync.py
"""
Sync a warehouse's medicines from its Google Sheet tab.

``sync`` runs the whole pipeline and writes: the binding, lockers, medicines
and (identifier mode) the generated ids back into the sheet. ``summarize`` is
the dry run: same read and same decisions, no writes anywhere.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from services.config_service import DEFAULT_ID_COLUMN, DEFAULT_ROLES
from services.conflict_guard import ConflictGuard
from services.exceptions import NotFoundError, ValidationError
from services.grid_codec import GridCodec
from services.id_writeback import IDWriteback
from services.inventory_models import (
    ACTION_CREATE,
    ACTION_FAILED,
    ACTION_SKIP,
    ACTION_UPDATE,
    SheetRow,
    Spreadsheet,
    SyncResult,
    SyncSummary,
    Tab,
    WarehouseSheetBinding,
)
from services.inventory_store import GroupingStore, InventoryStore
from services.locker_resolver import LockerResolver
from services.reconciliation import ReconciliationPlanner
from services.sheet_schema import build_schema
from services.sync_context import SyncContext
from services.warehouse_store import WarehouseStore

_SPREADSHEET_ID_RE = re.compile(r"/d/([a-zA-Z0-9_-]+)")
_TAB_ID_RE = re.compile(r"gid=(\d+)")


def parse_sheet_url(url: str) -> Tuple[str, int]:
    """
    ``https://docs.google.com/spreadsheets/d/<id>/edit#gid=<n>`` -> (id, n).

    :raises ValidationError: if either part is missing.
    """
    if not url or not isinstance(url, str):
        raise ValidationError("sheet URL is required")
    spreadsheet = _SPREADSHEET_ID_RE.search(url)
    if not spreadsheet:
        raise ValidationError("sheet URL has no spreadsheet id (/d/<id>)")
    tab = _TAB_ID_RE.search(url)
    if not tab:
        raise ValidationError("sheet URL has no tab id (gid=<n>)")
    return spreadsheet.group(1), int(tab.group(1))


class SheetSyncService:
    def __init__(
            self,
            sheets_client,
            warehouse_store: WarehouseStore,
            inventory_store: InventoryStore,
            grouping_store: GroupingStore,
            unique_by_id: bool = True,
            columns: Optional[List[dict]] = None,
            id_column: Optional[dict] = None,
            role_titles: Optional[dict] = None,
    ):
        self.client = sheets_client
        self.warehouses = warehouse_store
        self.inventory = inventory_store
        self.lockers = grouping_store
        self.unique_by_id = unique_by_id
        self.id_column = {**DEFAULT_ID_COLUMN, **(id_column or {})}
        self.role_titles = {**DEFAULT_ROLES, **(role_titles or {})}

        schema = build_schema(columns, self.id_column["label"] if unique_by_id else None)
        self.codec = GridCodec(schema)
        self.planner = ReconciliationPlanner(unique_by_id)
        self.guard = ConflictGuard(warehouse_store)

    # -- shared steps --------------------------------------------------------

    def _require_warehouse(self, warehouse_id: str):
        if not self.warehouses.get(warehouse_id):
            raise NotFoundError(f"warehouse {warehouse_id} not found")

    def _load_tab(self, ctx: SyncContext, spreadsheet_id: str, tab_id: int) -> Tuple[Spreadsheet, Tab]:
        grid = self.client.get_grid(ctx, spreadsheet_id)
        tab = grid.tab_by_id(tab_id)
        if tab is None:
            raise NotFoundError(f"tab {tab_id} not found in spreadsheet {spreadsheet_id}")
        return grid, tab

    def _rows(self, ctx: SyncContext, tab: Tab) -> List[SheetRow]:
        decoded = self.codec.decode(tab)
        rows = [r for r in decoded if not r.is_invalid()]
        if len(rows) != len(decoded):
            ctx.logger.info("Ignoring %d row(s) without locker or address", len(decoded) - len(rows))
        return rows

    def _bind(self, ctx: SyncContext, warehouse_id: str, grid: Spreadsheet, tab: Tab) -> WarehouseSheetBinding:
        """
        Record (or refresh) which tab this warehouse syncs from. Other roles are
        found by title; a role tab already bound to another warehouse is left unset.
        """
        def role_tab(role):
            found = grid.tab_by_title(self.role_titles.get(role, ""))
            if found is None:
                return None
            if self.guard.check_conflict(warehouse_id, grid.id, found.id):
                ctx.logger.warning(
                    "'%s' tab %s is bound to another warehouse; leaving the %s role unset for %s",
                    found.title, found.id, role, warehouse_id,
                )
                return None
            return found.id

        binding = WarehouseSheetBinding(
            warehouse_id=warehouse_id,
            spreadsheet_id=grid.id,
            tab_id=tab.id,
            latest_synced_at=datetime.now(timezone.utc),
            locker_tab_id=role_tab("locker"),
            brand_tab_id=role_tab("brand"),
            history_tab_id=role_tab("history"),
        )
        self.warehouses.upsert_binding(binding)
        ctx.logger.info("Bound warehouse %s to %s", warehouse_id, binding.sheet_url)
        return binding

    # -- public --------------------------------------------------------------

    def sync(self, ctx: SyncContext, warehouse_id: str, grid_url: str) -> SyncResult:
        spreadsheet_id, tab_id = parse_sheet_url(grid_url)
        self._require_warehouse(warehouse_id)
        self.guard.ensure_available(ctx, warehouse_id, spreadsheet_id, tab_id)

        grid, tab = self._load_tab(ctx, spreadsheet_id, tab_id)
        binding = self._bind(ctx, warehouse_id, grid, tab)
        rows = self._rows(ctx, tab)

        write_id, id_index = None, None
        if self.unique_by_id:
            writeback = IDWriteback(
                self.client,
                id_label=self.id_column["label"],
                width=self.id_column["width"],
                font_size=self.id_column["font_size"],
            )
            id_index = writeback.ensure_id_column(ctx, spreadsheet_id, tab)

        if id_index is not None:
            def write_id(c, row, medicine_id):
                writeback.write_id(c, spreadsheet_id, tab, row.row_number, id_index, medicine_id)

        resolver = LockerResolver(self.lockers, warehouse_id)
        existing = self.inventory.list(warehouse_id=warehouse_id)
        outcomes = self.planner.apply(ctx, warehouse_id, rows, existing, resolver, self.inventory, write_id)

        result = SyncResult(binding, outcomes, list(resolver.created), id_index)
        ctx.logger.info(
            "Synced %d row(s) from '%s': %d new, %d updated, %d skipped, %d failed",
            len(outcomes), tab.title,
            result.count(ACTION_CREATE), result.count(ACTION_UPDATE),
            result.count(ACTION_SKIP), result.count(ACTION_FAILED),
        )
        return result

    def summarize(self, ctx: SyncContext, warehouse_id: str, grid_url: str) -> SyncSummary:
        spreadsheet_id, tab_id = parse_sheet_url(grid_url)
        self._require_warehouse(warehouse_id)

        grid, tab = self._load_tab(ctx, spreadsheet_id, tab_id)
        rows = self._rows(ctx, tab)
        resolver = LockerResolver(self.lockers, warehouse_id)
        existing = self.inventory.list(warehouse_id=warehouse_id)
        plan = self.planner.plan(existing, rows, resolver.peek)

        return SyncSummary(
            title=grid.title,
            tab_name=tab.title,
            total_rows=len(rows),
            new_count=len(plan.creates),
            updated_count=len(plan.updates),
            skipped_count=len(plan.skips),
        )

from typing import Dict, Optional, Tuple

from services.grid_codec import cell_address, find_column, read_columns
from services.inventory_models import AppendColumnRequest, Tab, UpdateCellsRequest
from services.sync_context import SyncContext


class IDWriteback:
    """
    Writes generated medicine ids back into the inventory tab (identifier mode).

    The id column is found by its header label, formats ignored. When missing it
    is appended once after the last used column and its index is remembered for
    the rest of the run.
    """

    def __init__(self, client, id_label: str = "ID", width: int = 500, font_size: int = 20):
        self.client = client
        self.id_label = id_label
        self.width = width
        self.font_size = font_size
        self._indexes: Dict[Tuple[str, int], int] = {}

    def ensure_id_column(self, ctx: SyncContext, spreadsheet_id: str, tab: Tab) -> Optional[int]:
        """Index of the id column, or None for a tab without any header labels."""
        key = (spreadsheet_id, tab.id)
        if key in self._indexes:
            return self._indexes[key]
        if not any(c.formatted_value for c in tab.header):
            ctx.logger.info("'%s' has no header row yet; not adding the '%s' column", tab.title, self.id_label)
            return None

        columns = read_columns(tab, ignore_user_format=True)
        index = find_column(columns, self.id_label)
        if index < 0:
            index = len(columns)
            ctx.logger.info("No '%s' column on '%s'; appending at index %d", self.id_label, tab.title, index)
            self.client.append_column(ctx, spreadsheet_id, AppendColumnRequest(
                tab_id=tab.id,
                tab_title=tab.title,
                column_index=index,
                label=self.id_label,
                width=self.width,
                font_size=self.font_size,
                grid_column_count=tab.column_count,
            ))

        self._indexes[key] = index
        return index

    def write_id(self, ctx: SyncContext, spreadsheet_id: str, tab: Tab, row_number: int, column_index: int, value: str):
        """
        Write ``value`` into the id cell of data row ``row_number`` (1-based).
        Row 1 of the sheet is the header, so data row N lives on sheet row N + 1.
        """
        cell = cell_address(row_number, column_index)
        self.client.update_cells(ctx, spreadsheet_id, UpdateCellsRequest(
            tab_id=tab.id,
            tab_title=tab.title,
            values=[[value]],
            start_cell=cell,
            font_size=self.font_size,
            wrap_text=True,
        ))
        ctx.logger.debug("Wrote id %s to '%s'!%s", value, tab.title, cell)

import json
import logging
import threading
import time
import os
from pathlib import Path

import gspread
import requests
from gspread.exceptions import APIError, SpreadsheetNotFound
from google.oauth2.service_account import Credentials

from services.exceptions import DeadlineExceeded, NotFoundError, TransientAPIError
from services.grid_codec import append_range, parse_cell, sheet_range, write_range
from services.inventory_models import AppendColumnRequest, Cell, Spreadsheet, Tab, UpdateCellsRequest
from services.sync_context import SyncContext

logger = logging.getLogger(__name__)

SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


def service_account_path():
    env = os.environ.get("GSHEETS_CREDENTIALS") or os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if env and os.path.isfile(env):
        return env

    candidates = [
        Path(__file__).resolve().parents[1] / "credentials" / "service_account.json",
        Path.cwd() / "credentials" / "service_account.json",
        Path.cwd() / "service_account.json",
    ]
    for p in candidates:
        if p.is_file():
            return str(p)

    raise FileNotFoundError(
        "service_account.json not found. Set GSHEETS_CREDENTIALS or GOOGLE_APPLICATION_CREDENTIALS.")


def load_credentials(json_file: str = None, scopes: list[str] = None) -> Credentials:
    """
    Load service account credentials.

    :param json_file: JSON file containing service account credentials. Defaults to
        the path found by ``service_account_path``.
    :type json_file: str
    :param scopes: OAuth scopes to request.
    :type scopes: list[str]
    :return: Credentials object for use in authorization.
    :rtype: google.oauth2.service_account.Credentials
    """
    if json_file is None:
        json_file = service_account_path()
    with open(json_file) as f:
        creds = json.load(f)
    return Credentials.from_service_account_info(creds, scopes=scopes or SHEETS_SCOPES)


def _status_of(e: APIError):
    return getattr(getattr(e, "response", None), "status_code", None)


def _parse_tab(sheet: dict) -> Tab:
    props = sheet.get("properties", {})
    grid_props = props.get("gridProperties", {})
    cells, column_metadata = [], []
    data = sheet.get("data") or []
    if data:
        block = data[0]
        for row in block.get("rowData", []) or []:
            cells.append([
                Cell(
                    formatted_value=str(v.get("formattedValue", "") or ""),
                    user_format=v.get("userEnteredFormat"),
                )
                for v in row.get("values", []) or []
            ])
        column_metadata = block.get("columnMetadata", []) or []
    return Tab(
        id=int(props.get("sheetId", 0)),
        title=props.get("title", ""),
        cells=cells,
        column_metadata=column_metadata,
        column_count=int(grid_props.get("columnCount", 26)),
    )


def parse_spreadsheet(spreadsheet_id: str, metadata: dict) -> Spreadsheet:
    """Turn a ``spreadsheets.get`` response (with grid data) into a ``Spreadsheet``."""
    return Spreadsheet(
        id=metadata.get("spreadsheetId", spreadsheet_id),
        title=metadata.get("properties", {}).get("title", ""),
        tabs=[_parse_tab(s) for s in metadata.get("sheets", [])],
    )


class GoogleSheetsService:
    """
    Grid read/write transport over gspread.

    Every public call takes the caller's ``SyncContext`` (for logging and the
    deadline) and one request value. gspread / network failures are mapped onto
    ``NotFoundError`` and ``TransientAPIError``; 429s are retried with backoff here
    so the sync code never has to.
    """

    def __init__(self, json_file: str = None, client: gspread.Client = None):
        """
        :param json_file: Path to the service account JSON file.
        :type json_file: str
        :param client: Pre-built gspread client (tests, shared sessions).
        :type client: gspread.Client
        """
        if client is None:
            client = gspread.authorize(load_credentials(json_file))
        self._client = client

        self._ss_cache: dict[str, tuple[float, gspread.Spreadsheet]] = {}
        self._ss_ttl = 60  # seconds
        self._client_lock = threading.RLock()

    def _open(self, spreadsheet_id: str) -> gspread.Spreadsheet:
        now = time.time()
        hit = self._ss_cache.get(spreadsheet_id)
        if hit and (now - hit[0] < self._ss_ttl):
            return hit[1]
        sh = self._client.open_by_key(spreadsheet_id)
        self._ss_cache[spreadsheet_id] = (now, sh)
        return sh

    @staticmethod
    def _with_backoff(fn, *, ctx: SyncContext = None, tries: int = 5, base: float = 0.6, factor: float = 2.0):
        """Generic retry for Sheets 429 rate limits. Never sleeps past the caller's deadline."""
        delay = base
        for attempt in range(tries):
            try:
                return fn()
            except APIError as e:
                code = _status_of(e)
                if code == 429 or "quota" in str(e).lower() or "rate" in str(e).lower():
                    if attempt == tries - 1:
                        raise
                    remaining = ctx.remaining() if ctx is not None else None
                    if remaining is not None and delay >= remaining:
                        ctx.logger.warning("Rate limited with %.1fs left; giving up", remaining)
                        raise DeadlineExceeded("deadline exceeded while rate limited")
                    time.sleep(delay)
                    delay *= factor
                    continue
                raise

    def _call(self, ctx: SyncContext, action: str, spreadsheet_id: str, fn):
        def attempt():
            ctx.check_deadline(action)
            # the gspread session is shared; its timeout must belong to this call only
            with self._client_lock:
                self._client.set_timeout(ctx.remaining())
                return fn()

        try:
            return self._with_backoff(attempt, ctx=ctx)
        except SpreadsheetNotFound:
            ctx.logger.warning("Spreadsheet %s not found during %s", spreadsheet_id, action)
            raise NotFoundError(f"spreadsheet {spreadsheet_id} not found")
        except APIError as e:
            code = _status_of(e)
            if code == 404:
                raise NotFoundError(f"spreadsheet {spreadsheet_id} not found")
            ctx.logger.error("Sheets API error during %s on %s (status %s): %s", action, spreadsheet_id, code, e)
            raise TransientAPIError(f"sheets API error during {action} (status {code})")
        except requests.exceptions.RequestException as e:
            ctx.logger.error("Network error during %s on %s: %s", action, spreadsheet_id, e)
            raise TransientAPIError(f"network error during {action}: {e}")

    # -- reads ---------------------------------------------------------------

    def get_grid(self, ctx: SyncContext, spreadsheet_id: str) -> Spreadsheet:
        """Every tab of the spreadsheet with formatted values and user formats."""
        def fetch():
            sh = self._open(spreadsheet_id)
            return sh.fetch_sheet_metadata(params={"includeGridData": "true"})

        metadata = self._call(ctx, "get grid", spreadsheet_id, fetch)
        grid = parse_spreadsheet(spreadsheet_id, metadata)
        ctx.logger.info("Fetched grid %s (%s) with %d tab(s)", spreadsheet_id, grid.title, len(grid.tabs))
        return grid

    # -- writes --------------------------------------------------------------

    def update_cells(self, ctx: SyncContext, spreadsheet_id: str, request: UpdateCellsRequest):
        """Write ``request.values`` then apply its text format to the same range."""
        if request.append:
            grid = self.get_grid(ctx, spreadsheet_id)
            tab = grid.tab_by_id(request.tab_id)
            if tab is None:
                raise NotFoundError(f"tab {request.tab_id} not found in {spreadsheet_id}")
            rng = append_range(tab, request.values)
        else:
            rng = write_range(request.start_cell, request.values)

        start, end = rng.split(":")
        start_col, start_row = parse_cell(start)
        end_col, end_row = parse_cell(end)
        fmt_body = {"requests": [{
            "repeatCell": {
                "range": {
                    "sheetId": request.tab_id,
                    "startRowIndex": start_row - 1,
                    "endRowIndex": end_row,
                    "startColumnIndex": start_col - 1,
                    "endColumnIndex": end_col,
                },
                "cell": {"userEnteredFormat": {
                    "textFormat": {"fontSize": request.font_size, "bold": request.bold},
                    "wrapStrategy": "WRAP" if request.wrap_text else "OVERFLOW_CELL",
                }},
                "fields": "userEnteredFormat(textFormat,wrapStrategy)",
            }
        }]}

        def write():
            sh = self._open(spreadsheet_id)
            sh.values_update(
                sheet_range(request.tab_title, rng),
                params={"valueInputOption": "RAW"},
                body={"values": request.values},
            )
            sh.batch_update(fmt_body)

        self._call(ctx, "update cells", spreadsheet_id, write)
        ctx.logger.info("Wrote %d row(s) to '%s'!%s", len(request.values), request.tab_title, rng)
        return rng

    def append_column(self, ctx: SyncContext, spreadsheet_id: str, request: AppendColumnRequest):
        """Label a new column at ``request.column_index`` and set its width, growing the grid if needed."""
        ci = request.column_index
        requests_body = []
        if ci >= request.grid_column_count:
            requests_body.append({"appendDimension": {
                "sheetId": request.tab_id,
                "dimension": "COLUMNS",
                "length": ci + 1 - request.grid_column_count,
            }})
        requests_body.append({"updateCells": {
            "rows": [{"values": [{
                "userEnteredValue": {"stringValue": request.label},
                "userEnteredFormat": {
                    "textFormat": {"fontSize": request.font_size},
                    "wrapStrategy": "WRAP",
                },
            }]}],
            "fields": "userEnteredValue,userEnteredFormat(textFormat,wrapStrategy)",
            "start": {"sheetId": request.tab_id, "rowIndex": 0, "columnIndex": ci},
        }})
        requests_body.append({"updateDimensionProperties": {
            "range": {
                "sheetId": request.tab_id,
                "dimension": "COLUMNS",
                "startIndex": ci,
                "endIndex": ci + 1,
            },
            "properties": {"pixelSize": request.width},
            "fields": "pixelSize",
        }})

        self._call(
            ctx, "append column", spreadsheet_id,
            lambda: self._open(spreadsheet_id).batch_update({"requests": requests_body}),
        )
        ctx.logger.info("Appended column '%s' at index %d on '%s'", request.label, ci, request.tab_title)
        return ci

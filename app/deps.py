# /app/deps.py
"""Build request-scoped services from the app config and the current DB connection."""
from flask import current_app, g, jsonify, request

from services.asset_store import DriveAssetStore
from services.batch_cleanup import BatchCleanup
from services.exceptions import SyncError
from services.google_sheets_service import GoogleSheetsService
from services.inventory_store import GroupingStore, InventoryStore
from services.sheet_sync import SheetSyncService
from services.sync_context import SyncContext
from services.warehouse_service import WarehouseService
from services.warehouse_store import WarehouseStore


def get_db():
    db = getattr(g, "db", None)
    return db if db is not None else current_app.extensions["db_manager"]


def _extension(name, factory):
    client = current_app.extensions.get(name)
    if client is None:
        client = factory()
        current_app.extensions[name] = client
    return client


def get_sheets_client():
    return _extension("sheets_client", GoogleSheetsService)


def get_asset_store():
    return _extension("asset_store", DriveAssetStore)


def new_context() -> SyncContext:
    return SyncContext.new(
        request_id=request.headers.get("X-Request-ID"),
        timeout=current_app.config.get("SYNC_TIMEOUT_SECONDS"),
    )


def sheet_sync_service() -> SheetSyncService:
    db = get_db()
    cm = current_app.extensions["config_manager"]
    return SheetSyncService(
        get_sheets_client(),
        WarehouseStore(db),
        InventoryStore(db),
        GroupingStore(db),
        unique_by_id=current_app.config["SYNC_UNIQUE_BY_ID"],
        columns=cm.sheet_columns() or None,
        id_column=cm.id_column(),
        role_titles=cm.role_titles(),
    )


def warehouse_service() -> WarehouseService:
    db = get_db()
    cm = current_app.extensions["config_manager"]
    workers = cm.cleanup_workers(default=current_app.config["CLEANUP_MAX_WORKERS"])
    return WarehouseService(
        WarehouseStore(db),
        InventoryStore(db),
        GroupingStore(db),
        BatchCleanup(get_asset_store(), max_workers=workers),
    )


def error_response(e: SyncError):
    return jsonify({"ok": False, "error": e.message}), e.status_code

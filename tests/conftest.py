import pytest
from services.config_service import ConfigManager
from services.database import create_db_manager, init_db
from services.inventory_store import GroupingStore, InventoryStore
from services.sheet_sync import SheetSyncService
from services.sync_context import SyncContext
from services.warehouse_store import WarehouseStore
from app import create_app
from tests.test_helpers import FakeAssetStore, FakeSheetsClient, make_spreadsheet


@pytest.fixture(scope="session")
def config_manager():
    """Settings from the repo config.json."""
    return ConfigManager()


@pytest.fixture
def get_db_manager():
    """A fresh in-memory schema for every test."""
    db_manager = create_db_manager(":memory:")
    init_db(db_manager)
    yield db_manager
    db_manager.close()


@pytest.fixture
def ctx():
    return SyncContext.new(request_id="test")


@pytest.fixture
def warehouse_store(get_db_manager):
    return WarehouseStore(get_db_manager)


@pytest.fixture
def inventory_store(get_db_manager):
    return InventoryStore(get_db_manager)


@pytest.fixture
def grouping_store(get_db_manager):
    return GroupingStore(get_db_manager)


@pytest.fixture
def warehouse_id(warehouse_store):
    return warehouse_store.create("Main Pharmacy")


@pytest.fixture
def sheets_client():
    return FakeSheetsClient(make_spreadsheet([]))


@pytest.fixture
def asset_store():
    return FakeAssetStore()


@pytest.fixture
def make_sync_service(sheets_client, warehouse_store, inventory_store, grouping_store):
    """Build a ``SheetSyncService`` over the fake client and in-memory stores."""
    def _make(unique_by_id=True, client=None):
        return SheetSyncService(
            client or sheets_client,
            warehouse_store,
            inventory_store,
            grouping_store,
            unique_by_id=unique_by_id,
        )
    return _make


@pytest.fixture
def app(sheets_client, asset_store):
    """Flask app in testing mode with fake Google clients."""
    app = create_app('Testing')
    app.extensions["sheets_client"] = sheets_client
    app.extensions["asset_store"] = asset_store
    with app.app_context():
        yield app
    app.extensions["db_manager"].close()


@pytest.fixture
def client(app):
    return app.test_client()

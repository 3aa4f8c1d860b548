import json

from services.config_service import DEFAULT_ID_COLUMN, DEFAULT_ROLES, ConfigManager


def test_repo_config_loads(config_manager):
    assert config_manager.last_load_error is None
    assert config_manager.sheet_columns()
    assert config_manager.get("cleanup.max_workers") == 5


def test_defaults_when_file_missing(tmp_path):
    cm = ConfigManager(str(tmp_path / "missing.json"))
    assert cm.config == {}
    assert cm.id_column() == DEFAULT_ID_COLUMN
    assert cm.role_titles() == DEFAULT_ROLES
    assert cm.sheet_columns() == []


def test_partial_overrides_merge(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"sheet": {"id_column": {"label": "รหัส"}, "roles": {"brand": "Brands"}}}))
    cm = ConfigManager(str(path))
    assert cm.id_column() == {"label": "รหัส", "width": 500, "font_size": 20}
    assert cm.role_titles()["brand"] == "Brands"
    assert cm.role_titles()["locker"] == "Lockers"


def test_invalid_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    cm = ConfigManager(str(path))
    assert cm.config == {}
    assert cm.last_load_error


def test_reload_picks_up_edits(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    cm = ConfigManager(str(path))

    path.write_text(json.dumps({"sheet": {"id_column": {"width": 320}}}))
    cm.reload()

    assert cm.last_load_error is None
    assert cm.id_column()["width"] == 320


def test_cleanup_workers(tmp_path, monkeypatch):
    monkeypatch.delenv("PHARMA_SHEET_CLEANUP_WORKERS", raising=False)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"cleanup": {"max_workers": 0}}))
    assert ConfigManager(str(path)).cleanup_workers() == 1
    assert ConfigManager(str(tmp_path / "missing.json")).cleanup_workers() == 5

    monkeypatch.setenv("PHARMA_SHEET_CLEANUP_WORKERS", "3")
    assert ConfigManager(str(path)).cleanup_workers() == 3

import json
import logging
import os
from pathlib import Path


logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_ID_COLUMN = {"label": "ID", "width": 500, "font_size": 20}
DEFAULT_ROLES = {
    "medicine": "Medicines",
    "locker": "Lockers",
    "brand": "Pictures",
    "history": "Blister Dates",
}
DEFAULT_CLEANUP_WORKERS = 5


class ConfigManager:
    """
    Read-only view of the JSON settings file (sheet layout, tab roles, cleanup).

    A missing file gives an empty config; a malformed one does too, with the
    parser message kept in ``last_load_error`` so a health check can report it.
    Relative paths are taken from the project root, not the working directory.
    """

    def __init__(self, config_path="config.json"):
        path = Path(config_path)
        self.path = path if path.is_absolute() else PROJECT_ROOT / path
        self.last_load_error = None
        self.config = {}
        self.reload()

    def reload(self):
        self.last_load_error = None
        if not self.path.exists():
            logger.info("No settings file at %s, using defaults", self.path)
            self.config = {}
            return self.config
        try:
            self.config = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            self.last_load_error = str(e)
            self.config = {}
            logger.error(f"Ignoring malformed settings file {self.path}: {e}")
        return self.config

    def get(self, *keys, default=None):
        """``get("sheet", "roles")`` and ``get("sheet.roles")`` are equivalent."""
        if len(keys) == 1 and "." in keys[0]:
            keys = keys[0].split(".")
        node = self.config
        for key in keys:
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def _section(self, *keys):
        return self.get(*keys, default=None) or {}

    def sheet_columns(self) -> list[dict]:
        """Ordered ``{field, label}`` pairs for the inventory tab."""
        return list(self.get("sheet", "columns", default=None) or [])

    def id_column(self) -> dict:
        return dict(DEFAULT_ID_COLUMN, **self._section("sheet", "id_column"))

    def role_titles(self) -> dict:
        return dict(DEFAULT_ROLES, **self._section("sheet", "roles"))

    def cleanup_workers(self, default=DEFAULT_CLEANUP_WORKERS) -> int:
        workers = os.getenv("PHARMA_SHEET_CLEANUP_WORKERS") or self.get("cleanup", "max_workers", default=default)
        return max(1, int(workers))

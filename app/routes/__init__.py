from .main import main_routes_bp
from .sheets import sheets_bp
from .warehouses import warehouses_bp

__all__ = ["main_routes_bp", "sheets_bp", "warehouses_bp"]

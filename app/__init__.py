# /app/__init__.py
import logging
import os
import time
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, g

from config import ProductionConfig
from services.config_service import ConfigManager
from services.database import create_db_manager, init_db, init_db_command
from app.routes import main_routes_bp, sheets_bp, warehouses_bp


load_dotenv()

IN_MEMORY = ":memory:"


def init_sentry():
    """Turn on Sentry when SENTRY_DSN is set. Errors become events, INFO logs become breadcrumbs."""
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    env_name = os.getenv("PHARMA_SHEET_ENV") or os.getenv("FLASK_ENV") or "development"
    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=env_name,
            integrations=[
                FlaskIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            ],
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
            attach_stacktrace=True,
        )
    except Exception as e:
        # a bad DSN should not stop the admin backend from starting
        logging.error(f"Sentry disabled: {e}")
        return
    logging.info("Sentry enabled (%s)", env_name)


def _database_path(app) -> str:
    """PHARMA_SHEET_DATABASE wins over the config class; relative files live in the instance folder."""
    database = os.getenv("PHARMA_SHEET_DATABASE") or app.config["DATABASE"]
    if database == IN_MEMORY:
        return database

    path = Path(database)
    if not path.is_absolute():
        path = Path(app.instance_path) / path
    path = path.resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    return str(path)


def _configure_logging(app):
    logging.basicConfig(
        level=logging.DEBUG if app.config.get("DEBUG") else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )


def _register_request_hooks(app):
    # an in-memory database only exists on the app-wide connection
    per_request_db = app.config["DATABASE"] != IN_MEMORY

    @app.before_request
    def open_request_db():
        if per_request_db:
            g.db = create_db_manager(app.config["DATABASE"])
        g.started = time.perf_counter()

    @app.after_request
    def stamp_duration(response):
        started = g.get("started")
        if started is not None:
            response.headers["X-Request-Duration"] = f"{time.perf_counter() - started:.3f}"
        return response

    @app.teardown_request
    def close_request_db(_exc):
        db = g.pop("db", None)
        if db is not None:
            db.close()


def create_app(config_name: str = ""):
    init_sentry()

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(f"config.{config_name}Config" if config_name else ProductionConfig)
    app.secret_key = os.getenv("FLASK_SECRET") or os.urandom(24)

    settings = ConfigManager(os.getenv("PHARMA_SHEET_CONFIG", "config.json"))
    app.config.update(settings.config)
    app.extensions["config_manager"] = settings

    app.config["DATABASE"] = _database_path(app)
    _configure_logging(app)
    app.logger.debug(
        "database=%s unique_by_id=%s", app.config["DATABASE"], app.config["SYNC_UNIQUE_BY_ID"]
    )

    app.extensions["db_manager"] = create_db_manager(app.config["DATABASE"])
    init_db(app.extensions["db_manager"])
    _register_request_hooks(app)

    for blueprint in (main_routes_bp, sheets_bp, warehouses_bp):
        app.register_blueprint(blueprint)
    app.cli.add_command(init_db_command)  # type: ignore

    return app

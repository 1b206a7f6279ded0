# backend/bizledger/__init__.py
from __future__ import annotations

from flask import Flask, current_app, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import LedgerError
from .extensions import db, migrate


def _engine_options(app: Flask) -> dict:
    # Bound every storage round-trip; sqlite uses the driver busy timeout
    timeout = app.config["STORAGE_TIMEOUT_SECONDS"]
    options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        connect_args = dict(options.get("connect_args") or {})
        connect_args.setdefault("timeout", timeout)
        connect_args.setdefault("check_same_thread", False)
        options["connect_args"] = connect_args
    else:
        options.setdefault("pool_timeout", timeout)
        options.setdefault("pool_pre_ping", True)
    return options


def create_app(config_overrides: dict | None = None, document_store=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Engine options must be final before the extension creates the engine
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = _engine_options(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Storage client and lock registry live for the process lifetime
    from .services.concurrency import EntityLockRegistry
    from .services.document_store import DocumentStore

    if document_store is None:
        document_store = DocumentStore(db, read_attempts=app.config["STORAGE_READ_RETRIES"])
    app.extensions["document_store"] = document_store
    app.extensions["entity_locks"] = EntityLockRegistry(timeout=app.config["LOCK_TIMEOUT_SECONDS"])

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.inventory import inventory_bp
    from .routes.invoices import invoices_bp
    from .routes.customers import customers_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(reports_bp)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return {"error": {"kind": exc.name.upper().replace(" ", "_"), "message": exc.description}}, exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return {"error": {"kind": "INTERNAL", "message": "Internal server error"}}, 500

    @app.errorhandler(LedgerError)
    def handle_ledger_error(exc: LedgerError):
        if exc.status_code >= 500:
            current_app.logger.error("Storage failure: %s", exc.message)
        return {"error": exc.to_dict()}, exc.status_code

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

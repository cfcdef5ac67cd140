# backend/app/__init__.py
import logging

from flask import Flask, request
from werkzeug.exceptions import RequestEntityTooLarge

from .config import Config
from .extensions import db, migrate
from .services.errors import StockError



def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.logger.setLevel(level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.suppliers import suppliers_bp
    from .routes.menus import menus_bp
    from .routes.transactions import transactions_bp  # Purchases (stock in)
    from .routes.sales import sales_bp  # Sales, CSV upload, corrections
    from .routes.notifications import notifications_bp
    from .routes.dashboard import dashboard_bp
    from .routes.admin import admin_bp  # Admin: User and role management

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(menus_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(admin_bp)

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        limit_kb = app.config["SALES_CSV_MAX_BYTES"] // 1024
        return {"error": f"Upload exceeds the {limit_kb} KB limit"}, 413

    @app.errorhandler(StockError)
    def handle_stock_error(e):
        return {"error": str(e)}, e.status_code

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

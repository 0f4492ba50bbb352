# backend/phonepos/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .validation import ShopError


def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    # Local sample mode runs against a throwaway in-memory database
    if app.config.get("STORE_MODE") == "sample":
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes import error_response
    from .routes.system import system_bp
    from .routes.categories import categories_bp
    from .routes.catalog import catalog_bp
    from .routes.serials import serials_bp
    from .routes.sales import sales_bp
    from .routes.reports import reports_bp
    from .routes.service_tickets import service_tickets_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(serials_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(service_tickets_bp)

    @app.errorhandler(ShopError)
    def handle_shop_error(exc):
        return error_response(exc)

    allowed_origins = set(app.config.get("CORS_ORIGINS", ()))

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    if app.config.get("STORE_MODE") == "sample":
        from .services.sample_data import seed_sample_data
        with app.app_context():
            db.create_all()
            seed_sample_data()

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

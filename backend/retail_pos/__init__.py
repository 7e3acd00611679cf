# backend/retail_pos/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)

    # Engines are created in db.init_app, so overrides must land first
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .wiring import EXTENSION_KEY, build_services
    app.extensions[EXTENSION_KEY] = build_services(app.config)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    app.logger.debug(
        "retail_pos ready (database=%s, sale_lock_inventory=%s)",
        app.config["SQLALCHEMY_DATABASE_URI"],
        app.config.get("SALE_LOCK_INVENTORY"),
    )
    return app

# -*- coding: utf-8 -*-
import os
from pathlib import Path
from typing import Optional

from flask import Flask

from trustnet.config import Config
from trustnet.database import db

# Observability imports
from trustnet.services.metrics import init_metrics
from trustnet.services.request_context import init_request_context
from trustnet.services.structured_logging import init_logging

BASE_DIR = Path(__file__).resolve().parent.parent


def _normalize_db_url(url: str) -> str:
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+psycopg://" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _migrate_db(app):
    """Run Alembic migrations to head using the app's DB URL."""
    from alembic import command
    from alembic.config import Config as AlembicConfig

    cfg = AlembicConfig()  # in-memory config, avoid alembic.ini dependency
    cfg.set_main_option("script_location", str(BASE_DIR / "migrations"))
    cfg.set_main_option("sqlalchemy.url", app.config["SQLALCHEMY_DATABASE_URI"])

    try:
        command.upgrade(cfg, "head")
        app.logger.info("Database migrations applied successfully")
    except Exception as e:
        app.logger.error(f"Migration failed: {e}")
        raise


def create_app(config_overrides: Optional[dict] = None) -> Flask:
    app = Flask(__name__)
    app.url_map.strict_slashes = False

    # --- Core config ---
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # --- DB config ---
    db_url = app.config.get("SQLALCHEMY_DATABASE_URI") or os.environ.get("DATABASE_URL")
    if not db_url:
        db_path = BASE_DIR / "instance" / "trustnet.db"
        os.makedirs(db_path.parent, exist_ok=True)
        db_url = f"sqlite:///{db_path}"
    else:
        db_url = _normalize_db_url(db_url)
    app.config["SQLALCHEMY_DATABASE_URI"] = db_url
    db.init_app(app)

    # --- Initialize observability ---
    init_logging(app)
    init_request_context(app)
    init_metrics(app)

    # --- Error handlers ---
    from trustnet.middleware.errors import register_error_handlers
    register_error_handlers(app)

    # --- Mount blueprints ---
    from trustnet.routes.health import health_bp
    from trustnet.routes.trust import trust_bp
    app.register_blueprint(health_bp)
    app.register_blueprint(trust_bp)

    # --- DB init ---
    with app.app_context():
        import trustnet.models  # noqa: F401  register tables on db.metadata

        # Only auto-create tables in testing or if explicitly enabled
        is_testing = app.config.get("TESTING") or os.getenv("TESTING", "false").lower() == "true"
        if is_testing or app.config.get("TRUSTNET_DB_AUTOCREATE"):
            db.create_all()
        elif app.config.get("TRUSTNET_DB_MIGRATE_ON_START"):
            _migrate_db(app)

    return app

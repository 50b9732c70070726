import logging
import os
from pathlib import Path

from flask import Flask, jsonify
from sqlalchemy import text

from models import db
from app_core.api import api_bp, STORAGE_KEY
from app_core.errors import install_json_error_handlers
from app_core.logging_config import configure_logging
from app_core.metrics import metrics_bp
from app_core.storage import MovieStorage

logger = logging.getLogger("movieratings")


def _env_flag(name, default=True):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def create_app(test_config=None, storage=None):
    """
    Build the Flask app.

    ``test_config`` overrides environment settings and is applied before
    the database is bound. ``storage`` replaces the SQL-backed
    ``MovieStorage`` handed to the API handlers.
    """
    app = Flask(__name__)

    # Load env config
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SEED_ON_STARTUP"] = _env_flag("SEED_ON_STARTUP")
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")

    # Database configuration
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    else:
        instance_db = Path(app.instance_path) / "movieratings.db"
        instance_db.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{instance_db}"

    if test_config:
        app.config.update(test_config)

    configure_logging(app.config["LOG_LEVEL"])
    # never log credentials
    safe_dest = app.config["SQLALCHEMY_DATABASE_URI"].split("@", 1)[-1]
    logger.info("Using database -> %s", safe_dest)

    install_json_error_handlers(app)
    db.init_app(app)
    app.extensions[STORAGE_KEY] = storage if storage is not None else MovieStorage(db)

    # Tables and seed data must exist before the first request
    with app.app_context():
        db.create_all()
        if app.config["SEED_ON_STARTUP"]:
            try:
                seeded = app.extensions[STORAGE_KEY].seed_movies()
            except Exception:
                logger.exception("Seeding failed; refusing to start")
                raise
            logger.info("Seed data %s", "inserted" if seeded else "already present")

    # HEALTH CHECK ENDPOINT
    @app.route("/health")
    def health():
        """
        Basic health endpoint for monitoring.
        Returns 200 if DB is reachable, 500 otherwise.
        """
        db_ok = True
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            logger.warning("Health check could not reach the database", exc_info=True)
            db_ok = False

        status_code = 200 if db_ok else 500

        return jsonify({"status": "ok" if db_ok else "error", "database": db_ok}), status_code

    # Register blueprints
    app.register_blueprint(metrics_bp)
    app.register_blueprint(api_bp)

    return app


# Development only
if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    create_app().run(host="0.0.0.0", port=port, debug=True)

"""
E-Filing Workflow Service
Flask application factory.

Usage:
    from efiling import create_app
    app = create_app()           # APP_ENV, or "development"
    app = create_app("testing")
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine, event as _sa_event

from efiling.config import basedir, config
from efiling.models import db
from efiling.middleware.logging_config import configure_logging
from efiling.middleware.rate_limiter import init_rate_limits
from efiling.middleware.timing import init_request_timing
from efiling.utils.errors import E, api_error

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """SQLite ignores foreign keys unless asked per connection."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
# Storage comes from RATELIMIT_STORAGE_URI; limits are attached per blueprint
limiter = Limiter(key_func=get_remote_address, default_limits=[])


def _cors_origins(app):
    raw = app.config.get("CORS_ORIGINS") or ""
    if raw.strip() == "*":
        return "*"
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _register_error_handlers(app):
    """JSON bodies for errors raised outside the blueprints' own handlers."""

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(413)
    def too_large(e):
        return api_error(E.VALIDATION_INVALID, "Request body too large", status=413)

    @app.errorhandler(415)
    def unsupported_media(e):
        return api_error(E.VALIDATION_INVALID, e.description, status=415)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests",
                         details={"limit": e.description})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("Unhandled error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: "development", "testing" or "production".
                     Defaults to the APP_ENV env var, then "development".

    Returns:
        Configured Flask application instance.
    """
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_path=os.path.join(basedir, "instance"))
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    CORS(app, origins=_cors_origins(app))

    init_request_timing(app)

    @app.before_request
    def _require_json_body():
        if request.method in ("POST", "PUT", "PATCH", "DELETE") and request.data:
            if not request.is_json:
                abort(415, description="Content-Type must be application/json")

    # ── Models (registered on db.metadata for create_all / Alembic) ─────
    from efiling.models import directory, efile, signature, team, workflow  # noqa: F401

    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from efiling.blueprints.team_bp import team_bp
    from efiling.blueprints.workflow_bp import workflow_bp

    app.register_blueprint(workflow_bp)
    app.register_blueprint(team_bp)

    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "service": "efiling-workflow"}

    _register_error_handlers(app)
    init_rate_limits(app, limiter)

    return app

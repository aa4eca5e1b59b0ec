import logging
import os

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException

from mmg_procurement.config import Config
from mmg_procurement.db import close_db, get_db, get_pool, init_db
from mmg_procurement.db_migrations import register_db_cli
from mmg_procurement.observability import (
    configure_json_logging,
    ensure_request_id,
    mark_request_start,
    metrics_snapshot,
    observe_response,
)


SERVICE_EXTENSION_KEY = "mmg_procurement_workflow"
DIRECTORY_EXTENSION_KEY = "mmg_procurement_directory"


def create_app(config_class=Config, *, directory=None):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_json_logging(app)

    _ensure_database_dir(app)
    if directory is not None:
        app.extensions[DIRECTORY_EXTENSION_KEY] = directory
    _register_request_hooks(app)
    _register_error_handlers(app)
    _register_health(app)
    register_db_cli(app)
    _register_seed_cli(app)
    _maybe_init_schema(app)

    app.teardown_appcontext(close_db)
    return app


def get_workflow_service():
    from mmg_procurement.application import WorkflowService

    service = current_app.extensions.get(SERVICE_EXTENSION_KEY)
    if service is None:
        service = WorkflowService(
            get_pool(),
            directory=current_app.extensions.get(DIRECTORY_EXTENSION_KEY),
        )
        current_app.extensions[SERVICE_EXTENSION_KEY] = service
    return service


def _ensure_database_dir(app: Flask) -> None:
    database_dir = app.config.get("DATABASE_DIR")
    if database_dir:
        os.makedirs(database_dir, exist_ok=True)


def _maybe_init_schema(app: Flask) -> None:
    if not (app.testing or app.config.get("DB_AUTO_INIT")):
        return
    if not app.testing and os.environ.get("FLASK_ENV", "development").strip().lower() != "development":
        app.logger.warning("db_auto_init_skipped", extra={"flask_env": os.environ.get("FLASK_ENV")})
        return

    with app.app_context():
        init_db()


def _register_seed_cli(app: Flask) -> None:
    from mmg_procurement.seed import register_seed_cli

    register_seed_cli(app)


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def _start_request() -> None:
        ensure_request_id()
        mark_request_start()

    @app.after_request
    def _finish_request(response):
        response.headers["X-Request-Id"] = ensure_request_id()
        return observe_response(response)


def _error_response(error):
    return jsonify(error.to_response_payload(ensure_request_id())), error.http_status


def _register_error_handlers(app: Flask) -> None:
    from mmg_procurement.errors import AppError

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        app.logger.log(
            logging.ERROR if exc.critical else logging.WARNING,
            "application_error",
            extra={
                "error_code": exc.code,
                "http_status": exc.http_status,
                "message_key": exc.message_key,
                "details": exc.details,
                "error_payload": exc.payload,
            },
            exc_info=exc.critical,
        )
        return _error_response(exc)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("unexpected_exception", extra={"error_type": type(exc).__name__})
        return _error_response(
            AppError(code="unexpected_error", message_key="unexpected_error", details=str(exc))
        )


def _register_health(app: Flask) -> None:
    @app.get("/health")
    def health():
        db = get_db()
        status = "ok"
        try:
            db.execute("SELECT 1").fetchone()
        except db.driver_errors:
            app.logger.exception("health_database_unreachable")
            status = "degraded"
        return {"status": status, "db": db.backend, "metrics": metrics_snapshot()}, 200

"""
Flask application factory for the TruthLens entitlement service.
"""
import argparse
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from config_manager import ConfigManager
from truthlens.access_codes.factory import create_access_codes_module
from truthlens.access_requests.factory import create_access_requests_module
from truthlens.logging_config import setup_logging
from truthlens.quota.factory import create_quota_module
from truthlens.store import create_document_store
from truthlens.uploads.factory import create_uploads_module
from truthlens.user_management.factory import create_user_management_module
from truthlens.utils import now_local

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent


def _resolve_dir(path: str, base: Path) -> Path:
    p = Path(path)
    return p if p.is_absolute() else base / p


def create_app(
    config_manager: Optional[ConfigManager] = None,
    clock: Callable[[], datetime] = now_local,
) -> Flask:
    """
    Build the Flask application.

    The document store is created once here and handed to every module;
    the assembled modules are kept in ``app.extensions["truthlens"]``.
    """
    config_manager = config_manager or ConfigManager()
    app_config = config_manager.get_app_config()
    access_config = config_manager.get_access_config()
    rate_limit_config = config_manager.get_rate_limit_config()
    upload_config = config_manager.get_upload_config()
    paths_config = config_manager.get_paths_config()

    data_dir = _resolve_dir(paths_config.data_dir, PROJECT_ROOT)
    store_dir = _resolve_dir(paths_config.store_dir, data_dir)
    upload_dir = _resolve_dir(paths_config.upload_dir, data_dir)

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_proto=1,     # trust 1 hop for X-Forwarded-Proto
        x_host=1,      # trust 1 hop for X-Forwarded-Host
        x_prefix=1)    # trust 1 hop for X-Forwarded-Prefix
    # Leave headroom for multipart overhead; the upload service enforces the exact limit
    app.config["MAX_CONTENT_LENGTH"] = (upload_config.max_upload_size_mb + 1) * 1024 * 1024

    store = create_document_store(store_dir)

    user_module = create_user_management_module(store, app_config.admin_user_ids, clock=clock)
    user_service = user_module["service"]

    access_codes_module = create_access_codes_module(
        store,
        user_service,
        fail_closed=access_config.fail_closed,
        clock=clock,
    )
    access_requests_module = create_access_requests_module(
        store,
        access_codes_module["repository"],
        access_codes_module["validator"],
        user_service,
        access_duration_months=access_config.access_duration_months,
        clock=clock,
    )
    quota_module = create_quota_module(
        store,
        user_service,
        fail_open=rate_limit_config.fail_open,
        daily_scan_limits=rate_limit_config.daily_scan_limits,
        clock=clock,
    )
    uploads_module = create_uploads_module(
        upload_dir,
        user_service,
        max_upload_size_mb=upload_config.max_upload_size_mb,
    )

    app.register_blueprint(user_module["blueprint"])
    app.register_blueprint(access_codes_module["blueprint"])
    app.register_blueprint(access_requests_module["blueprint"])
    app.register_blueprint(quota_module["blueprint"])
    app.register_blueprint(uploads_module["blueprint"])

    app.extensions["truthlens"] = {
        "config": config_manager,
        "store": store,
        "user_service": user_service,
        "access_code_repository": access_codes_module["repository"],
        "access_code_validator": access_codes_module["validator"],
        "access_request_service": access_requests_module["service"],
        "quota_manager": quota_module["manager"],
        "upload_service": uploads_module["service"],
    }

    @app.get("/actuator/health")
    def actuator_health():
        """Health check endpoint for monitoring tools and cloud platforms."""
        return jsonify({
            "status": "UP",
            "service": "truthlens"
        }), 200

    logger.info(f"TruthLens app created (store: {store_dir}, uploads: {upload_dir})")
    return app


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="TruthLens entitlement service")
    parser.add_argument("--port", type=int, help="Port to run the server on")
    parser.add_argument("--host", type=str, help="Host to bind the server to")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument("--config", type=str, default=os.getenv("APP_CONFIG_FILE", "web_app_config.json"),
                        help="Path to the JSON config file")
    args = parser.parse_args()

    config_manager = ConfigManager(args.config)
    app_config = config_manager.get_app_config()

    # Override configuration with command line arguments
    if args.port:
        app_config.port = args.port
    if args.host:
        app_config.host = args.host
    if args.debug:
        app_config.debug = args.debug

    setup_logging(app_config.debug)
    app = create_app(config_manager)

    logger.info(f"Serving on {app_config.host}:{app_config.port} (admins: {len(app_config.admin_user_ids)})")
    app.run(
        host=app_config.host,
        port=app_config.port,
        debug=app_config.debug
    )

"""Application setup and the command that serves it."""

from __future__ import annotations

import argparse
import sys

from flask import Flask, request

from .api import create_blueprint
from .catalog import insert_default_data
from .config import Config, get_config
from .database import build_url, init_db
from .logsetup import init_log, set_level

DEFAULT_PORT = 8888

_ALLOW_METHODS = "GET,POST,PUT,PATCH,DELETE,HEAD,OPTIONS"
_ALLOW_HEADERS = "Origin,Content-Length,Content-Type"
_MAX_AGE = str(12 * 60 * 60)


def _install_cors(app: Flask) -> None:
    """Allow every origin, answering preflight requests directly."""

    @app.before_request
    def _preflight():
        if request.method == "OPTIONS" and request.headers.get("Origin"):
            response = app.response_class(status=204)
            response.headers["Access-Control-Allow-Methods"] = _ALLOW_METHODS
            response.headers["Access-Control-Allow-Headers"] = _ALLOW_HEADERS
            response.headers["Access-Control-Max-Age"] = _MAX_AGE
            return response
        return None

    @app.after_request
    def _allow_origin(response):
        if request.headers.get("Origin"):
            response.headers["Access-Control-Allow-Origin"] = "*"
        return response


def create_app(config: Config | None = None, database_url: str | None = None) -> Flask:
    """Set up logging and the database from ``config`` and return the web application."""
    config = config or Config()
    log = init_log(config.log.path)
    set_level(config.log.level)

    log.debug("[log] log.level: %s, log.path: %s", config.log.level, config.log.path)
    log.debug("[network] network.ximalaya_ip: %s", config.network.ximalaya_ip)
    log.debug("[db] db.name: %s, db.user: %s", config.db.name, config.db.user)
    log.debug("[gin] gin.mode: %s", config.gin.mode)

    url = database_url or build_url("mysql", config.db.name, config.db.user, config.db.password)
    init_db(url)
    insert_default_data()

    app = Flask("orderdesk")
    app.json.ensure_ascii = False
    _install_cors(app)
    app.register_blueprint(create_blueprint())
    return app


def main(argv: list[str] | None = None) -> int:
    """Load the configuration and serve the order API."""
    parser = argparse.ArgumentParser(prog="orderdesk", description="Serve the order API.")
    parser.add_argument("--config-dir", default=".", help="directory holding the config file")
    parser.add_argument("--config-name", default="config", help="config file name without extension")
    parser.add_argument("--config-type", default="yaml", help="config file type: yaml or json")
    parser.add_argument("--database-url", help="database URL overriding the [db] section")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    try:
        config = get_config(args.config_dir, args.config_name, args.config_type)
    except (OSError, ValueError) as exc:
        print(f"reading config file failed: {exc}", file=sys.stderr)
        return 1

    app = create_app(config, args.database_url)
    app.run(host=args.host, port=args.port)
    return 0
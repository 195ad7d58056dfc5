"""Flask server exposing unit files and lifecycle commands over a REST API."""

import logging

from flask import Blueprint
from flask import Flask
from flask import Response
from flask import current_app
from flask import jsonify
from flask import request

from .errors import (
    CommandFailedError,
    PermissionDeniedError,
    UnitDataError,
    UnitError,
    UnitNotFoundError,
)
from .service import UnitManager, get_unit_manager
from .unit import ServiceUnit
from .unit_file import generate

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__)


def _manager() -> UnitManager:
    return current_app.config["UNIT_MANAGER"]


def _no_cache(response: Response) -> Response:
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


@api.errorhandler(UnitError)
def handle_unit_error(error: UnitError):
    """Map unitctl errors to JSON error responses."""
    if isinstance(error, UnitNotFoundError):
        code = 404
    elif isinstance(error, PermissionDeniedError):
        code = 403
    elif isinstance(error, CommandFailedError):
        code = 502
    else:
        code = 400
    logger.warning("%s %s -> %d: %s", request.method, request.path, code, error)
    return jsonify({"error": str(error)}), code


@api.route("/api/units")
def list_units():
    """List installed service unit files."""
    return _no_cache(jsonify({"units": _manager().list_units()}))


@api.route("/api/units", methods=["POST"])
def create_unit():
    """Create a unit file from a JSON service description."""
    data = request.get_json(silent=True)
    if data is None:
        raise UnitDataError("Request body must be JSON")

    service = ServiceUnit.from_dict(data)
    manager = _manager()
    path = manager.create(service)

    if request.args.get("reload", "1") != "0":
        manager.daemon_reload()

    return jsonify({"name": service.file_name, "path": str(path)}), 201


@api.route("/api/units/<name>")
def get_unit(name: str):
    """Get the parsed description of a unit."""
    service = _manager().load(name)
    if service is None:
        raise UnitNotFoundError(f"service not found: {name}")
    return _no_cache(jsonify(service.to_dict()))


@api.route("/api/units/<name>/file")
def get_unit_file(name: str):
    """Get a unit file as regenerated from its parsed description."""
    service = _manager().load(name)
    if service is None:
        raise UnitNotFoundError(f"service not found: {name}")
    return Response(generate(service), mimetype="text/plain")


@api.route("/api/units/<name>", methods=["DELETE"])
def delete_unit(name: str):
    """Stop, disable and delete a unit."""
    _manager().remove(name)
    return jsonify({"status": "success", "message": f"Removed {name}"})


@api.route("/api/units/<name>/status")
def get_unit_status(name: str):
    """Get the runtime state of a unit."""
    info = _manager().status(name)
    return _no_cache(
        jsonify(
            {
                "name": info.name,
                "status": info.status.value,
                "pid": info.pid,
                "enabled": info.enabled,
                "unit_file": str(info.unit_file) if info.unit_file else None,
                "message": info.message,
            }
        )
    )


@api.route("/api/units/<name>/<verb>", methods=["POST"])
def run_command(name: str, verb: str):
    """Dispatch start/stop/enable/disable/restart to a unit."""
    command = _manager().set_status(name, verb)
    return jsonify({"status": "success", "command": command.verb, "unit": name})


@api.route("/api/daemon-reload", methods=["POST"])
def daemon_reload():
    """Reload the service manager configuration."""
    _manager().daemon_reload()
    return jsonify({"status": "success", "message": "Daemon reloaded"})


def _normalize_base_path(base_path: str) -> str:
    if not base_path:
        return ""
    if not base_path.startswith("/"):
        raise ValueError(f"base_path must start with '/': {base_path!r}")
    if ".." in base_path:
        raise ValueError(f"base_path cannot contain '..': {base_path!r}")
    return base_path.rstrip("/")


def create_app(manager: UnitManager | None = None, base_path: str = "") -> Flask:
    """
    Create the Flask application.

    Args:
        manager: Unit manager to serve (default: platform manager for system units)
        base_path: URL prefix when served behind a reverse proxy (e.g. '/units')

    Returns:
        Configured Flask app

    Raises:
        ValueError: If base_path is not an absolute, traversal-free path
    """
    base_path = _normalize_base_path(base_path)

    app = Flask(__name__)
    app.config["APPLICATION_ROOT"] = base_path
    app.config["UNIT_MANAGER"] = manager if manager is not None else get_unit_manager()
    app.register_blueprint(api, url_prefix=base_path or None)

    return app

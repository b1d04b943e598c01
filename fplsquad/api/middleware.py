"""Flask middleware: no-cache headers and JSON error handlers."""

from flask import Flask, jsonify, request

from fplsquad.errors import SquadError
from fplsquad.logging_config import get_logger

log = get_logger(__name__)


def register_middleware(app: Flask) -> None:
    """Register middleware on the Flask app."""

    @app.after_request
    def add_no_cache_headers(response):
        if request.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"
        return response

    @app.errorhandler(SquadError)
    def squad_error(exc: SquadError):
        if exc.retryable:
            log.warning("%s %s failed: %s", request.method, request.path, exc.message)
        return jsonify(exc.to_dict()), exc.status

    @app.errorhandler(404)
    def not_found(_):
        return jsonify({"error": "Not found", "kind": "not_found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(_):
        return jsonify({"error": "Internal server error"}), 500

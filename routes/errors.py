"""JSON error handlers."""

from __future__ import annotations

from flask import current_app, jsonify
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import Forbidden, HTTPException, NotFound

from extensions import db
from services.validation import ValidationError, log_validation_error


def _json_error(code: str, detail: str, status: int):
    return jsonify({"error": code, "detail": detail}), status


def _detail(err, default_cls, fallback: str) -> str:
    """Custom `abort(..., description=...)` text, otherwise ``fallback``."""
    description = getattr(err, "description", None)
    if not description or description == default_cls.description:
        return fallback
    return description


def register_error_handlers(app) -> None:
    """Register error handlers on the Flask app."""

    @app.errorhandler(ValidationError)
    def validation_error(err: ValidationError):
        log_validation_error(err)
        db.session.rollback()
        return jsonify(err.to_dict()), 400

    @app.errorhandler(CSRFError)
    def csrf_error(err: CSRFError):
        return _json_error("csrf_failed", err.description, 400)

    @app.errorhandler(400)
    def bad_request(err):
        return _json_error("bad_request", getattr(err, "description", None) or "Bad request.", 400)

    @app.errorhandler(401)
    def unauthorized(err):
        return _json_error("authentication_required", "Sign in to continue.", 401)

    @app.errorhandler(403)
    def forbidden(err):
        return _json_error("forbidden", _detail(err, Forbidden, "You do not have access to this resource."), 403)

    @app.errorhandler(404)
    def not_found(err):
        return _json_error("not_found", _detail(err, NotFound, "Resource not found."), 404)

    @app.errorhandler(405)
    def method_not_allowed(err):
        return _json_error("method_not_allowed", "Method not allowed.", 405)

    @app.errorhandler(429)
    def rate_limited(err):
        return _json_error("rate_limited", "Too many requests. Slow down.", 429)

    @app.errorhandler(500)
    def internal(err):
        db.session.rollback()
        current_app.logger.error("Unhandled server error: %s", getattr(err, "original_exception", err))
        return _json_error("server_error", "A server error occurred.", 500)

    @app.errorhandler(HTTPException)
    def http_error(err: HTTPException):
        return _json_error(err.name.lower().replace(" ", "_"), err.description or err.name, err.code or 500)

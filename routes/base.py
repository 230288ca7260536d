"""Shared blueprint and request helpers."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, request

from services.binder_viewport import DEVICES, device_from_user_agent
from services.validation import ValidationError

views = Blueprint("views", __name__)


def auth_rate_limit() -> str:
    return current_app.config.get("AUTH_RATELIMIT", "10 per minute")


def share_rate_limit() -> str:
    return current_app.config.get("SHARE_RATELIMIT", "60 per minute")


def request_payload() -> Dict[str, Any]:
    """JSON body when present, otherwise the submitted form."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            raise ValidationError("Malformed JSON body.", field="body")
        if not isinstance(data, dict):
            raise ValidationError("Expected a JSON object.", field="body", invalid=[type(data).__name__])
        return data
    return request.form.to_dict()


def request_device(payload: Dict[str, Any] | None = None) -> str:
    """``device`` from the payload or query string, else sniffed from the User-Agent."""
    requested = (payload or {}).get("device") or request.args.get("device")
    if requested:
        if requested not in DEVICES:
            raise ValidationError("Invalid device.", field="device", invalid=[requested])
        return requested
    return device_from_user_agent(request.headers.get("User-Agent"))

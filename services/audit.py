"""Audit logging helpers for binder and account changes."""
from __future__ import annotations

from typing import Any, Dict, Optional

from flask import current_app, has_request_context, request
from flask_login import current_user

from extensions import db
from models import AuditLog


def record_audit_event(action: str, details: Optional[Dict[str, Any]] = None, *, user_id: Optional[int] = None) -> None:
    """Persist an audit log entry for the current request/user."""
    try:
        if user_id is None and current_user and getattr(current_user, "is_authenticated", False):
            try:
                user_id = int(current_user.get_id())
            except (TypeError, ValueError):
                user_id = None

        ip_address = user_agent = None
        if has_request_context():
            ip_address = request.headers.get("X-Forwarded-For", request.remote_addr)
            user_agent = (request.headers.get("User-Agent") or "")[:255]

        entry = AuditLog(
            user_id=user_id,
            action=action,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.session.add(entry)
        # Flush only; the caller's commit decides whether the entry sticks.
        db.session.flush()
    except Exception:
        current_app.logger.exception("Failed to record audit event: action=%s", action)

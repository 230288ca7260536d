"""Authentication routes (JSON)."""

from __future__ import annotations

from flask import jsonify, session
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import func

from extensions import db, generate_csrf, limiter
from models import User
from services.audit import record_audit_event
from services.validation import ValidationError
from utils.time import utcnow

from .base import auth_rate_limit, request_payload, views

MIN_PASSWORD_LENGTH = 8
MAX_USERNAME_LENGTH = 80


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "displayName": user.display_name,
        "isAdmin": bool(user.is_admin),
    }


@views.route("/api/csrf", methods=["GET"])
def csrf_token():
    return jsonify({"csrfToken": generate_csrf()})


@views.route("/login", methods=["POST"])
@limiter.limit(auth_rate_limit, methods=["POST"])
def login():
    payload = request_payload()
    identifier = (payload.get("identifier") or payload.get("email") or "").strip()
    password = payload.get("password") or ""
    user = None
    if identifier:
        lowered = identifier.lower()
        user = User.query.filter(func.lower(User.email) == lowered).first()
        if not user:
            user = User.query.filter(func.lower(User.username) == lowered).first()
    if not user or not user.check_password(password):
        return jsonify({"error": "invalid_credentials", "detail": "Invalid email/username or password."}), 401

    login_user(user, remember=False, fresh=True)
    user.last_login_at = utcnow()
    record_audit_event("login", {"email": user.email}, user_id=user.id)
    db.session.commit()
    return jsonify({"user": _user_to_dict(user)})


@views.route("/logout", methods=["POST"])
@login_required
def logout():
    record_audit_event("logout", {"email": current_user.email})
    db.session.commit()
    logout_user()
    session.clear()
    return jsonify({"ok": True})


@views.route("/register", methods=["POST"])
@limiter.limit(auth_rate_limit, methods=["POST"])
def register():
    payload = request_payload()
    email = (payload.get("email") or "").strip().lower()
    username = (payload.get("username") or "").strip().lower()
    password = (payload.get("password") or "").strip()
    confirm = (payload.get("confirm_password") or payload.get("confirmPassword") or password).strip()

    if not email or not username or not password:
        raise ValidationError("Email, username, and password are required.", field="email")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"Username must be {MAX_USERNAME_LENGTH} characters or fewer.", field="username")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.", field="password"
        )
    if password != confirm:
        raise ValidationError("Passwords do not match.", field="confirm_password")
    if User.query.filter(func.lower(User.email) == email).first():
        raise ValidationError("That email is already registered.", field="email")
    if User.query.filter(func.lower(User.username) == username).first():
        raise ValidationError("That username is already taken.", field="username")

    new_user = User(email=email, username=username, display_name=payload.get("display_name"), is_admin=False)
    new_user.set_password(password)
    db.session.add(new_user)
    db.session.flush()
    record_audit_event("user_registered", {"email": email, "username": username}, user_id=new_user.id)
    db.session.commit()
    return jsonify({"user": _user_to_dict(new_user)}), 201


@views.route("/api/me", methods=["GET"])
@login_required
def me():
    return jsonify({"user": _user_to_dict(current_user)})

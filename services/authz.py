"""Authorization helpers for binders and owned cards."""
from __future__ import annotations

from flask import abort, current_app
from flask_login import current_user


def ensure_owner(record, *, user=None) -> None:
    """Abort unless ``record`` (anything with ``user_id``) belongs to ``user``.

    ``user`` defaults to the logged-in user. A missing record is a 404, a
    record owned by someone else a 403.
    """
    if record is None:
        abort(404)
    user = user if user is not None else current_user
    if not getattr(user, "is_authenticated", False):
        abort(403)
    if getattr(record, "user_id", None) != user.id:
        current_app.logger.warning(
            "Denied access to %s %s for user %s",
            type(record).__name__,
            getattr(record, "id", None),
            user.id,
        )
        abort(403)


def ensure_user_set_access(user_set, *, user=None) -> None:
    ensure_owner(user_set, user=user)


def ensure_user_card_access(user_card, *, user=None) -> None:
    ensure_owner(user_card, user=user)

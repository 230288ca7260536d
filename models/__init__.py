"""SQLAlchemy models package.
Re-exports the shared `db` instance to avoid import loops and provides
convenient names for the model classes.

Usage:
    from models import db, Card, UserSet, UserSetCard
"""
from __future__ import annotations

from extensions import db  # shared SQLAlchemy() instance

# Import models only after db exists to avoid circular imports
from .user import User, AuditLog  # noqa: F401
from .catalog import CardSet, Card, Localization  # noqa: F401
from .user_card import UserCard  # noqa: F401
from .binder import UserSet, UserSetCard  # noqa: F401
from .sharing import WantlistShareLink, TradeConnection  # noqa: F401

__all__ = [
    "db",
    "User",
    "AuditLog",
    "CardSet",
    "Card",
    "Localization",
    "UserCard",
    "UserSet",
    "UserSetCard",
    "WantlistShareLink",
    "TradeConnection",
]

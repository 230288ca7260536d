from __future__ import annotations

import secrets
from datetime import datetime
from typing import Optional

from extensions import db
from utils.time import is_past, utcnow


def _new_token() -> str:
    return secrets.token_urlsafe(24)


class WantlistShareLink(db.Model):
    """Public link to a user's want-list, live or frozen at creation."""

    __tablename__ = "wantlist_share_links"

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(64), nullable=False, unique=True, index=True, default=_new_token)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    label = db.Column(db.String(128), nullable=True)
    # None means every binder
    set_ids = db.Column(db.JSON, nullable=True)
    is_snapshot = db.Column(db.Boolean, nullable=False, default=False, server_default=db.text("0"))
    snapshot_data = db.Column(db.JSON, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=True)
    last_accessed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    user = db.relationship("User")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return is_past(self.expires_at, now)

    def __repr__(self) -> str:
        return f"<WantlistShareLink {self.id} user={self.user_id} snapshot={self.is_snapshot}>"


class TradeConnection(db.Model):
    """Invite between two collectors; accepting it opens each other's want-list."""

    STATUS_PENDING = "pending"
    STATUS_ACCEPTED = "accepted"
    STATUS_DECLINED = "declined"

    __tablename__ = "trade_connections"

    id = db.Column(db.Integer, primary_key=True)
    invite_token = db.Column(db.String(64), nullable=False, unique=True, index=True, default=_new_token)
    requester_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, server_default=STATUS_PENDING)
    # requester's link is what the target views, and the other way round
    requester_share_link_id = db.Column(
        db.Integer,
        db.ForeignKey("wantlist_share_links.id", ondelete="SET NULL"),
        nullable=True,
    )
    target_share_link_id = db.Column(
        db.Integer,
        db.ForeignKey("wantlist_share_links.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    requester = db.relationship("User", foreign_keys=[requester_id])
    target = db.relationship("User", foreign_keys=[target_id])
    requester_share_link = db.relationship("WantlistShareLink", foreign_keys=[requester_share_link_id])
    target_share_link = db.relationship("WantlistShareLink", foreign_keys=[target_share_link_id])

    def involves(self, user_id: int) -> bool:
        return user_id in (self.requester_id, self.target_id)

    def __repr__(self) -> str:
        return f"<TradeConnection {self.id} {self.status}>"

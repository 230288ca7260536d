from __future__ import annotations

from extensions import db
from utils.time import utcnow


class UserSet(db.Model):
    """A user's binder."""

    __tablename__ = "user_sets"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    image = db.Column(db.Text, nullable=True)
    preferred_language = db.Column(db.String(8), nullable=True)
    preferred_variant = db.Column(db.String(32), nullable=True)
    preferred_condition = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", back_populates="user_sets")
    cards = db.relationship(
        "UserSetCard",
        back_populates="user_set",
        order_by="UserSetCard.order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<UserSet {self.id} {self.name!r}>"


class UserSetCard(db.Model):
    """One occupied binder position."""

    __tablename__ = "user_set_cards"
    __table_args__ = (
        db.UniqueConstraint("user_set_id", "order", name="uq_user_set_cards_set_order"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_set_id = db.Column(
        db.Integer,
        db.ForeignKey("user_sets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    card_id = db.Column(db.String(16), db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    user_card_id = db.Column(
        db.Integer,
        db.ForeignKey("user_cards.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    order = db.Column(db.Integer, nullable=False)
    preferred_language = db.Column(db.String(8), nullable=True)
    preferred_variant = db.Column(db.String(32), nullable=True)
    preferred_condition = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user_set = db.relationship("UserSet", back_populates="cards")
    card = db.relationship("Card")
    user_card = db.relationship("UserCard", back_populates="placement")

    def __repr__(self) -> str:
        return f"<UserSetCard set={self.user_set_id} order={self.order} card={self.card_id}>"

from __future__ import annotations

from extensions import db
from utils.time import utcnow


class UserCard(db.Model):
    """A physical copy of a catalog card owned by a user."""

    __tablename__ = "user_cards"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    card_id = db.Column(db.String(16), db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    language = db.Column(db.String(8), nullable=True)
    variant = db.Column(db.String(32), nullable=True)
    condition = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", back_populates="user_cards")
    card = db.relationship("Card")
    placement = db.relationship("UserSetCard", back_populates="user_card", uselist=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cardId": self.card_id,
            "language": self.language,
            "variant": self.variant,
            "condition": self.condition,
            "notes": self.notes,
        }

    def __repr__(self) -> str:
        return f"<UserCard {self.id} card={self.card_id}>"

"""Card catalog: sets, cards and their translations."""
from __future__ import annotations

from extensions import db
from utils.time import utcnow


class CardSet(db.Model):
    __tablename__ = "sets"

    id = db.Column(db.String(16), primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    series = db.Column(db.String(255), nullable=True)
    abbreviation = db.Column(db.String(16), nullable=True)
    logo = db.Column(db.Text, nullable=True)
    symbol = db.Column(db.Text, nullable=True)
    release_date = db.Column(db.Date, nullable=True)
    total = db.Column(db.Integer, nullable=True)
    total_with_secret_rares = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    cards = db.relationship("Card", back_populates="card_set", lazy="dynamic")

    def __repr__(self) -> str:
        return f"<CardSet {self.id} {self.name!r}>"


class Card(db.Model):
    __tablename__ = "cards"
    __table_args__ = (
        db.Index("ix_cards_set_number", "set_id", "number"),
    )

    id = db.Column(db.String(16), primary_key=True)
    set_id = db.Column(db.String(16), db.ForeignKey("sets.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    number = db.Column(db.String(16), nullable=False)
    rarity = db.Column(db.String(64), nullable=True)
    image_small = db.Column(db.Text, nullable=True)
    image_large = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    card_set = db.relationship("CardSet", back_populates="cards")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "setId": self.set_id,
            "name": self.name,
            "number": self.number,
            "rarity": self.rarity,
            "imageSmall": self.image_small,
            "imageLarge": self.image_large,
        }

    def __repr__(self) -> str:
        return f"<Card {self.id} {self.name!r}>"


class Localization(db.Model):
    """One translated column value of one catalog row."""

    __tablename__ = "localizations"
    __table_args__ = (
        db.UniqueConstraint("table_name", "column_name", "record_id", "language", name="uq_localizations_key"),
        db.Index("ix_localizations_table_record", "table_name", "record_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    table_name = db.Column(db.String(64), nullable=False)
    column_name = db.Column(db.String(64), nullable=False)
    record_id = db.Column(db.String(64), nullable=False)
    language = db.Column(db.String(8), nullable=False)
    value = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

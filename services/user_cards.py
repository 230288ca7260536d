"""Owned physical copies."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from sqlalchemy import select

from extensions import db
from models import Card, UserCard, UserSetCard
from services.audit import record_audit_event
from services.authz import ensure_user_card_access
from services.card_attributes import CONDITIONS, LANGUAGE_CODES, VARIANTS
from services.validation import ValidationError, optional_text, parse_card_id, parse_optional_choice

logger = logging.getLogger(__name__)


def list_user_cards(user, *, card_id: Optional[str] = None) -> List[UserCard]:
    stmt = select(UserCard).where(UserCard.user_id == user.id)
    if card_id:
        stmt = stmt.where(UserCard.card_id == card_id)
    return list(db.session.scalars(stmt.order_by(UserCard.card_id, UserCard.id)))


def add_user_card(user, payload: dict[str, Any]) -> UserCard:
    card_id = parse_card_id(payload.get("cardId", payload.get("card_id")), field="cardId")
    if db.session.get(Card, card_id) is None:
        raise ValidationError("Unknown card id.", field="cardId", invalid=[card_id])
    copy = UserCard(
        user_id=user.id,
        card_id=card_id,
        language=parse_optional_choice(payload.get("language"), LANGUAGE_CODES, field="language"),
        variant=parse_optional_choice(payload.get("variant"), VARIANTS, field="variant"),
        condition=parse_optional_choice(payload.get("condition"), CONDITIONS, field="condition"),
        notes=optional_text(payload.get("notes")),
    )
    db.session.add(copy)
    db.session.flush()
    record_audit_event("user_card_added", {"user_card_id": copy.id, "card_id": card_id}, user_id=user.id)
    return copy


_EDITABLE_FIELDS = (
    ("language", LANGUAGE_CODES),
    ("variant", VARIANTS),
    ("condition", CONDITIONS),
)


def get_user_card(user, user_card_id: int) -> UserCard:
    copy = db.session.get(UserCard, user_card_id)
    ensure_user_card_access(copy, user=user)
    return copy


def update_user_card(user, user_card_id: int, payload: dict[str, Any]) -> UserCard:
    """Apply the attribute keys present in ``payload``; ``null`` clears a value."""
    copy = get_user_card(user, user_card_id)
    changed = {}
    for field, choices in _EDITABLE_FIELDS:
        if field in payload:
            value = parse_optional_choice(payload.get(field), choices, field=field)
            setattr(copy, field, value)
            changed[field] = value
    if "notes" in payload:
        copy.notes = optional_text(payload.get("notes"))
        changed["notes"] = copy.notes
    db.session.flush()
    record_audit_event("user_card_updated", {"user_card_id": copy.id, **changed}, user_id=user.id)
    return copy


def delete_user_card(user, user_card_id: int) -> None:
    """Delete an owned copy, unplacing it from any binder slot first."""
    copy = get_user_card(user, user_card_id)
    slot = db.session.scalars(select(UserSetCard).where(UserSetCard.user_card_id == copy.id)).first()
    if slot is not None:
        logger.info("Unplacing user card %s from user set %s before delete", copy.id, slot.user_set_id)
        slot.user_card_id = None
        db.session.flush()
    db.session.delete(copy)
    db.session.flush()
    record_audit_event(
        "user_card_deleted",
        {"user_card_id": user_card_id, "card_id": copy.card_id},
        user_id=user.id,
    )

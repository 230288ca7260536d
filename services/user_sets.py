"""Binder (user set) persistence.

Binders are stored sparsely: one ``user_set_cards`` row per occupied
position. Saving a binder replaces its whole slot list; rows are matched by
``userSetCardId`` so persisted identities (and the owned copies placed in
them) survive a save.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from flask import current_app, has_app_context
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from extensions import db
from models import Card, UserCard, UserSet, UserSetCard
from services.audit import record_audit_event
from services.authz import ensure_user_card_access, ensure_user_set_access
from services.binder_document import BinderDocument
from services.binder_layout import CardSlot
from services.binder_viewport import DEVICE_DESKTOP
from services.card_attributes import CONDITIONS, LANGUAGE_CODES, VARIANTS
from services.placement import OwnedCopy, Preferences
from services.validation import (
    ValidationError,
    ensure_unique_orders,
    optional_text,
    parse_card_id,
    parse_name,
    parse_optional_choice,
    parse_optional_positive_int,
    parse_position,
)
from utils.db import get_or_404

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------

def parse_preferences(payload: Dict[str, Any], *, prefix: str = "preferred") -> Dict[str, Optional[str]]:
    """``preferredLanguage`` / ``preferred_language`` style keys -> column values."""
    def _pick(camel: str, snake: str) -> Any:
        return payload.get(camel, payload.get(snake))

    return {
        "preferred_language": parse_optional_choice(
            _pick(f"{prefix}Language", f"{prefix}_language"), LANGUAGE_CODES, field="preferredLanguage"
        ),
        "preferred_variant": parse_optional_choice(
            _pick(f"{prefix}Variant", f"{prefix}_variant"), VARIANTS, field="preferredVariant"
        ),
        "preferred_condition": parse_optional_choice(
            _pick(f"{prefix}Condition", f"{prefix}_condition"), CONDITIONS, field="preferredCondition"
        ),
    }


def parse_slot_payload(entries: Any) -> List[CardSlot]:
    """Validate a save payload; entries without a card are dropped."""
    if not isinstance(entries, list):
        raise ValidationError("cards must be a list.", field="cards", invalid=[entries])
    slots: List[CardSlot] = []
    seen_ids: set[int] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError("Each card entry must be an object.", field="cards", invalid=[entry])
        order = parse_position(entry.get("order"), field="order")
        slot_id = parse_optional_positive_int(entry.get("userSetCardId"), field="userSetCardId")
        if slot_id is not None:
            if slot_id in seen_ids:
                raise ValidationError("Duplicate userSetCardId.", field="userSetCardId", invalid=[slot_id])
            seen_ids.add(slot_id)
        raw_card = entry.get("cardId")
        if raw_card is None:
            continue
        prefs = parse_preferences(entry)
        slots.append(
            CardSlot(
                card_id=parse_card_id(raw_card, field="cardId"),
                order=order,
                user_set_card_id=slot_id,
                user_card_id=parse_optional_positive_int(entry.get("userCardId"), field="userCardId"),
                **prefs,
            )
        )
    ensure_unique_orders(slot.order for slot in slots)
    return slots


def _ensure_cards_exist(card_ids: Iterable[str]) -> None:
    wanted = set(card_ids)
    if not wanted:
        return
    found = set(db.session.scalars(select(Card.id).where(Card.id.in_(wanted))))
    unknown = sorted(wanted - found)
    if unknown:
        raise ValidationError("Unknown card id.", field="cardId", invalid=unknown)


# ---------------------------------------------------------------------------
# Binder CRUD
# ---------------------------------------------------------------------------

def create_user_set(
    user,
    name: str,
    card_ids: Sequence[str],
    image: Optional[str] = None,
    **preferences: Optional[str],
) -> UserSet:
    name = parse_name(name)
    card_ids = list(dict.fromkeys(card_ids))
    _ensure_cards_exist(card_ids)

    user_set = UserSet(user_id=user.id, name=name, image=optional_text(image), **preferences)
    for order, card_id in enumerate(card_ids):
        user_set.cards.append(UserSetCard(card_id=card_id, order=order))
    db.session.add(user_set)
    db.session.flush()
    record_audit_event("binder_created", {"user_set_id": user_set.id, "cards": len(card_ids)}, user_id=user.id)
    logger.info("Created binder %s for user %s with %s cards", user_set.id, user.id, len(card_ids))
    return user_set


def list_user_sets(user) -> List[UserSet]:
    return list(
        db.session.scalars(
            select(UserSet).where(UserSet.user_id == user.id).order_by(UserSet.created_at, UserSet.id)
        )
    )


def get_user_set(user, user_set_id: Any) -> UserSet:
    user_set = get_or_404(
        UserSet,
        user_set_id,
        options=[selectinload(UserSet.cards).selectinload(UserSetCard.card)],
    )
    ensure_user_set_access(user_set, user=user)
    return user_set


def update_user_set(
    user,
    user_set_id: Any,
    *,
    name: str,
    cards: Sequence[CardSlot],
    image: Optional[str] = None,
    preferred_language: Optional[str] = None,
    preferred_variant: Optional[str] = None,
    preferred_condition: Optional[str] = None,
) -> UserSet:
    """Replace the binder header and its full slot list."""
    user_set = get_user_set(user, user_set_id)
    name = parse_name(name)
    cards = [slot for slot in cards if not slot.is_empty]
    ensure_unique_orders(slot.order for slot in cards)
    _ensure_cards_exist(slot.card_id for slot in cards)

    existing: Dict[int, UserSetCard] = {row.id: row for row in user_set.cards}
    foreign = [slot.user_set_card_id for slot in cards if slot.user_set_card_id and slot.user_set_card_id not in existing]
    if foreign:
        raise ValidationError("Slot does not belong to this binder.", field="userSetCardId", invalid=foreign)

    kept_ids = {slot.user_set_card_id for slot in cards if slot.user_set_card_id}
    removed = [row for row_id, row in existing.items() if row_id not in kept_ids]
    for row in removed:
        user_set.cards.remove(row)
    db.session.flush()

    # Park kept rows on negative orders so the (user_set_id, order) index never
    # sees two rows on the same position mid-update.
    kept = [slot for slot in cards if slot.user_set_card_id]
    for index, slot in enumerate(kept):
        existing[slot.user_set_card_id].order = -(index + 1)
    db.session.flush()

    for slot in kept:
        row = existing[slot.user_set_card_id]
        if row.card_id != slot.card_id:
            row.card_id = slot.card_id
            row.user_card_id = None
            db.session.expire(row, ["card", "user_card"])
        row.order = slot.order
        row.preferred_language = slot.preferred_language
        row.preferred_variant = slot.preferred_variant
        row.preferred_condition = slot.preferred_condition
    db.session.flush()

    for slot in cards:
        if slot.user_set_card_id:
            continue
        user_set.cards.append(
            UserSetCard(
                card_id=slot.card_id,
                order=slot.order,
                preferred_language=slot.preferred_language,
                preferred_variant=slot.preferred_variant,
                preferred_condition=slot.preferred_condition,
            )
        )

    user_set.name = name
    user_set.image = optional_text(image)
    user_set.preferred_language = preferred_language
    user_set.preferred_variant = preferred_variant
    user_set.preferred_condition = preferred_condition
    db.session.flush()
    db.session.refresh(user_set, attribute_names=["cards"])

    record_audit_event(
        "binder_updated",
        {"user_set_id": user_set.id, "cards": len(cards), "removed": len(removed)},
        user_id=user.id,
    )
    return user_set


def delete_user_set(user, user_set_id: Any) -> None:
    user_set = get_user_set(user, user_set_id)
    record_audit_event("binder_deleted", {"user_set_id": user_set.id, "name": user_set.name}, user_id=user.id)
    db.session.delete(user_set)
    db.session.flush()


# ---------------------------------------------------------------------------
# Placing owned copies
# ---------------------------------------------------------------------------

def place_card(user, user_set_card_id: Any, user_card_id: Any) -> UserSetCard:
    slot = get_or_404(UserSetCard, user_set_card_id)
    ensure_user_set_access(slot.user_set, user=user)
    copy = get_or_404(UserCard, user_card_id)
    ensure_user_card_access(copy, user=user)

    if copy.card_id != slot.card_id:
        raise ValidationError("That copy is a different card.", field="userCardId", invalid=[copy.id])

    current = db.session.scalars(
        select(UserSetCard).where(UserSetCard.user_card_id == copy.id)
    ).first()
    if current is not None and current.id != slot.id:
        if current.user_set_id != slot.user_set_id:
            raise ValidationError(
                f'Card already placed in "{current.user_set.name}".',
                field="userCardId",
                invalid=[copy.id],
            )
        current.user_card_id = None
        db.session.flush()

    slot.user_card_id = copy.id
    db.session.flush()
    return slot


def unplace_card(user, user_set_card_id: Any) -> UserSetCard:
    slot = get_or_404(UserSetCard, user_set_card_id)
    ensure_user_set_access(slot.user_set, user=user)
    slot.user_card_id = None
    db.session.flush()
    return slot


def placed_user_card_ids(user) -> List[Dict[str, Any]]:
    rows = db.session.execute(
        select(UserSetCard.user_card_id, UserSet.id, UserSet.name)
        .join(UserSet, UserSet.id == UserSetCard.user_set_id)
        .where(UserSet.user_id == user.id, UserSetCard.user_card_id.is_not(None))
        .order_by(UserSet.id, UserSetCard.order)
    ).all()
    return [
        {"userCardId": user_card_id, "userSetId": user_set_id, "userSetName": name}
        for user_card_id, user_set_id, name in rows
    ]


def owned_copies(user) -> List[OwnedCopy]:
    rows = db.session.scalars(select(UserCard).where(UserCard.user_id == user.id).order_by(UserCard.id))
    return [
        OwnedCopy(id=row.id, card_id=row.card_id, language=row.language, variant=row.variant, condition=row.condition)
        for row in rows
    ]


def placement_map(user) -> Dict[int, int]:
    """``user_card_id`` -> id of the binder it is placed in."""
    return {entry["userCardId"]: entry["userSetId"] for entry in placed_user_card_ids(user)}


def binder_preferences(user_set: UserSet) -> Preferences:
    return Preferences(
        language=user_set.preferred_language,
        variant=user_set.preferred_variant,
        condition=user_set.preferred_condition,
    )


def card_count(user_set: UserSet) -> int:
    return db.session.scalar(
        select(func.count(UserSetCard.id)).where(UserSetCard.user_set_id == user_set.id)
    ) or 0


# ---------------------------------------------------------------------------
# Working document bridge
# ---------------------------------------------------------------------------

def slot_from_row(row: UserSetCard) -> CardSlot:
    return CardSlot(
        card_id=row.card_id,
        order=row.order,
        user_set_card_id=row.id,
        user_card_id=row.user_card_id,
        preferred_language=row.preferred_language,
        preferred_variant=row.preferred_variant,
        preferred_condition=row.preferred_condition,
    )


def _auto_grow_default() -> bool:
    if has_app_context():
        return bool(current_app.config.get("BINDER_AUTO_GROW", True))
    return True


def load_document(
    user_set: UserSet,
    *,
    device: str = DEVICE_DESKTOP,
    page_group: int = 0,
    sheet_count: Optional[int] = None,
    auto_grow: Optional[bool] = None,
) -> BinderDocument:
    return BinderDocument(
        [slot_from_row(row) for row in user_set.cards],
        sheet_count,
        device=device,
        page_group=page_group,
        auto_grow=_auto_grow_default() if auto_grow is None else auto_grow,
    )


def save_document(user, user_set: UserSet, document: BinderDocument) -> UserSet:
    return update_user_set(
        user,
        user_set.id,
        name=user_set.name,
        image=user_set.image,
        cards=document.slots,
        preferred_language=user_set.preferred_language,
        preferred_variant=user_set.preferred_variant,
        preferred_condition=user_set.preferred_condition,
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def slot_to_dict(row: UserSetCard, card: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "id": row.id,
        "cardId": row.card_id,
        "userCardId": row.user_card_id,
        "order": row.order,
        "preferredLanguage": row.preferred_language,
        "preferredVariant": row.preferred_variant,
        "preferredCondition": row.preferred_condition,
        "card": card if card is not None else (row.card.to_dict() if row.card else None),
    }


def user_set_summary(user_set: UserSet) -> Dict[str, Any]:
    return {"id": user_set.id, "name": user_set.name, "image": user_set.image}


def user_set_detail(user_set: UserSet) -> Dict[str, Any]:
    out = user_set_summary(user_set)
    out.update(
        {
            "preferredLanguage": user_set.preferred_language,
            "preferredVariant": user_set.preferred_variant,
            "preferredCondition": user_set.preferred_condition,
            "cards": [slot_to_dict(row) for row in user_set.cards],
        }
    )
    return out

"""Factory helpers for quickly seeding the test database."""
from __future__ import annotations

import itertools
from typing import Optional, Sequence

from extensions import db
from models import Card, CardSet, User, UserCard, UserSet, UserSetCard

_set_counter = itertools.count(1)
_card_counter = itertools.count(1)
_binder_counter = itertools.count(1)


def create_card_set(*, set_id: Optional[str] = None, name: Optional[str] = None) -> CardSet:
    number = _next_value(_set_counter)
    card_set = CardSet(id=set_id or f"set{number}", name=name or f"Set {number}", total=102)
    db.session.add(card_set)
    db.session.flush()
    return card_set


def create_card(
    *,
    card_set: Optional[CardSet] = None,
    card_id: Optional[str] = None,
    name: Optional[str] = None,
    number: Optional[str] = None,
    rarity: str = "Common",
) -> Card:
    home = card_set or create_card_set()
    index = _next_value(_card_counter)
    card = Card(
        id=card_id or f"{home.id}-{index}",
        set_id=home.id,
        name=name or f"Card {index}",
        number=number or str(index),
        rarity=rarity,
    )
    db.session.add(card)
    db.session.flush()
    return card


def create_cards(count: int, *, card_set: Optional[CardSet] = None) -> list[Card]:
    home = card_set or create_card_set()
    return [create_card(card_set=home) for _ in range(count)]


def create_user_card(
    user: User,
    card: Card,
    *,
    language: Optional[str] = "en",
    variant: Optional[str] = "Unlimited",
    condition: Optional[str] = "Near Mint",
) -> UserCard:
    copy = UserCard(user_id=user.id, card_id=card.id, language=language, variant=variant, condition=condition)
    db.session.add(copy)
    db.session.flush()
    return copy


def create_binder(
    user: User,
    *,
    name: Optional[str] = None,
    placements: Sequence[tuple[Card, int]] = (),
    **preferences: Optional[str],
) -> UserSet:
    """Binder with ``(card, order)`` slots."""
    user_set = UserSet(user_id=user.id, name=name or f"Binder {_next_value(_binder_counter)}", **preferences)
    db.session.add(user_set)
    db.session.flush()
    for card, order in placements:
        db.session.add(UserSetCard(user_set_id=user_set.id, card_id=card.id, order=order))
    db.session.flush()
    db.session.refresh(user_set)
    return user_set


def _next_value(counter: itertools.count) -> int:
    return next(counter)

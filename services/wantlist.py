"""Want-lists: binder slots still waiting for a copy the user does not own."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import select

from extensions import db
from models import Card, CardSet, UserCard, UserSet, UserSetCard
from services.localization import localize_records
from services.validation import ValidationError, optional_text, parse_card_id

SORT_OPTIONS = ("set-and-number", "name", "rarity")
SORT_ORDERS = ("asc", "desc")

_DIGITS = re.compile(r"\D+")


@dataclass(frozen=True)
class WantlistFilters:
    set_id: Optional[str] = None
    search: Optional[str] = None
    rarity: Optional[str] = None
    sort_by: str = "set-and-number"
    sort_order: str = "asc"


def parse_wantlist_filters(args: Mapping[str, Any]) -> WantlistFilters:
    set_id = args.get("set_id") or args.get("setId")
    rarity = optional_text(args.get("rarity"))
    sort_by = (args.get("sort_by") or args.get("sortBy") or "set-and-number").strip()
    sort_order = (args.get("sort_order") or args.get("sortOrder") or "asc").strip().lower()
    if sort_by not in SORT_OPTIONS:
        raise ValidationError("Invalid sort_by.", field="sort_by", invalid=[sort_by])
    if sort_order not in SORT_ORDERS:
        raise ValidationError("Invalid sort_order.", field="sort_order", invalid=[sort_order])
    return WantlistFilters(
        set_id=parse_card_id(set_id, field="set_id") if set_id else None,
        search=optional_text(args.get("search")),
        rarity=None if rarity == "all" else rarity,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def _number_key(number: Optional[str]) -> int:
    digits = _DIGITS.sub("", number or "")
    return int(digits) if digits else 0


def _sort_key(sort_by: str, release_dates: Dict[str, Optional[date]]) -> Callable[[Dict[str, Any]], Any]:
    if sort_by == "name":
        return lambda record: ((record.get("name") or "").casefold(), record["id"])
    if sort_by == "rarity":
        return lambda record: (record.get("rarity") or "", record["id"])
    return lambda record: (
        release_dates.get(record["id"]) or date.max,
        _number_key(record.get("number")),
        record.get("number") or "",
        record["id"],
    )


def wanted_card_preferences(user_id: int, *, user_set_ids: Optional[Iterable[int]] = None) -> Dict[str, tuple]:
    """Card id -> binder preferences for every unplaced slot of a card the user owns no copy of.

    A card sitting in several binders takes the oldest binder's preferences.
    """
    stmt = (
        select(
            UserSetCard.card_id,
            UserSet.preferred_language,
            UserSet.preferred_variant,
            UserSet.preferred_condition,
        )
        .join(UserSet, UserSet.id == UserSetCard.user_set_id)
        .where(UserSet.user_id == user_id, UserSetCard.user_card_id.is_(None))
        .order_by(UserSet.created_at, UserSet.id, UserSetCard.order)
    )
    scope = list(user_set_ids or [])
    if scope:
        stmt = stmt.where(UserSet.id.in_(scope))

    prefs: Dict[str, tuple] = {}
    for card_id, language, variant, condition in db.session.execute(stmt):
        prefs.setdefault(card_id, (language, variant, condition))
    if not prefs:
        return {}

    owned = set(db.session.scalars(select(UserCard.card_id).where(UserCard.user_id == user_id)))
    return {card_id: values for card_id, values in prefs.items() if card_id not in owned}


def wantlist_for_user(
    user_id: int,
    *,
    language: Optional[str] = None,
    filters: Optional[WantlistFilters] = None,
    user_set_ids: Optional[Iterable[int]] = None,
) -> List[Dict[str, Any]]:
    filters = filters or WantlistFilters()
    prefs = wanted_card_preferences(user_id, user_set_ids=user_set_ids)
    if not prefs:
        return []

    stmt = (
        select(Card, CardSet.release_date)
        .join(CardSet, CardSet.id == Card.set_id)
        .where(Card.id.in_(list(prefs)))
    )
    if filters.set_id:
        stmt = stmt.where(Card.set_id == filters.set_id)
    if filters.rarity:
        stmt = stmt.where(Card.rarity == filters.rarity)
    rows = db.session.execute(stmt).all()

    release_dates = {card.id: released for card, released in rows}
    original_names = {card.id: card.name for card, _ in rows}
    records = localize_records([card.to_dict() for card, _ in rows], "cards", ["name"], language)

    if filters.search:
        needle = filters.search.casefold()
        records = [
            record
            for record in records
            if needle in (record.get("name") or "").casefold()
            or needle in original_names[record["id"]].casefold()
            or needle in (record.get("number") or "").casefold()
        ]

    records.sort(key=_sort_key(filters.sort_by, release_dates), reverse=filters.sort_order == "desc")

    out: List[Dict[str, Any]] = []
    for record in records:
        preferred_language, preferred_variant, preferred_condition = prefs[record["id"]]
        out.append(
            {
                "id": f"wantlist-{record['id']}",
                "cardId": record["id"],
                "language": preferred_language,
                "variant": preferred_variant,
                "condition": preferred_condition,
                "notes": None,
                "card": record,
            }
        )
    return out

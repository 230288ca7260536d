"""Binder layout math: dense slot arrays, pages, sheets and structural edits.

A binder is a linear run of absolute positions. Nine positions form a page
(a 3x3 pocket grid) and two pages form a sheet, the double-sided insert that
can be added, removed or moved as a unit.

Card assignments are kept sparse: a list of ``CardSlot`` values keyed by
``order``. Gaps are empty pockets. Every function here is pure; edits return a
new list and never touch the input, so a derived page view can always be
recomputed from the slot list alone.

Callers are expected to hand in slot lists whose ``order`` values are unique
(see ``services.validation.ensure_unique_orders``). When duplicates slip
through, the last one wins while building the dense array.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence

PAGE_SIZE = 9
PAGES_PER_SHEET = 2
SHEET_SIZE = PAGE_SIZE * PAGES_PER_SHEET


@dataclass(frozen=True)
class CardSlot:
    """One absolute binder position, optionally holding a card."""

    card_id: Optional[str]
    order: int
    user_set_card_id: Optional[int] = None
    user_card_id: Optional[int] = None
    preferred_language: Optional[str] = None
    preferred_variant: Optional[str] = None
    preferred_condition: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.card_id is None

    def moved_to(self, order: int) -> "CardSlot":
        return replace(self, order=order)

    def shifted(self, delta: int) -> "CardSlot":
        return replace(self, order=self.order + delta)

    def to_payload(self) -> dict:
        """Save shape: ``userSetCardId`` is ``None`` for assignments not yet persisted."""
        return {
            "userSetCardId": self.user_set_card_id,
            "cardId": self.card_id,
            "order": self.order,
            "preferredLanguage": self.preferred_language,
            "preferredVariant": self.preferred_variant,
            "preferredCondition": self.preferred_condition,
        }


# ---------------------------------------------------------------------------
# Ordering & page derivation
# ---------------------------------------------------------------------------

def sort_slots(slots: Iterable[CardSlot]) -> List[CardSlot]:
    return sorted(slots, key=lambda slot: slot.order)


def max_order(slots: Iterable[CardSlot]) -> int:
    """Highest occupied position, or -1 for an empty binder."""
    return max((slot.order for slot in slots), default=-1)


def sheet_index_for(order: int) -> int:
    return order // SHEET_SIZE


def page_index_for(order: int) -> int:
    return order // PAGE_SIZE


def sheet_bounds(sheet_index: int) -> tuple[int, int]:
    start = sheet_index * SHEET_SIZE
    return start, start + SHEET_SIZE


def sheets_needed(slots: Iterable[CardSlot]) -> int:
    """Minimum sheet count that holds the highest-ordered slot; never below one."""
    highest = max_order(slots)
    return max(1, math.ceil((highest + 1) / SHEET_SIZE))


def dense_slots(slots: Sequence[CardSlot], *, sheet_count: Optional[int] = None) -> List[Optional[CardSlot]]:
    """Index ``i`` holds the slot whose ``order == i`` or ``None``.

    An empty slot list yields an empty array whatever ``sheet_count`` says;
    display code pads separately. With ``sheet_count`` the array is right-padded
    to a whole number of sheets and to at least ``sheet_count`` sheets.
    """
    if not slots:
        return []
    length = max_order(slots) + 1
    if sheet_count is not None:
        whole_sheets = math.ceil(length / SHEET_SIZE) * SHEET_SIZE
        length = max(whole_sheets, sheet_count * SHEET_SIZE)
    dense: List[Optional[CardSlot]] = [None] * length
    for slot in slots:
        dense[slot.order] = slot
    return dense


def split_pages(entries: Sequence[Optional[CardSlot]]) -> List[List[Optional[CardSlot]]]:
    """Cut a dense array into 9-slot pages; the last page is padded with ``None``."""
    pages: List[List[Optional[CardSlot]]] = []
    for start in range(0, len(entries), PAGE_SIZE):
        page = list(entries[start:start + PAGE_SIZE])
        page.extend([None] * (PAGE_SIZE - len(page)))
        pages.append(page)
    return pages


def derive_layout(slots: Sequence[CardSlot], sheet_count: int) -> List[List[Optional[CardSlot]]]:
    """Pages covering ``[0, sheet_count * 18)``, always at least one sheet."""
    sheet_count = max(1, sheet_count)
    dense = dense_slots(slots, sheet_count=sheet_count)
    if not dense:
        dense = [None] * (sheet_count * SHEET_SIZE)
    return split_pages(dense)


def sheet_pages(slots: Sequence[CardSlot], sheet_index: int) -> tuple[List[Optional[CardSlot]], List[Optional[CardSlot]]]:
    """Front and back page of one sheet."""
    start, end = sheet_bounds(sheet_index)
    window: List[Optional[CardSlot]] = [None] * SHEET_SIZE
    for slot in slots:
        if start <= slot.order < end:
            window[slot.order - start] = slot
    return window[:PAGE_SIZE], window[PAGE_SIZE:]


# ---------------------------------------------------------------------------
# Sheet edits
# ---------------------------------------------------------------------------

def insert_sheet(slots: Sequence[CardSlot], at_sheet_index: int) -> List[CardSlot]:
    """Open an empty sheet before ``at_sheet_index``; later slots move forward by 18."""
    insert_at = at_sheet_index * SHEET_SIZE
    return sort_slots(
        slot.shifted(SHEET_SIZE) if slot.order >= insert_at else slot
        for slot in slots
    )


def delete_sheet(slots: Sequence[CardSlot], sheet_index: int) -> List[CardSlot]:
    """Drop the sheet's slots (cards are not relocated) and close the gap."""
    start, end = sheet_bounds(sheet_index)
    kept: List[CardSlot] = []
    for slot in slots:
        if start <= slot.order < end:
            continue
        kept.append(slot.shifted(-SHEET_SIZE) if slot.order >= end else slot)
    return sort_slots(kept)


def reorder_sheet(slots: Sequence[CardSlot], from_index: int, to_index: int) -> List[CardSlot]:
    """Move one sheet to ``to_index``; sheets in between shift by one the other way."""
    if from_index == to_index:
        return sort_slots(slots)

    from_start, from_end = sheet_bounds(from_index)
    moving = [slot for slot in slots if from_start <= slot.order < from_end]
    rest = [slot for slot in slots if not from_start <= slot.order < from_end]

    if from_index < to_index:
        low, high = (from_index + 1) * SHEET_SIZE, (to_index + 1) * SHEET_SIZE
        delta = -SHEET_SIZE
    else:
        low, high = to_index * SHEET_SIZE, from_index * SHEET_SIZE
        delta = SHEET_SIZE
    rest = [slot.shifted(delta) if low <= slot.order < high else slot for slot in rest]

    offset = (to_index - from_index) * SHEET_SIZE
    return sort_slots(rest + [slot.shifted(offset) for slot in moving])


# ---------------------------------------------------------------------------
# Slot edits
# ---------------------------------------------------------------------------

def _check_position(position: int) -> None:
    if position < 0:
        raise ValueError(f"binder positions start at 0, got {position}")


def slot_at(slots: Iterable[CardSlot], position: int) -> Optional[CardSlot]:
    for slot in slots:
        if slot.order == position:
            return slot
    return None


def trim_trailing_empty(slots: Sequence[CardSlot]) -> List[CardSlot]:
    """Drop card-less slots after the last real card; internal gaps stay."""
    last_card = max((slot.order for slot in slots if not slot.is_empty), default=-1)
    return sort_slots(slot for slot in slots if not (slot.is_empty and slot.order > last_card))


def remove_card(slots: Sequence[CardSlot], position: int) -> List[CardSlot]:
    _check_position(position)
    return trim_trailing_empty([slot for slot in slots if slot.order != position])


def place_card(slots: Sequence[CardSlot], position: int, card_id: str) -> List[CardSlot]:
    """Assign ``card_id`` at ``position``, overwriting whatever card sat there.

    A replaced card keeps the slot's persisted identity but loses the owned copy
    that was placed for the previous card.
    """
    _check_position(position)
    out: List[CardSlot] = []
    found = False
    for slot in slots:
        if slot.order == position:
            found = True
            if slot.card_id != card_id:
                slot = replace(slot, card_id=card_id, user_card_id=None)
        out.append(slot)
    if not found:
        out.append(CardSlot(card_id=card_id, order=position))
    return sort_slots(out)


def bulk_add(slots: Sequence[CardSlot], position: int, card_ids: Sequence[str]) -> tuple[List[CardSlot], List[int]]:
    """Fill free positions from ``position`` onward, skipping occupied ones.

    Returns the new slot list and the positions that received a card, in the
    order the cards were given.
    """
    _check_position(position)
    by_order = {slot.order: slot for slot in slots}
    placed: List[int] = []
    cursor = position
    for card_id in card_ids:
        while cursor in by_order and not by_order[cursor].is_empty:
            cursor += 1
        by_order[cursor] = CardSlot(card_id=card_id, order=cursor)
        placed.append(cursor)
        cursor += 1
    return trim_trailing_empty(list(by_order.values())), placed


def swap_slots(slots: Sequence[CardSlot], a: int, b: int) -> List[CardSlot]:
    """Exchange what sits at ``a`` and ``b``; an empty position swaps like any other."""
    _check_position(a)
    _check_position(b)
    if a == b:
        return sort_slots(slots)
    out: List[CardSlot] = []
    for slot in slots:
        if slot.order == a:
            out.append(slot.moved_to(b))
        elif slot.order == b:
            out.append(slot.moved_to(a))
        else:
            out.append(slot)
    return trim_trailing_empty(out)


def save_payload(slots: Sequence[CardSlot]) -> List[dict]:
    """Full replacement list handed to the persistence layer on save."""
    return [slot.to_payload() for slot in sort_slots(slots)]

"""Placement status of binder slots against the owner's physical copies.

A binder slot names a card; an owned copy (``UserCard``) is the physical card
sleeved into it. For each slot we work out whether a copy is placed there,
whether one could be, and whether the placed copy honours the binder's
language / variant / condition preferences.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from services.binder_layout import CardSlot
from services.card_attributes import meets_minimum_condition

STATUS_PLACED = "placed"
STATUS_AVAILABLE = "available"
STATUS_ELSEWHERE = "elsewhere"
STATUS_MISSING = "missing"
STATUS_PENDING = "pending"
STATUS_EMPTY = "empty"


@dataclass(frozen=True)
class Preferences:
    language: Optional[str] = None
    variant: Optional[str] = None
    condition: Optional[str] = None


@dataclass(frozen=True)
class PreferenceToggles:
    """Which preferences count when matching copies."""

    language: bool = False
    variant: bool = False
    condition: bool = False


@dataclass(frozen=True)
class OwnedCopy:
    id: int
    card_id: str
    language: Optional[str] = None
    variant: Optional[str] = None
    condition: Optional[str] = None


@dataclass(frozen=True)
class SlotStatus:
    status: str
    mismatch: bool = False
    matching_copy_ids: tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "mismatch": self.mismatch,
            "matchingCopyIds": list(self.matching_copy_ids),
        }


def effective_preferences(slot: CardSlot, binder: Preferences) -> Preferences:
    """Card-level preference wins; the binder-level one fills the gaps."""
    return Preferences(
        language=slot.preferred_language or binder.language,
        variant=slot.preferred_variant or binder.variant,
        condition=slot.preferred_condition or binder.condition,
    )


def copy_matches(copy: OwnedCopy, prefs: Preferences, toggles: PreferenceToggles) -> bool:
    if toggles.language and prefs.language and copy.language != prefs.language:
        return False
    if toggles.variant and prefs.variant and copy.variant != prefs.variant:
        return False
    if toggles.condition and prefs.condition and not meets_minimum_condition(copy.condition, prefs.condition):
        return False
    return True


def matching_copies(
    card_id: str,
    copies: Iterable[OwnedCopy],
    prefs: Preferences,
    toggles: PreferenceToggles,
) -> list[OwnedCopy]:
    return [copy for copy in copies if copy.card_id == card_id and copy_matches(copy, prefs, toggles)]


def slot_status(
    slot: Optional[CardSlot],
    *,
    user_set_id: Optional[int],
    binder_prefs: Preferences,
    copies: Sequence[OwnedCopy],
    placements: Mapping[int, int],
    toggles: PreferenceToggles = PreferenceToggles(),
    known_card_ids: Optional[set[str]] = None,
) -> SlotStatus:
    """Classify one slot.

    ``placements`` maps a placed ``user_card_id`` to the binder holding it.
    ``known_card_ids`` lists cards whose metadata is loaded; any other card is
    reported as pending rather than missing.
    """
    if slot is None or slot.is_empty:
        return SlotStatus(STATUS_EMPTY)
    if known_card_ids is not None and slot.card_id not in known_card_ids:
        return SlotStatus(STATUS_PENDING)

    prefs = effective_preferences(slot, binder_prefs)

    if slot.user_card_id:
        placed = next((copy for copy in copies if copy.id == slot.user_card_id), None)
        mismatch = placed is not None and not copy_matches(placed, prefs, toggles)
        return SlotStatus(STATUS_PLACED, mismatch=mismatch, matching_copy_ids=(slot.user_card_id,))

    matches = matching_copies(slot.card_id, copies, prefs, toggles)
    if not matches:
        return SlotStatus(STATUS_MISSING)

    free = tuple(
        copy.id for copy in matches
        if copy.id not in placements or placements[copy.id] == user_set_id
    )
    if free:
        return SlotStatus(STATUS_AVAILABLE, matching_copy_ids=free)
    return SlotStatus(STATUS_ELSEWHERE, matching_copy_ids=tuple(copy.id for copy in matches))


def card_level_badges(slot: CardSlot, binder: Preferences) -> dict:
    """Card-level preferences worth flagging: only those that differ from the binder's."""
    badges = {}
    if slot.preferred_language and slot.preferred_language != binder.language:
        badges["language"] = slot.preferred_language
    if slot.preferred_variant and slot.preferred_variant != binder.variant:
        badges["variant"] = slot.preferred_variant
    if slot.preferred_condition and slot.preferred_condition != binder.condition:
        badges["condition"] = slot.preferred_condition
    return badges

"""Editable binder working copy.

``BinderDocument`` is the single owner of a binder's slot list while a user
edits it: structural edits, slot edits and the viewport all go through it, and
the result leaves as one full replacement payload on save. Nothing here talks
to the database; ``services.user_sets`` loads and saves documents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from services import binder_layout as layout
from services.binder_layout import PAGE_SIZE, PAGES_PER_SHEET, SHEET_SIZE, CardSlot
from services.binder_viewport import DEVICE_DESKTOP, BinderViewport
from services.validation import ensure_unique_orders

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SheetSummary:
    index: int
    front: List[Optional[CardSlot]]
    back: List[Optional[CardSlot]]

    @property
    def has_cards(self) -> bool:
        return any(slot is not None and not slot.is_empty for slot in self.front + self.back)


class BinderDocument:
    """Mutable binder state: sparse slots, sheet count and viewport."""

    def __init__(
        self,
        slots: Iterable[CardSlot] = (),
        sheet_count: Optional[int] = None,
        *,
        device: str = DEVICE_DESKTOP,
        page_group: int = 0,
        auto_grow: bool = True,
    ) -> None:
        slots = list(slots)
        ensure_unique_orders(slot.order for slot in slots)
        self._slots: List[CardSlot] = layout.sort_slots(slots)
        self.sheet_count = max(sheet_count or 1, layout.sheets_needed(self._slots))
        self.auto_grow = auto_grow
        self.viewport = BinderViewport(device=device, page_group=page_group)
        self.viewport.clamp(self.total_pages)

    def __repr__(self) -> str:
        return f"<BinderDocument sheets={self.sheet_count} slots={len(self._slots)}>"

    # Read-only views -----------------------------------------------------
    @property
    def slots(self) -> tuple[CardSlot, ...]:
        return tuple(self._slots)

    @property
    def page_count(self) -> int:
        return self.sheet_count * PAGES_PER_SHEET

    @property
    def capacity(self) -> int:
        return self.sheet_count * SHEET_SIZE

    @property
    def card_count(self) -> int:
        return sum(1 for slot in self._slots if not slot.is_empty)

    @property
    def total_pages(self) -> int:
        return self.viewport.total_pages_for(self.sheet_count)

    def slot_at(self, position: int) -> Optional[CardSlot]:
        return layout.slot_at(self._slots, position)

    def dense(self) -> List[Optional[CardSlot]]:
        return layout.dense_slots(self._slots, sheet_count=self.sheet_count)

    def pages(self) -> List[List[Optional[CardSlot]]]:
        return layout.derive_layout(self._slots, self.sheet_count)

    def rendered_pages(self) -> List[List[Optional[CardSlot]]]:
        """Pages as shown on the current device, covers included."""
        flat = [entry for page in self.pages() for entry in page]
        return self.viewport.build_pages(flat)

    def sheets(self) -> List[SheetSummary]:
        out: List[SheetSummary] = []
        for index in range(self.sheet_count):
            front, back = layout.sheet_pages(self._slots, index)
            out.append(SheetSummary(index=index, front=front, back=back))
        return out

    def save_payload(self) -> List[dict]:
        return layout.save_payload(self._slots)

    # Sheet edits ---------------------------------------------------------
    def insert_sheet(self, at_sheet_index: int) -> bool:
        if not 0 <= at_sheet_index <= self.sheet_count:
            logger.warning("Rejected sheet insert at %s (sheets=%s)", at_sheet_index, self.sheet_count)
            return False
        self._slots = layout.insert_sheet(self._slots, at_sheet_index)
        self.sheet_count += 1
        return True

    def delete_sheet(self, sheet_index: int) -> bool:
        if self.sheet_count <= 1:
            logger.warning("Rejected deletion of the only sheet")
            return False
        if not 0 <= sheet_index < self.sheet_count:
            logger.warning("Rejected sheet delete at %s (sheets=%s)", sheet_index, self.sheet_count)
            return False
        self._slots = layout.delete_sheet(self._slots, sheet_index)
        self.sheet_count = max(1, self.sheet_count - 1)
        self.viewport.clamp(self.total_pages)
        return True

    def reorder_sheet(self, from_index: int, to_index: int) -> bool:
        if from_index == to_index:
            return False
        if not (0 <= from_index < self.sheet_count and 0 <= to_index < self.sheet_count):
            logger.warning(
                "Rejected sheet move %s -> %s (sheets=%s)", from_index, to_index, self.sheet_count
            )
            return False
        self._slots = layout.reorder_sheet(self._slots, from_index, to_index)
        return True

    # Slot edits ----------------------------------------------------------
    def remove_card(self, position: int) -> bool:
        if self.slot_at(position) is None:
            return False
        self._slots = layout.remove_card(self._slots, position)
        return True

    def place_card(self, position: int, card_id: str) -> bool:
        return self._commit(layout.place_card(self._slots, position, card_id))

    def bulk_add(self, position: int, card_ids: Sequence[str]) -> List[int]:
        slots, placed = layout.bulk_add(self._slots, position, card_ids)
        return placed if self._commit(slots) else []

    def swap(self, a: int, b: int) -> bool:
        return self._commit(layout.swap_slots(self._slots, a, b))

    def _commit(self, slots: List[CardSlot]) -> bool:
        """Adopt ``slots``, growing the binder if allowed.

        With growth disabled every slot must stay inside the current sheets;
        an edit that would spill past them is refused and nothing changes.
        """
        needed = layout.sheets_needed(slots)
        if needed > self.sheet_count:
            if not self.auto_grow:
                logger.warning("Rejected edit needing %s sheets (sheets=%s, growth disabled)", needed, self.sheet_count)
                return False
            logger.info("Growing binder from %s to %s sheets", self.sheet_count, needed)
            self.sheet_count = needed
        self._slots = slots
        return True

    # Navigation ----------------------------------------------------------
    def visible_pages(self) -> List[List[Optional[CardSlot]]]:
        return self.viewport.visible_pages(self.rendered_pages())

    def go_next(self) -> bool:
        return self.viewport.go_next(self.total_pages)

    def go_prev(self) -> bool:
        return self.viewport.go_prev()

    def page_group_for(self, position: int) -> int:
        """Page group that shows ``position`` on the current device."""
        page_number = position // PAGE_SIZE + (0 if self.viewport.is_mobile else 1)
        return page_number // self.viewport.pages_visible

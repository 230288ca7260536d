"""Page-group navigation over a rendered binder.

Desktop shows two pages side by side like an open binder, so the first real
page sits on the right behind an empty cover and the last real page on the
left in front of one. Mobile shows a single page and no covers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, TypeVar

from services.binder_layout import PAGE_SIZE

T = TypeVar("T")

DEVICE_DESKTOP = "desktop"
DEVICE_MOBILE = "mobile"
DEVICES = (DEVICE_DESKTOP, DEVICE_MOBILE)


def device_from_user_agent(user_agent: Optional[str]) -> str:
    return DEVICE_MOBILE if "mobi" in (user_agent or "").lower() else DEVICE_DESKTOP


@dataclass
class BinderViewport:
    device: str = DEVICE_DESKTOP
    page_group: int = 0

    def __post_init__(self) -> None:
        if self.device not in DEVICES:
            raise ValueError(f"unknown device kind: {self.device!r}")
        self.page_group = max(0, int(self.page_group))

    @property
    def is_mobile(self) -> bool:
        return self.device == DEVICE_MOBILE

    @property
    def pages_visible(self) -> int:
        return 1 if self.is_mobile else 2

    def build_pages(self, items: Sequence[T], fill: Optional[T] = None) -> List[List[Optional[T]]]:
        content_pages = math.ceil(len(items) / PAGE_SIZE)
        blank = [fill] * PAGE_SIZE
        pages: List[List[Optional[T]]] = []

        if not self.is_mobile:
            pages.append(list(blank))

        for index in range(content_pages):
            page: List[Optional[T]] = list(items[index * PAGE_SIZE:(index + 1) * PAGE_SIZE])
            page.extend([fill] * (PAGE_SIZE - len(page)))
            pages.append(page)

        if not self.is_mobile:
            # back side of a half-used sheet
            if content_pages % 2 == 1:
                pages.append(list(blank))
            pages.append(list(blank))
        return pages

    def is_cover_page(self, page_number: int, total_pages: int) -> bool:
        """``page_number`` is 1-based."""
        if self.is_mobile:
            return False
        return page_number == 1 or page_number == total_pages

    def display_page_number(self, page_number: int) -> int:
        return page_number - (0 if self.is_mobile else 1)

    def max_page_group(self, total_pages: int) -> int:
        return max(0, math.ceil(total_pages / self.pages_visible) - 1)

    def can_go_next(self, total_pages: int) -> bool:
        return self.page_group < self.max_page_group(total_pages)

    def can_go_prev(self) -> bool:
        return self.page_group > 0

    def go_next(self, total_pages: int) -> bool:
        if not self.can_go_next(total_pages):
            return False
        self.page_group += 1
        return True

    def go_prev(self) -> bool:
        if not self.can_go_prev():
            return False
        self.page_group -= 1
        return True

    def go_to(self, page_group: int, total_pages: int) -> int:
        self.page_group = min(max(0, page_group), self.max_page_group(total_pages))
        return self.page_group

    def clamp(self, total_pages: int) -> int:
        """Pull the viewport back inside the binder after it shrank."""
        self.page_group = min(self.page_group, self.max_page_group(total_pages))
        return self.page_group

    def start_page_index(self) -> int:
        return self.page_group * self.pages_visible

    def visible_pages(self, pages: Sequence[T]) -> List[T]:
        start = self.start_page_index()
        return list(pages[start:start + self.pages_visible])

    def total_pages_for(self, sheet_count: int) -> int:
        """Rendered page count (covers included) for a binder of ``sheet_count`` sheets."""
        content = sheet_count * 2
        if self.is_mobile:
            return content
        return content + 2 + (content % 2)

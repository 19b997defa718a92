"""Cumulative "show the first N" pagination for long lists."""

import logging
from typing import Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PaginationCursor:
    """Tracks how much of an ordered collection is visible.

    Pages are cumulative: page 3 shows items ``[0, 3 * items_per_page)``, never
    a window in the middle of the list.
    """

    def __init__(self, items_per_page: int = 10) -> None:
        if items_per_page < 1:
            raise ValueError("items_per_page must be at least 1")
        self.items_per_page = items_per_page
        self.current_page = 1
        self.is_loading = False

    def visible_count(self, total_items: int) -> int:
        return min(total_items, self.current_page * self.items_per_page)

    def visible(self, items: Sequence[T]) -> list[T]:
        return list(items[: self.visible_count(len(items))])

    @staticmethod
    def has_more(total_items: int, displayed_count: int) -> bool:
        return total_items > 0 and displayed_count < total_items

    def advance(self) -> bool:
        """Move one page forward. Returns False (and does nothing) during a load."""
        if self.is_loading:
            return False
        self.current_page += 1
        return True

    def reset(self) -> None:
        self.current_page = 1

    def load_more(self, render: Callable[[], None] | None = None) -> bool:
        """Run one "load more" action.

        Re-triggering while a load is in flight is ignored. If *render* raises,
        the page increment is rolled back and the error propagates.
        """
        if self.is_loading:
            logger.debug("Load more already in progress")
            return False

        self.advance()
        self.is_loading = True
        try:
            if render is not None:
                render()
        except Exception:
            self.current_page = max(1, self.current_page - 1)
            raise
        finally:
            self.is_loading = False
        logger.debug(f"Loaded page {self.current_page}")
        return True

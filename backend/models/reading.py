"""Reading data models."""
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PaginatedDocument:
    """Text split into fixed-size word pages. Immutable once built."""
    raw_text: str
    page_size: int
    pages: Tuple[str, ...]

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    def page(self, number: int) -> str:
        """Return the text of a 1-indexed page."""
        return self.pages[number - 1]


@dataclass(frozen=True)
class ReadingProgress:
    """Position within a paginated document.

    highest_page_reached only ever grows within a session and is the value
    that gets persisted; current_page may move backwards freely.
    """
    current_page: int = 1
    highest_page_reached: int = 1
    total_pages: int = 0

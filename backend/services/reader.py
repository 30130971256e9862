"""Word-based pagination and reading progress tracking."""
import math
import logging
from enum import Enum
from typing import Optional

from models.reading import PaginatedDocument, ReadingProgress
from config import WORDS_PER_PAGE

logger = logging.getLogger(__name__)

TEXT_UNAVAILABLE = "Book text not available."


class ReaderStateError(Exception):
    """Raised when a reader operation is attempted outside the READY state."""

    def __init__(self, state: "ReaderState", operation: str):
        self.state = state
        self.operation = operation
        super().__init__(f"Cannot {operation} while reader is {state.value}")


def paginate(raw_text: Optional[str], page_size: int = WORDS_PER_PAGE) -> PaginatedDocument:
    """
    Split text into pages of page_size words.

    Words are whitespace-delimited and rejoined with single spaces, so line
    breaks and runs of spaces are not preserved. Zero words yields zero pages.

    Args:
        raw_text: Text to paginate (None is treated as empty)
        page_size: Words per page

    Returns:
        PaginatedDocument with ceil(word_count / page_size) pages

    Raises:
        ValueError: If page_size is less than 1
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    text = raw_text or ""
    words = text.split()
    total_pages = math.ceil(len(words) / page_size)

    pages = tuple(
        " ".join(words[i * page_size:(i + 1) * page_size])
        for i in range(total_pages)
    )

    logger.debug(f"Paginated {len(words)} words into {total_pages} pages of {page_size}")
    return PaginatedDocument(raw_text=text, page_size=page_size, pages=pages)


def advance(progress: ReadingProgress, requested_page: int) -> ReadingProgress:
    """
    Move to requested_page, clamped to [1, total_pages].

    highest_page_reached never decreases. Nothing is persisted here.
    """
    upper = max(progress.total_pages, 1)
    current = min(max(requested_page, 1), upper)
    return ReadingProgress(
        current_page=current,
        highest_page_reached=max(progress.highest_page_reached, current),
        total_pages=progress.total_pages
    )


def progress_percent(progress: ReadingProgress) -> int:
    """Percentage of the document reached, 0 when there are no pages."""
    if progress.total_pages <= 0:
        return 0
    return round(100 * progress.highest_page_reached / progress.total_pages)


class ReaderState(str, Enum):
    """Lifecycle of a single open document."""
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class ReaderSession:
    """State for one open document: LOADING -> READY | ERROR, ERROR -> LOADING on retry."""

    def __init__(self, book_id: str, page_size: int = WORDS_PER_PAGE, saved_page: int = 1):
        self.book_id = book_id
        self.page_size = page_size
        self.saved_page = max(saved_page, 1)
        self.state = ReaderState.LOADING
        self.document: Optional[PaginatedDocument] = None
        self.progress = ReadingProgress()
        self.error: Optional[str] = None

    def load(self, text: Optional[str], unavailable_message: str = TEXT_UNAVAILABLE) -> None:
        """
        Paginate retrieved text and become READY.

        Absent or empty text yields a single placeholder page instead of failing.
        """
        self._require(ReaderState.LOADING, "load")

        document = paginate(text, self.page_size)
        if document.total_pages == 0:
            logger.info(f"No readable text for book {self.book_id}, using placeholder page")
            document = PaginatedDocument(
                raw_text=text or "",
                page_size=self.page_size,
                pages=(unavailable_message,)
            )

        self.document = document
        self.progress = self._resumed_progress(document.total_pages)
        self.state = ReaderState.READY
        logger.info(
            f"Book {self.book_id} ready: {document.total_pages} pages, "
            f"resuming at page {self.progress.current_page}"
        )

    def fail(self, message: str) -> None:
        """Enter the ERROR state with a user-facing message."""
        self._require(ReaderState.LOADING, "fail")
        self.error = message
        self.state = ReaderState.ERROR
        logger.warning(f"Book {self.book_id} failed to load: {message}")

    def retry(self) -> None:
        """Leave ERROR and start loading again."""
        self._require(ReaderState.ERROR, "retry")
        self.error = None
        self.document = None
        self.state = ReaderState.LOADING

    def resume(self, saved_page: int) -> None:
        """Seed progress from a persisted highest_page_reached."""
        self.saved_page = max(saved_page, 1)
        if self.state == ReaderState.READY:
            resumed = self._resumed_progress(self.document.total_pages)
            # The watermark never drops within a session
            self.progress = ReadingProgress(
                current_page=resumed.current_page,
                highest_page_reached=max(self.progress.highest_page_reached, resumed.current_page),
                total_pages=resumed.total_pages
            )

    def go_to(self, page: int) -> ReadingProgress:
        self._require(ReaderState.READY, "change page")
        self.progress = advance(self.progress, page)
        return self.progress

    def next_page(self) -> ReadingProgress:
        return self.go_to(self.progress.current_page + 1)

    def previous_page(self) -> ReadingProgress:
        return self.go_to(self.progress.current_page - 1)

    @property
    def current_text(self) -> str:
        self._require(ReaderState.READY, "read")
        return self.document.page(self.progress.current_page)

    @property
    def total_pages(self) -> int:
        return self.document.total_pages if self.document else 0

    @property
    def percent(self) -> int:
        return progress_percent(self.progress)

    def _resumed_progress(self, total_pages: int) -> ReadingProgress:
        page = min(self.saved_page, max(total_pages, 1))
        return ReadingProgress(
            current_page=page,
            highest_page_reached=page,
            total_pages=total_pages
        )

    def _require(self, state: ReaderState, operation: str) -> None:
        if self.state != state:
            raise ReaderStateError(self.state, operation)

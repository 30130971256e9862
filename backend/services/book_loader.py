"""Open a Gutenberg book into a paginated reader session."""
import logging
from typing import Optional

from config import WORDS_PER_PAGE
from models.relay import BodyKind
from services.catalog import GutendexClient, CatalogError
from services.proxy_relay import ProxyRelay
from services.reader import ReaderSession, TEXT_UNAVAILABLE

logger = logging.getLogger(__name__)

PLAIN_TEXT_UNAVAILABLE = "Book text not available in plain text format."
DETAILS_FAILED = "Failed to fetch book details. Please try again later."
CONTENT_FAILED = "Failed to fetch book content."


class BookLoader:
    """Fetches metadata and text for a book and hands back a ReaderSession."""

    def __init__(
        self,
        catalog: GutendexClient,
        text_relay: ProxyRelay,
        page_size: int = WORDS_PER_PAGE
    ):
        self.catalog = catalog
        self.text_relay = text_relay
        self.page_size = page_size

    def open(self, book_id: str, saved_page: int = 1) -> ReaderSession:
        """
        Load a book for reading.

        Args:
            book_id: Gutendex book ID
            saved_page: Persisted highest_page_reached to resume from

        Returns:
            ReaderSession in READY (possibly with a placeholder page) or ERROR
        """
        session = ReaderSession(book_id, page_size=self.page_size, saved_page=saved_page)
        self.fill(session)
        return session

    def fill(self, session: ReaderSession) -> None:
        """Drive a LOADING session to READY or ERROR."""
        try:
            book = self.catalog.get_book(session.book_id)
        except CatalogError as e:
            logger.error(f"Failed to fetch metadata for book {session.book_id}: {e.message}")
            session.fail(DETAILS_FAILED)
            return

        if not book.get("formats"):
            session.load(None, TEXT_UNAVAILABLE)
            return

        text_url = GutendexClient.text_url_for(book)
        if not text_url:
            session.load(None, PLAIN_TEXT_UNAVAILABLE)
            return

        text = self._fetch_text(session.book_id, text_url)
        if text is None:
            session.fail(CONTENT_FAILED)
            return

        session.load(text)

    def reload(self, session: ReaderSession) -> ReaderSession:
        """Retry a session that ended in ERROR."""
        session.retry()
        self.fill(session)
        return session

    def _fetch_text(self, book_id: str, text_url: str) -> Optional[str]:
        result = self.text_relay.relay(text_url, BodyKind.RAW_TEXT)
        if not result.ok:
            logger.error(f"Text relay returned {result.status} for book {book_id}")
            return None
        body = result.body
        if isinstance(body, bytes):
            return body.decode("utf-8", errors="replace")
        return body

"""Clients for the public book, audiobook and cover catalogs."""
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from config import (
    GUTENDEX_API_URL,
    LIBRIVOX_API_URL,
    OPENLIBRARY_API_URL,
    OPENLIBRARY_COVERS_URL,
    CATALOG_TIMEOUT,
    COVER_PLACEHOLDER,
)
from models.listening import Audiobook, AudioSection

logger = logging.getLogger(__name__)

# Plain-text formats in order of preference
PLAIN_TEXT_FORMATS = ("text/plain; charset=us-ascii", "text/plain")


class CatalogError(Exception):
    """Upstream catalog request failed."""

    def __init__(self, message: str, status_code: int = 502):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class CatalogClient:
    """Single-shot JSON GETs against one catalog base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = CATALOG_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET base_url + path and decode the JSON body.

        Raises:
            CatalogError: On non-2xx status, transport failure or invalid JSON
        """
        url = f"{self.base_url}{path}"

        try:
            with httpx.Client(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True
            ) as client:
                response = client.get(url, params=params)
        except httpx.TimeoutException as e:
            logger.error(f"Catalog request timed out after {self.timeout}s: {url}")
            raise CatalogError(f"Request timeout: {e}", status_code=504)
        except httpx.HTTPError as e:
            logger.error(f"Catalog request failed: {url}: {e}")
            raise CatalogError(f"Network error: {e}")

        if not 200 <= response.status_code < 300:
            logger.warning(f"Catalog returned {response.status_code} for {url}")
            raise CatalogError(
                f"HTTP error! Status: {response.status_code}",
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Catalog returned invalid JSON for {url}: {e}")
            raise CatalogError("Invalid JSON from catalog")


class GutendexClient(CatalogClient):
    """Project Gutenberg metadata via the Gutendex API."""

    def __init__(self, base_url: str = GUTENDEX_API_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    def get_book(self, book_id: str) -> Dict[str, Any]:
        return self._get_json(f"/books/{book_id}")

    def search(self, query: str, field: str = "search") -> List[Dict[str, Any]]:
        """Search books; field is a Gutendex filter such as "search" or "topic"."""
        return self._get_json("/books", params={field: query}).get("results", [])

    def popular(self) -> List[Dict[str, Any]]:
        return self._get_json("/books/", params={"sort": "popular"}).get("results", [])

    def by_topic(self, topic: str) -> List[Dict[str, Any]]:
        slug = re.sub(r"\s+", "_", topic.lower())
        return self.search(slug, field="topic")

    @staticmethod
    def text_url_for(book: Dict[str, Any]) -> Optional[str]:
        """Pick the best plain-text download URL from a book's formats."""
        formats = book.get("formats") or {}
        for mime in PLAIN_TEXT_FORMATS:
            if formats.get(mime):
                return formats[mime]
        for mime, url in formats.items():
            if mime.startswith("text/plain") and url:
                return url
        return None


class LibriVoxClient(CatalogClient):
    """Audiobook catalog via the LibriVox feed API."""

    def __init__(self, base_url: str = LIBRIVOX_API_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    def latest(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self._books({"sort_order": "catalog_date_desc", "limit": limit})

    def search(self, title: str) -> List[Dict[str, Any]]:
        return self._books({"title": title})

    def by_genre(self, genre: str) -> List[Dict[str, Any]]:
        return self._books({"genre": genre})

    def get_audiobook(self, audiobook_id: str) -> Audiobook:
        """
        Fetch one audiobook with its sections.

        Raises:
            CatalogError: 404 if the catalog has no such audiobook
        """
        books = self._books({"id": audiobook_id, "extended": 1})
        if not books:
            raise CatalogError("Audiobook not found.", status_code=404)

        data = books[0]
        sections = [
            AudioSection(
                section_id=str(section.get("id", index)),
                title=section.get("title") or f"Section {index + 1}",
                listen_url=section.get("listen_url", ""),
                duration=_to_seconds(section.get("playtime"))
            )
            for index, section in enumerate(data.get("sections") or [])
        ]
        return Audiobook(
            id=str(data.get("id", audiobook_id)),
            title=data.get("title", ""),
            description=data.get("description", ""),
            authors=data.get("authors") or [],
            sections=sections
        )

    @staticmethod
    def author_name(audiobook: Audiobook) -> str:
        if audiobook.authors and audiobook.authors[0].get("last_name"):
            first = audiobook.authors[0]
            return f"{first.get('first_name', '')} {first['last_name']}".strip()
        return "Various"

    def _books(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            data = self._get_json("/audiobooks/", params={**params, "format": "json"})
        except CatalogError as e:
            # LibriVox answers an empty match with 404
            if e.status_code == 404:
                return []
            raise
        return data.get("books") or []


class OpenLibraryClient(CatalogClient):
    """Cover art and subject listings from Open Library."""

    def __init__(
        self,
        base_url: str = OPENLIBRARY_API_URL,
        covers_url: str = OPENLIBRARY_COVERS_URL,
        **kwargs
    ):
        super().__init__(base_url, **kwargs)
        self.covers_url = covers_url.rstrip("/")

    def cover_url(self, title: str, size: str = "M") -> str:
        """Cover image URL for the first search hit, or the placeholder image."""
        try:
            docs = self._get_json("/search.json", params={"q": title}).get("docs") or []
        except CatalogError as e:
            logger.warning(f"Cover lookup failed for {title!r}: {e.message}")
            return COVER_PLACEHOLDER

        if docs and docs[0].get("cover_i"):
            return self.cover_image_url(docs[0]["cover_i"], size)
        return COVER_PLACEHOLDER

    def cover_image_url(self, cover_id: Any, size: str = "M") -> str:
        return f"{self.covers_url}/b/id/{cover_id}-{size}.jpg"

    def subject_works(self, genre: str, limit: int = 4) -> List[Dict[str, Any]]:
        return self._get_json(f"/subjects/{genre}.json", params={"limit": limit}).get("works") or []


def _to_seconds(playtime: Any) -> Optional[float]:
    """LibriVox reports playtime as seconds, sometimes as a string."""
    try:
        return float(playtime)
    except (TypeError, ValueError):
        return None

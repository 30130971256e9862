"""Per-user reading and listen lists stored in Supabase."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_KEY, USERS_TABLE
from models.library import UserIdentity, ReadingListEntry, ListenListEntry
from models.listening import Audiobook, ListeningProgress
from models.reading import ReadingProgress
from services.reader import progress_percent

logger = logging.getLogger(__name__)

READING_LIST = "reading_list"
LISTEN_LIST = "listen_list"


class LibraryStoreError(RuntimeError):
    """Document store operation failed."""


class LibraryStore:
    """
    One row per user, keyed by uid, holding two JSON maps:
    reading_list (book ID -> entry) and listen_list (audiobook ID -> entry).

    Writes replace a single map column via upsert on uid. Concurrent writers
    are not coordinated; the last write wins.
    """

    def __init__(
        self,
        supabase_url: str = SUPABASE_URL,
        supabase_key: str = SUPABASE_KEY,
        table_name: str = USERS_TABLE
    ):
        """
        Initialize the library store with Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Name of the users table

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized LibraryStore with table: {table_name}")

    def ensure_user(self, identity: UserIdentity) -> bool:
        """
        Create the user's row on first sign-in.

        Returns:
            True if a new row was created, False if it already existed
        """
        if self._get_user(identity.uid) is not None:
            return False

        record = {
            "uid": identity.uid,
            "display_name": identity.display_name,
            "email": identity.email,
            "photo_url": identity.photo_url,
            "created_at": _now().isoformat(),
            READING_LIST: {},
            LISTEN_LIST: {}
        }
        self._execute(
            lambda: self.client.table(self.table_name).insert(record).execute(),
            f"create user {identity.uid}"
        )
        logger.info(f"Created library for user {identity.uid}", extra={"uid": identity.uid})
        return True

    # Reading list

    def get_reading_list(self, uid: str) -> List[ReadingListEntry]:
        """Saved books, newest first; entries without a title are skipped."""
        entries = [
            _reading_entry(book_id, data)
            for book_id, data in self._get_list(uid, READING_LIST).items()
            if data and data.get("title")
        ]
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        entries.sort(key=lambda entry: entry.added_at or oldest, reverse=True)
        return entries

    def get_reading_entry(self, uid: str, book_id: str) -> Optional[ReadingListEntry]:
        data = self._get_list(uid, READING_LIST).get(str(book_id))
        return _reading_entry(str(book_id), data) if data else None

    def is_in_reading_list(self, uid: str, book_id: str) -> bool:
        return str(book_id) in self._get_list(uid, READING_LIST)

    def add_to_reading_list(self, uid: str, book: Dict[str, Any], total_pages: int) -> ReadingListEntry:
        """Save a Gutendex book with denormalized metadata and zero progress."""
        book_id = str(book["id"])
        formats = book.get("formats") or {}
        entry = ReadingListEntry(
            id=book_id,
            title=book.get("title", ""),
            authors=book.get("authors") or [],
            cover_url=formats.get("image/jpeg"),
            bookshelves=book.get("bookshelves") or [],
            added_at=_now(),
            highest_page_reached=1,
            total_pages=total_pages,
            progress=0
        )

        entries = self._get_list(uid, READING_LIST)
        entries[book_id] = _dump_reading_entry(entry)
        self._write_list(uid, READING_LIST, entries)
        logger.info(f"Added book {book_id} to reading list", extra={"uid": uid, "book_id": book_id})
        return entry

    def remove_from_reading_list(self, uid: str, book_id: str) -> None:
        self._remove(uid, READING_LIST, str(book_id))

    def toggle_reading_list(self, uid: str, book: Dict[str, Any], total_pages: int) -> bool:
        """Add or remove a book. Returns whether it is in the list afterwards."""
        book_id = str(book["id"])
        if self.is_in_reading_list(uid, book_id):
            self.remove_from_reading_list(uid, book_id)
            return False
        self.add_to_reading_list(uid, book, total_pages)
        return True

    def save_reading_progress(self, uid: str, book_id: str, progress: ReadingProgress) -> bool:
        """
        Persist highest_page_reached and percentage for a listed book.

        Returns:
            False if the book is not in the reading list (nothing is written)
        """
        book_id = str(book_id)
        entries = self._get_list(uid, READING_LIST)
        if book_id not in entries:
            logger.info(f"Book {book_id} not in reading list, progress not saved", extra={"uid": uid})
            return False

        entries[book_id] = {
            **entries[book_id],
            "highest_page_reached": progress.highest_page_reached,
            "total_pages": progress.total_pages,
            "progress": progress_percent(progress)
        }
        self._write_list(uid, READING_LIST, entries)
        logger.info(
            f"Saved reading progress for book {book_id}: page {progress.highest_page_reached}",
            extra={"uid": uid, "book_id": book_id}
        )
        return True

    # Listen list

    def get_listen_list(self, uid: str) -> List[ListenListEntry]:
        return [
            _listen_entry(audiobook_id, data)
            for audiobook_id, data in self._get_list(uid, LISTEN_LIST).items()
            if data
        ]

    def get_listen_entry(self, uid: str, audiobook_id: str) -> Optional[ListenListEntry]:
        data = self._get_list(uid, LISTEN_LIST).get(str(audiobook_id))
        return _listen_entry(str(audiobook_id), data) if data else None

    def is_in_listen_list(self, uid: str, audiobook_id: str) -> bool:
        return str(audiobook_id) in self._get_list(uid, LISTEN_LIST)

    def add_to_listen_list(self, uid: str, audiobook: Audiobook) -> ListenListEntry:
        entry = ListenListEntry(
            id=str(audiobook.id),
            title=audiobook.title,
            authors=audiobook.authors
        )
        entries = self._get_list(uid, LISTEN_LIST)
        entries[entry.id] = {
            "id": entry.id,
            "title": entry.title,
            "authors": entry.authors,
            "current_track_index": 0,
            "current_time": 0
        }
        self._write_list(uid, LISTEN_LIST, entries)
        logger.info(f"Added audiobook {entry.id} to listen list", extra={"uid": uid, "book_id": entry.id})
        return entry

    def remove_from_listen_list(self, uid: str, audiobook_id: str) -> None:
        self._remove(uid, LISTEN_LIST, str(audiobook_id))

    def toggle_listen_list(self, uid: str, audiobook: Audiobook) -> bool:
        if self.is_in_listen_list(uid, audiobook.id):
            self.remove_from_listen_list(uid, audiobook.id)
            return False
        self.add_to_listen_list(uid, audiobook)
        return True

    def save_listening_progress(self, uid: str, audiobook_id: str, progress: ListeningProgress) -> bool:
        """Persist chapter and playback time; False if the audiobook is not listed."""
        audiobook_id = str(audiobook_id)
        entries = self._get_list(uid, LISTEN_LIST)
        if audiobook_id not in entries:
            logger.info(f"Audiobook {audiobook_id} not in listen list, progress not saved", extra={"uid": uid})
            return False

        entries[audiobook_id] = {
            **entries[audiobook_id],
            "current_track_index": progress.current_track_index,
            "current_time": progress.current_time
        }
        self._write_list(uid, LISTEN_LIST, entries)
        return True

    # Storage helpers

    def _get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        result = self._execute(
            lambda: self.client.table(self.table_name).select("*").eq("uid", uid).execute(),
            f"fetch user {uid}"
        )
        return result.data[0] if result.data else None

    def _get_list(self, uid: str, column: str) -> Dict[str, Any]:
        user = self._get_user(uid)
        if not user:
            return {}
        return dict(user.get(column) or {})

    def _write_list(self, uid: str, column: str, entries: Dict[str, Any]) -> None:
        # Upsert on uid only touches the given column of an existing row
        self._execute(
            lambda: self.client.table(self.table_name).upsert(
                {"uid": uid, column: entries},
                on_conflict="uid"
            ).execute(),
            f"update {column} for user {uid}"
        )

    def _remove(self, uid: str, column: str, item_id: str) -> None:
        entries = self._get_list(uid, column)
        if item_id not in entries:
            return
        del entries[item_id]
        self._write_list(uid, column, entries)
        logger.info(f"Removed {item_id} from {column}", extra={"uid": uid, "book_id": item_id})

    def _execute(self, operation, description: str):
        try:
            return operation()
        except Exception as e:
            error_msg = f"Failed to {description}: {str(e)}"
            logger.error(error_msg)
            raise LibraryStoreError(error_msg) from e


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp from Supabase; tolerates a trailing Z."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable timestamp in library entry: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _reading_entry(book_id: str, data: Dict[str, Any]) -> ReadingListEntry:
    return ReadingListEntry(
        id=book_id,
        title=data.get("title", ""),
        authors=data.get("authors") or [],
        cover_url=data.get("cover_url"),
        bookshelves=data.get("bookshelves") or [],
        added_at=_parse_timestamp(data.get("added_at")),
        highest_page_reached=data.get("highest_page_reached", 1),
        total_pages=data.get("total_pages", 0),
        progress=data.get("progress", 0)
    )


def _dump_reading_entry(entry: ReadingListEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "title": entry.title,
        "authors": entry.authors,
        "cover_url": entry.cover_url,
        "bookshelves": entry.bookshelves,
        "added_at": entry.added_at.isoformat() if entry.added_at else None,
        "highest_page_reached": entry.highest_page_reached,
        "total_pages": entry.total_pages,
        "progress": entry.progress
    }


def _listen_entry(audiobook_id: str, data: Dict[str, Any]) -> ListenListEntry:
    return ListenListEntry(
        id=audiobook_id,
        title=data.get("title", ""),
        authors=data.get("authors") or [],
        current_track_index=data.get("current_track_index", 0),
        current_time=data.get("current_time", 0.0)
    )

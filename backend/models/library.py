"""User library data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class UserIdentity:
    """Signed-in user as supplied by the identity provider."""
    uid: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = None


@dataclass
class ReadingListEntry:
    """A book saved to a user's reading list, with denormalized metadata."""
    id: str
    title: str
    authors: List[Dict[str, Any]] = field(default_factory=list)
    cover_url: Optional[str] = None
    bookshelves: List[str] = field(default_factory=list)
    added_at: Optional[datetime] = None
    highest_page_reached: int = 1
    total_pages: int = 0
    progress: int = 0


@dataclass
class ListenListEntry:
    """An audiobook saved to a user's listen list."""
    id: str
    title: str
    authors: List[Dict[str, Any]] = field(default_factory=list)
    current_track_index: int = 0
    current_time: float = 0.0

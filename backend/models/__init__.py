"""Data models for ShelfScope backend."""
from .relay import BodyKind, RelayRequest, RelayMessages, RelayResponse
from .reading import PaginatedDocument, ReadingProgress
from .listening import AudioSection, Audiobook, ListeningProgress
from .library import UserIdentity, ReadingListEntry, ListenListEntry

__all__ = [
    "BodyKind",
    "RelayRequest",
    "RelayMessages",
    "RelayResponse",
    "PaginatedDocument",
    "ReadingProgress",
    "AudioSection",
    "Audiobook",
    "ListeningProgress",
    "UserIdentity",
    "ReadingListEntry",
    "ListenListEntry",
]

"""Audiobook listening data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class AudioSection:
    """A single chapter of an audiobook."""
    section_id: str
    title: str
    listen_url: str
    duration: Optional[float] = None  # seconds, when the catalog reports it


@dataclass
class Audiobook:
    """Audiobook descriptor with ordered sections."""
    id: str
    title: str
    description: str = ""
    authors: List[Dict[str, Any]] = field(default_factory=list)
    sections: List[AudioSection] = field(default_factory=list)


@dataclass(frozen=True)
class ListeningProgress:
    """Saved playback position: which chapter and how far into it."""
    current_track_index: int = 0
    current_time: float = 0.0

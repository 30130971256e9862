"""Audiobook playback position helpers."""
import math
import logging
from typing import Optional, Protocol

from models.listening import Audiobook, AudioSection, ListeningProgress

logger = logging.getLogger(__name__)


class Seekable(Protocol):
    """Anything that can report its current playback position in seconds."""

    def current_position(self) -> float:
        ...


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def _known(value: Optional[float]) -> bool:
    return _finite(value) and value > 0


def format_time(seconds: Optional[float]) -> str:
    """Format seconds as m:ss; unknown, infinite or negative values render as 0:00."""
    if not _finite(seconds) or seconds < 0:
        return "0:00"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def playback_percent(current_time: float, duration: Optional[float]) -> float:
    """Position as a 0-100 percentage of duration, 0 when either value is unknown."""
    if not _known(duration) or not _finite(current_time):
        return 0.0
    return min(max(current_time / duration * 100, 0.0), 100.0)


def seek_time(percent: float, duration: Optional[float]) -> float:
    """Inverse of playback_percent: map a 0-100 slider value to seconds."""
    if not _known(duration) or not _finite(percent):
        return 0.0
    percent = min(max(percent, 0.0), 100.0)
    return percent / 100 * duration


class ListeningSession:
    """Chapter selection and on-demand position snapshots for one audiobook."""

    def __init__(self, audiobook: Audiobook, progress: Optional[ListeningProgress] = None):
        self.audiobook = audiobook
        self.progress = progress or ListeningProgress()
        if self.audiobook.sections:
            self.progress = self._clamped(self.progress.current_track_index, self.progress.current_time)

    @property
    def current_section(self) -> Optional[AudioSection]:
        if not self.audiobook.sections:
            return None
        return self.audiobook.sections[self.progress.current_track_index]

    def select_track(self, index: int) -> ListeningProgress:
        """Switch chapter; playback restarts at 0."""
        self.progress = self._clamped(index, 0.0)
        logger.debug(
            f"Audiobook {self.audiobook.id}: selected track {self.progress.current_track_index}"
        )
        return self.progress

    def snapshot(self, player: Seekable) -> ListeningProgress:
        """Read the player's position now and record it against the current track."""
        position = player.current_position()
        if not _finite(position) or position < 0:
            position = 0.0
        self.progress = ListeningProgress(
            current_track_index=self.progress.current_track_index,
            current_time=float(position)
        )
        return self.progress

    def _clamped(self, index: int, current_time: float) -> ListeningProgress:
        last = max(len(self.audiobook.sections) - 1, 0)
        return ListeningProgress(
            current_track_index=min(max(index, 0), last),
            current_time=current_time
        )

# File: medley/features/playback/domain/models.py
from dataclasses import dataclass
from typing import Optional

from medley.core.enums import PlaybackStatus
from medley.core.errors import SegmentLoadError


# --- Decoder events ---

@dataclass(frozen=True)
class DecoderEvent:
    """Marker base type for decoder-originated events."""
    pass


@dataclass(frozen=True)
class PositionChanged(DecoderEvent):
    """Periodic position report, in seconds from the start of the segment."""
    position: float


@dataclass(frozen=True)
class PlaybackEnded(DecoderEvent):
    """The segment played through to its natural end."""
    pass


@dataclass(frozen=True)
class DecoderFailed(DecoderEvent):
    """Non-recoverable runtime failure of the decoder."""
    message: str


# --- Transport ---

@dataclass(frozen=True)
class TransportSnapshot:
    """
    Read-only view of the player state handed to subscribers.
    """
    active_segment_index: int = -1
    global_time: float = 0.0
    status: PlaybackStatus = PlaybackStatus.IDLE
    last_error: Optional[SegmentLoadError] = None

    @property
    def is_playing(self) -> bool:
        return self.status == PlaybackStatus.PLAYING

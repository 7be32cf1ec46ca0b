from enum import Enum, unique

@unique
class PlaybackStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    ERROR = "error"

@unique
class PlaybackIntent(str, Enum):
    PLAY = "play"
    PAUSE = "pause"

@unique
class ProbeOutcome(str, Enum):
    RESOLVED = "resolved"   # Probed successfully
    CACHED = "cached"       # Already known (registry or duration cache)
    FALLBACK = "fallback"   # Probe failed or impossible; declared duration (or 0) used

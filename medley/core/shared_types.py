from dataclasses import dataclass

@dataclass(frozen=True)
class TimeSpan:
    """
    Value Object representing a span on the global timeline.
    Closed-open [start, end); a zero-length span is allowed (unknown duration).
    """
    start_seconds: float
    end_seconds: float

    def __post_init__(self):
        if self.start_seconds < 0 or self.end_seconds < 0:
            raise ValueError("Timestamps cannot be negative.")
        if self.end_seconds < self.start_seconds:
            raise ValueError(f"End time ({self.end_seconds}) must not precede start time ({self.start_seconds}).")

    @property
    def duration(self) -> float:
        return self.end_seconds - self.start_seconds

    def contains(self, seconds: float) -> bool:
        return self.start_seconds <= seconds < self.end_seconds


def format_timestamp(seconds: float) -> str:
    """Converts 125.5 -> 2:05 and 3725 -> 1:02:05"""
    total = max(0, int(seconds))
    m, s = divmod(total, 60)
    h, m = divmod(m, 60)
    if h:
        return "{:d}:{:02d}:{:02d}".format(h, m, s)
    return "{:d}:{:02d}".format(m, s)

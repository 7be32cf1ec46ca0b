# File: medley/features/segment_registry/domain/models.py
from dataclasses import dataclass
from typing import Optional, Tuple

from medley.core.shared_types import TimeSpan


@dataclass(frozen=True)
class Segment:
    """
    One independently hosted media file that is part of a longer recording.

    resolved_duration is authoritative once set and is only ever set once:
    SegmentRegistry.update_resolved_duration swaps in a resolved copy.
    """
    id: str
    source_url: Optional[str] = None
    declared_duration: Optional[float] = None
    resolved_duration: Optional[float] = None

    def __post_init__(self):
        if not str(self.id).strip():
            raise ValueError("Segment id cannot be empty.")
        if self.declared_duration is not None and self.declared_duration < 0:
            raise ValueError(f"Declared duration cannot be negative: {self.declared_duration}")
        if self.resolved_duration is not None and self.resolved_duration <= 0:
            raise ValueError(f"Resolved duration must be positive: {self.resolved_duration}")

    @property
    def effective_duration(self) -> float:
        """Resolved if known, else declared, else 0."""
        if self.resolved_duration is not None:
            return self.resolved_duration
        if self.declared_duration:
            return self.declared_duration
        return 0.0


@dataclass(frozen=True)
class TimelineEntry:
    segment: Segment
    span: TimeSpan

    @property
    def start_offset(self) -> float:
        return self.span.start_seconds

    @property
    def end_offset(self) -> float:
        return self.span.end_seconds

    @property
    def duration(self) -> float:
        return self.span.duration


@dataclass(frozen=True)
class Timeline:
    """
    Derived mapping of segments onto one continuous time axis.
    Entries partition [0, total_duration]; entry i starts where entry i-1 ends.
    """
    entries: Tuple[TimelineEntry, ...]

    @property
    def total_duration(self) -> float:
        return self.entries[-1].end_offset if self.entries else 0.0

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> TimelineEntry:
        return self.entries[index]

    @classmethod
    def from_segments(cls, segments) -> "Timeline":
        entries = []
        cursor = 0.0
        for segment in segments:
            end = cursor + segment.effective_duration
            entries.append(TimelineEntry(segment=segment, span=TimeSpan(cursor, end)))
            cursor = end
        return cls(entries=tuple(entries))

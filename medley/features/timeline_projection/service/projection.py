# File: medley/features/timeline_projection/service/projection.py
"""
Pure mapping between global time and (segment, intra-segment time).

Both the seek logic and the auto-advance logic go through these functions so
boundary ties are resolved the same way everywhere: a time equal to a segment
boundary belongs to the later segment, except total_duration which belongs to
the end of the last segment.
"""
from bisect import bisect_right
from typing import List

from medley.features.segment_registry.domain.models import Timeline
from ..domain.models import Position


def locate(timeline: Timeline, global_time: float) -> Position:
    """
    Maps a global time to the segment that owns it.

    Raises:
        ValueError: If the timeline is empty or global_time is outside [0, total_duration].
    """
    if len(timeline) == 0:
        raise ValueError("Cannot locate a time on an empty timeline.")
    total = timeline.total_duration
    if global_time < 0 or global_time > total:
        raise ValueError(f"Time {global_time} is outside the timeline [0, {total}].")

    starts = [entry.start_offset for entry in timeline.entries]
    # Last segment whose start <= t; zero-length segments lose ties to their successor
    index = bisect_right(starts, global_time) - 1
    index = min(max(index, 0), len(timeline) - 1)

    entry = timeline[index]
    intra = min(global_time - entry.start_offset, entry.duration)
    return Position(segment_index=index, intra_time=max(0.0, intra))


def boundary_of(timeline: Timeline, segment_index: int) -> float:
    """
    Start offset of a segment. segment_index == len(timeline) yields total_duration.
    """
    if segment_index == len(timeline):
        return timeline.total_duration
    if not 0 <= segment_index < len(timeline):
        raise IndexError(f"Segment index {segment_index} out of range (0..{len(timeline)})")
    return timeline[segment_index].start_offset


def breakpoints(timeline: Timeline) -> List[float]:
    """Start offsets of every segment, for timeline markers ("jump to recording N")."""
    return [entry.start_offset for entry in timeline.entries]

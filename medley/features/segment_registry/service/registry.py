import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional

from medley.core.errors import EmptyTimelineError
from ..domain.models import Segment, Timeline

logger = logging.getLogger(__name__)

TimelineListener = Callable[[Timeline], None]


class SegmentRegistry:
    """
    Holds the ordered segment list and the derived offset table.
    No network, no media: durations arrive through update_resolved_duration().
    """

    def __init__(self, segments: Optional[Iterable[Segment]] = None):
        self._segments: List[Segment] = []
        self._by_id: Dict[str, Segment] = {}
        self._timeline: Optional[Timeline] = None
        self._listeners: List[TimelineListener] = []

        if segments is not None:
            self.register(segments)

    def register(self, segments: Iterable[Segment]) -> None:
        """
        Initializes the ordered list. Replaces any previous registration.

        Raises:
            EmptyTimelineError: If no segments are supplied.
            ValueError: If two segments share an id.
        """
        incoming = list(segments)
        if not incoming:
            raise EmptyTimelineError()

        by_id: Dict[str, Segment] = {}
        for segment in incoming:
            if segment.id in by_id:
                raise ValueError(f"Duplicate segment id: {segment.id}")
            by_id[segment.id] = segment

        self._segments = incoming
        self._by_id = by_id
        self._timeline = None
        logger.info(f"Registered {len(incoming)} segments")

    @property
    def segments(self) -> List[Segment]:
        return list(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def get(self, segment_id: str) -> Optional[Segment]:
        return self._by_id.get(segment_id)

    def update_resolved_duration(self, segment_id: str, seconds: float) -> bool:
        """
        Sets resolved_duration if it is unset and seconds > 0.
        First value wins; every other call is a no-op.

        Returns:
            True if the timeline changed.
        """
        segment = self._by_id.get(segment_id)
        if segment is None:
            logger.warning(f"Ignoring duration for unknown segment {segment_id}")
            return False
        if segment.resolved_duration is not None or not seconds or seconds <= 0:
            return False

        resolved = replace(segment, resolved_duration=float(seconds))
        self._segments[self._segments.index(segment)] = resolved
        self._by_id[segment_id] = resolved
        self._timeline = None
        logger.debug(f"Segment {segment_id} resolved to {seconds:.2f}s")

        timeline = self.get_timeline()
        for listener in list(self._listeners):
            listener(timeline)
        return True

    def get_timeline(self) -> Timeline:
        """Returns the derived Timeline, cached until the next duration update."""
        if not self._segments:
            raise EmptyTimelineError()
        if self._timeline is None:
            self._timeline = Timeline.from_segments(self._segments)
        return self._timeline

    def add_listener(self, listener: TimelineListener) -> Callable[[], None]:
        """Calls listener(timeline) after every applied duration update."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

import asyncio
import logging
from typing import AsyncIterator, Callable, Iterable, List, Optional

from medley.core.enums import PlaybackIntent, PlaybackStatus
from medley.core.logging_config import setup_logging
from medley.features.duration_resolver.data.ffprobe_adapter import FFprobeDurationProbe
from medley.features.duration_resolver.domain.interfaces import IDurationCache, IDurationProbe
from medley.features.duration_resolver.domain.models import ProgressEvent
from medley.features.duration_resolver.service.resolver import DurationResolver
from medley.features.playback.data.ffplay_adapter import FFplayDecoder
from medley.features.playback.domain.interfaces import DecoderFactory
from medley.features.playback.domain.models import TransportSnapshot
from medley.features.playback.service.engine import PlaybackEngine
from medley.features.playback.service.transport import TransportListener, TransportState
from medley.features.segment_registry.domain.models import Segment, Timeline
from medley.features.segment_registry.service.registry import SegmentRegistry
from medley.features.timeline_projection.service.projection import breakpoints

logger = logging.getLogger(__name__)


class SegmentedPlayer:
    """
    Facade for the player.
    Wires the Segment Registry, Duration Resolver, Playback Engine and Transport.
    """

    def __init__(self,
                 segments: Iterable[Segment],
                 decoder_factory: Optional[DecoderFactory] = None,
                 probe: Optional[IDurationProbe] = None,
                 cache: Optional[IDurationCache] = None):
        self.probe = probe or FFprobeDurationProbe()
        self.cache = cache
        self.decoder_factory = decoder_factory or (lambda: FFplayDecoder(probe=self.probe))

        self._resolution_task: Optional[asyncio.Task] = None
        self._build(segments)

    def _build(self, segments: Iterable[Segment]) -> None:
        # Raises EmptyTimelineError before any transport exists
        self.registry = SegmentRegistry(segments)
        self.transport = TransportState()
        self.engine = PlaybackEngine(self.registry, self.decoder_factory, self.transport)
        self.resolver = DurationResolver(self.registry, self.probe, self.cache)
        self._remove_timeline_listener = self.registry.add_listener(lambda _timeline: self.engine.refresh_position())

    # --- Read side ---

    @property
    def timeline(self) -> Timeline:
        return self.registry.get_timeline()

    @property
    def snapshot(self) -> TransportSnapshot:
        return self.transport.snapshot

    @property
    def breakpoints(self) -> List[float]:
        return breakpoints(self.timeline)

    def subscribe(self, listener: TransportListener) -> Callable[[], None]:
        return self.transport.subscribe(listener)

    # --- Duration resolution ---

    async def resolve_durations(self) -> AsyncIterator[ProgressEvent]:
        """Probes every segment; yields progress as each probe settles."""
        async for event in self.resolver.resolve_all():
            yield event

    def start_resolution(self) -> asyncio.Task:
        """
        Runs duration resolution in the background. Playback never waits on it.
        """
        if self._resolution_task is None or self._resolution_task.done():
            self._resolution_task = asyncio.create_task(self._drain_resolution())
        return self._resolution_task

    async def _drain_resolution(self) -> float:
        async for event in self.resolve_durations():
            logger.debug(f"Duration progress {event.progress:.0%} ({event.segment_id}: {event.outcome.value})")
        return self.timeline.total_duration

    # --- Transport commands ---

    async def play(self) -> None:
        await self.engine.play()

    async def pause(self) -> None:
        await self.engine.pause()

    async def toggle(self) -> None:
        if self.engine.intent == PlaybackIntent.PLAY and self.snapshot.status in (PlaybackStatus.PLAYING, PlaybackStatus.LOADING):
            await self.engine.pause()
        else:
            await self.engine.play()

    async def seek(self, seconds: float) -> None:
        await self.engine.seek(seconds)

    async def skip_to_segment(self, index: int) -> None:
        await self.engine.skip_to_segment(index)

    async def next_segment(self) -> None:
        await self.engine.next_segment()

    async def previous_segment(self) -> None:
        await self.engine.previous_segment()

    async def wait_for_transition(self) -> None:
        await self.engine.wait_for_transition()

    # --- Lifecycle ---

    def reset(self, segments: Iterable[Segment]) -> None:
        """Re-supplying segments tears the current player down and starts over."""
        self.destroy()
        self._build(segments)
        logger.info(f"Player reset with {len(self.registry)} segments")

    def destroy(self) -> None:
        if self._resolution_task is not None and not self._resolution_task.done():
            self._resolution_task.cancel()
        self._resolution_task = None
        self._remove_timeline_listener()
        self.engine.destroy()


async def play_recording_session(sources: List[str],
                                 declared_durations: Optional[List[Optional[float]]] = None,
                                 cache: Optional[IDurationCache] = None,
                                 configure_logging: bool = True,
                                 decoder_factory: Optional[DecoderFactory] = None,
                                 probe: Optional[IDurationProbe] = None) -> TransportSnapshot:
    """
    Standalone API: plays a list of recordings back to back through ffplay.
    Resolves durations first, then plays until the end of the timeline or an error.
    """
    if configure_logging:
        setup_logging()

    declared = declared_durations or [None] * len(sources)
    segments = [
        Segment(id=f"segment-{i + 1}", source_url=url, declared_duration=duration)
        for i, (url, duration) in enumerate(zip(sources, declared))
    ]

    player = SegmentedPlayer(segments, decoder_factory=decoder_factory, probe=probe, cache=cache)
    finished = asyncio.Event()

    def on_change(snapshot: TransportSnapshot):
        if snapshot.status in (PlaybackStatus.ENDED, PlaybackStatus.ERROR):
            finished.set()

    player.subscribe(on_change)

    try:
        total = await player.start_resolution()
        logger.info(f"Playing {len(segments)} recordings ({total:.2f}s total)")
        await player.play()
        if player.snapshot.status not in (PlaybackStatus.ENDED, PlaybackStatus.ERROR):
            await finished.wait()
        return player.snapshot
    finally:
        player.destroy()

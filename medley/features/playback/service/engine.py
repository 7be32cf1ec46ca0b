# File: medley/features/playback/service/engine.py
import asyncio
import logging
from functools import partial
from typing import Optional, Tuple

from medley.core.enums import PlaybackIntent, PlaybackStatus
from medley.core.errors import SegmentLoadError, StaleRequestDiscarded
from medley.features.segment_registry.service.registry import SegmentRegistry
from medley.features.timeline_projection.service.projection import boundary_of, locate
from ..domain.interfaces import DecoderFactory, IDecoder
from ..domain.models import DecoderEvent, DecoderFailed, PlaybackEnded, PositionChanged, TransportSnapshot
from .transport import TransportState

logger = logging.getLogger(__name__)


class PlaybackEngine:
    """
    Plays a segmented timeline as one continuous recording.

    Owns exactly one decoder at a time and is the only writer of TransportState.
    Every asynchronous step is guarded by a monotonic request token: when a newer
    play/seek/advance supersedes an in-flight load, the stale load is discarded.
    """

    def __init__(self,
                 registry: SegmentRegistry,
                 decoder_factory: DecoderFactory,
                 transport: Optional[TransportState] = None):
        self.registry = registry
        self.decoder_factory = decoder_factory
        self.transport = transport or TransportState()

        self._decoder: Optional[IDecoder] = None
        self._intent = PlaybackIntent.PAUSE
        self._request_token = 0
        self._transition_task: Optional[asyncio.Task] = None
        self._destroyed = False

    # --- Read side ---

    @property
    def snapshot(self) -> TransportSnapshot:
        return self.transport.snapshot

    @property
    def status(self) -> PlaybackStatus:
        return self.transport.snapshot.status

    @property
    def intent(self) -> PlaybackIntent:
        return self._intent

    @property
    def decoder(self) -> Optional[IDecoder]:
        return self._decoder

    # --- Commands ---

    async def play(self) -> None:
        if self._destroyed:
            return

        status = self.status
        self._intent = PlaybackIntent.PLAY

        if status in (PlaybackStatus.PLAYING, PlaybackStatus.LOADING):
            # A pending load picks the new intent up when it settles
            return

        if self._decoder is None:
            # idle, or retrying after an error
            index, offset = self._resume_point()
            token = self._next_token()
            await self._load_segment(index, offset, self.snapshot.global_time, token)
            return

        if status == PlaybackStatus.ENDED:
            # Stay at the end: resume from the final segment's last frame, no rewind
            logger.info("Play requested after end of timeline; resuming from the last frame")

        decoder = self._decoder
        token = self._request_token
        index = self.snapshot.active_segment_index
        try:
            await decoder.play()
        except Exception as e:
            if self._is_current(token, decoder):
                self._fail(index, e)
            return

        if self._is_current(token, decoder):
            self.transport.commit(status=PlaybackStatus.PLAYING)

    async def pause(self) -> None:
        if self._destroyed:
            return

        status = self.status
        if status in (PlaybackStatus.IDLE, PlaybackStatus.ERROR, PlaybackStatus.ENDED):
            return

        self._intent = PlaybackIntent.PAUSE
        if status != PlaybackStatus.PLAYING:
            # loading: honoured when the load settles; paused: nothing to do
            return

        decoder = self._decoder
        token = self._request_token
        index = self.snapshot.active_segment_index
        try:
            await decoder.pause()
        except Exception as e:
            if self._is_current(token, decoder):
                self._fail(index, e)
            return

        if self._is_current(token, decoder):
            self.transport.commit(
                status=PlaybackStatus.PAUSED,
                global_time=self._project(index, decoder.position)
            )

    async def seek(self, seconds: float) -> None:
        """
        Moves to a global time, switching segments if needed.
        Clamps to [0, total_duration]; preserves the play/pause intent.
        """
        if self._destroyed:
            return

        timeline = self.registry.get_timeline()
        target = min(max(float(seconds), 0.0), timeline.total_duration)
        position = locate(timeline, target)
        snapshot = self.snapshot
        token = self._next_token()

        same_segment = (
            self._decoder is not None
            and snapshot.status not in (PlaybackStatus.LOADING, PlaybackStatus.ERROR)
            and position.segment_index == snapshot.active_segment_index
        )

        if not same_segment:
            logger.debug(f"Seek to {target:.2f}s switches to segment #{position.segment_index}")
            await self._load_segment(position.segment_index, position.intra_time, target, token)
            return

        decoder = self._decoder
        try:
            await decoder.seek(position.intra_time)
        except Exception as e:
            if self._is_current(token, decoder):
                self._fail(position.segment_index, e)
            return

        if not self._is_current(token, decoder):
            return

        changes = {"global_time": target}
        if snapshot.status == PlaybackStatus.ENDED:
            changes["status"] = PlaybackStatus.PAUSED
        self.transport.commit(**changes)

    async def skip_to_segment(self, index: int) -> None:
        """Jumps to the start of a segment, keeping the play/pause intent."""
        if self._destroyed:
            return
        timeline = self.registry.get_timeline()
        if not 0 <= index < len(timeline):
            raise IndexError(f"Segment index {index} out of range (0..{len(timeline) - 1})")

        token = self._next_token()
        await self._load_segment(index, 0.0, boundary_of(timeline, index), token)

    async def next_segment(self) -> None:
        current = max(self.snapshot.active_segment_index, 0)
        if current + 1 < len(self.registry):
            await self.skip_to_segment(current + 1)

    async def previous_segment(self) -> None:
        current = self.snapshot.active_segment_index
        if current > 0:
            await self.skip_to_segment(current - 1)

    def refresh_position(self) -> None:
        """
        Re-projects global_time after the timeline changed (late duration
        resolution). The decoder is left untouched so playback is not disturbed.
        """
        if self._destroyed:
            return
        snapshot = self.snapshot
        if snapshot.status == PlaybackStatus.ENDED:
            self.transport.commit(global_time=self.registry.get_timeline().total_duration)
        elif self._decoder is not None and snapshot.status in (PlaybackStatus.PLAYING, PlaybackStatus.PAUSED):
            self.transport.commit(global_time=self._project(snapshot.active_segment_index, self._decoder.position))

    async def wait_for_transition(self) -> None:
        """Waits for an in-flight automatic segment transition, if any."""
        task = self._transition_task
        if task is not None and not task.done():
            await asyncio.shield(task)

    def destroy(self) -> None:
        """
        Tears the engine down synchronously: detaches the decoder, abandons
        in-flight loads and closes the transport.
        """
        if self._destroyed:
            return
        self._destroyed = True
        self._next_token()
        self._release_decoder()

        if self._transition_task is not None and not self._transition_task.done():
            self._transition_task.cancel()
        self._transition_task = None

        self.transport.close()
        logger.info("Playback engine destroyed")

    # --- Internals ---

    def _next_token(self) -> int:
        self._request_token += 1
        return self._request_token

    def _is_current(self, token: int, decoder: Optional[IDecoder] = None) -> bool:
        if self._destroyed or token != self._request_token:
            return False
        return decoder is None or decoder is self._decoder

    def _ensure_current(self, token: int, decoder: IDecoder) -> None:
        if not self._is_current(token, decoder):
            raise StaleRequestDiscarded(token)

    def _resume_point(self) -> Tuple[int, float]:
        """Where play() should (re)load from: the active segment, or the very start."""
        timeline = self.registry.get_timeline()
        snapshot = self.snapshot
        if snapshot.active_segment_index < 0:
            # Idle: the first segment, even when leading durations are still unknown
            return 0, 0.0

        index = snapshot.active_segment_index
        offset = max(0.0, snapshot.global_time - boundary_of(timeline, index))
        return index, offset

    def _project(self, index: int, intra_time: float) -> float:
        entry = self.registry.get_timeline()[index]
        if entry.duration > 0:
            intra_time = min(intra_time, entry.duration)
        return entry.start_offset + max(0.0, intra_time)

    def _attach_decoder(self) -> IDecoder:
        # Exactly one decoder: the old one is fully released before the new one exists
        self._release_decoder()
        decoder = self.decoder_factory()
        decoder.set_event_handler(partial(self._on_decoder_event, decoder))
        self._decoder = decoder
        return decoder

    def _release_decoder(self) -> None:
        decoder = self._decoder
        if decoder is None:
            return
        self._decoder = None
        decoder.set_event_handler(None)
        decoder.release()

    async def _load_segment(self, index: int, offset: float, global_time: float, token: int) -> None:
        """
        Loads segment `index`, positions it at `offset` and applies the intent.
        Any failure lands in Transport as SegmentLoadError; a superseded request
        is discarded silently.
        """
        segment = self.registry.get_timeline()[index].segment
        decoder = self._attach_decoder()
        self.transport.commit(
            status=PlaybackStatus.LOADING,
            active_segment_index=index,
            global_time=global_time,
            last_error=None
        )
        logger.info(f"Loading segment #{index} ({segment.id}) at {offset:.2f}s")

        try:
            if not segment.source_url:
                raise SegmentLoadError(index, segment.id, "segment has no source URL")

            await decoder.load(segment.source_url)
            self._ensure_current(token, decoder)

            if offset > 0:
                await decoder.seek(offset)
                self._ensure_current(token, decoder)

            # The intent may flip while we await the decoder; settle on the latest one
            started = False
            while (self._intent == PlaybackIntent.PLAY) != started:
                if started:
                    await decoder.pause()
                else:
                    await decoder.play()
                self._ensure_current(token, decoder)
                started = not started

        except StaleRequestDiscarded:
            logger.debug(f"Discarded superseded load of segment #{index} (request {token})")
            return
        except Exception as e:
            if not self._is_current(token, decoder):
                logger.debug(f"Ignoring failure of superseded load of segment #{index}: {e}")
                return
            self._fail(index, e)
            return

        # Offsets may have moved while loading (late duration resolution)
        self.transport.commit(
            status=PlaybackStatus.PLAYING if started else PlaybackStatus.PAUSED,
            global_time=self._project(index, offset)
        )

    def _fail(self, index: int, cause: Exception) -> None:
        if isinstance(cause, SegmentLoadError):
            error = cause
        else:
            segment = self.registry.get_timeline()[index].segment
            error = SegmentLoadError(index, segment.id, str(cause) or type(cause).__name__)

        logger.error(f"Playback error: {error}")
        self._release_decoder()
        # global_time is preserved so the caller can retry or skip
        self.transport.commit(status=PlaybackStatus.ERROR, active_segment_index=index, last_error=error)

    async def _on_decoder_event(self, decoder: IDecoder, event: DecoderEvent) -> None:
        if self._destroyed or decoder is not self._decoder:
            logger.debug(f"Ignoring {type(event).__name__} from a released decoder")
            return

        snapshot = self.snapshot

        if isinstance(event, PositionChanged):
            if snapshot.status == PlaybackStatus.PLAYING:
                self.transport.commit(global_time=self._project(snapshot.active_segment_index, event.position))

        elif isinstance(event, PlaybackEnded):
            if snapshot.status != PlaybackStatus.PLAYING:
                return
            # Run the hand-off outside the decoder's callback: it releases this decoder
            self._transition_task = asyncio.create_task(self._advance(self._request_token))

        elif isinstance(event, DecoderFailed):
            self._fail(snapshot.active_segment_index, RuntimeError(event.message))

    async def _advance(self, token: int) -> None:
        """Natural end of the active segment: hand off to the next one or finish."""
        if not self._is_current(token):
            return

        timeline = self.registry.get_timeline()
        next_index = self.snapshot.active_segment_index + 1

        if next_index >= len(timeline):
            self._intent = PlaybackIntent.PAUSE
            self.transport.commit(status=PlaybackStatus.ENDED, global_time=timeline.total_duration)
            logger.info(f"Reached end of timeline ({timeline.total_duration:.2f}s)")
            return

        logger.info(f"Segment #{next_index - 1} ended; advancing to segment #{next_index}")
        await self._load_segment(next_index, 0.0, boundary_of(timeline, next_index), self._next_token())

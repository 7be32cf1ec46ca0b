import asyncio
import logging
import signal
import time
from typing import Optional

from medley.core.config.settings import settings
from medley.core.errors import ProbeFailure
from medley.features.duration_resolver.data.ffprobe_adapter import FFprobeDurationProbe
from medley.features.duration_resolver.domain.interfaces import IDurationProbe
from ..domain.interfaces import DecoderEventHandler, IDecoder
from ..domain.models import DecoderFailed, PlaybackEnded, PositionChanged

logger = logging.getLogger(__name__)


class FFplayDecoder(IDecoder):
    """
    Concrete implementation of IDecoder driving a headless ffplay process.

    - load(): metadata probe only (nothing audible).
    - play()/pause(): spawn / SIGCONT and SIGSTOP (POSIX only).
    - seek(): ffplay cannot be seeked from outside, so the process is restarted at the new offset.
    - Natural exit (code 0) reports PlaybackEnded; any other exit reports DecoderFailed.
    """

    def __init__(self, probe: Optional[IDurationProbe] = None, binary: Optional[str] = None,
                 update_interval: Optional[float] = None):
        self.probe = probe or FFprobeDurationProbe()
        self.binary = binary or settings.FFPLAY_BINARY
        self.update_interval = update_interval or settings.POSITION_UPDATE_INTERVAL

        self._handler: Optional[DecoderEventHandler] = None
        self._source_url: Optional[str] = None
        self._duration: Optional[float] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._watcher: Optional[asyncio.Task] = None
        self._ticker: Optional[asyncio.Task] = None

        # Position bookkeeping: offset at the last (re)start/pause + wall clock since resume
        self._offset = 0.0
        self._resumed_at: Optional[float] = None

    def set_event_handler(self, handler: Optional[DecoderEventHandler]) -> None:
        self._handler = handler

    @property
    def position(self) -> float:
        position = self._offset
        if self._resumed_at is not None:
            position += time.monotonic() - self._resumed_at
        if self._duration:
            position = min(position, self._duration)
        return position

    async def load(self, source_url: str) -> None:
        try:
            self._duration = await self.probe.probe(source_url)
        except ProbeFailure as e:
            raise RuntimeError(f"Cannot open media: {e.reason}") from e
        self._source_url = source_url
        self._offset = 0.0
        logger.debug(f"ffplay decoder ready: {source_url} ({self._duration:.2f}s)")

    async def play(self) -> None:
        if self._source_url is None:
            raise RuntimeError("play() called before load()")
        if self._resumed_at is not None:
            return

        if self._process is not None and self._process.returncode is None:
            self._process.send_signal(signal.SIGCONT)
        else:
            if self._duration and self._offset >= self._duration:
                # Parked on the last frame: report the end after the caller sees playback start
                self._watcher = asyncio.create_task(self._emit(PlaybackEnded()))
                return
            await self._spawn()

        self._resumed_at = time.monotonic()
        self._start_ticker()

    async def pause(self) -> None:
        if self._resumed_at is None:
            return
        self._offset = self.position
        self._resumed_at = None
        self._stop_ticker()
        if self._process is not None and self._process.returncode is None:
            self._process.send_signal(signal.SIGSTOP)

    async def seek(self, seconds: float) -> None:
        was_running = self._resumed_at is not None
        self._terminate()
        self._offset = max(0.0, seconds)
        self._resumed_at = None
        if was_running:
            await self.play()

    def release(self) -> None:
        self._handler = None
        self._terminate()
        self._resumed_at = None

    # --- Internals ---

    async def _spawn(self) -> None:
        # -nodisp: No video window
        # -autoexit: Exit with code 0 at end of stream (our "ended" signal)
        # -ss: Start offset within the segment
        cmd = [
            self.binary,
            "-nodisp",
            "-autoexit",
            "-loglevel", "error",
            "-ss", f"{self._offset:.3f}",
            self._source_url
        ]

        logger.debug(f"Executing ffplay: {' '.join(cmd)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise RuntimeError(f"ffplay failed to start: {e}") from e

        self._watcher = asyncio.create_task(self._watch(self._process))

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        _, stderr = await process.communicate()
        if process is not self._process:
            # Replaced by a seek or released
            return

        self._process = None
        self._stop_ticker()

        if process.returncode == 0:
            self._offset = self._duration or self.position
            self._resumed_at = None
            await self._emit(PlaybackEnded())
        else:
            self._offset = self.position
            self._resumed_at = None
            message = stderr.decode(errors="replace").strip() if stderr else ""
            logger.error(f"ffplay exited with code {process.returncode}: {message}")
            await self._emit(DecoderFailed(message or f"ffplay exited with code {process.returncode}"))

    def _terminate(self) -> None:
        self._stop_ticker()
        process, self._process = self._process, None
        watcher, self._watcher = self._watcher, None

        if watcher is not None and watcher is not asyncio.current_task() and not watcher.done():
            watcher.cancel()
        if process is not None and process.returncode is None:
            # SIGKILL also reaches a SIGSTOPped process
            process.kill()

    def _start_ticker(self) -> None:
        self._stop_ticker()
        self._ticker = asyncio.create_task(self._tick())

    def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None and ticker is not asyncio.current_task() and not ticker.done():
            ticker.cancel()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.update_interval)
            await self._emit(PositionChanged(self.position))

    async def _emit(self, event) -> None:
        handler = self._handler
        if handler is not None:
            await handler(event)

import asyncio
import math
import subprocess
import logging
from typing import Optional
from medley.core.config.settings import settings
from medley.core.errors import ProbeFailure
from ..domain.interfaces import IDurationProbe

logger = logging.getLogger(__name__)

class FFprobeDurationProbe(IDurationProbe):
    """
    Concrete implementation of IDurationProbe using ffprobe.
    Reads only the container header (format=duration); nothing is decoded or played.
    """

    def __init__(self, binary: Optional[str] = None, timeout: Optional[float] = None):
        self.binary = binary or settings.FFPROBE_BINARY
        self.timeout = timeout if timeout is not None else settings.PROBE_TIMEOUT_SECONDS

    async def probe(self, source_url: str) -> float:
        # ffprobe blocks; keep the event loop free so probes run side by side
        return await asyncio.to_thread(self.probe_sync, source_url)

    def probe_sync(self, source_url: str) -> float:
        # -v error: Only print real errors
        # -show_entries format=duration: Container-level duration only
        # -of default=noprint_wrappers=1:nokey=1: Print the bare number
        cmd = [
            self.binary,
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            source_url
        ]

        logger.debug(f"Probing duration: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.CalledProcessError as e:
            error_message = e.stderr.strip() if e.stderr else "Unknown ffprobe error"
            raise ProbeFailure(source_url, error_message) from e
        except subprocess.TimeoutExpired as e:
            raise ProbeFailure(source_url, f"timed out after {self.timeout}s") from e
        except OSError as e:
            # Binary missing or not executable
            raise ProbeFailure(source_url, str(e)) from e

        raw = result.stdout.strip()
        try:
            duration = float(raw)
        except ValueError as e:
            # Streams without a container duration report "N/A"
            raise ProbeFailure(source_url, f"unreadable duration '{raw}'") from e

        if not math.isfinite(duration) or duration <= 0:
            raise ProbeFailure(source_url, f"invalid duration {duration}")

        return duration

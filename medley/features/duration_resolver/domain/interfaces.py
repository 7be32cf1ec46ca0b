from abc import ABC, abstractmethod
from typing import Optional


class IDurationProbe(ABC):
    """
    Contract for discovering a media file's real duration without playing it.
    Abstracts away the underlying tool (ffprobe) from the resolver.
    """

    @abstractmethod
    async def probe(self, source_url: str) -> float:
        """
        Loads only the metadata of the given source.

        Args:
            source_url: Locator of the media bytes (path or possibly signed URL).

        Returns:
            Duration in seconds.

        Raises:
            ProbeFailure: If the metadata cannot be read.
        """
        pass


class IDurationCache(ABC):
    """
    Contract for remembering probed durations across player instances.
    Keyed by segment id, which is stable across reloads (URLs are not).
    Calls may block; the resolver makes them from worker threads.
    """

    @abstractmethod
    def get(self, segment_id: str) -> Optional[float]:
        """Returns the stored duration, or None on a cache miss."""
        pass

    @abstractmethod
    def save(self, segment_id: str, source_url: Optional[str], seconds: float) -> bool:
        """
        Stores a probed duration. First value wins.

        Returns:
            True if a new record was written.
        """
        pass

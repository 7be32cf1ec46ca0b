from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from .models import DecoderEvent

DecoderEventHandler = Callable[[DecoderEvent], Awaitable[None]]


class IDecoder(ABC):
    """
    Contract for the single media-playback resource attached to the active segment.
    Abstracts away the underlying player (ffplay, a browser element, a test fake).
    """

    @abstractmethod
    def set_event_handler(self, handler: Optional[DecoderEventHandler]) -> None:
        """
        Attaches the coroutine that receives PositionChanged / PlaybackEnded /
        DecoderFailed events. None detaches it.
        """
        pass

    @abstractmethod
    async def load(self, source_url: str) -> None:
        """
        Prepares the source for playback. Returns once the decoder is ready.

        Raises:
            Exception: Any failure to open the source.
        """
        pass

    @abstractmethod
    async def play(self) -> None:
        pass

    @abstractmethod
    async def pause(self) -> None:
        pass

    @abstractmethod
    async def seek(self, seconds: float) -> None:
        """Moves to a segment-local position, keeping the play/pause state."""
        pass

    @property
    @abstractmethod
    def position(self) -> float:
        """Current segment-local position in seconds."""
        pass

    @abstractmethod
    def release(self) -> None:
        """
        Synchronously detaches the event handler and frees every resource.
        After release() the decoder must never call its handler again.
        """
        pass


DecoderFactory = Callable[[], IDecoder]

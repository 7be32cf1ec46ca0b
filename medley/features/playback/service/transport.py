import logging
from dataclasses import replace
from typing import Callable, List

from ..domain.models import TransportSnapshot

logger = logging.getLogger(__name__)

TransportListener = Callable[[TransportSnapshot], None]


class TransportState:
    """
    The externally observable playback state.

    Callers read `snapshot` or subscribe; only the PlaybackEngine commits changes.
    Changes are delivered synchronously, in the order they occurred.
    """

    def __init__(self):
        self._snapshot = TransportSnapshot()
        self._listeners: List[TransportListener] = []
        self._closed = False

    @property
    def snapshot(self) -> TransportSnapshot:
        return self._snapshot

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: TransportListener) -> Callable[[], None]:
        """
        Registers listener(snapshot) for every subsequent change.

        Returns:
            A callable that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def commit(self, **changes) -> TransportSnapshot:
        """
        Applies changes and notifies subscribers. Engine use only.
        No-op once closed or when nothing changed.
        """
        if self._closed:
            logger.debug(f"Dropping transport change after close: {changes}")
            return self._snapshot

        updated = replace(self._snapshot, **changes)
        if updated == self._snapshot:
            return self._snapshot

        self._snapshot = updated
        for listener in list(self._listeners):
            try:
                listener(updated)
            except Exception as e:
                # One broken subscriber must not starve the others
                logger.exception(f"Transport subscriber failed: {e}")
        return updated

    def close(self) -> None:
        """Detaches every subscriber; later commits are dropped."""
        self._closed = True
        self._listeners.clear()

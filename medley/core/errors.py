# File: medley/core/errors.py


class MedleyError(Exception):
    """Base class for all player errors."""


class EmptyTimelineError(MedleyError):
    """
    Raised when a player or registry is built from zero segments.
    Fatal: no Transport is created.
    """

    def __init__(self, message: str = "Cannot build a timeline from an empty segment list."):
        super().__init__(message)


class SegmentLoadError(MedleyError):
    """
    A specific segment's decoder failed to load or play.
    Recorded in Transport.last_error; never raised out of play()/seek().
    """

    def __init__(self, segment_index: int, segment_id: str, reason: str):
        self.segment_index = segment_index
        self.segment_id = segment_id
        self.reason = reason
        super().__init__(f"Segment #{segment_index} ({segment_id}) failed to load: {reason}")


class ProbeFailure(MedleyError):
    """
    A duration probe failed.
    Absorbed by the Duration Resolver, which falls back to the declared duration.
    """

    def __init__(self, source_url: str, reason: str):
        self.source_url = source_url
        self.reason = reason
        super().__init__(f"Probe failed for {source_url}: {reason}")


class StaleRequestDiscarded(MedleyError):
    """
    Internal signal: an async load was superseded by a newer request.
    Never reaches callers.
    """

    def __init__(self, token: int):
        self.token = token
        super().__init__(f"Request #{token} was superseded")

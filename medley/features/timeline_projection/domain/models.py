from dataclasses import dataclass

@dataclass(frozen=True)
class Position:
    """
    A point on the global timeline expressed in segment-local terms.
    """
    segment_index: int
    intra_time: float

    def __post_init__(self):
        if self.segment_index < 0:
            raise ValueError(f"Segment index cannot be negative: {self.segment_index}")
        if self.intra_time < 0:
            raise ValueError(f"Intra-segment time cannot be negative: {self.intra_time}")

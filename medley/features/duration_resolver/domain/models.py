from dataclasses import dataclass
from medley.core.enums import ProbeOutcome

@dataclass(frozen=True)
class ProgressEvent:
    """
    Emitted after each individual probe settles.
    progress = completed / total, monotonically non-decreasing, ends at exactly 1.0.
    """
    segment_id: str
    outcome: ProbeOutcome
    duration_seconds: float
    completed: int
    total: int

    def __post_init__(self):
        if self.total <= 0:
            raise ValueError("Progress total must be positive.")
        if not 0 <= self.completed <= self.total:
            raise ValueError(f"Completed count {self.completed} outside 0..{self.total}")

    @property
    def progress(self) -> float:
        return self.completed / self.total

    @property
    def is_final(self) -> bool:
        return self.completed == self.total

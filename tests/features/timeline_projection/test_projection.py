import random

import pytest

from medley.core.shared_types import TimeSpan, format_timestamp
from medley.features.segment_registry.domain.models import Segment, Timeline
from medley.features.timeline_projection.service.projection import boundary_of, breakpoints, locate


def _timeline(*durations):
    return Timeline.from_segments([
        Segment(id=f"seg-{i}", declared_duration=d) for i, d in enumerate(durations)
    ])


@pytest.fixture
def scenario():
    """10s, 12s, 15s -> offsets 0 / 10 / 22, total 37."""
    return _timeline(10.0, 12.0, 15.0)


# --- PARTITION ---

@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_entries_partition_the_timeline(seed):
    rng = random.Random(seed)
    durations = [rng.choice([0.0, rng.uniform(0.5, 120.0)]) for _ in range(rng.randint(1, 12))]
    timeline = _timeline(*durations)

    assert timeline[0].start_offset == 0.0
    for previous, current in zip(timeline.entries, timeline.entries[1:]):
        assert current.start_offset == previous.end_offset
    assert timeline.total_duration == pytest.approx(sum(durations))

    # Every sampled time belongs to exactly the segment locate() reports
    samples = [min(timeline.total_duration * k / 50, timeline.total_duration) for k in range(51)]
    for t in samples:
        position = locate(timeline, t)
        entry = timeline[position.segment_index]
        assert entry.start_offset <= t <= entry.end_offset
        if t < timeline.total_duration:
            assert t < entry.end_offset


@pytest.mark.parametrize("t", [0.0, 3.25, 9.999, 10.0, 17.5, 22.0, 30.0, 36.9, 37.0])
def test_locate_round_trips(scenario, t):
    position = locate(scenario, t)
    assert scenario[position.segment_index].start_offset + position.intra_time == pytest.approx(t)


# --- BOUNDARIES ---

def test_boundary_belongs_to_later_segment(scenario):
    position = locate(scenario, 22.0)
    assert position.segment_index == 2
    assert position.intra_time == 0.0

    position = locate(scenario, 10.0)
    assert position.segment_index == 1
    assert position.intra_time == 0.0


def test_total_duration_maps_to_end_of_last_segment(scenario):
    position = locate(scenario, 37.0)
    assert position.segment_index == 2
    assert position.intra_time == 15.0


def test_zero_length_segment_never_owns_a_time():
    timeline = _timeline(10.0, 0.0, 12.0)
    assert locate(timeline, 10.0).segment_index == 2
    assert locate(timeline, 9.0).segment_index == 0


def test_locate_rejects_times_outside_the_timeline(scenario):
    with pytest.raises(ValueError):
        locate(scenario, -0.1)
    with pytest.raises(ValueError):
        locate(scenario, 37.5)
    with pytest.raises(ValueError):
        locate(Timeline(entries=()), 0.0)


def test_boundary_of(scenario):
    assert boundary_of(scenario, 0) == 0.0
    assert boundary_of(scenario, 2) == 22.0
    assert boundary_of(scenario, 3) == 37.0
    with pytest.raises(IndexError):
        boundary_of(scenario, 4)
    with pytest.raises(IndexError):
        boundary_of(scenario, -1)


def test_breakpoints(scenario):
    assert breakpoints(scenario) == [0.0, 10.0, 22.0]


# --- VALUE OBJECTS ---

def test_time_span_validation():
    assert TimeSpan(2.0, 2.0).duration == 0.0
    assert TimeSpan(0.0, 5.0).contains(0.0)
    assert not TimeSpan(0.0, 5.0).contains(5.0)
    with pytest.raises(ValueError):
        TimeSpan(-1.0, 2.0)
    with pytest.raises(ValueError):
        TimeSpan(5.0, 2.0)


@pytest.mark.parametrize("seconds, expected", [
    (0, "0:00"),
    (9.9, "0:09"),
    (125.5, "2:05"),
    (3725, "1:02:05"),
    (-4, "0:00"),
])
def test_format_timestamp(seconds, expected):
    assert format_timestamp(seconds) == expected

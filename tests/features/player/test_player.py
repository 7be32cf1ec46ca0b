import asyncio

import pytest

from medley.core.enums import PlaybackStatus
from medley.core.errors import EmptyTimelineError
from medley.features.player.service.api import SegmentedPlayer, play_recording_session
from medley.features.segment_registry.domain.models import Segment


def _url(i):
    return f"https://cdn.example/recording-{i}.mp3"


def _segments(*declared):
    return [
        Segment(id=f"rec-{i}", source_url=_url(i), declared_duration=d) for i, d in enumerate(declared)
    ]


@pytest.fixture
def player(decoder_pool, fake_probe):
    """Scenario: declared [10, unknown, 15]; the middle recording is really 12s."""
    fake_probe.durations = {_url(0): 10.0, _url(1): 12.0, _url(2): 15.0}
    return SegmentedPlayer(_segments(10.0, None, 15.0), decoder_factory=decoder_pool, probe=fake_probe)


def test_empty_segment_list_is_rejected(decoder_pool, fake_probe):
    with pytest.raises(EmptyTimelineError):
        SegmentedPlayer([], decoder_factory=decoder_pool, probe=fake_probe)


def test_resolution_builds_the_full_timeline(player):
    async def _run():
        return [event async for event in player.resolve_durations()]

    events = asyncio.run(_run())

    assert events[-1].progress == 1.0
    assert player.timeline.total_duration == 37.0
    assert player.breakpoints == [0.0, 10.0, 22.0]


def test_playback_does_not_wait_for_resolution(player, decoder_pool, fake_probe):
    async def _run():
        gate = asyncio.Event()
        fake_probe.gates[_url(1)] = gate
        task = player.start_resolution()

        await player.play()
        await player.skip_to_segment(2)
        assert player.snapshot.status == PlaybackStatus.PLAYING
        assert player.snapshot.global_time == 10.0

        await decoder_pool.latest.advance_to(4.0)
        gate.set()
        return await task

    total = asyncio.run(_run())

    assert total == 37.0
    # Late resolution re-projects the position without touching the decoder
    assert player.snapshot.global_time == 26.0
    assert len(decoder_pool.created) == 2
    assert decoder_pool.latest.playing


def test_toggle(player):
    async def _run():
        statuses = []
        for _ in range(3):
            await player.toggle()
            statuses.append(player.snapshot.status)
        return statuses

    assert asyncio.run(_run()) == [PlaybackStatus.PLAYING, PlaybackStatus.PAUSED, PlaybackStatus.PLAYING]


def test_subscribers_follow_the_transport(player):
    seen = []
    player.subscribe(lambda s: seen.append(s.status))

    asyncio.run(player.play())

    assert seen == [PlaybackStatus.LOADING, PlaybackStatus.PLAYING]


def test_reset_replaces_the_timeline(player, decoder_pool):
    async def _run():
        await player.play()
        old_decoder = decoder_pool.latest

        player.reset([Segment(id="solo", source_url=_url(9), declared_duration=3.0)])
        assert old_decoder.released
        assert player.snapshot.status == PlaybackStatus.IDLE

        await player.play()

    asyncio.run(_run())

    assert player.timeline.total_duration == 3.0
    assert decoder_pool.latest.source_url == _url(9)
    assert decoder_pool.max_attached == 1


def test_destroy_cancels_resolution(player, fake_probe):
    async def _run():
        fake_probe.gates[_url(0)] = asyncio.Event()
        task = player.start_resolution()
        await asyncio.sleep(0)

        player.destroy()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_run())

    assert player.engine.transport.closed


def test_recording_session_plays_to_the_end(decoder_pool, fake_probe):
    decoder_pool.auto_finish = True
    fake_probe.durations = {_url(0): 10.0, _url(1): 12.0}

    snapshot = asyncio.run(play_recording_session(
        [_url(0), _url(1)],
        configure_logging=False,
        decoder_factory=decoder_pool,
        probe=fake_probe
    ))

    assert snapshot.status == PlaybackStatus.ENDED
    assert snapshot.global_time == 22.0
    assert decoder_pool.loads == [_url(0), _url(1)]
    assert decoder_pool.attached == []


def test_recording_session_stops_on_error(decoder_pool, fake_probe):
    decoder_pool.failing_urls.add(_url(1))
    decoder_pool.auto_finish = True
    fake_probe.durations = {_url(0): 10.0, _url(1): 12.0}

    snapshot = asyncio.run(play_recording_session(
        [_url(0), _url(1)],
        configure_logging=False,
        decoder_factory=decoder_pool,
        probe=fake_probe
    ))

    assert snapshot.status == PlaybackStatus.ERROR
    assert snapshot.last_error.segment_id == "segment-2"
    assert snapshot.global_time == 10.0

# File: tests/conftest.py

import pytest
import os
import sys
import asyncio
import sqlalchemy
from sqlalchemy import text
from sqlalchemy_utils import database_exists, create_database

# 1. Add project root to path
sys.path.append(os.getcwd())

# 2. Tests run against SQLite unless a Postgres setup is requested explicitly
os.environ.setdefault("USE_SQLITE", "true")
os.environ.setdefault("SQLITE_URL", "sqlite:///./medley_test.db")

# 3. Import Settings and the shared engine (the duration cache binds to it)
from medley.core.database.connection import engine as TEST_ENGINE, SessionLocal  # noqa: E402
from medley.core.errors import ProbeFailure  # noqa: E402
from medley.features.duration_resolver.domain.interfaces import IDurationProbe  # noqa: E402
from medley.features.playback.domain.interfaces import IDecoder  # noqa: E402
from medley.features.playback.domain.models import PlaybackEnded, PositionChanged, DecoderFailed  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def global_setup():
    """
    Runs once per test session.
    Ensures DB exists and the schema is registered.
    """
    if not database_exists(TEST_ENGINE.url):
        create_database(TEST_ENGINE.url)

    from medley.core.database.base import Base
    import medley.features.duration_resolver.data.sql_models  # noqa: F401

    Base.metadata.create_all(bind=TEST_ENGINE)

    yield


@pytest.fixture(scope="function", autouse=True)
def clean_db(global_setup):
    """
    Runs before EVERY test.
    Detects DB type and cleans tables appropriately.
    """
    from medley.core.database.base import Base

    Base.metadata.create_all(bind=TEST_ENGINE)

    with TEST_ENGINE.connect() as conn:
        trans = conn.begin()

        is_sqlite = "sqlite" in str(TEST_ENGINE.url)
        table_names = sqlalchemy.inspect(TEST_ENGINE).get_table_names()

        for table in table_names:
            if is_sqlite:
                conn.execute(text(f'DELETE FROM "{table}";'))
            else:
                conn.execute(text(f'TRUNCATE TABLE "{table}" CASCADE;'))

        trans.commit()

    yield


@pytest.fixture(scope="function")
def db_session():
    """
    Provides a session for the test to use.
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# --- Fakes ---

class FakeDecoder(IDecoder):
    """
    In-memory decoder. Tests drive it by hand: advance_to() reports a position,
    finish() reports the natural end of the media.
    """

    def __init__(self, pool: "DecoderPool"):
        self.pool = pool
        self.source_url = None
        self.playing = False
        self.released = False
        self.seeks = []
        self._position = 0.0
        self._handler = None
        self._last_handler = None

    @property
    def attached(self) -> bool:
        return self._handler is not None

    def set_event_handler(self, handler) -> None:
        self._handler = handler
        if handler is not None:
            self._last_handler = handler
        self.pool.record_attachment()

    async def load(self, source_url: str) -> None:
        self.source_url = source_url
        self.pool.loads.append(source_url)

        gate = self.pool.gates.get(source_url)
        if gate is not None:
            await gate.wait()

        if source_url in self.pool.failing_urls:
            raise RuntimeError(f"cannot open {source_url}")

    async def play(self) -> None:
        self.playing = True
        if self.pool.auto_finish:
            asyncio.create_task(self.finish())

    async def pause(self) -> None:
        self.playing = False

    async def seek(self, seconds: float) -> None:
        self.seeks.append(seconds)
        self._position = seconds

    @property
    def position(self) -> float:
        return self._position

    def release(self) -> None:
        self.released = True
        self.playing = False
        self._handler = None
        self.pool.record_attachment()

    # --- Test helpers ---

    async def emit(self, event) -> None:
        # Holds on to the handler even after release so stale callbacks can be simulated
        handler = self._handler or self._last_handler
        if handler is not None:
            await handler(event)

    async def advance_to(self, seconds: float) -> None:
        self._position = seconds
        await self.emit(PositionChanged(seconds))

    async def finish(self) -> None:
        await self.emit(PlaybackEnded())

    async def crash(self, message: str = "decoder crashed") -> None:
        await self.emit(DecoderFailed(message))


class DecoderPool:
    """
    Decoder factory that remembers every decoder it created.
    gates[url]: an asyncio.Event that load(url) waits on.
    failing_urls: URLs whose load raises.
    auto_finish: every decoder reports its end right after play().
    """

    def __init__(self):
        self.created = []
        self.loads = []
        self.gates = {}
        self.failing_urls = set()
        self.auto_finish = False
        self.max_attached = 0

    def __call__(self) -> FakeDecoder:
        decoder = FakeDecoder(self)
        self.created.append(decoder)
        return decoder

    @property
    def attached(self):
        return [d for d in self.created if d.attached]

    @property
    def latest(self) -> FakeDecoder:
        return self.created[-1]

    def record_attachment(self) -> None:
        self.max_attached = max(self.max_attached, len(self.attached))


class FakeProbe(IDurationProbe):
    """
    durations[url] -> seconds; URLs in `failures` (or unknown) raise ProbeFailure.
    gates[url]: an asyncio.Event the probe waits on before answering.
    """

    def __init__(self, durations=None, failures=None):
        self.durations = dict(durations or {})
        self.failures = set(failures or ())
        self.gates = {}
        self.calls = []

    async def probe(self, source_url: str) -> float:
        self.calls.append(source_url)

        gate = self.gates.get(source_url)
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)

        if source_url in self.failures:
            raise ProbeFailure(source_url, "simulated failure")
        if source_url not in self.durations:
            raise ProbeFailure(source_url, "unknown media")
        return self.durations[source_url]


@pytest.fixture
def decoder_pool():
    return DecoderPool()


@pytest.fixture
def fake_probe():
    return FakeProbe()

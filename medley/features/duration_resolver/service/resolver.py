# File: medley/features/duration_resolver/service/resolver.py
import asyncio
import logging
from typing import AsyncIterator, Iterable, Optional, Tuple

from medley.core.config.settings import settings
from medley.core.enums import ProbeOutcome
from medley.core.errors import ProbeFailure
from medley.features.segment_registry.domain.models import Segment
from medley.features.segment_registry.service.registry import SegmentRegistry
from ..domain.interfaces import IDurationCache, IDurationProbe
from ..domain.models import ProgressEvent

logger = logging.getLogger(__name__)


class DurationResolver:
    """
    Discovers the real duration of every segment, concurrently.
    Partial-failure tolerant: a bad segment falls back to its declared
    duration and never blocks the others.
    """

    def __init__(self,
                 registry: SegmentRegistry,
                 probe: IDurationProbe,
                 cache: Optional[IDurationCache] = None,
                 max_concurrency: Optional[int] = None):
        self.registry = registry
        self.probe = probe
        self.cache = cache
        self.max_concurrency = max_concurrency or settings.PROBE_CONCURRENCY

    async def resolve_all(self, segments: Optional[Iterable[Segment]] = None) -> AsyncIterator[ProgressEvent]:
        """
        Probes every segment and yields a ProgressEvent as each one settles.

        Args:
            segments: Subset to resolve. Defaults to every registered segment.
        """
        targets = list(segments) if segments is not None else self.registry.segments
        total = len(targets)
        if total == 0:
            return

        logger.info(f"Resolving durations for {total} segments (concurrency={self.max_concurrency})")

        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [asyncio.create_task(self._resolve_one(segment, semaphore)) for segment in targets]
        completed = 0

        try:
            for next_done in asyncio.as_completed(tasks):
                segment_id, outcome, seconds = await next_done
                completed += 1
                yield ProgressEvent(
                    segment_id=segment_id,
                    outcome=outcome,
                    duration_seconds=seconds,
                    completed=completed,
                    total=total
                )
        finally:
            # Consumer stopped early (or was cancelled): abandon the remaining probes
            for task in tasks:
                if not task.done():
                    task.cancel()

        logger.info(f"Duration resolution complete. Total timeline: {self.registry.get_timeline().total_duration:.2f}s")

    async def _resolve_one(self, segment: Segment, semaphore: asyncio.Semaphore) -> Tuple[str, ProbeOutcome, float]:
        # 1. Already resolved in this registry (set-once: never probe again)
        known = self.registry.get(segment.id)
        if known is not None and known.resolved_duration is not None:
            return segment.id, ProbeOutcome.CACHED, known.resolved_duration

        # 2. Persistent cache
        if self.cache is not None:
            # Cache I/O blocks; keep it off the loop that drives playback
            cached = await asyncio.to_thread(self.cache.get, segment.id)
            if cached:
                self.registry.update_resolved_duration(segment.id, cached)
                logger.debug(f"Cache hit for {segment.id}: {cached:.2f}s")
                return segment.id, ProbeOutcome.CACHED, cached

        fallback = segment.declared_duration or 0.0

        # 3. Nothing to probe
        if not segment.source_url:
            logger.info(f"Segment {segment.id} has no source URL; using declared duration {fallback}s")
            return segment.id, ProbeOutcome.FALLBACK, fallback

        # 4. Probe
        try:
            async with semaphore:
                seconds = await self.probe.probe(segment.source_url)
        except ProbeFailure as e:
            logger.warning(f"{e}. Falling back to {fallback}s")
            return segment.id, ProbeOutcome.FALLBACK, fallback
        except Exception as e:
            logger.exception(f"Unexpected probe error for segment {segment.id}: {e}")
            return segment.id, ProbeOutcome.FALLBACK, fallback

        if not seconds or seconds <= 0:
            logger.warning(f"Probe returned {seconds} for segment {segment.id}. Falling back to {fallback}s")
            return segment.id, ProbeOutcome.FALLBACK, fallback

        # 5. Commit (first value wins) and remember
        self.registry.update_resolved_duration(segment.id, seconds)
        if self.cache is not None:
            await asyncio.to_thread(self.cache.save, segment.id, segment.source_url, seconds)

        resolved = self.registry.get(segment.id)
        final = resolved.resolved_duration if resolved and resolved.resolved_duration else seconds
        return segment.id, ProbeOutcome.RESOLVED, final

import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from medley.core.database.connection import SessionLocal
from ..domain.interfaces import IDurationCache
from .sql_models import ProbedDurationModel

logger = logging.getLogger(__name__)


class SqlDurationCache(IDurationCache):
    """
    Duration cache backed by the shared SQLAlchemy database.
    Database outages degrade to cache misses; they never fail a resolution.
    """

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def get(self, segment_id: str) -> Optional[float]:
        try:
            with self.session_factory() as db:
                record = db.get(ProbedDurationModel, segment_id)
                return record.duration_seconds if record else None
        except SQLAlchemyError as e:
            logger.error(f"Duration cache lookup failed for {segment_id}: {e}")
            return None

    def save(self, segment_id: str, source_url: Optional[str], seconds: float) -> bool:
        """
        Inserts the duration unless a record already exists (set-once).
        """
        try:
            with self.session_factory() as db:
                if db.get(ProbedDurationModel, segment_id) is not None:
                    return False

                db.add(ProbedDurationModel(
                    segment_id=segment_id,
                    source_url=source_url,
                    duration_seconds=seconds
                ))
                try:
                    db.commit()
                except IntegrityError:
                    # A concurrent probe of the same id committed first
                    db.rollback()
                    logger.debug(f"Duration for {segment_id} already cached by another writer")
                    return False
        except SQLAlchemyError as e:
            logger.error(f"Duration cache write failed for {segment_id}: {e}")
            return False

        logger.info(f"Cached duration for {segment_id}: {seconds:.2f}s")
        return True

from datetime import datetime, timezone
from sqlalchemy import Column, String, Float, DateTime, Text
from medley.core.database.base import Base


def utc_now():
    return datetime.now(timezone.utc)


class ProbedDurationModel(Base):
    """
    Persistent duration cache.
    One row per segment id; the first probed value is kept forever.
    """
    __tablename__ = "probed_durations"

    segment_id = Column(String, primary_key=True)

    # The URL that was probed (informational; signed URLs expire)
    source_url = Column(Text, nullable=True)

    duration_seconds = Column(Float, nullable=False)

    probed_at = Column(DateTime(timezone=True), default=utc_now)

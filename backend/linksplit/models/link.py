"""Link model."""
from sqlalchemy import Column, String, Text, DateTime, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime, timezone
import uuid

from linksplit.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Link(Base):
    """Short link with an optional split test."""

    __tablename__ = "links"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    key = Column(String(190), unique=True, nullable=False, index=True)
    url = Column(Text, nullable=False)  # Default destination; the winner once a test ends

    # Split test: [{"url": "https://a.example", "percentage": 50}, ...]
    tests = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    tests_started_at = Column(DateTime(timezone=True), nullable=True)
    tests_complete_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Link {self.key} tests={len(self.tests) if self.tests else 0}>"

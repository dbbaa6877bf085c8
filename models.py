from sqlalchemy import JSON, Column, DateTime, Index, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
import uuid_utils
import uuid


def generate_uuid7():
    """Generate UUIDv7 and convert to standard Python UUID"""
    uuid7_obj = uuid_utils.uuid7()
    return uuid.UUID(str(uuid7_obj))

Base = declarative_base()


class DiscoverySessionRecord(Base):
    __tablename__ = 'discovery_sessions'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=generate_uuid7)
    record_key = Column(String(200), unique=True, nullable=False)
    payload = Column(JSON().with_variant(JSONB(), 'postgresql'), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # The TTL sweep scans by expiry
    __table_args__ = (
        Index('ix_discovery_sessions_expires_at', 'expires_at'),
    )

    def __repr__(self):
        return f"<DiscoverySessionRecord(id={self.id}, key='{self.record_key}', expires_at={self.expires_at})>"

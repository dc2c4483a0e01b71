from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

from gws.utils.clock import utcnow

Base = declarative_base()


class ShortLink(Base):
    __tablename__ = "short_links"

    # 6-char code; the primary key is what enforces uniqueness across workers
    code = Column(String(16), primary_key=True, index=True)
    # Absolute checkout/proposal URL or an internal path like /send-message-form/...
    target = Column(String, nullable=False)
    associated_entity_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class AvailabilityCodeRow(Base):
    __tablename__ = "availability_codes"

    code = Column(String(16), primary_key=True, index=True)
    entity_id = Column(String, nullable=False, index=True)
    responder_id = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

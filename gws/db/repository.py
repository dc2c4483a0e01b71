from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging

from gws.db.Models.models import ShortLink, AvailabilityCodeRow

logger = logging.getLogger(__name__)


def get_short_link(db: Session, code: str) -> Optional[ShortLink]:
    return db.get(ShortLink, code)


def get_availability_code(db: Session, code: str) -> Optional[AvailabilityCodeRow]:
    return db.get(AvailabilityCodeRow, code)


def _commit_and_refresh(db: Session, row):
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    except IntegrityError as e:
        db.rollback()
        logger.warning("IntegrityError inserting %s code=%s: %s", type(row).__name__, row.code, str(e))
        raise


def insert_short_link(db: Session, code: str, target: str, entity_id: Optional[str], created_at: datetime) -> ShortLink:
    return _commit_and_refresh(
        db, ShortLink(code=code, target=target, associated_entity_id=entity_id, created_at=created_at)
    )


def insert_availability_code(db: Session, code: str, entity_id: str, responder_id: str, created_at: datetime) -> AvailabilityCodeRow:
    return _commit_and_refresh(
        db, AvailabilityCodeRow(code=code, entity_id=entity_id, responder_id=responder_id, created_at=created_at)
    )


def delete_short_link(db: Session, code: str) -> int:
    deleted = db.query(ShortLink).filter(ShortLink.code == code).delete()
    db.commit()
    return deleted


def delete_availability_code(db: Session, code: str) -> int:
    deleted = db.query(AvailabilityCodeRow).filter(AvailabilityCodeRow.code == code).delete()
    db.commit()
    return deleted


def list_short_links(db: Session) -> List[ShortLink]:
    return db.query(ShortLink).order_by(ShortLink.created_at).all()


def purge_short_links(db: Session, cutoff: datetime) -> int:
    deleted = db.query(ShortLink).filter(ShortLink.created_at < cutoff).delete()
    db.commit()
    return deleted


def purge_availability_codes(db: Session, cutoff: datetime) -> int:
    deleted = db.query(AvailabilityCodeRow).filter(AvailabilityCodeRow.created_at < cutoff).delete()
    db.commit()
    return deleted

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from gws.core.config import Settings
from gws.core.exceptions import ConfigurationError
from gws.db.Connection import database
from gws.db.Models import models
from gws.services.airtable import AirtableRecordStore
from gws.services.availability import AvailabilityDispatcher
from gws.services.cloudinary import CloudinaryAssetStore
from gws.services.collaborators import AssetStore, Notifier, PaymentGateway, RecordStore
from gws.services.link_store import (
    MemoryAvailabilityCodeStore,
    MemoryShortLinkStore,
    SqlAvailabilityCodeStore,
    SqlShortLinkStore,
)
from gws.services.recorder import AvailabilityRecorder
from gws.services.stripe import StripeGateway
from gws.services.sweeper import ExpirySweeper, StatusSweeper
from gws.services.twilio import TwilioNotifier
from gws.utils.locks import KeyedLock

logger = logging.getLogger(__name__)


def build_link_stores(settings: Settings, session_factory=None):
    link_retention = timedelta(days=settings.SHORT_LINK_RETENTION_DAYS)
    code_retention = timedelta(days=settings.AVAILABILITY_CODE_RETENTION_DAYS)

    if settings.LINK_STORE_BACKEND == "memory":
        logger.info("Link stores are in-memory: outstanding SMS links will not survive a restart")
        return MemoryShortLinkStore(link_retention), MemoryAvailabilityCodeStore(code_retention)
    if settings.LINK_STORE_BACKEND != "sql":
        raise ConfigurationError(f"Unknown LINK_STORE_BACKEND: {settings.LINK_STORE_BACKEND}")

    if session_factory is None:
        engine = database.build_engine(settings.DATABASE_URL)
        if not database.verify_database_connection(engine):
            raise ConfigurationError("LINK_STORE_BACKEND=sql but DATABASE_URL is unreachable")
        models.Base.metadata.create_all(bind=engine)
        logger.info("Database models initialized/checked.")
        session_factory = database.build_session_factory(engine)
    return SqlShortLinkStore(session_factory, link_retention), SqlAvailabilityCodeStore(session_factory, code_retention)


@dataclass
class Services:
    """Everything a request handler needs, owned by the app instance."""
    settings: Settings
    record_store: RecordStore
    notifier: Notifier
    payments: PaymentGateway
    assets: AssetStore
    short_links: object
    availability_codes: object
    locks: KeyedLock = field(default_factory=KeyedLock)
    recorder: Optional[AvailabilityRecorder] = None
    dispatcher: Optional[AvailabilityDispatcher] = None
    expiry_sweeper: Optional[ExpirySweeper] = None
    status_sweeper: Optional[StatusSweeper] = None

    def __post_init__(self):
        s = self.settings
        if self.recorder is None:
            self.recorder = AvailabilityRecorder(self.record_store, self.notifier, s.ADMIN_PHONE, self.locks)
        if self.dispatcher is None:
            self.dispatcher = AvailabilityDispatcher(
                self.record_store, self.notifier, self.availability_codes, s.BASE_URL, self.locks
            )
        if self.expiry_sweeper is None:
            self.expiry_sweeper = ExpirySweeper(self.short_links, self.availability_codes, s.SWEEP_INTERVAL_SECONDS)
        if self.status_sweeper is None:
            self.status_sweeper = StatusSweeper(self.record_store, s.STATUS_SWEEP_INTERVAL_SECONDS)

    async def aclose(self):
        for collaborator in (self.record_store, self.notifier, self.payments, self.assets):
            close = getattr(collaborator, "aclose", None)
            if close is not None:
                try:
                    await close()
                except Exception:
                    logger.debug(f"Error closing {type(collaborator).__name__}")


def build_services(settings: Settings) -> Services:
    record_store = AirtableRecordStore(settings)
    short_links, availability_codes = build_link_stores(settings)
    return Services(
        settings=settings,
        record_store=record_store,
        notifier=TwilioNotifier(settings, record_store),
        payments=StripeGateway(settings),
        assets=CloudinaryAssetStore(settings),
        short_links=short_links,
        availability_codes=availability_codes,
    )

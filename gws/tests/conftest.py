import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gws.core.config import Settings
from gws.core.exceptions import CollaboratorFailure
from gws.core.rate_limit import RateLimiter
from gws.db.Models.models import Base
from gws.main import create_app
from gws.schemas.collaborators import CheckoutSession, DeliveryResult, UploadedAsset
from gws.schemas.entities import Entity, MessageRecord, Responder
from gws.services.collaborators import AssetStore, Notifier, PaymentGateway, RecordStore
from gws.services.container import Services
from gws.services.link_store import MemoryAvailabilityCodeStore, MemoryShortLinkStore
from gws.utils.phone import normalize_phone


# Create in-memory SQLite database for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_PHONE = "+61400000000"
BASE_URL = "https://hub.example.com"


class FakeRecordStore(RecordStore):
    """Dict-backed stand-in for Airtable."""

    def __init__(self):
        self.entities = {}
        self.responders = {}
        self.messages = []
        self.fail_updates = False
        self.fail_log = False

    def add_entity(self, entity):
        self.entities[entity.id] = entity

    def add_responder(self, responder):
        self.responders[responder.id] = responder

    async def get_entity(self, entity_id):
        entity = self.entities.get(entity_id)
        # Yield like a real HTTP round trip so concurrent writers can interleave
        await asyncio.sleep(0)
        return entity

    async def update_entity(self, entity_id, fields):
        if self.fail_updates:
            raise CollaboratorFailure("Airtable", "HTTP 503", status_code=503)
        updated = self.entities[entity_id].model_copy(update=fields)
        self.entities[entity_id] = updated
        return updated

    async def list_entities_by_status(self, status):
        return [e for e in self.entities.values() if e.status == status]

    async def get_responder(self, responder_id):
        return self.responders.get(responder_id)

    async def get_responder_by_phone(self, phone):
        for responder in self.responders.values():
            if normalize_phone(responder.phone) == normalize_phone(phone):
                return responder
        return None

    async def list_available_responders(self):
        return [r for r in self.responders.values() if r.availability_status == "Available"]

    async def log_message(self, message):
        if self.fail_log:
            raise CollaboratorFailure("Airtable", "HTTP 500", status_code=500)
        message = message.model_copy(update={"id": f"msg{len(self.messages) + 1}"})
        self.messages.append(message)
        return message

    async def latest_outbound_message(self, to, kind):
        for message in reversed(self.messages):
            if message.direction == "Outbound" and message.to == to and message.kind == kind:
                return message
        return None


class FakeNotifier(Notifier):
    """Records every SMS and mirrors it into the message log, as Twilio does."""

    def __init__(self, record_store=None):
        self.record_store = record_store
        self.sent = []
        self.fail_for = set()
        self.fail_all = False

    async def send_message(self, to, body, metadata=None):
        metadata = metadata or {}
        to_phone = normalize_phone(to)
        if self.fail_all or to_phone in self.fail_for:
            raise CollaboratorFailure("Twilio", "HTTP 400", status_code=400)
        self.sent.append({"to": to_phone, "body": body, "metadata": metadata})
        if self.record_store is not None:
            await self.record_store.log_message(MessageRecord(
                direction="Outbound",
                to=to_phone,
                from_="+61499999999",
                content=body,
                kind=metadata.get("type"),
                entity_id=metadata.get("entity_id"),
                responder_id=metadata.get("responder_id"),
            ))
        return DeliveryResult(sid=f"SM{len(self.sent)}", status="queued", to=to_phone)


class FakePaymentGateway(PaymentGateway):
    def __init__(self):
        self.sessions = []

    async def create_checkout_session(self, amount_cents, description, metadata=None):
        session = CheckoutSession(
            id=f"cs_test_{len(self.sessions) + 1}",
            url=f"https://checkout.stripe.com/c/pay/cs_test_{len(self.sessions) + 1}",
        )
        self.sessions.append({"amount_cents": amount_cents, "description": description, "metadata": metadata})
        return session


class FakeAssetStore(AssetStore):
    def __init__(self):
        self.uploads = []
        self.fail = False

    async def upload(self, data, folder, filename=None):
        if self.fail:
            raise CollaboratorFailure("Cloudinary", "HTTP 500", status_code=500)
        self.uploads.append({"folder": folder, "filename": filename, "size": len(data)})
        return UploadedAsset(secure_url=f"https://res.cloudinary.com/demo/{folder}/{filename}", public_id=filename)


class FakeRedis:
    """Just enough of redis.Redis for the rate limiter."""

    def __init__(self):
        self.store = {}
        self.expiries = {}

    def get(self, key):
        return self.store.get(key)

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, redis_client):
        self.redis_client = redis_client
        self.ops = []

    def incr(self, key, amount=1):
        self.ops.append(("incr", key, amount))

    def expire(self, key, seconds):
        self.ops.append(("expire", key, seconds))

    def execute(self):
        for op, key, value in self.ops:
            if op == "incr":
                self.redis_client.store[key] = str(int(self.redis_client.store.get(key) or 0) + value)
            else:
                self.redis_client.expiries[key] = value


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def session_factory():
    """Creates a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_settings():
    return Settings(BASE_URL=BASE_URL, ADMIN_PHONE=ADMIN_PHONE, ADMIN_API_TOKEN=None, REDIS_URL=None)


@pytest.fixture
def record_store():
    store = FakeRecordStore()
    store.add_entity(Entity(id="recLead1", name="Smith Residence", address="12 Beach Rd, Bondi NSW"))
    store.add_responder(Responder(
        id="recTech1", first_name="Sam", last_name="Taylor", phone="+61411111111", availability_status="Available",
    ))
    store.add_responder(Responder(
        id="recTech2", first_name="Alex", last_name="Ng", phone="0422 222 222", availability_status="Available",
    ))
    store.add_responder(Responder(
        id="recTech3", first_name="Jo", last_name="Park", phone="+61433333333", availability_status="Unavailable",
    ))
    return store


@pytest.fixture
def notifier(record_store):
    return FakeNotifier(record_store)


@pytest.fixture
def services(test_settings, record_store, notifier):
    return Services(
        settings=test_settings,
        record_store=record_store,
        notifier=notifier,
        payments=FakePaymentGateway(),
        assets=FakeAssetStore(),
        short_links=MemoryShortLinkStore(),
        availability_codes=MemoryAvailabilityCodeStore(),
    )


@pytest.fixture
def client(services):
    """Creates a test client wired to in-memory collaborators."""
    app = create_app(services, RateLimiter(None))
    yield TestClient(app)


@pytest.fixture
def fake_redis():
    return FakeRedis()

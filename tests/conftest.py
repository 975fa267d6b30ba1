"""Shared fixtures: a seeded SQLite store, a private fake Redis, and in-process service clients."""

import pytest
from fakeredis import FakeServer
from fakeredis import aioredis as fake_aioredis
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from services.inventory.app import commands as inventory_commands
from services.inventory.app.tasks import InventoryMaintenance
from services.payment.app import commands as payment_commands
from services.payment.app.fraud import FraudDetector
from services.payment.app.gateway import SimulatedPaymentGateway
from services.shared import schema
from services.shared.contracts import PaymentRequest, PaymentResult, ReservationResult
from services.shared.dispatcher import SideEffectDispatcher


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fulfillment.db'}")
    await schema.create_tables(engine)
    await schema.seed_inventory(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def redis():
    client = fake_aioredis.FakeRedis(server=FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def dispatcher():
    dispatcher = SideEffectDispatcher(max_workers=4)
    yield dispatcher
    await dispatcher.shutdown(grace_period=5.0)


@pytest.fixture
def maintenance(session_factory, redis):
    return InventoryMaintenance(session_factory, redis, latency_scale=0)


class LocalInventory:
    """Calls the inventory command in-process instead of over HTTP."""

    def __init__(self, session_factory, redis, dispatcher, maintenance):
        self.session_factory = session_factory
        self.redis = redis
        self.dispatcher = dispatcher
        self.maintenance = maintenance

    async def reserve(self, product_id: int, quantity: int) -> ReservationResult:
        async with self.session_factory() as session:
            return await inventory_commands.reserve_inventory(
                session, self.redis, self.dispatcher, self.maintenance, product_id, quantity
            )


class LocalPayments:
    """Calls the payment command in-process instead of over HTTP."""

    def __init__(self, session_factory, inventory, gateway, dispatcher, fraud):
        self.session_factory = session_factory
        self.inventory = inventory
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.fraud = fraud

    async def process_payment(self, req: PaymentRequest) -> PaymentResult:
        async with self.session_factory() as session:
            return await payment_commands.process_payment(
                session, self.inventory, self.gateway, self.dispatcher, self.fraud, req
            )


@pytest.fixture
def local_inventory(session_factory, redis, dispatcher, maintenance):
    return LocalInventory(session_factory, redis, dispatcher, maintenance)


@pytest.fixture
def fraud(redis):
    return FraudDetector(redis, latency_scale=0)


@pytest.fixture
def make_payments(session_factory, local_inventory, dispatcher, fraud):
    def _make(success_rate: float) -> LocalPayments:
        gateway = SimulatedPaymentGateway(success_rate=success_rate, latency=0)
        return LocalPayments(session_factory, local_inventory, gateway, dispatcher, fraud)

    return _make


@pytest.fixture
def inventory_snapshot(session_factory):
    """Read a product's (available, reserved) straight from the store."""
    from services.inventory.app.queries import load_record

    async def _snapshot(product_id: int):
        async with session_factory() as session:
            record = await load_record(session, product_id)
        if record is None:
            return None
        return record.quantity_available, record.reserved_quantity

    return _snapshot

from decimal import Decimal

import pytest
from fakeredis import FakeServer
from fakeredis import aioredis as fake_aioredis

from services.order.app import commands, queries
from services.order.app.models import CreateOrderRequest, OrderStatus
from services.order.app.notifications import OrderNotifier
from services.shared import cache
from services.shared.contracts import PaymentResult, PaymentStatus
from services.shared.errors import ErrorKind

pytestmark = pytest.mark.anyio


def _request(customer="alice", product_id=1, quantity=2, method="CREDIT_CARD"):
    return CreateOrderRequest(
        customer_name=customer, product_id=product_id, quantity=quantity, payment_method=method
    )


class StubPayments:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.requests = []

    async def process_payment(self, req):
        self.requests.append(req)
        if self.error is not None:
            raise self.error
        return self.result


def _approved():
    return PaymentResult(
        success=True,
        message="Payment processed successfully",
        payment_id=1,
        transaction_id="tx-approved",
        amount=Decimal("200.00"),
        status=PaymentStatus.COMPLETED,
    )


def _declined():
    return PaymentResult(
        success=False,
        message="Payment processing failed",
        payment_id=1,
        transaction_id="tx-declined",
        amount=Decimal("200.00"),
        status=PaymentStatus.FAILED,
        error=ErrorKind.GATEWAY_FAILURE,
    )


@pytest.fixture
def notifier(redis):
    return OrderNotifier(redis, latency_scale=0)


async def _place(session_factory, redis, payments, dispatcher, notifier, req):
    async with session_factory() as session:
        return await commands.process_order(session, redis, payments, dispatcher, notifier, req)


async def _stored(session_factory, order_id):
    async with session_factory() as session:
        return await queries.load_order(session, order_id)


async def test_successful_order_is_completed(session_factory, redis, dispatcher, notifier):
    payments = StubPayments(_approved())

    result = await _place(session_factory, redis, payments, dispatcher, notifier, _request())

    assert result.success
    assert result.message == "Order processed successfully"
    assert result.status is OrderStatus.COMPLETED
    assert result.total_amount == Decimal("200.00")
    assert result.payment_transaction_id == "tx-approved"

    [sent] = payments.requests
    assert sent.order_id == result.order_id
    assert sent.amount == Decimal("200.00")
    assert sent.payment_method == "CREDIT_CARD"

    stored = await _stored(session_factory, result.order_id)
    assert stored.status is OrderStatus.COMPLETED
    assert stored.customer_name == "alice"


async def test_total_ignores_catalogue_price(session_factory, redis, dispatcher, notifier):
    # Headphones list at 149.99 but orders are billed at the flat unit price
    result = await _place(
        session_factory,
        redis,
        StubPayments(_approved()),
        dispatcher,
        notifier,
        _request(product_id=5, quantity=3),
    )

    assert result.total_amount == Decimal("300.00")


async def test_declined_payment_fails_the_order(session_factory, redis, dispatcher, notifier):
    result = await _place(
        session_factory, redis, StubPayments(_declined()), dispatcher, notifier, _request()
    )

    assert not result.success
    assert result.message == "Order failed: Payment processing failed"
    assert result.status is OrderStatus.PAYMENT_FAILED
    assert result.error is ErrorKind.GATEWAY_FAILURE
    assert result.payment_transaction_id is None

    stored = await _stored(session_factory, result.order_id)
    assert stored.status is OrderStatus.PAYMENT_FAILED

    await dispatcher.drain(timeout=5)
    assert await redis.get(cache.email_notification_key(result.order_id)) is None


async def test_payment_client_fault_never_leaves_order_created(
    session_factory, redis, dispatcher, notifier
):
    payments = StubPayments(error=RuntimeError("connection reset"))

    result = await _place(session_factory, redis, payments, dispatcher, notifier, _request())

    assert not result.success
    assert result.message == "Order processing error: connection reset"
    assert result.error is ErrorKind.UNEXPECTED_FAILURE

    stored = await _stored(session_factory, result.order_id)
    assert stored.status is OrderStatus.PAYMENT_FAILED


async def test_order_snapshot_is_cached(session_factory, redis, dispatcher, notifier):
    result = await _place(
        session_factory, redis, StubPayments(_approved()), dispatcher, notifier, _request()
    )

    key = cache.order_key(result.order_id)
    snapshot = await cache.get_json(redis, key)
    assert snapshot["status"] == "COMPLETED"
    assert 0 < await redis.ttl(key) <= 24 * 3600


async def test_get_order_hit_and_miss_agree(session_factory, redis, dispatcher, notifier):
    result = await _place(
        session_factory, redis, StubPayments(_approved()), dispatcher, notifier, _request()
    )

    async with session_factory() as session:
        hit = await queries.get_order(session, redis, result.order_id)

    await redis.delete(cache.order_key(result.order_id))
    async with session_factory() as session:
        miss = await queries.get_order(session, redis, result.order_id)

    assert hit == miss
    assert await redis.exists(cache.order_key(result.order_id))


async def test_get_order_unknown_id(session_factory, redis):
    async with session_factory() as session:
        assert await queries.get_order(session, redis, 4242) is None
    assert not await redis.exists(cache.order_key(4242))


async def test_customer_order_counter(session_factory, redis, dispatcher, notifier):
    payments = StubPayments(_declined())
    for _ in range(2):
        await _place(session_factory, redis, payments, dispatcher, notifier, _request(customer="bob"))

    key = cache.customer_orders_key("bob")
    assert await redis.get(key) == "2"
    assert await redis.ttl(key) > 29 * 24 * 3600


async def test_notifications_do_not_delay_the_response(session_factory, redis, dispatcher):
    slow = OrderNotifier(redis, latency_scale=1.0)

    result = await _place(session_factory, redis, StubPayments(_approved()), dispatcher, slow, _request())

    assert result.success
    assert dispatcher.pending == 3
    assert await redis.get(cache.email_notification_key(result.order_id)) is None

    assert await dispatcher.drain(timeout=5)
    assert await redis.get(cache.email_notification_key(result.order_id)) == "SENT"
    assert await redis.get(cache.sms_notification_key(result.order_id)) == "DELIVERED"
    assert await redis.keys(f"audit:order:{result.order_id}:*")


async def test_failing_notification_does_not_affect_siblings(
    session_factory, redis, dispatcher
):
    class BrokenSms(OrderNotifier):
        async def send_sms_notification(self, order):
            raise RuntimeError("sms gateway down")

    notifier = BrokenSms(redis, latency_scale=0)

    result = await _place(
        session_factory, redis, StubPayments(_approved()), dispatcher, notifier, _request()
    )
    await dispatcher.drain(timeout=5)

    assert result.success
    assert dispatcher.failures == 1
    assert await redis.get(cache.email_notification_key(result.order_id)) == "SENT"
    assert await redis.get(cache.sms_notification_key(result.order_id)) is None


async def test_cache_outage_does_not_fail_the_order(session_factory, dispatcher):
    server = FakeServer()
    unreachable = fake_aioredis.FakeRedis(server=server, decode_responses=True)
    server.connected = False
    notifier = OrderNotifier(unreachable, latency_scale=0)

    result = await _place(
        session_factory, unreachable, StubPayments(_approved()), dispatcher, notifier, _request()
    )

    assert result.success
    assert result.status is OrderStatus.COMPLETED
    stored = await _stored(session_factory, result.order_id)
    assert stored.status is OrderStatus.COMPLETED

    # Receipts cannot be written either, but those failures stay in the dispatcher
    await dispatcher.drain(timeout=5)
    assert dispatcher.failures == 3


# ── Full chain, in process ───────────────────────


async def test_full_chain_completes_and_reserves_stock(
    session_factory, redis, dispatcher, notifier, make_payments, inventory_snapshot
):
    result = await _place(
        session_factory, redis, make_payments(1.0), dispatcher, notifier, _request()
    )

    assert result.success
    assert result.status is OrderStatus.COMPLETED
    assert await inventory_snapshot(1) == (48, 2)


async def test_full_chain_decline_keeps_reservation(
    session_factory, redis, dispatcher, notifier, make_payments, inventory_snapshot
):
    result = await _place(
        session_factory, redis, make_payments(0.0), dispatcher, notifier, _request()
    )

    assert result.status is OrderStatus.PAYMENT_FAILED
    assert result.error is ErrorKind.GATEWAY_FAILURE
    assert await inventory_snapshot(1) == (48, 2)


async def test_full_chain_insufficient_stock(
    session_factory, redis, dispatcher, notifier, make_payments, inventory_snapshot
):
    result = await _place(
        session_factory, redis, make_payments(1.0), dispatcher, notifier, _request(quantity=1000)
    )

    assert result.status is OrderStatus.PAYMENT_FAILED
    assert result.error is ErrorKind.INSUFFICIENT_STOCK
    assert "Insufficient inventory available" in result.message
    assert await inventory_snapshot(1) == (50, 0)

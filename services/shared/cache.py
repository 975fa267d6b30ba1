"""
Redis key layout and expiry windows.

Everything stored here is derived data. The relational store stays the source
of truth; an entry may be stale by up to its TTL and is only ever used to
short-circuit requests that are clearly going to fail, or as a side channel
for inspecting what the background tasks did.
"""

import json
from datetime import date, timedelta
from typing import Any

import redis.asyncio as aioredis

# Negative reservation verdicts
NOT_FOUND = "NOT_FOUND"
INSUFFICIENT = "INSUFFICIENT"

NOT_FOUND_TTL = timedelta(minutes=5)
INSUFFICIENT_TTL = timedelta(minutes=2)
RESERVATION_TTL = timedelta(minutes=30)
INVENTORY_SNAPSHOT_TTL = timedelta(minutes=10)
ORDER_SNAPSHOT_TTL = timedelta(hours=24)
CUSTOMER_COUNTER_TTL = timedelta(days=30)
NOTIFICATION_TTL = timedelta(days=7)
AUDIT_TTL = timedelta(days=30)
RESTOCK_TTL = timedelta(days=7)
ANALYTICS_TTL = timedelta(hours=6)
ANALYTICS_DAILY_TTL = timedelta(days=30)
SUPPLIER_NOTIFICATION_TTL = timedelta(days=7)
SUPPLIER_HISTORY_TTL = timedelta(days=90)
FRAUD_RESULT_TTL = timedelta(hours=24)
FRAUD_COUNT_TTL = timedelta(days=30)
RISK_METHOD_TTL = timedelta(days=1)
RISK_SCORE_TTL = timedelta(hours=24)


# ── Inventory ────────────────────────────────────


def inventory_check_key(product_id: int) -> str:
    return f"inventory:check:{product_id}"


def inventory_reserved_key(product_id: int) -> str:
    return f"inventory:reserved:{product_id}"


def inventory_product_key(product_id: int) -> str:
    return f"inventory:product:{product_id}"


def restock_notification_key(product_id: int) -> str:
    return f"restock:notification:{product_id}"


RESTOCK_COUNT_KEY = "restock:notifications:count"


def analytics_key(product_id: int) -> str:
    return f"analytics:inventory:{product_id}"


def analytics_daily_key(day: date) -> str:
    return f"analytics:daily:{day.isoformat()}"


def supplier_notification_key(product_id: int, millis: int) -> str:
    return f"supplier:notification:{product_id}:{millis}"


def supplier_history_key(supplier_email: str) -> str:
    return f"supplier:history:{supplier_email}"


# ── Orders ───────────────────────────────────────


def order_key(order_id: int) -> str:
    return f"order:{order_id}"


def customer_orders_key(customer_name: str) -> str:
    return f"customer:orders:{customer_name}"


def email_notification_key(order_id: int) -> str:
    return f"notification:email:{order_id}"


def sms_notification_key(order_id: int) -> str:
    return f"notification:sms:{order_id}"


def audit_key(order_id: int, millis: int) -> str:
    return f"audit:order:{order_id}:{millis}"


# ── Payments ─────────────────────────────────────


def fraud_check_key(order_id: int) -> str:
    return f"fraud:check:{order_id}"


def fraud_count_key(order_id: int) -> str:
    return f"fraud:history:{order_id}:count"


def risk_method_key(payment_method: str) -> str:
    return f"risk:method:{payment_method}"


def risk_score_key(order_id: int) -> str:
    return f"risk:score:{order_id}"


# ── Helpers ──────────────────────────────────────


async def set_json(
    redis: aioredis.Redis, key: str, value: Any, ttl: timedelta
) -> None:
    await redis.set(key, json.dumps(value, default=str), ex=ttl)


async def get_json(redis: aioredis.Redis, key: str) -> Any | None:
    raw = await redis.get(key)
    if raw is None:
        return None
    return json.loads(raw)


async def increment(
    redis: aioredis.Redis, key: str, ttl: timedelta | None = None
) -> int:
    """Atomic INCR; refreshes the expiry when one is given."""
    value = await redis.incr(key)
    if ttl is not None:
        await redis.expire(key, ttl)
    return value

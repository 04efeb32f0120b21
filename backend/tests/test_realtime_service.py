# backend/tests/test_realtime_service.py
import asyncio
import json

import pytest

from storefront.schemas.realtime_schema import SubscriptionConfig
from storefront.services.realtime_service import (
    RealtimeManager,
    cleanup_global_realtime_manager,
    create_cart_subscription,
    create_company_settings_subscription,
    get_global_realtime_manager,
    matches_filter,
    publish_change,
)


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0.01)


def test_subscription_key_format():
    assert SubscriptionConfig(table="orders").key == "orders-all-none"
    assert SubscriptionConfig(table="orders", event="UPDATE", filter="client_id=eq.1").key == "orders-UPDATE-client_id=eq.1"


@pytest.mark.parametrize("expr, expected", [
    ("client_id=eq.u1", True),
    ("client_id=neq.u1", False),
    ("total=gt.100", True),
    ("total=lte.100", False),
    ("qty=gte.3", True),
    ("qty=lt.3", False),
    ("status=in.(pending,confirmed)", True),
    ("status=in.(shipped)", False),
    ("missing=eq.1", False),
    (None, True),
])
def test_matches_filter(expr, expected):
    record = {"client_id": "u1", "total": 150.5, "qty": 3, "status": "pending"}
    assert matches_filter(record, expr) is expected


async def test_publish_change_uses_table_channel(fake_redis):
    await publish_change(fake_redis, "products", "INSERT", new={"ref": "1"})
    channel, message = fake_redis.published[0]
    assert channel == "db_changes:public:products"
    payload = json.loads(message)
    assert payload["eventType"] == "INSERT"
    assert payload["schema"] == "public"
    assert payload["new"] == {"ref": "1"}


async def test_publish_failure_is_swallowed(fake_redis):
    async def broken_publish(*args):
        raise ConnectionError("redis down")

    fake_redis.publish = broken_publish
    await publish_change(fake_redis, "orders", "UPDATE", new={"id": "1"})


async def test_callback_receives_matching_events(fake_redis):
    manager = RealtimeManager(fake_redis)
    received = []
    await manager.subscribe(
        SubscriptionConfig(table="orders", event="UPDATE", filter="client_id=eq.u1"),
        received.append,
    )
    await _settle()

    await publish_change(fake_redis, "orders", "UPDATE", new={"id": "o1", "client_id": "u1"})
    await publish_change(fake_redis, "orders", "UPDATE", new={"id": "o2", "client_id": "u2"})
    await publish_change(fake_redis, "orders", "INSERT", new={"id": "o3", "client_id": "u1"})
    await _settle()

    assert [event.new["id"] for event in received] == ["o1"]
    await manager.unsubscribe_all()


async def test_same_key_replaces_previous_subscription(fake_redis):
    manager = RealtimeManager(fake_redis)
    first, second = [], []
    config = SubscriptionConfig(table="products", event="*")

    key1 = await manager.subscribe(config, first.append)
    first_pubsub = fake_redis.subscribers["db_changes:public:products"][0]
    key2 = await manager.subscribe(config, second.append)
    await _settle()

    assert key1 == key2
    assert manager.active_subscription_count == 1
    assert first_pubsub.closed
    assert len(fake_redis.subscribers["db_changes:public:products"]) == 1

    await publish_change(fake_redis, "products", "DELETE", old={"ref": "9"})
    await _settle()
    assert first == []
    assert len(second) == 1
    await manager.unsubscribe_all()


async def test_concurrent_subscribes_keep_single_listener(fake_redis):
    original_pubsub = fake_redis.pubsub

    def slow_pubsub():
        pubsub = original_pubsub()
        subscribe = pubsub.subscribe

        async def delayed_subscribe(*channels):
            await asyncio.sleep(0.01)
            await subscribe(*channels)

        pubsub.subscribe = delayed_subscribe
        return pubsub

    fake_redis.pubsub = slow_pubsub
    manager = RealtimeManager(fake_redis)
    received = []
    config = SubscriptionConfig(table="products", event="*")

    keys = await asyncio.gather(
        manager.subscribe(config, received.append),
        manager.subscribe(config, received.append),
    )
    assert keys[0] == keys[1]
    assert manager.active_subscription_count == 1
    assert len(fake_redis.subscribers["db_changes:public:products"]) == 1

    await publish_change(fake_redis, "products", "INSERT", new={"ref": "1"})
    await _settle()
    assert len(received) == 1

    await manager.unsubscribe_all()
    assert fake_redis.subscribers["db_changes:public:products"] == []


async def test_async_callback_errors_do_not_stop_listener(fake_redis):
    manager = RealtimeManager(fake_redis)
    calls = []

    async def flaky(event):
        calls.append(event.new["id"])
        if len(calls) == 1:
            raise RuntimeError("boom")

    await manager.subscribe(SubscriptionConfig(table="orders"), flaky)
    await _settle()
    await publish_change(fake_redis, "orders", "INSERT", new={"id": "a"})
    await publish_change(fake_redis, "orders", "INSERT", new={"id": "b"})
    await _settle()
    assert calls == ["a", "b"]
    await manager.unsubscribe_all()


async def test_unsubscribe_and_helpers(fake_redis):
    manager = RealtimeManager(fake_redis)
    cart_key = await create_cart_subscription(manager, "u1", lambda e: None)
    settings_key = await create_company_settings_subscription(manager, lambda e: None)
    assert cart_key == "cart_items-*-user_id=eq.u1"
    assert settings_key == "settings-UPDATE-none"
    assert manager.is_subscribed(cart_key)

    assert await manager.unsubscribe(cart_key)
    assert not await manager.unsubscribe(cart_key)
    await manager.unsubscribe_all()
    assert manager.active_subscription_count == 0


async def test_global_manager_cleanup(fake_redis):
    manager = get_global_realtime_manager(fake_redis)
    assert get_global_realtime_manager() is manager
    await manager.subscribe(SubscriptionConfig(table="products"), lambda e: None)
    await cleanup_global_realtime_manager()
    assert manager.active_subscription_count == 0
    assert get_global_realtime_manager(fake_redis) is not manager
    await cleanup_global_realtime_manager()

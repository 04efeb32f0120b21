# backend/tests/test_webhook_service.py
from datetime import datetime, timedelta, timezone

import pytest

from storefront.crud import order_crud, payment_crud
from storefront.schemas.payment_schema import WebhookEvent
from storefront.services.payment_service import PaymentSuccessGuard
from storefront.services.webhook_service import cleanup_expired_sessions, handle_webhook_event


@pytest.fixture
async def order_with_session(db):
    order = await order_crud.create_order(
        db, customer_name="דנה", items=[{"product_id": "1", "quantity": 1, "unit_price": 100}],
        subtotal=100, tax=17, total_amount=117, status="pending",
    )
    session = await payment_crud.create_session(
        db, session_id="hypay_session_1", order_id=order.id, amount=117, status="created",
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=30),
    )
    return order, session


async def test_completed_event_confirms_order(db, fake_redis, order_with_session):
    order, _ = order_with_session
    event = WebhookEvent(event="payment.completed", session_id="hypay_session_1", transaction_id="txn-9")
    result = await handle_webhook_event(db, fake_redis, event, guard=PaymentSuccessGuard())

    assert result["handled"] is True
    refreshed = await order_crud.get_order(db, order.id)
    assert refreshed.status == "confirmed"
    assert refreshed.payment_status == "completed"
    assert refreshed.transaction_id == "txn-9"
    session = await payment_crud.get_session(db, "hypay_session_1")
    assert session.status == "completed"
    assert fake_redis.published[-1][0] == "db_changes:public:orders"


async def test_repeated_success_is_ignored(db, fake_redis, order_with_session):
    guard = PaymentSuccessGuard()
    event = WebhookEvent(event="payment.success", session_id="hypay_session_1")
    await handle_webhook_event(db, fake_redis, event, guard=guard)
    result = await handle_webhook_event(db, fake_redis, event, guard=guard)
    assert result["handled"] is False
    assert result["reason"] == "already_completed"


async def test_guard_blocks_duplicate_session_even_without_order(db, fake_redis):
    guard = PaymentSuccessGuard()
    guard.should_handle("hypay_session_x")
    result = await handle_webhook_event(db, fake_redis, WebhookEvent(event="payment.completed", session_id="hypay_session_x"), guard=guard)
    assert result["reason"] == "duplicate"


@pytest.mark.parametrize("event_name, order_status, payment_status", [
    ("payment.failed", "payment_failed", "failed"),
    ("payment.declined", "payment_failed", "failed"),
    ("payment.cancelled", "cancelled", "cancelled"),
    ("payment.refunded", "refunded", "refunded"),
    ("payment.expired", "payment_expired", "expired"),
    ("payment.processing", "processing", "processing"),
])
async def test_event_status_mapping(db, fake_redis, order_with_session, event_name, order_status, payment_status):
    order, _ = order_with_session
    await handle_webhook_event(db, fake_redis, WebhookEvent(event=event_name, session_id="hypay_session_1"))
    refreshed = await order_crud.get_order(db, order.id)
    assert refreshed.status == order_status
    assert refreshed.payment_status == payment_status


async def test_session_order_wins_over_event_order_id(db, fake_redis, order_with_session):
    order, _ = order_with_session
    other = await order_crud.create_order(
        db, customer_name="רון", items=[{"product_id": "2", "quantity": 1, "unit_price": 500}],
        subtotal=500, tax=85, total_amount=585, status="pending",
    )
    event = WebhookEvent(event="payment.completed", session_id="hypay_session_1", order_id=other.id)
    result = await handle_webhook_event(db, fake_redis, event, guard=PaymentSuccessGuard())

    assert result["order_id"] == order.id
    assert (await order_crud.get_order(db, order.id)).payment_status == "completed"
    untouched = await order_crud.get_order(db, other.id)
    assert untouched.status == "pending"
    assert untouched.payment_status is None


async def test_failure_after_payment_keeps_order_confirmed(db, fake_redis, order_with_session):
    order, _ = order_with_session
    await handle_webhook_event(db, fake_redis, WebhookEvent(event="payment.completed", session_id="hypay_session_1"),
                               guard=PaymentSuccessGuard())
    result = await handle_webhook_event(db, fake_redis, WebhookEvent(event="payment.failed", session_id="hypay_session_1"))

    assert result == {"handled": False, "event": "payment.failed", "reason": "already_completed"}
    refreshed = await order_crud.get_order(db, order.id)
    assert refreshed.status == "confirmed"
    assert refreshed.payment_status == "completed"
    assert (await payment_crud.get_session(db, "hypay_session_1")).status == "completed"


async def test_refund_after_payment_is_applied(db, fake_redis, order_with_session):
    order, _ = order_with_session
    await handle_webhook_event(db, fake_redis, WebhookEvent(event="payment.completed", session_id="hypay_session_1"),
                               guard=PaymentSuccessGuard())
    result = await handle_webhook_event(db, fake_redis, WebhookEvent(event="payment.refunded", session_id="hypay_session_1"))

    assert result["handled"] is True
    refreshed = await order_crud.get_order(db, order.id)
    assert refreshed.status == "refunded"
    assert refreshed.payment_status == "refunded"


@pytest.mark.parametrize("event_name", ["payment.completed", "payment.failed", "payment.refunded"])
async def test_events_on_cancelled_order_are_ignored(db, fake_redis, order_with_session, event_name):
    order, _ = order_with_session
    await order_crud.update_order(db, order, {"status": "cancelled"})
    result = await handle_webhook_event(db, fake_redis, WebhookEvent(event=event_name, session_id="hypay_session_1"),
                                        guard=PaymentSuccessGuard())

    assert result["reason"] == "order_closed"
    refreshed = await order_crud.get_order(db, order.id)
    assert refreshed.status == "cancelled"
    assert refreshed.payment_status is None


async def test_unknown_event_is_acknowledged(db, fake_redis):
    result = await handle_webhook_event(db, fake_redis, WebhookEvent(event="payment.mystery"))
    assert result == {"handled": False, "event": "payment.mystery", "reason": "unknown_event"}


async def test_cleanup_marks_only_expired_created_sessions(db):
    now = datetime.now(timezone.utc)
    await payment_crud.create_session(db, session_id="old", order_id="o", amount=1, status="created",
                                      expires_at=now - timedelta(minutes=1))
    await payment_crud.create_session(db, session_id="fresh", order_id="o", amount=1, status="created",
                                      expires_at=now + timedelta(minutes=10))
    await payment_crud.create_session(db, session_id="paid", order_id="o", amount=1, status="completed",
                                      expires_at=now - timedelta(minutes=1))

    assert await cleanup_expired_sessions(db) == 1
    assert (await payment_crud.get_session(db, "old")).status == "expired"
    assert (await payment_crud.get_session(db, "fresh")).status == "created"
    assert (await payment_crud.get_session(db, "paid")).status == "completed"

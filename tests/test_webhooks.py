import json
from datetime import datetime
from decimal import Decimal

import pytest

from models import db
from models.advisor import Advisor
from models.booking import BOOKING_CANCELLED, BOOKING_CONFIRMED
from models.payment import PAYMENT_COMPLETED, PAYMENT_CREATED, PAYMENT_FAILED, PAYMENT_REFUNDED
from services.verification import PaymentVerifier
from tests.conftest import KEY_SECRET, WEBHOOK_SECRET
from tests.factories import make_advisor, make_booking, make_payment, make_user, sign


@pytest.fixture
def payment(app):
    advisor = make_advisor(rate="1000")
    investor = make_user("investor@example.com")
    booking = make_booking(advisor, investor)
    return make_payment(booking, order_id="order_wh")


def _event(event_type, **entities):
    return json.dumps({
        "entity": "event",
        "event": event_type,
        "payload": {name: {"entity": entity} for name, entity in entities.items()},
    }).encode()


def _captured(order_id="order_wh", payment_id="pay_wh", method="upi"):
    return _event("payment.captured", payment={
        "id": payment_id,
        "order_id": order_id,
        "amount": 100000,
        "currency": "INR",
        "status": "captured",
        "method": method,
    })


def _post(client, body, secret=WEBHOOK_SECRET, signature=None):
    headers = {"Content-Type": "application/json"}
    if signature is None:
        signature = sign(body, secret)
    if signature:
        headers["X-Razorpay-Signature"] = signature
    return client.post("/webhooks/razorpay", data=body, headers=headers)


def _advisor_totals(advisor_id):
    advisor = db.session.get(Advisor, advisor_id)
    db.session.refresh(advisor)
    return advisor.total_bookings, advisor.total_revenue


def test_captured_completes_payment(app, payment):
    resp = _post(app.test_client(), _captured())

    assert resp.status_code == 200
    assert resp.get_json() == {"received": True}
    db.session.refresh(payment)
    assert payment.status == PAYMENT_COMPLETED
    assert payment.gateway_payment_id == "pay_wh"
    assert payment.payment_method == "upi"
    assert payment.webhook_processed_at is not None
    assert payment.booking.status == BOOKING_CONFIRMED


def test_replayed_capture_counts_once(app, payment):
    client = app.test_client()
    body = _captured()
    assert _post(client, body).status_code == 200
    assert _post(client, body).status_code == 200

    assert _advisor_totals(payment.booking.advisor_id) == (1, Decimal("900.00"))


def test_browser_verify_and_webhook_count_once(app, payment):
    investor_id = payment.booking.investor_id
    PaymentVerifier(db.session, app.extensions["payment_gateway"]).verify(
        "order_wh", "pay_wh", sign("order_wh|pay_wh", KEY_SECRET), investor_id
    )
    assert _post(app.test_client(), _captured()).status_code == 200

    db.session.refresh(payment)
    assert payment.status == PAYMENT_COMPLETED
    assert payment.signature is not None
    assert payment.payment_method == "upi"
    assert _advisor_totals(payment.booking.advisor_id) == (1, Decimal("900.00"))


def test_bad_signature_is_400(app, payment):
    resp = _post(app.test_client(), _captured(), secret="not-the-secret")
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_SIGNATURE"
    db.session.refresh(payment)
    assert payment.status == PAYMENT_CREATED


def test_missing_signature_is_400(app, payment):
    resp = _post(app.test_client(), _captured(), signature="")
    assert resp.status_code == 400


def test_signature_checked_before_parsing(app, payment):
    resp = _post(app.test_client(), b"not json", secret="not-the-secret")
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "INVALID_SIGNATURE"


def test_malformed_json_with_valid_signature(app, payment):
    resp = _post(app.test_client(), b"{not json")
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "VALIDATION_ERROR"


def test_unknown_event_acknowledged(app, payment):
    resp = _post(app.test_client(), _event("order.paid", order={"id": "order_wh"}))
    assert resp.status_code == 200
    assert resp.get_json() == {"received": True}
    db.session.refresh(payment)
    assert payment.status == PAYMENT_CREATED


def test_unknown_order_asks_for_redelivery(app, payment):
    resp = _post(app.test_client(), _captured(order_id="order_missing"))
    assert resp.status_code == 404


def test_missing_webhook_secret_is_500(app, payment):
    app.config["RAZORPAY_WEBHOOK_SECRET"] = None
    resp = _post(app.test_client(), _captured())
    assert resp.status_code == 500


def test_failed_event_records_error(app, payment):
    body = _event("payment.failed", payment={
        "id": "pay_fail",
        "order_id": "order_wh",
        "error_code": "BAD_REQUEST_ERROR",
        "error_description": "Payment was declined by the bank",
    })
    assert _post(app.test_client(), body).status_code == 200

    db.session.refresh(payment)
    assert payment.status == PAYMENT_FAILED
    assert payment.error_code == "BAD_REQUEST_ERROR"
    assert payment.error_description == "Payment was declined by the bank"


def test_late_failure_does_not_undo_capture(app, payment):
    client = app.test_client()
    _post(client, _captured())
    _post(client, _event("payment.failed", payment={
        "id": "pay_earlier_attempt",
        "order_id": "order_wh",
        "error_code": "BAD_REQUEST_ERROR",
        "error_description": "Card declined",
    }))

    db.session.refresh(payment)
    assert payment.status == PAYMENT_COMPLETED


def test_refund_created(app, payment):
    client = app.test_client()
    _post(client, _captured())
    body = _event("refund.created", refund={
        "id": "rfnd_1",
        "payment_id": "pay_wh",
        "amount": 50000,
        "created_at": 1767225600,
    })
    assert _post(client, body).status_code == 200
    assert _post(client, body).status_code == 200

    db.session.refresh(payment)
    assert payment.status == PAYMENT_REFUNDED
    assert payment.refund_amount == Decimal("500.00")
    assert payment.refunded_at == datetime(2026, 1, 1, 0, 0, 0)


def test_capture_after_refund_keeps_refund(app, payment):
    client = app.test_client()
    _post(client, _captured())
    _post(client, _event("refund.created", refund={"id": "rfnd_2", "payment_id": "pay_wh", "amount": 100000}))
    _post(client, _captured())

    db.session.refresh(payment)
    assert payment.status == PAYMENT_REFUNDED
    assert _advisor_totals(payment.booking.advisor_id) == (1, Decimal("900.00"))


@pytest.fixture
def sent_confirmations(monkeypatch):
    sent = []
    monkeypatch.setattr(
        "routes.webhooks.notify_booking_confirmed",
        lambda booking, payment: sent.append(booking.status),
    )
    return sent


def test_capture_sends_confirmation_once(app, payment, sent_confirmations):
    client = app.test_client()
    _post(client, _captured())
    _post(client, _captured())
    assert sent_confirmations == [BOOKING_CONFIRMED]


def test_capture_on_cancelled_booking_sends_no_confirmation(app, payment, sent_confirmations):
    payment.booking.status = BOOKING_CANCELLED
    db.session.commit()

    assert _post(app.test_client(), _captured()).status_code == 200

    db.session.refresh(payment)
    assert payment.status == PAYMENT_COMPLETED
    assert payment.booking.status == BOOKING_CANCELLED
    assert sent_confirmations == []


def _refund(refund_id, amount, amount_refunded):
    return _event(
        "refund.created",
        refund={"id": refund_id, "payment_id": "pay_wh", "amount": amount},
        payment={"id": "pay_wh", "order_id": "order_wh", "amount": 100000, "amount_refunded": amount_refunded},
    )


def test_partial_refunds_store_running_total(app, payment):
    client = app.test_client()
    _post(client, _captured())
    first = _refund("rfnd_a", 30000, 30000)
    _post(client, first)
    _post(client, _refund("rfnd_b", 40000, 70000))
    # late redelivery of the first refund
    _post(client, first)

    db.session.refresh(payment)
    assert payment.status == PAYMENT_REFUNDED
    assert payment.refund_amount == Decimal("700.00")

from flask import Blueprint, request, jsonify, current_app

from models import db
from models.booking import BOOKING_CONFIRMED
from services.webhooks import EVENT_PAYMENT_CAPTURED, WebhookReconciler
from utils.audit import log_event
from utils.notifications import notify_booking_confirmed

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/webhooks")


@webhooks_bp.post("/razorpay")
def razorpay_webhook():
    # raw bytes: the signature covers the body exactly as sent
    payload = request.get_data()
    signature = request.headers.get("X-Razorpay-Signature")

    reconciler = WebhookReconciler(
        db.session,
        current_app.extensions["payment_gateway"],
        current_app.config.get("RAZORPAY_WEBHOOK_SECRET"),
    )
    event_type, payment, transitioned = reconciler.handle(payload, signature)

    if payment is not None:
        log_event(
            "PAYMENT_WEBHOOK_APPLIED",
            entity="payment",
            entity_id=payment.id,
            metadata={"event": event_type, "status": payment.status, "transitioned": transitioned},
        )
        # cancelled or conflicting bookings stay unconfirmed and get no email
        confirmed = payment.booking.status == BOOKING_CONFIRMED
        if event_type == EVENT_PAYMENT_CAPTURED and transitioned and confirmed:
            notify_booking_confirmed(payment.booking, payment)

    return jsonify(received=True), 200

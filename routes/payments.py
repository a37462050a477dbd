from flask import Blueprint, request, jsonify, g, current_app

from models import db
from models.booking import BOOKING_CONFIRMED
from security.rbac import require_roles, ROLE_ADMIN, ROLE_INVESTOR
from services.commission import to_decimal
from services.orders import OrderCreator
from services.refunds import RefundIssuer
from services.verification import PaymentVerifier
from utils.audit import log_event
from utils.auth_context import login_required
from utils.errors import ValidationError
from utils.notifications import notify_booking_confirmed

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


def _gateway():
    return current_app.extensions["payment_gateway"]


@payments_bp.post("/create-order")
@require_roles(ROLE_INVESTOR)
def create_order():
    data = request.get_json(silent=True) or {}
    booking_id = data.get("bookingId")
    if not isinstance(booking_id, int) or isinstance(booking_id, bool):
        raise ValidationError("bookingId is required")

    creator = OrderCreator(
        db.session,
        _gateway(),
        to_decimal(current_app.config.get("PLATFORM_COMMISSION_PERCENT", "10")),
        currency=current_app.config.get("PAYMENT_CURRENCY", "INR"),
    )
    order, payment, amount_minor = creator.create(booking_id, g.user.id)

    log_event(
        "PAYMENT_ORDER_CREATED",
        user_id=g.user.id,
        entity="payment",
        entity_id=payment.id,
        metadata={"razorpay_order_id": order["id"], "amount": amount_minor},
    )
    return jsonify(
        orderId=order["id"],
        amount=amount_minor,
        currency=payment.currency,
        keyId=current_app.config.get("RAZORPAY_KEY_ID"),
        payment=payment.to_dict(),
    ), 200


@payments_bp.post("/verify")
@login_required
def verify_payment():
    data = request.get_json(silent=True) or {}

    verifier = PaymentVerifier(db.session, _gateway())
    payment, transitioned = verifier.verify(
        data.get("razorpay_order_id"),
        data.get("razorpay_payment_id"),
        data.get("razorpay_signature"),
        g.user.id,
    )

    if transitioned:
        log_event(
            "PAYMENT_VERIFIED",
            user_id=g.user.id,
            entity="payment",
            entity_id=payment.id,
            metadata={"booking_id": payment.booking_id},
        )
        if payment.booking.status == BOOKING_CONFIRMED:
            notify_booking_confirmed(payment.booking, payment)

    return jsonify(
        success=True,
        payment=payment.to_dict(),
        message="Payment verified successfully" if transitioned else "Payment already verified",
    ), 200


@payments_bp.post("/<int:payment_id>/refund")
@require_roles(ROLE_ADMIN)
def refund_payment(payment_id):
    data = request.get_json(silent=True) or {}

    payment = RefundIssuer(db.session, _gateway()).refund(payment_id, data.get("amount"))

    log_event(
        "PAYMENT_REFUNDED",
        user_id=g.user.id,
        entity="payment",
        entity_id=payment.id,
        metadata={"refund_amount": payment.refund_amount},
    )
    return jsonify(success=True, payment=payment.to_dict()), 200

"""
Razorpay webhook reconciliation.

The signature covers the raw body, so it is checked before anything is
parsed. Updates are keyed by the gateway's own identifiers and only ever
overwrite terminal fields, which makes redelivered events harmless.
"""
import json
import logging
from datetime import datetime, timezone

from models.payment import PAYMENT_REFUNDED
from services.commission import to_major_units
from services.ledger import PaymentLedger
from utils.errors import AlreadyPaid, InvalidSignature, NotFound, ServerError, ValidationError

logger = logging.getLogger(__name__)

EVENT_PAYMENT_CAPTURED = "payment.captured"
EVENT_PAYMENT_FAILED = "payment.failed"
EVENT_REFUND_CREATED = "refund.created"


def _entity(event, name):
    entity = ((event.get("payload") or {}).get(name) or {}).get("entity")
    if not isinstance(entity, dict):
        raise ValidationError(f"Webhook payload missing {name} entity")
    return entity


def _from_unix(value):
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)
    except (TypeError, ValueError, OverflowError):
        return None


class WebhookReconciler:
    def __init__(self, session, gateway, webhook_secret):
        self.session = session
        self.gateway = gateway
        self.webhook_secret = webhook_secret
        self.ledger = PaymentLedger(session)
        self._handlers = {
            EVENT_PAYMENT_CAPTURED: self._payment_captured,
            EVENT_PAYMENT_FAILED: self._payment_failed,
            EVENT_REFUND_CREATED: self._refund_created,
        }

    def handle(self, raw_body: bytes, signature):
        """
        Returns ``(event_type, payment_or_None, transitioned)`` where
        ``transitioned`` is True only when this delivery changed the payment's
        status. Unknown event types are accepted and ignored.
        """
        if not signature:
            logger.warning("Razorpay webhook missing signature header")
            raise InvalidSignature("Missing signature header")
        if not self.webhook_secret:
            logger.error("RAZORPAY_WEBHOOK_SECRET not configured")
            raise ServerError("Webhook secret not configured")
        if not self.gateway.verify_webhook(raw_body, signature, self.webhook_secret):
            # never log the full signature
            logger.warning("Razorpay webhook signature verification failed (%s...)", signature[:10])
            raise InvalidSignature()

        try:
            event = json.loads(raw_body)
        except ValueError as exc:
            raise ValidationError("Invalid JSON payload") from exc
        if not isinstance(event, dict):
            raise ValidationError("Invalid JSON payload")

        event_type = event.get("event")
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info("Unhandled webhook event type %s", event_type)
            return event_type, None, False

        logger.info("Razorpay webhook received: %s", event_type)
        payment, transitioned = handler(event)
        return event_type, payment, transitioned

    def _payment_for_order(self, entity):
        order_id = entity.get("order_id")
        if not order_id:
            raise ValidationError("Webhook payment entity missing order_id")
        payment = self.ledger.by_order_id(order_id)
        if payment is None:
            # 404 makes the gateway redeliver once the order row exists
            logger.error("Payment record not found for order %s", order_id)
            raise NotFound("Payment record not found")
        return payment

    def _payment_captured(self, event):
        entity = _entity(event, "payment")
        gateway_payment_id = entity.get("id")
        if not gateway_payment_id:
            raise ValidationError("Webhook payment entity missing id")
        payment = self._payment_for_order(entity)
        try:
            transitioned = self.ledger.complete(
                payment,
                gateway_payment_id,
                method=entity.get("method"),
                via_webhook=True,
            )
        except AlreadyPaid:
            # money captured twice for one booking; redelivery cannot fix
            # this, it needs a manual refund
            logger.error(
                "Duplicate capture %s for booking %s (order %s)",
                gateway_payment_id, payment.booking_id, payment.gateway_order_id,
            )
            return payment, False
        return payment, transitioned

    def _payment_failed(self, event):
        entity = _entity(event, "payment")
        payment = self._payment_for_order(entity)
        transitioned = self.ledger.fail(
            payment,
            error_code=entity.get("error_code"),
            error_description=entity.get("error_description"),
            via_webhook=True,
        )
        return payment, transitioned

    def _refund_created(self, event):
        entity = _entity(event, "refund")
        gateway_payment_id = entity.get("payment_id")
        if not gateway_payment_id:
            raise ValidationError("Webhook refund entity missing payment_id")
        payment = self.ledger.by_gateway_payment_id(gateway_payment_id)
        if payment is None:
            logger.error("Payment record not found for refund of %s", gateway_payment_id)
            raise NotFound("Payment record not found")
        already_refunded = payment.status == PAYMENT_REFUNDED
        # the payment entity carries the running total across partial refunds
        payment_entity = ((event.get("payload") or {}).get("payment") or {}).get("entity") or {}
        refunded_minor = payment_entity.get("amount_refunded") or entity.get("amount") or 0
        self.ledger.refund(
            payment,
            to_major_units(refunded_minor),
            refunded_at=_from_unix(entity.get("created_at")),
            via_webhook=True,
        )
        return payment, not already_refunded

import logging

from services.ledger import PaymentLedger
from utils.errors import InvalidSignature, NotFound, ServerError, Unauthorized, ValidationError

logger = logging.getLogger(__name__)


class PaymentVerifier:
    """Checks a checkout callback signature and completes the payment."""

    def __init__(self, session, gateway):
        self.session = session
        self.gateway = gateway
        self.ledger = PaymentLedger(session)

    def verify(self, order_id, payment_id, signature, investor_id):
        if not order_id or not payment_id or not signature:
            raise ValidationError("razorpay_order_id, razorpay_payment_id and razorpay_signature are required")
        if not self.gateway.key_secret:
            raise ServerError("Payment gateway not configured")

        if not self.gateway.verify_payment(order_id, payment_id, signature):
            logger.warning("Payment signature mismatch for order %s", order_id)
            raise InvalidSignature("Invalid payment signature")

        payment = self.ledger.by_order_id(order_id)
        if payment is None:
            raise NotFound("Payment not found")
        if payment.booking.investor_id != investor_id:
            raise Unauthorized("Not authorized to verify this payment")

        transitioned = self.ledger.complete(payment, payment_id, signature=signature)
        return payment, transitioned

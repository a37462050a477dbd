import logging
from decimal import Decimal, InvalidOperation

from models.payment import Payment, PAYMENT_COMPLETED
from services.commission import quantize_money, to_major_units, to_minor_units
from services.ledger import PaymentLedger
from utils.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


class RefundIssuer:
    """Admin-initiated refunds of completed payments, full or partial."""

    def __init__(self, session, gateway):
        self.session = session
        self.gateway = gateway
        self.ledger = PaymentLedger(session)

    def refund(self, payment_id, amount=None):
        payment = self.session.get(Payment, payment_id)
        if payment is None:
            raise NotFound("Payment not found")
        if payment.status != PAYMENT_COMPLETED or not payment.gateway_payment_id:
            raise ValidationError(f"Cannot refund a {payment.status} payment")

        if amount in (None, ""):
            refund_amount = payment.amount
        else:
            try:
                refund_amount = quantize_money(Decimal(str(amount)))
                if not refund_amount.is_finite():
                    raise InvalidOperation
            except (InvalidOperation, ValueError):
                raise ValidationError("amount must be a number")
            if refund_amount <= 0 or refund_amount > payment.amount:
                raise ValidationError("amount must be between 0 and the amount paid")

        result = self.gateway.refund_payment(
            payment.gateway_payment_id,
            amount_minor=to_minor_units(refund_amount),
            notes={"booking_id": str(payment.booking_id)},
        )
        refunded = to_major_units(result["amount"]) if result.get("amount") else refund_amount

        self.ledger.refund(payment, refunded)
        logger.info("Refunded %s %s on payment %s", refunded, payment.currency, payment.id)
        return payment

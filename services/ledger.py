"""
The one place a Payment moves into a terminal state.

Both the browser-side verifier and the gateway webhook land here, so they
converge on the same row values. Moving into ``completed`` is a conditional
UPDATE: only the caller that actually flips the row confirms the booking and
bumps the advisor's running totals, so replays and the webhook/browser race
never double-count.
"""
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models.advisor import Advisor
from models.booking import BOOKING_CANCELLED, BOOKING_CONFIRMED, BOOKING_PENDING
from models.payment import Payment, PAYMENT_COMPLETED, PAYMENT_FAILED, PAYMENT_REFUNDED
from utils.clock import utcnow
from utils.errors import AlreadyPaid

logger = logging.getLogger(__name__)


class PaymentLedger:
    def __init__(self, session):
        self.session = session

    def by_order_id(self, order_id):
        return self.session.query(Payment).filter_by(gateway_order_id=order_id).first()

    def by_gateway_payment_id(self, payment_id):
        return self.session.query(Payment).filter_by(gateway_payment_id=payment_id).first()

    def completed_for_booking(self, booking_id):
        return (
            self.session.query(Payment)
            .filter_by(booking_id=booking_id, status=PAYMENT_COMPLETED)
            .first()
        )

    def complete(self, payment, gateway_payment_id, signature=None, method=None, via_webhook=False, now=None):
        """
        Mark ``payment`` completed. Returns True when this call performed the
        transition, False when the payment was already completed (or refunded).
        """
        now = now or utcnow()

        if payment.status == PAYMENT_REFUNDED:
            logger.info("Ignoring completion of refunded payment %s", payment.id)
            return False

        if payment.status != PAYMENT_COMPLETED:
            other = self.completed_for_booking(payment.booking_id)
            if other is not None and other.id != payment.id:
                raise AlreadyPaid()

        try:
            result = self.session.execute(
                update(Payment)
                .where(
                    Payment.id == payment.id,
                    Payment.status != PAYMENT_COMPLETED,
                    Payment.status != PAYMENT_REFUNDED,
                )
                .values(status=PAYMENT_COMPLETED, paid_at=now)
            )
            transitioned = result.rowcount == 1

            if gateway_payment_id:
                payment.gateway_payment_id = gateway_payment_id
            if signature:
                payment.signature = signature
            if method:
                payment.payment_method = method
            if via_webhook:
                payment.webhook_processed_at = now

            if transitioned:
                self._apply_completion(payment)

            self.session.commit()
        except IntegrityError as exc:
            # lost a race against another payment for the same booking
            self.session.rollback()
            raise AlreadyPaid() from exc

        if transitioned:
            logger.info("Payment %s completed (order %s)", payment.id, payment.gateway_order_id)
        return transitioned

    def _apply_completion(self, payment):
        booking = payment.booking
        slot = booking.time_slot
        if booking.status == BOOKING_CANCELLED:
            logger.warning("Payment %s completed for cancelled booking %s", payment.id, booking.id)
        elif slot is not None and not self._lock_slot(slot, booking.investor_id):
            # money is in but the slot went to someone else after the hold lapsed
            logger.error(
                "Slot %s is held by user %s; booking %s stays %s and payment %s needs a refund",
                slot.id, slot.reserved_by, booking.id, booking.status, payment.id,
            )
        elif booking.status == BOOKING_PENDING:
            booking.status = BOOKING_CONFIRMED

        self.session.execute(
            update(Advisor)
            .where(Advisor.id == booking.advisor_id)
            .values(
                total_bookings=Advisor.total_bookings + 1,
                total_revenue=Advisor.total_revenue + payment.advisor_payout,
            )
        )

    @staticmethod
    def _lock_slot(slot, investor_id) -> bool:
        """Make the investor's hold permanent. False when another user has the slot."""
        if slot.is_booked and slot.reserved_by != investor_id:
            return False
        slot.is_booked = True
        slot.reserved_until = None
        slot.reserved_by = investor_id
        return True

    def fail(self, payment, error_code=None, error_description=None, via_webhook=False, now=None):
        now = now or utcnow()
        if via_webhook:
            payment.webhook_processed_at = now

        if payment.status in (PAYMENT_COMPLETED, PAYMENT_REFUNDED):
            # late failure from an earlier attempt on the same order
            logger.info("Keeping %s status for payment %s despite failure event", payment.status, payment.id)
            self.session.commit()
            return False

        payment.status = PAYMENT_FAILED
        payment.error_code = error_code
        payment.error_description = (error_description or "")[:255] or None
        self.session.commit()
        return True

    def refund(self, payment, refund_amount, refunded_at=None, via_webhook=False, now=None):
        """
        ``refund_amount`` is the total refunded so far. It never goes down, so a
        late redelivery of an earlier partial refund is harmless.
        """
        now = now or utcnow()
        payment.status = PAYMENT_REFUNDED
        if payment.refund_amount is None or refund_amount > payment.refund_amount:
            payment.refund_amount = refund_amount
        payment.refunded_at = refunded_at or now
        if via_webhook:
            payment.webhook_processed_at = now
        self.session.commit()
        return payment

import logging
import uuid

from models.booking import Booking, BOOKING_CANCELLED, BOOKING_COMPLETED
from models.payment import Payment, PAYMENT_CREATED
from services.availability import SlotReservations
from services.commission import booking_amount, split_for_storage, to_minor_units, to_major_units
from services.ledger import PaymentLedger
from utils.errors import AlreadyPaid, NotFound, SlotUnavailable, ValidationError

logger = logging.getLogger(__name__)


class OrderCreator:
    """Opens a gateway order for a booking and records a ``created`` Payment."""

    def __init__(self, session, gateway, commission_percent, currency="INR"):
        self.session = session
        self.gateway = gateway
        self.commission_percent = commission_percent
        self.currency = currency
        self.ledger = PaymentLedger(session)

    def create(self, booking_id, investor_id):
        booking = self.session.get(Booking, booking_id)
        if booking is None or booking.investor_id != investor_id:
            raise NotFound("Booking not found")
        if booking.status in (BOOKING_CANCELLED, BOOKING_COMPLETED):
            raise ValidationError(f"Cannot pay for a {booking.status} booking")
        if self.ledger.completed_for_booking(booking.id) is not None:
            raise AlreadyPaid()
        slot = booking.time_slot
        if slot is not None and not SlotReservations(self.session).holds(slot, investor_id):
            # hold lapsed and may already belong to another investor
            raise SlotUnavailable("Time slot hold has expired, please reserve again")

        advisor = booking.advisor
        amount_minor = to_minor_units(booking_amount(advisor.hourly_rate, booking.duration_minutes))
        if amount_minor <= 0:
            raise ValidationError("Advisor has no hourly rate set")

        idempotency_key = uuid.uuid4().hex
        order = self.gateway.create_order(
            amount_minor,
            self.currency,
            receipt=f"booking_{booking.id}",
            notes={
                "booking_id": str(booking.id),
                "investor_id": str(investor_id),
                "advisor_id": str(advisor.id),
                "idempotency_key": idempotency_key,
            },
        )

        split = split_for_storage(to_major_units(amount_minor), self.commission_percent)
        payment = Payment(
            booking_id=booking.id,
            gateway_order_id=order["id"],
            idempotency_key=idempotency_key,
            amount=split.amount,
            currency=self.currency,
            status=PAYMENT_CREATED,
            commission_percent=self.commission_percent,
            platform_commission=split.platform_commission,
            advisor_payout=split.advisor_payout,
        )
        self.session.add(payment)
        self.session.commit()

        logger.info("Created order %s for booking %s (%s paise)", order["id"], booking.id, amount_minor)
        return order, payment, amount_minor

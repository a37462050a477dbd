import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sqlalchemy import or_

from models.advisor import Advisor, ADVISOR_APPROVED, ADVISOR_PENDING, ADVISOR_REJECTED
from models.booking import Booking, BOOKING_COMPLETED, BOOKING_CONFIRMED
from models.payment import Payment, PAYMENT_COMPLETED
from models.time_slot import TimeSlot
from services.commission import quantize_money
from utils.clock import utcnow
from utils.errors import Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)

BIO_MIN_LEN = 10


def _rupees(value) -> int:
    # display figures only; stored money stays at paise precision
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_rate(value, field="hourly_rate") -> Decimal:
    try:
        rate = quantize_money(Decimal(str(value)))
        if not rate.is_finite():
            raise InvalidOperation
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number")
    if rate <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return rate


class AdvisorDirectory:
    def __init__(self, session):
        self.session = session

    # ---- profiles ----

    def upsert_profile(self, user, data):
        advisor = user.advisor
        creating = advisor is None

        display_name = (data.get("display_name") or "").strip() or (user.full_name or "").strip()
        if creating and not display_name:
            raise ValidationError("display_name is required")

        bio = data.get("bio")
        if bio is not None:
            bio = bio.strip()
            if len(bio) < BIO_MIN_LEN:
                raise ValidationError(f"Bio must be at least {BIO_MIN_LEN} characters")

        rate = None
        if creating or data.get("hourly_rate") is not None:
            rate = parse_rate(data.get("hourly_rate"))

        if creating:
            advisor = Advisor(user_id=user.id, display_name=display_name, status=ADVISOR_PENDING)
            self.session.add(advisor)
        elif display_name:
            advisor.display_name = display_name[:120]

        if bio is not None:
            advisor.bio = bio
        if data.get("specialization") is not None:
            advisor.specialization = data["specialization"].strip().lower()[:120] or None
        if rate is not None:
            advisor.hourly_rate = rate

        self.session.commit()
        return advisor, creating

    def list_approved(self, specialization=None, max_rate=None, search=None):
        query = self.session.query(Advisor).filter(Advisor.status == ADVISOR_APPROVED)
        if specialization:
            query = query.filter(Advisor.specialization == specialization.strip().lower())
        if max_rate:
            try:
                rate = Decimal(str(max_rate))
            except InvalidOperation:
                raise ValidationError("maxRate must be a number")
            if rate > 0:
                query = query.filter(Advisor.hourly_rate <= rate)
        if search and search.strip():
            like = f"%{search.strip()}%"
            query = query.filter(or_(Advisor.display_name.ilike(like), Advisor.bio.ilike(like)))
        return query.order_by(Advisor.total_bookings.desc(), Advisor.id).all()

    def get_public(self, advisor_id):
        advisor = self.session.get(Advisor, advisor_id)
        if advisor is None or advisor.status != ADVISOR_APPROVED:
            raise NotFound("Advisor not found")
        return advisor

    # ---- time slots ----

    def add_slot(self, advisor, start_time: datetime, end_time: datetime, now=None):
        now = now or utcnow()
        if end_time <= start_time:
            raise ValidationError("end_time must be after start_time")
        if start_time <= now:
            raise ValidationError("start_time must be in the future")

        clash = (
            self.session.query(TimeSlot)
            .filter_by(advisor_id=advisor.id, start_time=start_time)
            .first()
        )
        if clash:
            raise ValidationError("A slot already starts at this time")

        slot = TimeSlot(advisor_id=advisor.id, start_time=start_time, end_time=end_time)
        self.session.add(slot)
        self.session.commit()
        return slot

    def deactivate_slot(self, advisor, slot_id):
        slot = self.session.get(TimeSlot, slot_id)
        if slot is None:
            raise NotFound("Time slot not found")
        if slot.advisor_id != advisor.id:
            raise Forbidden("Not your time slot")
        slot.is_available = False
        self.session.commit()
        return slot

    def open_slots(self, advisor_id, now=None):
        """Future slots an investor could reserve right now."""
        now = now or utcnow()
        return (
            self.session.query(TimeSlot)
            .filter(
                TimeSlot.advisor_id == advisor_id,
                TimeSlot.start_time > now,
                TimeSlot.is_available.is_(True),
                or_(
                    TimeSlot.is_booked.is_(False),
                    (TimeSlot.reserved_until.isnot(None)) & (TimeSlot.reserved_until <= now),
                ),
            )
            .order_by(TimeSlot.start_time)
            .all()
        )

    def own_slots(self, advisor):
        return (
            self.session.query(TimeSlot)
            .filter_by(advisor_id=advisor.id)
            .order_by(TimeSlot.start_time)
            .all()
        )

    # ---- approval ----

    def pending(self):
        return (
            self.session.query(Advisor)
            .filter_by(status=ADVISOR_PENDING)
            .order_by(Advisor.created_at)
            .all()
        )

    def _get(self, advisor_id):
        advisor = self.session.get(Advisor, advisor_id)
        if advisor is None:
            raise NotFound("Advisor not found")
        return advisor

    def approve(self, advisor_id, now=None):
        advisor = self._get(advisor_id)
        if advisor.status == ADVISOR_APPROVED:
            raise ValidationError("Advisor is already approved")
        advisor.status = ADVISOR_APPROVED
        advisor.approved_at = now or utcnow()
        advisor.rejected_reason = None
        self.session.commit()
        return advisor

    def reject(self, advisor_id, reason):
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required")
        advisor = self._get(advisor_id)
        advisor.status = ADVISOR_REJECTED
        advisor.rejected_reason = reason[:255]
        advisor.approved_at = None
        self.session.commit()
        return advisor

    # ---- earnings ----

    def earnings(self, advisor, now=None):
        """
        Earnings from what was actually stored for each paid booking, i.e.
        the advisor payout net of platform commission.
        """
        now = now or utcnow()
        start_of_month = datetime(now.year, now.month, 1)
        start_of_year = datetime(now.year, 1, 1)

        rows = (
            self.session.query(Booking, Payment.advisor_payout)
            .join(Payment, Payment.booking_id == Booking.id)
            .filter(
                Booking.advisor_id == advisor.id,
                Payment.status == PAYMENT_COMPLETED,
                Booking.status.in_([BOOKING_COMPLETED, BOOKING_CONFIRMED]),
            )
            .all()
        )

        total = this_month = this_year = pending = Decimal("0")
        sessions = 0
        for booking, payout in rows:
            sessions += 1
            if booking.status == BOOKING_CONFIRMED:
                pending += payout
                continue
            total += payout
            if booking.meeting_time >= start_of_month:
                this_month += payout
            if booking.meeting_time >= start_of_year:
                this_year += payout

        average = total / sessions if sessions else Decimal("0")
        return {
            "totalEarnings": _rupees(total),
            "thisMonth": _rupees(this_month),
            "thisYear": _rupees(this_year),
            "completedPayouts": _rupees(total),
            "pendingPayouts": _rupees(pending),
            "totalSessions": sessions,
            "avgEarningPerSession": _rupees(average),
            "totalRevenue": str(advisor.total_revenue),
        }

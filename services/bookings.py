import logging
from datetime import timedelta, timezone

from integrations.daily import VideoRoomError, room_name_for_booking
from models.advisor import Advisor, ADVISOR_APPROVED
from models.booking import (
    Booking,
    BOOKING_CANCELLED,
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    BOOKING_PENDING,
)
from models.time_slot import TimeSlot
from security.rbac import ROLE_ADMIN, ROLE_ADVISOR
from services.availability import SlotReservations
from utils.clock import utcnow
from utils.errors import Forbidden, NotFound, SlotUnavailable, ValidationError

logger = logging.getLogger(__name__)

ROOM_GRACE = timedelta(hours=24)
ADMIN_LIST_LIMIT = 200


class BookingManager:
    def __init__(self, session, video_rooms=None, default_minutes=60, hold_minutes=15):
        self.session = session
        self.video_rooms = video_rooms
        self.default_minutes = default_minutes
        self.slots = SlotReservations(session, hold_minutes)

    def create(self, investor, advisor_id, meeting_time=None, duration_minutes=None,
               notes=None, time_slot_id=None, now=None):
        advisor = self.session.get(Advisor, advisor_id) if advisor_id else None
        if advisor is None or advisor.status != ADVISOR_APPROVED:
            raise ValidationError("Advisor not available")

        duration = self.default_minutes if duration_minutes in (None, "") else duration_minutes
        try:
            duration = int(duration)
        except (TypeError, ValueError):
            raise ValidationError("duration must be a whole number of minutes")
        if duration <= 0:
            raise ValidationError("duration must be a positive number of minutes")

        slot = None
        if time_slot_id is not None:
            slot = self.session.get(TimeSlot, time_slot_id)
            if slot is None or slot.advisor_id != advisor.id or not self.slots.holds(slot, investor.id, now):
                raise SlotUnavailable("Reserve the time slot before booking it")
            meeting_time = meeting_time or slot.start_time

        if meeting_time is None:
            raise ValidationError("meetingTime is required")

        booking = Booking(
            advisor_id=advisor.id,
            investor_id=investor.id,
            time_slot_id=slot.id if slot else None,
            meeting_time=meeting_time,
            duration_minutes=duration,
            notes=notes or None,
            status=BOOKING_PENDING,
        )
        self.session.add(booking)
        self.session.commit()

        self._attach_room(booking)
        return booking

    def _attach_room(self, booking):
        if self.video_rooms is None:
            return
        try:
            room = self.video_rooms.create_room(
                room_name_for_booking(booking.id),
                expires_at=_unix(booking.meeting_time + ROOM_GRACE),
                max_participants=2,
            )
        except VideoRoomError as exc:
            # the room can be created later; the booking stands
            logger.warning("Video room for booking %s not created: %s", booking.id, exc)
            return
        booking.meeting_link = room.get("url")
        booking.daily_room_name = room.get("name")
        self.session.commit()

    def list_for(self, user):
        query = self.session.query(Booking)
        if user.has_role(ROLE_ADMIN):
            return query.order_by(Booking.meeting_time.desc()).limit(ADMIN_LIST_LIMIT).all()

        if user.has_role(ROLE_ADVISOR) and user.advisor is not None:
            query = query.filter(Booking.advisor_id == user.advisor.id)
        else:
            query = query.filter(Booking.investor_id == user.id)
        return query.order_by(Booking.meeting_time.desc()).all()

    def get(self, booking_id):
        booking = self.session.get(Booking, booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    def cancel(self, booking_id, user, reason=None, now=None):
        booking = self.get(booking_id)

        is_investor = booking.investor_id == user.id
        is_advisor = user.advisor is not None and booking.advisor_id == user.advisor.id
        if not is_investor and not is_advisor:
            raise Forbidden("Not allowed to cancel this booking")

        if booking.status == BOOKING_CANCELLED:
            raise ValidationError("Booking is already cancelled")
        if booking.status == BOOKING_COMPLETED:
            raise ValidationError("Cannot cancel a completed booking")

        booking.status = BOOKING_CANCELLED
        booking.cancelled_by = user.id
        booking.cancelled_at = now or utcnow()
        booking.cancellation_reason = (
            reason or ("Cancelled by advisor" if is_advisor else "Cancelled by investor")
        )[:255]

        if booking.time_slot is not None:
            self.slots.free(booking.time_slot)

        self.session.commit()
        return booking

    def complete(self, booking_id, user):
        booking = self.get(booking_id)
        if user.advisor is None or booking.advisor_id != user.advisor.id:
            raise Forbidden("Only the booking's advisor can complete it")
        if booking.status != BOOKING_CONFIRMED:
            raise ValidationError(f"Cannot complete a {booking.status} booking")

        booking.status = BOOKING_COMPLETED
        self.session.commit()
        return booking


def _unix(naive_utc):
    return int(naive_utc.replace(tzinfo=timezone.utc).timestamp())

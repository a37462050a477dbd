"""
Short-lived holds on advisor time slots.

A hold is ``is_booked = True`` with ``reserved_until`` in the future. Once
the booking is paid the hold becomes permanent (``reserved_until`` cleared).
Expired holds are reclaimed lazily by ``reserve`` and in bulk by the
``release-expired-slots`` command.
"""
import logging
from datetime import timedelta

from sqlalchemy import and_, or_, update

from models.time_slot import TimeSlot
from security.rbac import ROLE_ADMIN
from utils.clock import utcnow
from utils.errors import Forbidden, NotFound, SlotUnavailable, ValidationError

logger = logging.getLogger(__name__)


def _claimable(now):
    return and_(
        TimeSlot.is_available.is_(True),
        or_(
            TimeSlot.is_booked.is_(False),
            and_(TimeSlot.reserved_until.isnot(None), TimeSlot.reserved_until <= now),
        ),
    )


class SlotReservations:
    def __init__(self, session, hold_minutes=15):
        self.session = session
        self.hold_minutes = hold_minutes

    def reserve(self, advisor_id, start_time, duration_minutes, holder_id, now=None):
        now = now or utcnow()
        if duration_minutes is None or int(duration_minutes) <= 0:
            raise ValidationError("duration must be a positive number of minutes")

        slot = self._find_candidate(advisor_id, start_time, now)
        if slot is None:
            raise SlotUnavailable()

        reserved_until = now + timedelta(minutes=self.hold_minutes)
        if not self._claim(slot.id, holder_id, now, reserved_until):
            # somebody else got there between the lookup and the update
            raise SlotUnavailable()

        self.session.commit()
        logger.info("Slot %s held for user %s until %s", slot.id, holder_id, reserved_until)
        return {"success": True, "timeSlotId": slot.id, "reservedUntil": reserved_until}

    def _find_candidate(self, advisor_id, start_time, now):
        return (
            self.session.query(TimeSlot)
            .filter(TimeSlot.advisor_id == advisor_id, TimeSlot.start_time == start_time)
            .filter(_claimable(now))
            .first()
        )

    def _claim(self, slot_id, holder_id, now, reserved_until) -> bool:
        result = self.session.execute(
            update(TimeSlot)
            .where(TimeSlot.id == slot_id, _claimable(now))
            .values(is_booked=True, reserved_until=reserved_until, reserved_by=holder_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def release(self, time_slot_id, user):
        slot = self.session.get(TimeSlot, time_slot_id)
        if slot is None:
            raise NotFound("Time slot not found")

        owns_slot = user.advisor is not None and user.advisor.id == slot.advisor_id
        if slot.reserved_by != user.id and not owns_slot and not user.has_role(ROLE_ADMIN):
            raise Forbidden("Not allowed to release this time slot")

        self.free(slot)
        self.session.commit()
        return slot

    def free(self, slot):
        slot.is_booked = False
        slot.reserved_until = None
        slot.reserved_by = None

    def holds(self, slot, holder_id, now=None) -> bool:
        now = now or utcnow()
        if not slot.is_booked or slot.reserved_by != holder_id:
            return False
        return slot.reserved_until is None or slot.reserved_until > now

    def sweep_expired(self, now=None) -> int:
        now = now or utcnow()
        result = self.session.execute(
            update(TimeSlot)
            .where(
                TimeSlot.is_booked.is_(True),
                TimeSlot.reserved_until.isnot(None),
                TimeSlot.reserved_until <= now,
            )
            .values(is_booked=False, reserved_until=None, reserved_by=None)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount

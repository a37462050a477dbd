from models.db import db
from utils.clock import utcnow, isoformat

BOOKING_PENDING = "pending"
BOOKING_CONFIRMED = "confirmed"
BOOKING_CANCELLED = "cancelled"
BOOKING_COMPLETED = "completed"

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    advisor_id = db.Column(db.Integer, db.ForeignKey("advisors.id"), nullable=False, index=True)
    investor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    time_slot_id = db.Column(db.Integer, db.ForeignKey("advisor_time_slots.id"), nullable=True, index=True)

    meeting_time = db.Column(db.DateTime, nullable=False, index=True)
    duration_minutes = db.Column(db.Integer, nullable=False, default=60)

    status = db.Column(db.String(20), nullable=False, default=BOOKING_PENDING, index=True)
    # status values: pending, confirmed, cancelled, completed
    notes = db.Column(db.Text, nullable=True)

    meeting_link = db.Column(db.String(255), nullable=True)
    daily_room_name = db.Column(db.String(120), nullable=True)

    cancelled_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    advisor = db.relationship("Advisor")
    time_slot = db.relationship("TimeSlot")

    __table_args__ = (
        db.CheckConstraint("duration_minutes > 0", name="ck_booking_duration_positive"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "advisor_id": self.advisor_id,
            "investor_id": self.investor_id,
            "time_slot_id": self.time_slot_id,
            "meeting_time": self.meeting_time.isoformat(),
            "duration_minutes": self.duration_minutes,
            "status": self.status,
            "notes": self.notes,
            "meeting_link": self.meeting_link,
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
            "cancelled_at": isoformat(self.cancelled_at),
            "created_at": isoformat(self.created_at),
        }

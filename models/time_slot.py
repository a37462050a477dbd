from models.db import db
from utils.clock import utcnow, isoformat

class TimeSlot(db.Model):
    __tablename__ = "advisor_time_slots"

    id = db.Column(db.Integer, primary_key=True)

    advisor_id = db.Column(db.Integer, db.ForeignKey("advisors.id"), nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    # offered by the advisor / currently held or consumed by a booking
    is_available = db.Column(db.Boolean, default=True, nullable=False)
    is_booked = db.Column(db.Boolean, default=False, nullable=False)

    # hold expiry while the investor completes checkout; null once consumed
    reserved_until = db.Column(db.DateTime, nullable=True)
    reserved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("advisor_id", "start_time", name="uq_advisor_slot_start"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "advisor_id": self.advisor_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "is_available": self.is_available,
            "is_booked": self.is_booked,
            "reserved_until": isoformat(self.reserved_until),
        }

from decimal import Decimal

from models.db import db
from utils.clock import utcnow, isoformat

ADVISOR_PENDING = "pending"
ADVISOR_APPROVED = "approved"
ADVISOR_REJECTED = "rejected"

class Advisor(db.Model):
    __tablename__ = "advisors"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    display_name = db.Column(db.String(120), nullable=False)
    specialization = db.Column(db.String(120), nullable=True, index=True)
    bio = db.Column(db.Text, nullable=True)
    hourly_rate = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0"))  # major units (INR)

    status = db.Column(db.String(20), nullable=False, default=ADVISOR_PENDING, index=True)
    rejected_reason = db.Column(db.String(255), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)

    # running totals, only touched when a payment becomes completed
    total_bookings = db.Column(db.Integer, nullable=False, default=0)
    total_revenue = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0"))

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = db.relationship("User", back_populates="advisor")

    def to_dict(self, include_totals=False):
        out = {
            "id": self.id,
            "user_id": self.user_id,
            "display_name": self.display_name,
            "specialization": self.specialization,
            "bio": self.bio,
            "hourly_rate": str(self.hourly_rate),
            "status": self.status,
            "approved_at": isoformat(self.approved_at),
        }
        if include_totals:
            out["total_bookings"] = self.total_bookings
            out["total_revenue"] = str(self.total_revenue)
            out["rejected_reason"] = self.rejected_reason
        return out

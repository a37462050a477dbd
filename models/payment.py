from sqlalchemy import text

from models.db import db
from utils.clock import utcnow, isoformat

PAYMENT_CREATED = "created"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"
PAYMENT_REFUNDED = "refunded"

class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)

    provider = db.Column(db.String(20), nullable=False, default="RAZORPAY")
    gateway_order_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    gateway_payment_id = db.Column(db.String(64), nullable=True, unique=True, index=True)
    signature = db.Column(db.String(128), nullable=True)
    idempotency_key = db.Column(db.String(64), nullable=False, unique=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)   # major units
    currency = db.Column(db.String(10), nullable=False, default="INR")

    status = db.Column(db.String(20), nullable=False, default=PAYMENT_CREATED, index=True)
    # status values: created, completed, failed, refunded

    commission_percent = db.Column(db.Numeric(5, 2), nullable=False)
    platform_commission = db.Column(db.Numeric(12, 2), nullable=False)
    advisor_payout = db.Column(db.Numeric(12, 2), nullable=False)

    payment_method = db.Column(db.String(40), nullable=True)
    error_code = db.Column(db.String(80), nullable=True)
    error_description = db.Column(db.String(255), nullable=True)
    refund_amount = db.Column(db.Numeric(12, 2), nullable=True)
    refunded_at = db.Column(db.DateTime, nullable=True)

    paid_at = db.Column(db.DateTime, nullable=True)
    webhook_processed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    booking = db.relationship("Booking", backref=db.backref("payments", lazy=True))

    __table_args__ = (
        # Hard business rule: one completed payment per booking
        db.Index(
            "uq_payment_completed_per_booking",
            "booking_id",
            unique=True,
            sqlite_where=text("status = 'completed'"),
            postgresql_where=text("status = 'completed'"),
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "razorpay_order_id": self.gateway_order_id,
            "razorpay_payment_id": self.gateway_payment_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "status": self.status,
            "commission_percent": str(self.commission_percent),
            "platform_commission": str(self.platform_commission),
            "advisor_payout": str(self.advisor_payout),
            "payment_method": self.payment_method,
            "error_code": self.error_code,
            "error_description": self.error_description,
            "refund_amount": str(self.refund_amount) if self.refund_amount is not None else None,
            "refunded_at": isoformat(self.refunded_at),
            "paid_at": isoformat(self.paid_at),
            "created_at": isoformat(self.created_at),
        }

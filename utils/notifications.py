from flask import current_app

from models import db
from models.user import User
from utils.audit import log_event
from utils.emailer import send_email


def _name(user):
    return user.full_name or user.email


def notify_booking_confirmed(booking, payment):
    investor = db.session.get(User, booking.investor_id)
    advisor = booking.advisor
    advisor_user = advisor.user if advisor else None
    when = booking.meeting_time.strftime("%d %b %Y, %H:%M UTC")
    link = booking.meeting_link or "(link will be shared before the session)"

    results = {}
    if investor:
        results["investor"] = send_email(
            investor.email,
            f"Booking Confirmed - Your Meeting with {advisor.display_name}",
            (
                f"Hi {_name(investor)},\n\n"
                f"Your consultation with {advisor.display_name} has been confirmed.\n\n"
                f"Time: {when}\n"
                f"Amount Paid: {payment.currency} {payment.amount}\n"
                f"Join: {link}\n\n"
                "Thank you,\nFynly"
            ),
        )
    if advisor_user:
        results["advisor"] = send_email(
            advisor_user.email,
            "New confirmed booking",
            (
                f"Hi {advisor.display_name},\n\n"
                f"{_name(investor) if investor else 'An investor'} booked a session with you.\n\n"
                f"Time: {when}\n"
                f"Your payout: {payment.currency} {payment.advisor_payout}\n"
                f"Join: {link}\n\n"
                "Fynly"
            ),
        )

    log_event(
        "BOOKING_CONFIRMATION_EMAIL",
        entity="booking",
        entity_id=booking.id,
        metadata={k: {"sent": ok, "error": err} for k, (ok, err) in results.items()},
    )


def notify_advisor_decision(advisor, approved: bool, actor_id=None):
    user = advisor.user
    if not user:
        return
    if approved:
        subject = "Your advisor profile has been approved"
        dashboard_url = current_app.config.get("FRONTEND_BASE_URL", "").rstrip("/")
        body = (
            f"Hi {advisor.display_name},\n\n"
            "Your advisor profile is now live and investors can book sessions with you."
            f"\n\nDashboard: {dashboard_url}/advisor/dashboard\n\n"
            "Thank you,\nFynly"
        )
    else:
        subject = "Your advisor application"
        body = (
            f"Hi {advisor.display_name},\n\n"
            "We could not approve your advisor profile at this time."
            f"\nReason: {advisor.rejected_reason or 'not specified'}\n\n"
            "Fynly"
        )

    ok, error = send_email(user.email, subject, body)
    log_event(
        "ADVISOR_DECISION_EMAIL",
        user_id=actor_id,
        entity="advisor",
        entity_id=advisor.id,
        metadata={"sent": ok, "error": error, "approved": approved},
    )

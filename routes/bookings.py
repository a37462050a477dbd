from flask import Blueprint, request, jsonify, g, current_app

from models import db
from security.rbac import require_roles, ROLE_INVESTOR, ROLE_ADVISOR
from services.availability import SlotReservations
from services.bookings import BookingManager
from utils.audit import log_event
from utils.auth_context import login_required
from utils.clock import isoformat, parse_iso
from utils.errors import ValidationError

bookings_bp = Blueprint("bookings", __name__, url_prefix="/bookings")


def _reservations():
    return SlotReservations(db.session, current_app.config.get("SLOT_HOLD_MINUTES", 15))


def _manager():
    return BookingManager(
        db.session,
        current_app.extensions.get("video_rooms"),
        default_minutes=current_app.config.get("DEFAULT_SESSION_MINUTES", 60),
        hold_minutes=current_app.config.get("SLOT_HOLD_MINUTES", 15),
    )


def _parse_time(value, field):
    try:
        return parse_iso(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 timestamp")


def _int_field(data, field, required=True):
    value = data.get(field)
    if value is None and not required:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


@bookings_bp.post("/availability")
@login_required
def reserve_slot():
    data = request.get_json(silent=True) or {}
    advisor_id = _int_field(data, "advisorId")
    start_time = _parse_time(data.get("startTime"), "startTime")
    duration = _int_field(data, "duration")

    result = _reservations().reserve(advisor_id, start_time, duration, g.user.id)

    log_event(
        "SLOT_RESERVED",
        user_id=g.user.id,
        entity="time_slot",
        entity_id=result["timeSlotId"],
        metadata={"reserved_until": result["reservedUntil"]},
    )
    return jsonify(
        success=True,
        timeSlotId=result["timeSlotId"],
        reservedUntil=isoformat(result["reservedUntil"]),
    ), 200


@bookings_bp.delete("/availability")
@login_required
def release_slot():
    time_slot_id = request.args.get("timeSlotId", type=int)
    if not time_slot_id:
        raise ValidationError("Time slot ID required")

    _reservations().release(time_slot_id, g.user)

    log_event("SLOT_RELEASED", user_id=g.user.id, entity="time_slot", entity_id=time_slot_id)
    return jsonify(success=True), 200


@bookings_bp.post("")
@require_roles(ROLE_INVESTOR)
def create_booking():
    data = request.get_json(silent=True) or {}
    advisor_id = _int_field(data, "advisorId")
    time_slot_id = _int_field(data, "timeSlotId", required=False)
    meeting_time = None
    if data.get("meetingTime"):
        meeting_time = _parse_time(data["meetingTime"], "meetingTime")

    booking = _manager().create(
        g.user,
        advisor_id,
        meeting_time=meeting_time,
        duration_minutes=data.get("duration"),
        notes=data.get("notes"),
        time_slot_id=time_slot_id,
    )

    log_event("BOOKING_CREATED", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(booking=booking.to_dict()), 201


@bookings_bp.get("")
@login_required
def list_bookings():
    bookings = _manager().list_for(g.user)
    return jsonify(bookings=[b.to_dict() for b in bookings]), 200


@bookings_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id):
    data = request.get_json(silent=True) or {}
    reason = data.get("reason")
    if reason is not None and not isinstance(reason, str):
        raise ValidationError("reason must be a string")

    booking = _manager().cancel(booking_id, g.user, reason=(reason or "").strip() or None)

    log_event(
        "BOOKING_CANCELLED",
        user_id=g.user.id,
        entity="booking",
        entity_id=booking.id,
        metadata={"reason": booking.cancellation_reason},
    )
    return jsonify(success=True, booking=booking.to_dict()), 200


@bookings_bp.post("/<int:booking_id>/complete")
@require_roles(ROLE_ADVISOR)
def complete_booking(booking_id):
    booking = _manager().complete(booking_id, g.user)
    log_event("BOOKING_COMPLETED", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(success=True, booking=booking.to_dict()), 200

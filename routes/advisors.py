from flask import Blueprint, request, jsonify, g

from models import db
from security.rbac import require_roles, ROLE_ADVISOR
from services.advisors import AdvisorDirectory
from utils.audit import log_event
from utils.clock import parse_iso
from utils.errors import NotFound, ValidationError

advisors_bp = Blueprint("advisors", __name__, url_prefix="/advisors")


def _own_profile():
    advisor = g.user.advisor
    if advisor is None:
        raise NotFound("Advisor profile not found")
    return advisor


@advisors_bp.get("")
def list_advisors():
    advisors = AdvisorDirectory(db.session).list_approved(
        specialization=request.args.get("specialization"),
        max_rate=request.args.get("maxRate"),
        search=request.args.get("search"),
    )
    return jsonify(advisors=[a.to_dict() for a in advisors]), 200


@advisors_bp.get("/<int:advisor_id>")
def get_advisor(advisor_id):
    advisor = AdvisorDirectory(db.session).get_public(advisor_id)
    return jsonify(advisor=advisor.to_dict()), 200


@advisors_bp.get("/<int:advisor_id>/slots")
def advisor_slots(advisor_id):
    directory = AdvisorDirectory(db.session)
    advisor = directory.get_public(advisor_id)
    return jsonify(slots=[s.to_dict() for s in directory.open_slots(advisor.id)]), 200


@advisors_bp.get("/me")
@require_roles(ROLE_ADVISOR)
def my_profile():
    return jsonify(advisor=_own_profile().to_dict(include_totals=True)), 200


@advisors_bp.post("/me")
@require_roles(ROLE_ADVISOR)
def save_profile():
    data = request.get_json(silent=True) or {}
    for field in ("display_name", "bio", "specialization"):
        if data.get(field) is not None and not isinstance(data[field], str):
            raise ValidationError(f"{field} must be a string")

    advisor, created = AdvisorDirectory(db.session).upsert_profile(g.user, data)

    log_event(
        "ADVISOR_PROFILE_CREATED" if created else "ADVISOR_PROFILE_UPDATED",
        user_id=g.user.id,
        entity="advisor",
        entity_id=advisor.id,
    )
    return jsonify(advisor=advisor.to_dict(include_totals=True)), 201 if created else 200


@advisors_bp.get("/me/slots")
@require_roles(ROLE_ADVISOR)
def my_slots():
    slots = AdvisorDirectory(db.session).own_slots(_own_profile())
    return jsonify(slots=[s.to_dict() for s in slots]), 200


@advisors_bp.post("/me/slots")
@require_roles(ROLE_ADVISOR)
def add_slot():
    data = request.get_json(silent=True) or {}
    try:
        start_time = parse_iso(data.get("start_time"))
        end_time = parse_iso(data.get("end_time"))
    except ValueError:
        raise ValidationError("start_time and end_time must be ISO-8601 timestamps")

    slot = AdvisorDirectory(db.session).add_slot(_own_profile(), start_time, end_time)

    log_event("SLOT_CREATED", user_id=g.user.id, entity="time_slot", entity_id=slot.id)
    return jsonify(slot=slot.to_dict()), 201


@advisors_bp.post("/me/slots/<int:slot_id>/deactivate")
@require_roles(ROLE_ADVISOR)
def deactivate_slot(slot_id):
    slot = AdvisorDirectory(db.session).deactivate_slot(_own_profile(), slot_id)
    log_event("SLOT_DEACTIVATED", user_id=g.user.id, entity="time_slot", entity_id=slot.id)
    return jsonify(slot=slot.to_dict()), 200


@advisors_bp.get("/me/earnings")
@require_roles(ROLE_ADVISOR)
def my_earnings():
    return jsonify(AdvisorDirectory(db.session).earnings(_own_profile())), 200

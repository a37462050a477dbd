from flask import Blueprint, jsonify, g, request

from models import db
from models.audit_log import AuditLog
from security.rbac import require_roles, ROLE_ADMIN
from services.advisors import AdvisorDirectory
from utils.audit import log_event
from utils.notifications import notify_advisor_decision

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/advisors/pending")
@require_roles(ROLE_ADMIN)
def pending_advisors():
    advisors = AdvisorDirectory(db.session).pending()
    out = []
    for a in advisors:
        row = a.to_dict(include_totals=True)
        row["email"] = a.user.email if a.user else None
        out.append(row)
    return jsonify(advisors=out), 200


@admin_bp.post("/advisors/<int:advisor_id>/approve")
@require_roles(ROLE_ADMIN)
def approve_advisor(advisor_id):
    advisor = AdvisorDirectory(db.session).approve(advisor_id)
    log_event("ADVISOR_APPROVED", user_id=g.user.id, entity="advisor", entity_id=advisor.id)
    notify_advisor_decision(advisor, approved=True, actor_id=g.user.id)
    return jsonify(success=True, advisor=advisor.to_dict(include_totals=True)), 200


@admin_bp.post("/advisors/<int:advisor_id>/reject")
@require_roles(ROLE_ADMIN)
def reject_advisor(advisor_id):
    data = request.get_json(silent=True) or {}
    advisor = AdvisorDirectory(db.session).reject(advisor_id, data.get("reason"))
    log_event(
        "ADVISOR_REJECTED",
        user_id=g.user.id,
        entity="advisor",
        entity_id=advisor.id,
        metadata={"reason": advisor.rejected_reason},
    )
    notify_advisor_decision(advisor, approved=False, actor_id=g.user.id)
    return jsonify(success=True, advisor=advisor.to_dict(include_totals=True)), 200


@admin_bp.get("/audit-logs")
@require_roles(ROLE_ADMIN)
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    action = request.args.get("action")
    user_id = request.args.get("user_id", type=int)

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.id.desc()).limit(limit).all()
    return jsonify(logs=[r.to_dict() for r in rows]), 200

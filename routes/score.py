import logging

from flask import Blueprint, request, jsonify, g

from models import db
from models.health_score import HealthScoreSubmission
from security.rbac import has_role, ROLE_ADMIN
from services.health_score import compute_pfhr, validate_inputs
from utils.audit import log_event
from utils.errors import NotFound

logger = logging.getLogger(__name__)

score_bp = Blueprint("score", __name__, url_prefix="/score")


@score_bp.post("")
def submit_score():
    inputs = validate_inputs(request.get_json(silent=True))
    result = compute_pfhr(inputs)

    user = getattr(g, "user", None)
    submission = HealthScoreSubmission(
        investor_id=user.id if user else None,
        inputs=inputs,
        score=result["score"],
        category=result["category"],
        risk_level=result["risk_level"],
        breakdown=result["breakdown"],
        recommendations=result["recommendations"],
    )
    db.session.add(submission)
    db.session.commit()

    # no financial figures in logs
    logger.info("Score submission %s: %s (%s)", submission.id, result["score"], result["category"])
    log_event(
        "SCORE_SUBMITTED",
        user_id=user.id if user else None,
        entity="health_score",
        entity_id=submission.id,
        metadata={"category": result["category"]},
    )
    return jsonify(submission.to_dict()), 200


@score_bp.get("/<int:submission_id>")
def get_score(submission_id):
    submission = db.session.get(HealthScoreSubmission, submission_id)
    if submission is None:
        raise NotFound("Submission not found")

    if submission.investor_id is not None:
        user = getattr(g, "user", None)
        if user is None or (user.id != submission.investor_id and not has_role(ROLE_ADMIN)):
            # owned submissions are private; don't reveal they exist
            raise NotFound("Submission not found")

    return jsonify(submission.to_dict()), 200

from flask import Blueprint, request, jsonify, g

from models import db
from models.user import User
from security.csrf import issue_csrf_token
from security.password import hash_password, verify_password
from security.password_policy import validate_password
from security.rbac import ROLE_ADVISOR, ROLE_INVESTOR
from security.session import (
    attach_session_cookie,
    clear_session_cookie,
    create_session,
    revoke_all_sessions,
    revoke_session,
    session_token_from_request,
)
from utils.audit import log_event
from utils.auth_context import login_required
from utils.seed import grant_role


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

# roles a user may pick at sign-up; ADMIN is granted with `flask make-admin`
SELF_SERVICE_ROLES = {"investor": ROLE_INVESTOR, "advisor": ROLE_ADVISOR}


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _user_payload(user: User):
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "roles": user.role_names,
        "advisor_id": user.advisor.id if user.advisor else None,
    }


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    role_key = (data.get("role") or "investor").strip().lower()

    if not _is_valid_email(email):
        return jsonify(error="Invalid email", code="VALIDATION_ERROR"), 400
    if role_key not in SELF_SERVICE_ROLES:
        return jsonify(error="role must be investor or advisor", code="VALIDATION_ERROR"), 400
    valid, errors = validate_password(password)
    if not valid:
        return jsonify(error="Password does not meet policy", code="VALIDATION_ERROR", details=errors), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered", code="CONFLICT"), 409

    full_name = data.get("full_name")
    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name.strip()[:120] if isinstance(full_name, str) else None,
    )
    db.session.add(user)
    grant_role(user, SELF_SERVICE_ROLES[role_key])

    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"role": role_key})
    return jsonify(message="Registered successfully", user=_user_payload(user)), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials", code="UNAUTHORIZED"), 401

    # one live session per user
    revoked_count = revoke_all_sessions(user.id)
    raw_token = create_session(user.id)

    resp = jsonify(message="Login OK", user=_user_payload(user))
    issue_csrf_token(attach_session_cookie(resp, raw_token))

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_user_payload(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(session_token_from_request())
    log_event("LOGOUT", user_id=g.user.id)
    return clear_session_cookie(jsonify(message="Logged out")), 200

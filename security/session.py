import hashlib
import secrets
from datetime import timedelta

from flask import current_app, request

from models import db
from models.session import AuthSession
from utils.clock import utcnow


def _hash_token(token: str) -> str:
    # tokens are 256-bit random, a plain digest is enough
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "fynly_session")


def _find(raw_token, include_revoked=False):
    if not raw_token:
        return None
    query = AuthSession.query.filter_by(token_hash=_hash_token(raw_token))
    if not include_revoked:
        query = query.filter_by(revoked=False)
    return query.first()


def create_session(user_id: int) -> str:
    """Store a new session and return the raw cookie token (only its hash is kept)."""
    raw_token = secrets.token_urlsafe(32)
    now = utcnow()
    db.session.add(AuthSession(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        created_at=now,
        last_seen_at=now,
        expires_at=now + timedelta(seconds=current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)),
        ip=request.headers.get("X-Forwarded-For", request.remote_addr),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    ))
    db.session.commit()
    return raw_token


def attach_session_cookie(resp, raw_token: str):
    resp.set_cookie(
        _cookie_name(),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 28800),
        path="/",
    )
    return resp


def clear_session_cookie(resp):
    resp.delete_cookie(_cookie_name(), path="/")
    return resp


def session_token_from_request():
    return request.cookies.get(_cookie_name())


def get_session_from_request():
    """The live session behind the request cookie, touching its idle clock."""
    sess = _find(session_token_from_request())
    if sess is None:
        return None

    now = utcnow()
    idle_limit = timedelta(seconds=current_app.config.get("IDLE_TIMEOUT_SECONDS", 1800))
    if sess.expires_at <= now or (sess.last_seen_at or sess.created_at) + idle_limit <= now:
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess


def revoke_session(raw_token: str) -> bool:
    sess = _find(raw_token, include_revoked=True)
    if sess is None:
        return False
    sess.revoked = True
    db.session.commit()
    return True


def revoke_all_sessions(user_id: int) -> int:
    count = (
        AuthSession.query
        .filter_by(user_id=user_id, revoked=False)
        .update({"revoked": True}, synchronize_session=False)
    )
    db.session.commit()
    return count

import json
import logging

from flask import has_request_context, request

from models import db
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _request_origin():
    # webhook and CLI paths may run outside a request
    if not has_request_context():
        return None, None
    user_agent = request.headers.get("User-Agent") or None
    return request.headers.get("X-Forwarded-For", request.remote_addr), user_agent and user_agent[:255]


def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None):
    """Append a row to the audit trail and commit it."""
    ip, user_agent = _request_origin()
    db.session.add(AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=None if entity_id is None else str(entity_id),
        ip=ip,
        user_agent=user_agent,
        # Decimals and datetimes end up as their str() form
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    ))
    db.session.commit()
    logger.debug("audit %s %s=%s user=%s", action, entity, entity_id, user_id)

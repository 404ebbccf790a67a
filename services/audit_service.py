import logging

from flask import has_request_context, request

from extensions import db
from models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(user_id, action, table_name=None, record_id=None, description=None):
    """Stage an audit row on the current session.

    The row is committed together with the change it describes, so a rolled
    back operation leaves no audit trace.
    """
    ip_address = request.remote_addr if has_request_context() else None
    entry = AuditLog(
        user_id=user_id,
        action=action,
        table_name=table_name,
        record_id=record_id,
        description=(description or "")[:500] or None,
        ip_address=ip_address,
    )
    db.session.add(entry)
    logger.debug("Audit %s on %s:%s by user %s", action, table_name, record_id, user_id)
    return entry


def recent_activity(limit=10):
    return (
        AuditLog.query
        .order_by(AuditLog.created_at.desc(), AuditLog.audit_id.desc())
        .limit(limit)
        .all()
    )

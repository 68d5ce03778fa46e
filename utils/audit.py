import json
import logging

from flask import request

from models import db
from models.audit_log import AuditLog
from utils.net import client_ip

logger = logging.getLogger(__name__)


def log_event(action: str, email=None, metadata=None):
    user_agent = request.headers.get("User-Agent", "")

    row = AuditLog(
        action=action,
        email=email,
        ip=client_ip(),
        user_agent=user_agent[:255] if user_agent else None,
        metadata_json=json.dumps(metadata) if metadata else None
    )
    db.session.add(row)
    db.session.commit()
    logger.debug("audit %s email=%s ip=%s", action, email, row.ip)

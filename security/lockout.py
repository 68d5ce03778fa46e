"""
Per-IP failed-login tracking.

unknown (no row) -> warning (1..threshold-1 failures) -> blocked.
A blocked IP stays blocked until an admin deletes its row; a successful
login does not clear it.
"""
import logging
from dataclasses import dataclass

from flask import current_app
from sqlalchemy import case

from models import db
from models.blocked_ip import BlockedIp
from models.db import upsert
from utils import clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockoutStatus:
    blocked: bool
    attempts: int

    def remaining(self, threshold: int) -> int:
        return max(threshold - self.attempts, 0)


def _threshold() -> int:
    return int(current_app.config.get("MAX_LOGIN_ATTEMPTS", 3))


def is_blocked(ip: str) -> bool:
    row = BlockedIp.query.filter_by(ip=ip).first()
    return bool(row and row.blocked)


def record_failure(ip: str) -> LockoutStatus:
    """
    Counts one failed attempt for `ip` in a single INSERT .. ON CONFLICT
    statement, so concurrent failures cannot lose increments. Rows that are
    already blocked are left untouched.
    """
    now = clock.utcnow()
    threshold = _threshold()
    blocked_on_first = threshold <= 1

    next_count = BlockedIp.failed_attempts + 1
    stmt = upsert(BlockedIp).values(
        ip=ip,
        failed_attempts=1,
        blocked=blocked_on_first,
        last_attempt_at=now,
        blocked_at=now if blocked_on_first else None,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[BlockedIp.ip],
        set_={
            "failed_attempts": next_count,
            "blocked": next_count >= threshold,
            "last_attempt_at": now,
            "blocked_at": case((next_count >= threshold, now), else_=BlockedIp.blocked_at),
        },
        where=BlockedIp.blocked.is_(False),
    ).returning(BlockedIp.failed_attempts, BlockedIp.blocked)

    result = db.session.execute(stmt).first()
    db.session.commit()
    db.session.expire_all()

    if result is None:
        # conflict row was already blocked; nothing was written
        row = BlockedIp.query.filter_by(ip=ip).first()
        return LockoutStatus(blocked=True, attempts=row.failed_attempts if row else threshold)

    status = LockoutStatus(blocked=bool(result.blocked), attempts=result.failed_attempts)
    if status.blocked:
        logger.warning("IP %s blocked after %s failed login attempts", ip, status.attempts)
    else:
        logger.info(
            "Failed login from %s (%s of %s, %s before lockout)",
            ip, status.attempts, threshold, status.remaining(threshold),
        )
    return status


def reset(ip: str) -> bool:
    """Clears the record for an IP. Not called on successful login."""
    deleted = BlockedIp.query.filter_by(ip=ip).delete()
    db.session.commit()
    return deleted > 0


def unblock(record_id: int) -> bool:
    """Admin unblock: removes the row entirely, returning the IP to unknown."""
    row = db.session.get(BlockedIp, record_id)
    if not row:
        return False
    ip = row.ip
    db.session.delete(row)
    db.session.commit()
    logger.info("IP %s unblocked by admin", ip)
    return True


def list_records():
    return BlockedIp.query.order_by(BlockedIp.last_attempt_at.desc()).all()

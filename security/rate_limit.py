"""
Per-user analysis quota over a sliding window.

Two counters are kept on purpose and must not be merged:
  * hourly_window_count: AnalysisLog rows in the trailing window, written
    only after an analysis succeeds; this is what the limit is enforced on.
  * users.request_count (lifetime): bumped before the LLM call whether or
    not it succeeds; shown to admins only.
No lock is taken; two concurrent requests may both pass the check.
"""
import logging
from datetime import timedelta

from flask import current_app
from sqlalchemy import func, update

from models import db
from models.analysis_log import AnalysisLog
from models.user import User
from security.errors import RateLimited
from security.session import Principal
from utils import clock
from utils.settings import RATE_LIMIT_PER_HOUR, get_int_setting

logger = logging.getLogger(__name__)


def ceiling() -> int:
    default = current_app.config.get("DEFAULT_RATE_LIMIT_PER_HOUR", 20)
    return get_int_setting(RATE_LIMIT_PER_HOUR, default)


def hourly_window_count(email: str, now=None) -> int:
    now = now or clock.utcnow()
    window = current_app.config.get("RATE_LIMIT_WINDOW_SECONDS", 3600)
    since = now - timedelta(seconds=window)
    return (
        db.session.query(func.count(AnalysisLog.id))
        .filter(AnalysisLog.user_email == email, AnalysisLog.created_at > since)
        .scalar()
    )


def check(principal: Principal) -> None:
    if principal.is_admin:
        return

    limit = ceiling()
    used = hourly_window_count(principal.email)
    if used >= limit:
        logger.info("Rate limit hit for %s (%s/%s per hour)", principal.email, used, limit)
        raise RateLimited(
            f"You have reached the limit of {limit} analyses per hour. Please try again later."
        )


def increment_lifetime_count(principal: Principal) -> None:
    if principal.is_admin:
        return
    db.session.execute(
        update(User)
        .where(User.id == principal.user_id)
        .values(request_count=User.request_count + 1)
    )
    db.session.commit()


def record(principal: Principal, symbol: str, ip: str) -> AnalysisLog:
    row = AnalysisLog(
        user_email=principal.email,
        symbol=symbol,
        ip=ip,
        created_at=clock.utcnow(),
    )
    db.session.add(row)
    db.session.commit()
    return row

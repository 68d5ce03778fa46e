"""
Credential checks for the two login paths.

User login: lockout check, lookup by lowercase email, disabled check,
bcrypt comparison. Admin login: lockout check, constant-time comparison
against ADMIN_PASSWORD. Failures feed the per-IP lockout counter.
"""
import hmac
import logging

from flask import current_app

from models import db
from models.user import User
from security import lockout
from security.errors import AccountDisabled, InvalidCredentials, IpBlocked
from security.password import verify_password
from security.session import AdminPrincipal, UserPrincipal
from utils import clock
from utils.audit import log_event

logger = logging.getLogger(__name__)


def normalize_email(value) -> str:
    return (value or "").strip().lower() if isinstance(value, str) else ""


def _ensure_not_blocked(ip: str, email: str = None):
    if lockout.is_blocked(ip):
        logger.warning("Login attempt from blocked IP %s", ip)
        log_event("LOGIN_BLOCKED_IP", email=email)
        raise IpBlocked()


def _record_failure(ip: str, email: str, reason: str):
    status = lockout.record_failure(ip)
    log_event(
        "LOGIN_FAIL",
        email=email,
        metadata={"reason": reason, "attempts": status.attempts, "blocked": status.blocked},
    )
    if status.blocked:
        log_event("IP_BLOCKED", email=email, metadata={"attempts": status.attempts})


def authenticate_user(email: str, password: str, ip: str) -> UserPrincipal:
    email = normalize_email(email)
    _ensure_not_blocked(ip, email)

    user = User.query.filter_by(email=email).first()
    if not user:
        _record_failure(ip, email, "unknown_email")
        raise InvalidCredentials()

    if user.disabled:
        log_event("LOGIN_DISABLED", email=email)
        raise AccountDisabled()

    if not verify_password(password, user.password_hash):
        _record_failure(ip, email, "bad_password")
        raise InvalidCredentials()

    user.last_ip = ip
    user.last_login_at = clock.utcnow()
    db.session.commit()

    logger.info("User %s logged in from %s", email, ip)
    log_event("LOGIN_SUCCESS", email=email)
    return UserPrincipal(user_id=user.id, email=user.email)


def authenticate_admin(password: str, ip: str) -> AdminPrincipal:
    _ensure_not_blocked(ip)

    secret = current_app.config.get("ADMIN_PASSWORD")
    supplied = password if isinstance(password, str) else ""
    # no configured secret means admin login is disabled
    if not secret or not hmac.compare_digest(supplied.encode("utf-8"), secret.encode("utf-8")):
        status = lockout.record_failure(ip)
        log_event("ADMIN_LOGIN_FAIL", metadata={"attempts": status.attempts, "blocked": status.blocked})
        if status.blocked:
            log_event("IP_BLOCKED", metadata={"attempts": status.attempts})
        raise InvalidCredentials("Invalid admin password")

    principal = AdminPrincipal()
    logger.info("Admin logged in from %s", ip)
    log_event("ADMIN_LOGIN_SUCCESS", email=principal.email)
    return principal

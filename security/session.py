"""
Server-side sessions with an absolute lifetime.

The cookie holds a random token; only its SHA-256 hash is stored. A session
is valid while now - login_at < SESSION_LIFETIME_SECONDS. Nothing extends
it, and an expired row is deleted the first time a request presents it.
"""
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from flask import request, current_app

from models import db
from models.session import Session, SESSION_KIND_ADMIN, SESSION_KIND_USER
from utils import clock
from utils.net import client_ip

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin"

SESSION_NONE = "none"
SESSION_EXPIRED = "expired"
SESSION_ACTIVE = "active"


@dataclass(frozen=True)
class UserPrincipal:
    user_id: int
    email: str
    is_admin = False


@dataclass(frozen=True)
class AdminPrincipal:
    """The single shared admin identity. Has no users row."""
    email: str = ADMIN_EMAIL
    is_admin = True


Principal = Union[UserPrincipal, AdminPrincipal]


@dataclass(frozen=True)
class SessionLookup:
    state: str
    session: Optional[Session] = None


def _hash_token(token: str) -> str:
    # SHA-256 is fine for hashing random session tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def lifetime_seconds() -> int:
    return int(current_app.config.get("SESSION_LIFETIME_SECONDS", 900))


def remaining_ms(sess: Session, now=None) -> int:
    now = now or clock.utcnow()
    expires_at = sess.login_at + timedelta(seconds=lifetime_seconds())
    return int((expires_at - now).total_seconds() * 1000)


def principal_for(sess: Session) -> Principal:
    if sess.kind == SESSION_KIND_ADMIN:
        return AdminPrincipal()
    return UserPrincipal(user_id=sess.user_id, email=sess.email)


def create_session(principal: Principal) -> str:
    """
    Creates a server-side session and returns the RAW token (to set as cookie).
    Only the hash is stored in DB.
    """
    raw_token = secrets.token_urlsafe(32)
    user_agent = (request.headers.get("User-Agent") or "")[:255]

    row = Session(
        token_hash=_hash_token(raw_token),
        kind=SESSION_KIND_ADMIN if principal.is_admin else SESSION_KIND_USER,
        user_id=None if principal.is_admin else principal.user_id,
        email=principal.email,
        login_at=clock.utcnow(),
        ip=client_ip(),
        user_agent=user_agent,
    )
    db.session.add(row)
    db.session.commit()
    return raw_token


def lookup_session(raw_token: Optional[str]) -> SessionLookup:
    if not raw_token:
        return SessionLookup(SESSION_NONE)

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess:
        return SessionLookup(SESSION_NONE)

    if remaining_ms(sess) <= 0:
        logger.info("Session for %s expired (login at %s)", sess.email, sess.login_at.isoformat())
        revoke_session(raw_token)
        return SessionLookup(SESSION_EXPIRED)

    return SessionLookup(SESSION_ACTIVE, sess)


def get_session_from_request() -> SessionLookup:
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "dashboard_session")
    return lookup_session(request.cookies.get(cookie_name))


def revoke_session(raw_token: Optional[str]) -> bool:
    """Deletes the session row. Safe to call for unknown or already-deleted tokens."""
    if not raw_token:
        return False
    deleted = Session.query.filter_by(token_hash=_hash_token(raw_token)).delete()
    db.session.commit()
    return deleted > 0


def revoke_user_sessions(user_id: int) -> int:
    deleted = Session.query.filter_by(user_id=user_id).delete()
    db.session.commit()
    return deleted


def purge_expired_sessions() -> int:
    cutoff = clock.utcnow() - timedelta(seconds=lifetime_seconds())
    deleted = Session.query.filter(Session.login_at <= cutoff).delete()
    db.session.commit()
    return deleted

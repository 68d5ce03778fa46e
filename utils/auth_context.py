from functools import wraps

from flask import g

from security.errors import Forbidden, SessionExpired, Unauthenticated
from security.session import (
    SESSION_ACTIVE,
    SESSION_EXPIRED,
    get_session_from_request,
    principal_for,
    remaining_ms,
)


def load_current_principal():
    lookup = get_session_from_request()
    g.session_state = lookup.state
    g.session = lookup.session
    g.principal = principal_for(lookup.session) if lookup.state == SESSION_ACTIVE else None


def require_active_session():
    """
    Re-checks the absolute window at the point of use, so a session that
    lapsed after the client's last poll is still rejected here.
    """
    sess = getattr(g, "session", None)
    if sess is None:
        if getattr(g, "session_state", None) == SESSION_EXPIRED:
            raise SessionExpired()
        raise Unauthenticated()

    if remaining_ms(sess) <= 0:
        load_current_principal()
        raise SessionExpired()

    return g.principal


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        require_active_session()
        return fn(*args, **kwargs)
    return wrapper


def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        principal = require_active_session()
        if not principal.is_admin:
            raise Forbidden()
        return fn(*args, **kwargs)
    return wrapper

from flask import Blueprint, request, jsonify, current_app, g

from security.auth import authenticate_admin, authenticate_user
from security.session import (
    SESSION_ACTIVE,
    create_session,
    lifetime_seconds,
    remaining_ms,
    revoke_session,
)
from utils.audit import log_event
from utils.net import client_ip
from utils.request_data import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "dashboard_session")


def _start_session(principal, body: dict):
    raw_token = create_session(principal)
    max_age = lifetime_seconds()

    resp = jsonify(expiresIn=max_age * 1000, **body)
    resp.set_cookie(
        _cookie_name(),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=max_age,
        path="/",
    )
    return resp


@auth_bp.post("/login")
def login():
    data = json_body()
    email = data.get("email")
    password = data.get("password")

    if not isinstance(email, str) or not email.strip() or not isinstance(password, str) or not password:
        return jsonify(error="Email and password are required"), 400

    principal = authenticate_user(email, password, client_ip())
    return _start_session(principal, {"email": principal.email}), 200


@auth_bp.post("/admin-login")
def admin_login():
    data = json_body()
    password = data.get("password")

    if not isinstance(password, str) or not password:
        return jsonify(error="Password is required"), 400

    principal = authenticate_admin(password, client_ip())
    return _start_session(principal, {"isAdmin": True}), 200


@auth_bp.post("/logout")
def logout():
    principal = getattr(g, "principal", None)
    revoke_session(request.cookies.get(_cookie_name()))
    if principal is not None:
        log_event("LOGOUT", email=principal.email)

    resp = jsonify(ok=True)
    resp.delete_cookie(_cookie_name(), path="/")
    return resp, 200


@auth_bp.get("/session")
def session_status():
    if g.session_state != SESSION_ACTIVE:
        return jsonify(authenticated=False), 200

    remaining = remaining_ms(g.session)
    if remaining <= 0:
        revoke_session(request.cookies.get(_cookie_name()))
        return jsonify(authenticated=False), 200

    return jsonify(
        authenticated=True,
        email=g.principal.email,
        isAdmin=g.principal.is_admin,
        remainingMs=remaining,
    ), 200

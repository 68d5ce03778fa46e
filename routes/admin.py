from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.analysis_log import AnalysisLog
from models.audit_log import AuditLog
from models.user import User
from security import ip_rules, lockout
from security.auth import normalize_email
from security.password import hash_password
from security.session import revoke_user_sessions
from utils.audit import log_event
from utils.auth_context import admin_required
from utils.request_data import json_body
from utils.settings import RATE_LIMIT_PER_HOUR, all_settings, get_int_setting, set_setting

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

ADMIN = "admin"
RATE_LIMIT_MIN = 1
RATE_LIMIT_MAX = 1000


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _limit_arg(default: int, maximum: int) -> int:
    limit = request.args.get("limit", type=int) or default
    return max(1, min(limit, maximum))


# ---- users -----------------------------------------------------------------

@admin_bp.get("/users")
@admin_required
def list_users():
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify([u.to_dict() for u in users]), 200


@admin_bp.post("/users")
@admin_required
def create_user():
    data = json_body()
    email = normalize_email(data.get("email"))
    password = data.get("password")

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if not isinstance(password, str) or not password:
        return jsonify(error="Password is required"), 400

    if User.query.filter_by(email=email).first():
        return jsonify(error="Email already exists"), 409

    user = User(email=email, password_hash=hash_password(password))
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Email already exists"), 409

    log_event("ADMIN_USER_CREATE", email=ADMIN, metadata={"user": email})
    return jsonify(user.to_dict()), 201


@admin_bp.put("/users/<int:user_id>")
@admin_required
def update_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    data = json_body()
    changed = []

    if data.get("email"):
        email = normalize_email(data.get("email"))
        if not _is_valid_email(email):
            return jsonify(error="Invalid email"), 400
        clash = User.query.filter(User.email == email, User.id != user.id).first()
        if clash:
            return jsonify(error="Email already exists"), 409
        user.email = email
        changed.append("email")

    if data.get("password"):
        if not isinstance(data["password"], str):
            return jsonify(error="Invalid password"), 400
        user.password_hash = hash_password(data["password"])
        changed.append("password")

    db.session.commit()
    if changed:
        # credentials changed: existing sessions carry the old identity
        revoke_user_sessions(user.id)

    log_event("ADMIN_USER_UPDATE", email=ADMIN, metadata={"user_id": user.id, "fields": changed})
    return jsonify(user.to_dict()), 200


@admin_bp.delete("/users/<int:user_id>")
@admin_required
def delete_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    email = user.email
    revoke_user_sessions(user.id)
    db.session.delete(user)
    db.session.commit()

    log_event("ADMIN_USER_DELETE", email=ADMIN, metadata={"user": email})
    return jsonify(ok=True), 200


@admin_bp.patch("/users/<int:user_id>/toggle")
@admin_required
def toggle_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    data = json_body()
    disabled = data.get("disabled")
    if not isinstance(disabled, bool):
        return jsonify(error="disabled must be a boolean"), 400

    user.disabled = disabled
    db.session.commit()
    if disabled:
        revoke_user_sessions(user.id)

    log_event("ADMIN_USER_TOGGLE", email=ADMIN, metadata={"user": user.email, "disabled": disabled})
    return jsonify(user.to_dict()), 200


# ---- lockout ---------------------------------------------------------------

@admin_bp.get("/blocked-ips")
@admin_required
def list_blocked_ips():
    return jsonify([r.to_dict() for r in lockout.list_records()]), 200


@admin_bp.delete("/blocked-ips/<int:record_id>")
@admin_required
def unblock_ip(record_id: int):
    if not lockout.unblock(record_id):
        return jsonify(error="Record not found"), 404
    log_event("ADMIN_IP_UNBLOCK", email=ADMIN, metadata={"record_id": record_id})
    return jsonify(ok=True), 200


# ---- ip rules --------------------------------------------------------------

@admin_bp.get("/ip-rules")
@admin_required
def list_ip_rules():
    return jsonify([r.to_dict() for r in ip_rules.list_rules()]), 200


@admin_bp.post("/ip-rules")
@admin_required
def create_ip_rule():
    data = json_body()
    try:
        rule = ip_rules.add_rule(
            data.get("type"),
            data.get("startIp"),
            data.get("endIp"),
            data.get("description"),
        )
    except ip_rules.InvalidRule as exc:
        return jsonify(error=str(exc)), 400

    log_event("ADMIN_IP_RULE_CREATE", email=ADMIN, metadata=rule.to_dict())
    return jsonify(rule.to_dict()), 201


@admin_bp.delete("/ip-rules/<int:rule_id>")
@admin_required
def delete_ip_rule(rule_id: int):
    if not ip_rules.delete_rule(rule_id):
        return jsonify(error="Rule not found"), 404
    log_event("ADMIN_IP_RULE_DELETE", email=ADMIN, metadata={"rule_id": rule_id})
    return jsonify(ok=True), 200


# ---- settings --------------------------------------------------------------

@admin_bp.get("/settings")
@admin_required
def get_settings():
    default = current_app.config.get("DEFAULT_RATE_LIMIT_PER_HOUR", 20)
    return jsonify(
        rateLimitPerHour=get_int_setting(RATE_LIMIT_PER_HOUR, default),
        settings=all_settings(),
    ), 200


@admin_bp.put("/settings")
@admin_required
def update_settings():
    data = json_body()
    value = data.get("rateLimitPerHour")

    # bool is an int subclass
    if not isinstance(value, int) or isinstance(value, bool) or not RATE_LIMIT_MIN <= value <= RATE_LIMIT_MAX:
        return jsonify(error=f"rateLimitPerHour must be an integer between {RATE_LIMIT_MIN} and {RATE_LIMIT_MAX}"), 400

    set_setting(RATE_LIMIT_PER_HOUR, value)
    log_event("ADMIN_SETTINGS_UPDATE", email=ADMIN, metadata={RATE_LIMIT_PER_HOUR: value})
    return jsonify(rateLimitPerHour=value), 200


# ---- logs ------------------------------------------------------------------

@admin_bp.get("/analysis-logs")
@admin_required
def list_analysis_logs():
    limit = _limit_arg(default=100, maximum=1000)
    rows = (
        AnalysisLog.query
        .order_by(AnalysisLog.created_at.desc(), AnalysisLog.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify([r.to_dict() for r in rows]), 200


@admin_bp.get("/audit-logs")
@admin_required
def list_audit_logs():
    limit = _limit_arg(default=200, maximum=500)
    action = request.args.get("action")

    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([r.to_dict() for r in rows]), 200

import logging

import click
from flask import Flask, request, g, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import Config
from models import db
from models.user import User
from routes import health_bp, auth_bp, admin_bp, analysis_bp
from security import ip_rules, lockout
from security.errors import AccessError, IpNotAuthorized
from security.password import hash_password
from security.session import SESSION_EXPIRED, purge_expired_sessions
from services.analysis import CACHE_EXTENSION
from utils.auth_context import load_current_principal
from utils.cache import TTLCache
from utils.net import client_ip

logger = logging.getLogger(__name__)

# Paths that skip the IP rule check
IP_RULE_EXEMPT_PATHS = {
    "/health",
}


def setup_logging(level: str):
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )
    logging.getLogger().setLevel((level or "INFO").upper())


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    setup_logging(app.config.get("LOG_LEVEL"))

    proxy_hops = app.config.get("PROXY_FIX_X_FOR", 0)
    if proxy_hops:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxy_hops)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(analysis_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    app.extensions[CACHE_EXTENSION] = TTLCache(app.config.get("ANALYSIS_CACHE_SECONDS", 300))

    @app.before_request
    def _enforce_ip_rules():
        if not request.path.startswith("/api/") or request.path in IP_RULE_EXEMPT_PATHS:
            return None

        ip = client_ip()
        decision = ip_rules.evaluate(ip)
        if not decision.allowed:
            # denials go to the log, never to audit_logs
            logger.warning("Request from %s to %s denied by IP rules", ip, request.path)
            raise IpNotAuthorized(decision.reason)

    @app.before_request
    def _load_principal():
        load_current_principal()

    @app.after_request
    def _clear_expired_cookie(resp):
        if getattr(g, "session_state", None) == SESSION_EXPIRED:
            resp.delete_cookie(app.config.get("AUTH_COOKIE_NAME", "dashboard_session"), path="/")
        return resp

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        # API only; the dashboard frontend is served separately
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app):
    @app.errorhandler(AccessError)
    def handle_access_error(error):
        # expected outcome, not a server fault
        logger.info("%s %s -> %s (%s)", request.method, request.path, error.code, error.status_code)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if request.path.startswith("/api/"):
            return jsonify(error=error.description or error.name, code=error.name), error.code
        return error

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        db.session.rollback()
        logger.exception("Database error on %s %s", request.method, request.path)
        return jsonify(error="Internal server error", code="InternalError"), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(error="Internal server error", code="InternalError"), 500


#-------------------------

def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables (use `flask db upgrade` for migrated deployments)."""
        db.create_all()
        print("Database tables created")

    @app.cli.command("create-user")
    @click.argument("email")
    @click.argument("password")
    def create_user(email, password):
        """Create a dashboard user (bootstrap)."""
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            print("User already exists")
            return

        db.session.add(User(email=email, password_hash=hash_password(password)))
        db.session.commit()
        print(f"{email} created")

    @app.cli.command("purge-expired-sessions")
    def purge_sessions():
        """Delete sessions past their absolute lifetime."""
        count = purge_expired_sessions()
        print(f"Purged {count} expired session(s)")

    @app.cli.command("clear-ip-rules")
    def clear_rules():
        """Remove every IP rule (recovery when an admin locks themselves out)."""
        count = ip_rules.clear_rules()
        logger.warning("All %s IP rule(s) cleared from the CLI", count)
        print(f"Removed {count} IP rule(s)")

    @app.cli.command("unblock-ip")
    @click.argument("ip")
    def unblock_ip(ip):
        """Clear the failed-login record for IP (recovery when the admin's own IP is locked out)."""
        if lockout.reset(ip.strip()):
            logger.warning("Lockout for %s cleared from the CLI", ip)
            print(f"{ip} unblocked")
        else:
            print(f"No lockout record for {ip}")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5000)

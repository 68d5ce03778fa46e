from datetime import timedelta

from models.audit_log import AuditLog
from models.blocked_ip import BlockedIp
from models.session import Session

from conftest import (
    ADMIN_PASSWORD,
    T0,
    USER_EMAIL,
    USER_IP,
    USER_PASSWORD,
    admin_login,
    login,
    make_user,
    reload_user,
    request_analysis,
)


def session_status(client):
    return client.get("/api/auth/session", environ_base={"REMOTE_ADDR": USER_IP}).get_json()


class TestUserLogin:
    def test_success_sets_cookie_and_audit_fields(self, app, client, user_id):
        resp = login(client)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["email"] == USER_EMAIL
        assert body["expiresIn"] == 15 * 60 * 1000
        assert "dashboard_session" in resp.headers.get("Set-Cookie", "")

        user = reload_user(user_id)
        assert user.last_ip == USER_IP
        assert user.last_login_at == T0

    def test_email_is_case_insensitive(self, app, client, user_id):
        assert login(client, email="  TRADER@Example.com ").status_code == 200

    def test_wrong_password_and_unknown_email_look_identical(self, app, client, user_id):
        wrong = login(client, password="nope")
        unknown = login(client, email="ghost@example.com", ip="203.0.113.11")
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json()
        assert wrong.get_json()["code"] == "InvalidCredentials"

    def test_failure_response_does_not_reveal_attempts(self, app, client, user_id):
        body = login(client, password="nope").get_json()
        assert set(body) == {"error", "code"}
        assert "attempt" not in body["error"].lower()

    def test_disabled_account_with_correct_password(self, app, client):
        make_user(disabled=True)
        resp = login(client)
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "AccountDisabled"
        assert Session.query.count() == 0
        assert session_status(client) == {"authenticated": False}

    def test_disabled_account_does_not_count_toward_lockout(self, app, client):
        make_user(disabled=True)
        for _ in range(4):
            login(client)
        assert BlockedIp.query.count() == 0

    def test_missing_fields(self, app, client):
        resp = client.post("/api/auth/login", json={"email": USER_EMAIL})
        assert resp.status_code == 400

    def test_login_success_does_not_clear_failures(self, app, client, user_id):
        login(client, password="nope")
        assert login(client).status_code == 200
        assert BlockedIp.query.filter_by(ip=USER_IP).one().failed_attempts == 1

    def test_failed_attempts_are_audited(self, app, client, user_id):
        login(client, password="nope")
        row = AuditLog.query.filter_by(action="LOGIN_FAIL").one()
        assert row.email == USER_EMAIL
        assert row.ip == USER_IP


class TestLockoutOnLogin:
    def test_three_failures_block_then_correct_password_rejected(self, app, client, user_id):
        for _ in range(3):
            assert login(client, password="nope").status_code == 401

        resp = login(client)
        assert resp.status_code == 429
        assert resp.get_json()["code"] == "IpBlocked"
        assert reload_user(user_id).last_login_at is None

    def test_other_ips_unaffected(self, app, client, user_id):
        for _ in range(3):
            login(client, password="nope")
        assert login(client, ip="203.0.113.99").status_code == 200

    def test_admin_login_failures_feed_lockout(self, app, client):
        for _ in range(3):
            assert admin_login(client, password="bad", ip=USER_IP).status_code == 401
        resp = admin_login(client, ip=USER_IP)
        assert resp.status_code == 429


class TestAdminLogin:
    def test_success(self, app, client):
        resp = admin_login(client)
        assert resp.status_code == 200
        assert resp.get_json()["isAdmin"] is True
        status = session_status(client)
        assert status["authenticated"] is True
        assert status["isAdmin"] is True
        assert status["email"] == "admin"

    def test_wrong_password(self, app, client):
        resp = admin_login(client, password=ADMIN_PASSWORD + "x")
        assert resp.status_code == 401
        assert session_status(client) == {"authenticated": False}

    def test_unconfigured_secret_rejects_everything(self, app, client):
        app.config["ADMIN_PASSWORD"] = None
        assert admin_login(client).status_code == 401

    def test_user_credentials_never_grant_admin(self, app, client, user_id):
        login(client)
        status = session_status(client)
        assert status["isAdmin"] is False
        assert client.get("/api/admin/users").status_code == 403

    def test_admin_session_has_no_user_row(self, app, client):
        admin_login(client)
        sess = Session.query.one()
        assert sess.kind == "admin"
        assert sess.user_id is None


class TestSessionExpiry:
    def test_remaining_counts_down(self, app, client, user_id, frozen_clock):
        login(client)
        frozen_clock.advance(timedelta(minutes=10))
        status = session_status(client)
        assert status["authenticated"] is True
        assert status["remainingMs"] == 5 * 60 * 1000

    def test_valid_just_before_window_closes(self, app, client, user_id, frozen_clock):
        login(client)
        frozen_clock.freeze(T0 + timedelta(minutes=14, seconds=59))
        assert request_analysis(client).status_code == 200

    def test_invalid_just_after_window_closes(self, app, client, user_id, frozen_clock):
        login(client)
        frozen_clock.freeze(T0 + timedelta(minutes=15, seconds=1))
        resp = request_analysis(client)
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "SessionExpired"
        assert Session.query.count() == 0

    def test_activity_does_not_extend_session(self, app, client, user_id, frozen_clock):
        login(client)
        for minute in (3, 7, 11, 14):
            frozen_clock.freeze(T0 + timedelta(minutes=minute))
            assert session_status(client)["authenticated"] is True
        frozen_clock.freeze(T0 + timedelta(minutes=15))
        assert session_status(client) == {"authenticated": False}

    def test_expired_session_is_destroyed_on_check(self, app, client, user_id, frozen_clock):
        login(client)
        frozen_clock.advance(timedelta(minutes=16))
        assert session_status(client) == {"authenticated": False}
        assert Session.query.count() == 0
        # a second check finds nothing and stays quiet
        assert session_status(client) == {"authenticated": False}

    def test_no_session_is_unauthenticated_not_expired(self, app, client):
        resp = request_analysis(client)
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "Unauthenticated"

    def test_admin_session_expires_too(self, app, admin_client, frozen_clock):
        frozen_clock.advance(timedelta(minutes=15, seconds=1))
        resp = admin_client.get("/api/admin/users")
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "SessionExpired"


class TestLogout:
    def test_logout_destroys_session(self, app, client, user_id):
        login(client)
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True}
        assert Session.query.count() == 0
        assert session_status(client) == {"authenticated": False}

    def test_logout_is_idempotent(self, app, client):
        assert client.post("/api/auth/logout").status_code == 200
        assert client.post("/api/auth/logout").status_code == 200

    def test_logout_only_affects_own_session(self, app, user_id):
        first, second = app.test_client(), app.test_client()
        login(first)
        login(second)
        first.post("/api/auth/logout")
        assert session_status(second)["authenticated"] is True

from datetime import timedelta

from models import db
from models.analysis_log import AnalysisLog
from security import rate_limit
from utils.settings import RATE_LIMIT_PER_HOUR, set_setting

from conftest import T0, USER_EMAIL, login, make_user, reload_user, request_analysis


def seed_logs(count, email=USER_EMAIL, age=timedelta(minutes=5)):
    for _ in range(count):
        db.session.add(AnalysisLog(user_email=email, symbol="MSFT", ip="203.0.113.10", created_at=T0 - age))
    db.session.commit()


class TestWindowCount:
    def test_counts_only_trailing_hour(self, app):
        seed_logs(3, age=timedelta(minutes=59))
        seed_logs(2, age=timedelta(minutes=60))
        seed_logs(4, age=timedelta(hours=3))
        assert rate_limit.hourly_window_count(USER_EMAIL) == 3

    def test_counts_only_that_user(self, app):
        seed_logs(3)
        seed_logs(5, email="other@example.com")
        assert rate_limit.hourly_window_count(USER_EMAIL) == 3

    def test_window_slides(self, app, frozen_clock):
        seed_logs(2, age=timedelta(minutes=30))
        frozen_clock.advance(timedelta(minutes=31))
        assert rate_limit.hourly_window_count(USER_EMAIL) == 0


class TestCeiling:
    def test_default_is_twenty(self, app):
        assert rate_limit.ceiling() == 20

    def test_reads_setting_each_time(self, app):
        set_setting(RATE_LIMIT_PER_HOUR, 5)
        assert rate_limit.ceiling() == 5
        set_setting(RATE_LIMIT_PER_HOUR, 7)
        assert rate_limit.ceiling() == 7


class TestAnalysisQuota:
    def test_nineteen_used_is_allowed(self, app, client, user_id):
        seed_logs(19)
        login(client)
        assert request_analysis(client).status_code == 200

    def test_twenty_used_is_rejected(self, app, client, user_id):
        seed_logs(20)
        login(client)
        resp = request_analysis(client)
        assert resp.status_code == 429
        body = resp.get_json()
        assert body["code"] == "RateLimited"
        assert "20" in body["error"]

    def test_twenty_first_request_rejected(self, app, client, user_id, provider):
        login(client)
        for _ in range(20):
            assert request_analysis(client).status_code == 200
        assert request_analysis(client).status_code == 429
        assert len(provider.prompts) == 20

    def test_old_requests_do_not_count(self, app, client, user_id):
        seed_logs(20, age=timedelta(minutes=61))
        login(client)
        assert request_analysis(client).status_code == 200

    def test_lowered_ceiling_applies_immediately(self, app, client, user_id):
        seed_logs(3)
        login(client)
        assert request_analysis(client).status_code == 200
        set_setting(RATE_LIMIT_PER_HOUR, 4)
        assert request_analysis(client).status_code == 429

    def test_admin_is_exempt(self, app, admin_client):
        set_setting(RATE_LIMIT_PER_HOUR, 1)
        for _ in range(5):
            assert request_analysis(admin_client, ip="10.0.0.1").status_code == 200

    def test_failed_analysis_does_not_consume_quota(self, app, client, user_id, provider):
        login(client)
        provider.fail = True
        resp = request_analysis(client)
        assert resp.status_code == 502
        assert resp.get_json()["code"] == "AnalysisUnavailable"
        assert rate_limit.hourly_window_count(USER_EMAIL) == 0

    def test_lifetime_counter_counts_failures_too(self, app, client, user_id, provider):
        login(client)
        request_analysis(client)
        provider.fail = True
        request_analysis(client)
        assert reload_user(user_id).request_count == 2
        assert rate_limit.hourly_window_count(USER_EMAIL) == 1

    def test_rejected_request_does_not_bump_lifetime_counter(self, app, client, user_id):
        seed_logs(20)
        login(client)
        request_analysis(client)
        assert reload_user(user_id).request_count == 0

    def test_quota_is_per_user(self, app, user_id):
        make_user(email="second@example.com")
        seed_logs(20)
        other = app.test_client()
        login(other, email="second@example.com")
        assert request_analysis(other).status_code == 200

from models.app_setting import AppSetting
from utils.settings import all_settings, get_int_setting, get_setting, set_setting


class TestSettingsStore:
    def test_missing_key(self, app):
        assert get_setting("nothing") is None
        assert get_int_setting("nothing", 7) == 7

    def test_upsert_inserts_then_updates(self, app):
        set_setting("rateLimitPerHour", 30)
        set_setting("rateLimitPerHour", 45)
        assert get_setting("rateLimitPerHour") == "45"
        assert AppSetting.query.count() == 1

    def test_open_key_space(self, app):
        set_setting("theme", "dark")
        set_setting("rateLimitPerHour", 10)
        assert all_settings() == {"rateLimitPerHour": "10", "theme": "dark"}

    def test_non_integer_value_falls_back_to_default(self, app):
        set_setting("rateLimitPerHour", "lots")
        assert get_int_setting("rateLimitPerHour", 20) == 20

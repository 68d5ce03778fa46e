"""
Admin-editable key/value settings, read at request time.

The key space is open; RATE_LIMIT_PER_HOUR is the only key the app reads today.
"""
from typing import Optional

from models import db
from models.app_setting import AppSetting
from models.db import upsert

RATE_LIMIT_PER_HOUR = "rateLimitPerHour"


def get_setting(key: str) -> Optional[str]:
    row = db.session.get(AppSetting, key)
    return row.value if row else None


def get_int_setting(key: str, default: int) -> int:
    value = get_setting(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def set_setting(key: str, value) -> None:
    value = str(value)
    stmt = upsert(AppSetting).values(key=key, value=value)
    stmt = stmt.on_conflict_do_update(index_elements=[AppSetting.key], set_={"value": value})
    db.session.execute(stmt)
    db.session.commit()
    # upsert bypasses the identity map; drop any cached row
    db.session.expire_all()


def all_settings() -> dict:
    return {row.key: row.value for row in AppSetting.query.order_by(AppSetting.key).all()}

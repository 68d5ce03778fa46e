from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.dialects import postgresql, sqlite

db = SQLAlchemy()


def upsert(model):
    """
    Returns a dialect-native INSERT for `model` that supports
    .on_conflict_do_update(). Only SQLite and PostgreSQL are supported.
    """
    dialect = db.engine.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise RuntimeError(f"Upsert is not supported on {dialect}")

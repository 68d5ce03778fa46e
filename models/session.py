from utils.clock import utcnow
from models.db import db

SESSION_KIND_USER = "user"
SESSION_KIND_ADMIN = "admin"

class Session(db.Model):
    __tablename__ = "sessions"

    id = db.Column(db.Integer, primary_key=True)

    # store only hashed token in DB (never store raw token)
    token_hash = db.Column(db.String(128), unique=True, nullable=False, index=True)

    kind = db.Column(db.String(10), nullable=False, default=SESSION_KIND_USER)
    # null for the admin kind: the admin identity has no users row
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=False)

    # expiry is computed from login_at; activity never moves it
    login_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

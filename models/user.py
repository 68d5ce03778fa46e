from utils.clock import utcnow
from models.db import db

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)  # always lowercase
    password_hash = db.Column(db.String(255), nullable=False)
    disabled = db.Column(db.Boolean, default=False, nullable=False)

    # written on successful login
    last_ip = db.Column(db.String(64), nullable=True)
    last_login_at = db.Column(db.DateTime, nullable=True)

    # lifetime counter of analysis requests, never reset (not the rate-limit window)
    request_count = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "disabled": self.disabled,
            "lastIp": self.last_ip,
            "lastLoginAt": self.last_login_at.isoformat() if self.last_login_at else None,
            "requestCount": self.request_count,
            "createdAt": self.created_at.isoformat(),
        }

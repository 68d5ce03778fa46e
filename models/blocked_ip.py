from utils.clock import utcnow
from models.db import db

class BlockedIp(db.Model):
    __tablename__ = "blocked_ips"

    id = db.Column(db.Integer, primary_key=True)
    ip = db.Column(db.String(64), unique=True, nullable=False, index=True)

    failed_attempts = db.Column(db.Integer, default=0, nullable=False)
    blocked = db.Column(db.Boolean, default=False, nullable=False)

    last_attempt_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    blocked_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "ip": self.ip,
            "failedAttempts": self.failed_attempts,
            "blocked": self.blocked,
            "lastAttemptAt": self.last_attempt_at.isoformat() if self.last_attempt_at else None,
            "blockedAt": self.blocked_at.isoformat() if self.blocked_at else None,
        }

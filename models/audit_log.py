from utils.clock import utcnow
from models.db import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(80), nullable=False)  # e.g. LOGIN_FAIL, IP_RULE_CREATE
    email = db.Column(db.String(255), nullable=True)   # nullable for anonymous events

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "action": self.action,
            "email": self.email,
            "ip": self.ip,
            "userAgent": self.user_agent,
            "metadata": self.metadata_json,
            "timestamp": self.timestamp.isoformat(),
        }

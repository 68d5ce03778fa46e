from utils.clock import utcnow
from models.db import db

RULE_WHITELIST = "whitelist"
RULE_BLOCK = "block"
RULE_TYPES = (RULE_WHITELIST, RULE_BLOCK)

class IpRule(db.Model):
    __tablename__ = "ip_rules"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(10), nullable=False)  # whitelist | block

    # inclusive bounds, dotted-quad IPv4 only
    start_ip = db.Column(db.String(15), nullable=False)
    end_ip = db.Column(db.String(15), nullable=False)

    description = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("type IN ('whitelist', 'block')", name="ck_ip_rules_type"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "startIp": self.start_ip,
            "endIp": self.end_ip,
            "description": self.description,
            "createdAt": self.created_at.isoformat(),
        }

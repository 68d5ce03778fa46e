from utils.clock import utcnow
from models.db import db

class AnalysisLog(db.Model):
    __tablename__ = "analysis_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_email = db.Column(db.String(255), nullable=False)
    symbol = db.Column(db.String(32), nullable=False)
    ip = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        # rate-limit window query: user + time range
        db.Index("ix_analysis_logs_user_email_created_at", "user_email", "created_at"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userEmail": self.user_email,
            "symbol": self.symbol,
            "ip": self.ip,
            "createdAt": self.created_at.isoformat(),
        }

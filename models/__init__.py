from .db import db
from .user import User
from .session import Session
from .blocked_ip import BlockedIp
from .ip_rule import IpRule
from .app_setting import AppSetting
from .analysis_log import AnalysisLog
from .audit_log import AuditLog

from src.models.admin_session import AdminSession
from src.models.audit_log import AuditLog
from src.models.base import Base, CompanyScopedBase, TimestampedBase
from src.models.company import Company
from src.models.company_admin import CompanyAdmin
from src.models.company_subscription import CompanySubscription
from src.models.login_attempt import LoginAttempt
from src.models.member import Member

__all__ = [
    "Base",
    "TimestampedBase",
    "CompanyScopedBase",
    "Company",
    "CompanyAdmin",
    "AdminSession",
    "LoginAttempt",
    "CompanySubscription",
    "Member",
    "AuditLog",
]

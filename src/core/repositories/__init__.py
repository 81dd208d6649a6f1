from src.core.repositories.admin_sessions import AdminSessionRepository
from src.core.repositories.audit_logs import AuditLogRepository
from src.core.repositories.base import CompanyContextMissingError, CompanyRepository
from src.core.repositories.companies import CompanyLookupRepository
from src.core.repositories.company_admins import AdminDirectory, CompanyAdminRepository
from src.core.repositories.company_subscriptions import CompanySubscriptionRepository
from src.core.repositories.login_attempts import LoginAttemptRepository
from src.core.repositories.members import MemberRepository

__all__ = [
    "CompanyContextMissingError",
    "CompanyRepository",
    "AdminDirectory",
    "AdminSessionRepository",
    "AuditLogRepository",
    "CompanyAdminRepository",
    "CompanyLookupRepository",
    "CompanySubscriptionRepository",
    "LoginAttemptRepository",
    "MemberRepository",
]

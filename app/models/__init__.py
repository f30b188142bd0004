"""ORM models package."""
from .api_key import ApiKey, ApiScope
from .audit import AuditLog
from .bank_detail import BankVerificationStatus, ProviderBankDetail
from .base import Base
from .bill import Bill, BillStatus
from .payment import Payment, PaymentStatus
from .scheduler_lock import SchedulerLock
from .service import Service
from .service_request import ServiceRequest, ServiceRequestStatus
from .transfer import Transfer, TransferStatus
from .user import User, UserRole

__all__ = [
    "ApiKey",
    "ApiScope",
    "AuditLog",
    "BankVerificationStatus",
    "Base",
    "Bill",
    "BillStatus",
    "Payment",
    "PaymentStatus",
    "ProviderBankDetail",
    "SchedulerLock",
    "Service",
    "ServiceRequest",
    "ServiceRequestStatus",
    "Transfer",
    "TransferStatus",
    "User",
    "UserRole",
]

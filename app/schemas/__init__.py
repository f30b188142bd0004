"""Schema package exports."""
from .bank_detail import BankDetailCreate, BankDetailRead, BankVerificationUpdate
from .bill import BillCreate, BillRead
from .payment import CheckoutOrderRead, PaymentRead, PaymentVerification, SettlementRead
from .service import ServiceCreate, ServiceRead
from .service_request import ServiceRequestCreate, ServiceRequestRead
from .transfer import PayoutRead, TransferRead
from .user import UserCreate, UserRead

__all__ = [
    "BankDetailCreate",
    "BankDetailRead",
    "BankVerificationUpdate",
    "BillCreate",
    "BillRead",
    "CheckoutOrderRead",
    "PaymentRead",
    "PaymentVerification",
    "SettlementRead",
    "ServiceCreate",
    "ServiceRead",
    "ServiceRequestCreate",
    "ServiceRequestRead",
    "PayoutRead",
    "TransferRead",
    "UserCreate",
    "UserRead",
]

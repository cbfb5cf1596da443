"""Domain models - pure Python enums and dataclasses representing business entities"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PENDING_APPROVAL = "pending_approval"
    PAID = "paid"
    OVERDUE = "overdue"
    LATE = "late"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    DEPOSIT = "deposit"


class PaymentDecision(str, Enum):
    """Outcome an approver may record on a pending payment"""

    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    PAYMENT_UPLOADED = "payment_uploaded"
    PAYMENT_APPROVED = "payment_approved"
    PAYMENT_REJECTED = "payment_rejected"
    PAYMENT_OVERDUE = "payment_overdue"


class Role(str, Enum):
    SYSTEM_ADMIN = "system_admin"
    REAL_ESTATE_ADMIN = "real_estate_admin"
    SELLER = "seller"
    CLIENT = "client"


APPROVER_ROLES = (Role.SYSTEM_ADMIN, Role.REAL_ESTATE_ADMIN, Role.SELLER)

# Statuses the independent status endpoint may set
MANUAL_INSTALLMENT_STATUSES = (
    InstallmentStatus.PENDING,
    InstallmentStatus.PAID,
    InstallmentStatus.OVERDUE,
    InstallmentStatus.LATE,
)


@dataclass
class CurrentUser:
    """Authentication context forwarded by the upstream gateway"""

    id: int
    role: Role


@dataclass
class ScheduledInstallment:
    """Single obligation in a client's payment plan, before persistence"""

    installment_number: int
    due_date: date
    amount: Decimal


@dataclass
class ProofFile:
    """Uploaded payment proof as received at the HTTP boundary"""

    filename: str
    content_type: str
    content: bytes


@dataclass
class NotificationEvent:
    """Inbox message queued by the workflow for delivery after commit"""

    recipient_id: int
    type: NotificationType
    title: str
    message: str
    sender_id: Optional[int] = None
    related_client_id: Optional[int] = None
    related_payment_id: Optional[int] = None

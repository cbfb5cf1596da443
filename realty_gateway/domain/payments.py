"""Payment approval rules - core business logic for installment settlement"""

from decimal import Decimal, InvalidOperation
from typing import Optional
from realty_gateway.domain.models import (
    InstallmentStatus,
    NotificationEvent,
    NotificationType,
    PaymentDecision,
    PaymentStatus,
)
from realty_gateway.domain.exceptions import (
    AmountMismatchError,
    InvalidInstallmentStateError,
    PaymentAlreadyDecidedError,
)


def ensure_installment_submittable(installment_client_id: int, installment_status: str, client_id: int) -> None:
    """
    Only the owning client may pay, and only while the installment is pending.

    pending_approval, paid, overdue and late all refuse a new submission.
    """
    if installment_client_id != client_id or installment_status != InstallmentStatus.PENDING:
        raise InvalidInstallmentStateError()


def ensure_amount_matches(submitted, installment_amount) -> None:
    """
    Exact decimal equality between submission and installment.

    Partial payments are not supported: 100 and 100.00 match, 99.99 does not.
    """
    try:
        matches = Decimal(str(submitted)) == Decimal(str(installment_amount))
    except InvalidOperation:
        matches = False
    if not matches:
        raise AmountMismatchError()


def ensure_payment_pending(payment_id: int, payment_status: str) -> None:
    """A payment is decided exactly once"""
    if payment_status != PaymentStatus.PENDING:
        raise PaymentAlreadyDecidedError(payment_id, payment_status)


def installment_status_after(decision: PaymentDecision) -> InstallmentStatus:
    """Approval settles the installment; rejection reopens it for resubmission"""
    if decision == PaymentDecision.APPROVED:
        return InstallmentStatus.PAID
    return InstallmentStatus.PENDING


def is_contract_complete(total_installments: int, paid_installments: int) -> bool:
    """
    Contract is fully repaid once every installment is paid.

    A client without installments is never auto-signed.
    """
    return total_installments > 0 and paid_installments == total_installments


def build_upload_notification(
    seller_id: int,
    client_user_id: Optional[int],
    client_id: int,
    payment_id: int,
    installment_number: int,
) -> NotificationEvent:
    return NotificationEvent(
        recipient_id=seller_id,
        sender_id=client_user_id,
        type=NotificationType.PAYMENT_UPLOADED,
        title="New Payment Proof Uploaded",
        message=f"Client has uploaded payment proof for installment #{installment_number}",
        related_client_id=client_id,
        related_payment_id=payment_id,
    )


def build_decision_notification(
    decision: PaymentDecision,
    client_user_id: int,
    approver_id: int,
    client_id: int,
    payment_id: int,
    installment_number: int,
    notes: Optional[str] = None,
) -> NotificationEvent:
    """Client-facing message; rejections carry the approver's notes"""
    if decision == PaymentDecision.APPROVED:
        notification_type = NotificationType.PAYMENT_APPROVED
        title = "Payment Approved"
        message = f"Your payment for installment #{installment_number} has been approved."
    else:
        notification_type = NotificationType.PAYMENT_REJECTED
        title = "Payment Rejected"
        message = f"Your payment for installment #{installment_number} has been rejected."
        if notes:
            message = f"{message} {notes}"

    return NotificationEvent(
        recipient_id=client_user_id,
        sender_id=approver_id,
        type=notification_type,
        title=title,
        message=message,
        related_client_id=client_id,
        related_payment_id=payment_id,
    )

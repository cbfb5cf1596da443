"""Data access layer for clients, installments, payments and notifications"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import case, func
from sqlalchemy.orm import Session
from realty_gateway.infrastructure.database.models import Client, Installment, Notification, Payment
from realty_gateway.domain.models import (
    InstallmentStatus,
    NotificationEvent,
    NotificationType,
    PaymentStatus,
    ScheduledInstallment,
)
from realty_gateway.domain.installments import OPEN_STATUSES, OVERDUE_CANDIDATE_STATUSES

CENTS = Decimal("0.01")


def _money(value: Any) -> Decimal:
    """Normalize aggregate results (floats on SQLite, Decimals on Postgres) to 2dp"""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS)


def _values(statuses) -> List[str]:
    return [s.value for s in statuses]


class ClientRepository:
    """Repository for the client balance aggregate"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, client_id: int) -> Optional[Client]:
        return self.db.query(Client).filter(Client.id == client_id).first()

    def get_by_user_id(self, user_id: int) -> Optional[Client]:
        """Resolve the client profile of an authenticated client user"""
        return self.db.query(Client).filter(Client.user_id == user_id).first()

    def decrement_balance(self, client_id: int, amount: Decimal) -> None:
        """
        Atomic read-modify-write on the balance.

        Issued as a single UPDATE so concurrent approvals serialize on the row
        lock instead of overwriting each other.
        """
        self.db.query(Client).filter(Client.id == client_id).update(
            {Client.remaining_balance: Client.remaining_balance - amount},
            synchronize_session=False,
        )

    def set_remaining_balance(self, client_id: int, amount: Decimal) -> None:
        self.db.query(Client).filter(Client.id == client_id).update(
            {Client.remaining_balance: amount},
            synchronize_session=False,
        )

    def installment_counts(self, client_id: int) -> Tuple[int, int]:
        """Return (total, paid) installment counts for a client"""
        total, paid = (
            self.db.query(
                func.count(Installment.id),
                func.count(case((Installment.status == InstallmentStatus.PAID.value, 1))),
            )
            .filter(Installment.client_id == client_id)
            .one()
        )
        return int(total or 0), int(paid or 0)

    def mark_contract_signed(self, client_id: int) -> None:
        self.db.query(Client).filter(Client.id == client_id).update(
            {Client.contract_signed: True},
            synchronize_session=False,
        )


class InstallmentRepository:
    """Repository for installment schedules and their read projections"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, installment_id: int) -> Optional[Installment]:
        return self.db.query(Installment).filter(Installment.id == installment_id).first()

    def get_for_update(self, installment_id: int) -> Optional[Installment]:
        """Fetch and lock the installment row for the rest of the transaction"""
        return (
            self.db.query(Installment)
            .filter(Installment.id == installment_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def count_for_client(self, client_id: int) -> int:
        return self.db.query(func.count(Installment.id)).filter(Installment.client_id == client_id).scalar() or 0

    def create_schedule(self, client_id: int, scheduled: List[ScheduledInstallment]) -> List[Installment]:
        """Insert a client's installment batch, all pending"""
        rows = [
            Installment(
                client_id=client_id,
                installment_number=item.installment_number,
                amount=item.amount,
                due_date=item.due_date,
                status=InstallmentStatus.PENDING.value,
            )
            for item in scheduled
        ]
        self.db.add_all(rows)
        self.db.flush()
        return rows

    def transition_status(self, installment_id: int, from_status: InstallmentStatus, to_status: InstallmentStatus) -> bool:
        """
        Conditional status change.

        Returns False when the row was not in from_status, which means another
        request changed it first.
        """
        updated = (
            self.db.query(Installment)
            .filter(Installment.id == installment_id, Installment.status == from_status.value)
            .update({Installment.status: to_status.value}, synchronize_session="fetch")
        )
        return updated == 1

    def list_installments(
        self,
        client_id: Optional[int] = None,
        status: Optional[str] = None,
        real_estate_id: Optional[int] = None,
        due_date_from: Optional[date] = None,
        due_date_to: Optional[date] = None,
    ) -> List[Installment]:
        """Filtered installment listing ordered by due date then number"""
        q = self.db.query(Installment).join(Client, Installment.client_id == Client.id)
        if client_id is not None:
            q = q.filter(Installment.client_id == client_id)
        if status:
            q = q.filter(Installment.status == status)
        if real_estate_id is not None:
            q = q.filter(Client.real_estate_id == real_estate_id)
        if due_date_from is not None:
            q = q.filter(Installment.due_date >= due_date_from)
        if due_date_to is not None:
            q = q.filter(Installment.due_date <= due_date_to)
        return q.order_by(Installment.due_date.asc(), Installment.installment_number.asc()).all()

    def list_overdue(self, real_estate_id: Optional[int] = None, today: Optional[date] = None) -> List[Tuple[Installment, Client]]:
        """Unpaid installments past their due date, aged against today"""
        today = today or date.today()
        q = (
            self.db.query(Installment, Client)
            .join(Client, Installment.client_id == Client.id)
            .filter(
                Installment.status.in_(_values(OVERDUE_CANDIDATE_STATUSES)),
                Installment.due_date < today,
            )
        )
        if real_estate_id is not None:
            q = q.filter(Client.real_estate_id == real_estate_id)
        return q.order_by(Installment.due_date.asc()).all()

    def list_upcoming(
        self,
        real_estate_id: Optional[int] = None,
        today: Optional[date] = None,
        window_days: int = 30,
    ) -> List[Tuple[Installment, Client]]:
        """Pending installments due between today and today + window_days"""
        today = today or date.today()
        q = (
            self.db.query(Installment, Client)
            .join(Client, Installment.client_id == Client.id)
            .filter(
                Installment.status == InstallmentStatus.PENDING.value,
                Installment.due_date >= today,
                Installment.due_date <= today + timedelta(days=window_days),
            )
        )
        if real_estate_id is not None:
            q = q.filter(Client.real_estate_id == real_estate_id)
        return q.order_by(Installment.due_date.asc()).all()

    def statistics(
        self,
        real_estate_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Portfolio-wide installment counts and amounts"""
        status = Installment.status
        q = self.db.query(
            func.count(Installment.id),
            func.count(case((status == InstallmentStatus.PAID.value, 1))),
            func.count(case((status == InstallmentStatus.PENDING.value, 1))),
            func.count(case((status == InstallmentStatus.PENDING_APPROVAL.value, 1))),
            func.count(case((status == InstallmentStatus.OVERDUE.value, 1))),
            func.count(case((status == InstallmentStatus.LATE.value, 1))),
            func.sum(case((status == InstallmentStatus.PAID.value, Installment.amount))),
            func.sum(case((status == InstallmentStatus.PENDING.value, Installment.amount))),
            func.sum(case((status == InstallmentStatus.OVERDUE.value, Installment.amount))),
            func.avg(Installment.amount),
            func.min(case((status.in_(_values(OPEN_STATUSES)), Installment.due_date))),
        ).join(Client, Installment.client_id == Client.id)

        if real_estate_id is not None:
            q = q.filter(Client.real_estate_id == real_estate_id)
        if date_from is not None:
            q = q.filter(Installment.due_date >= date_from)
        if date_to is not None:
            q = q.filter(Installment.due_date <= date_to)

        row = q.one()
        return {
            "total_installments": row[0] or 0,
            "paid_installments": row[1] or 0,
            "pending_installments": row[2] or 0,
            "pending_approval_installments": row[3] or 0,
            "overdue_installments": row[4] or 0,
            "late_installments": row[5] or 0,
            "total_paid_amount": _money(row[6]),
            "total_pending_amount": _money(row[7]),
            "total_overdue_amount": _money(row[8]),
            "average_installment_amount": _money(row[9]),
            "next_due_date": row[10],
        }

    def client_summary(self, client_id: int) -> Dict[str, Any]:
        """Repayment progress for one client"""
        status = Installment.status
        open_statuses = _values(OPEN_STATUSES)
        row = (
            self.db.query(
                func.count(Installment.id),
                func.count(case((status == InstallmentStatus.PAID.value, 1))),
                func.count(case((status == InstallmentStatus.PENDING.value, 1))),
                func.count(case((status == InstallmentStatus.PENDING_APPROVAL.value, 1))),
                func.count(case((status == InstallmentStatus.OVERDUE.value, 1))),
                func.count(case((status == InstallmentStatus.LATE.value, 1))),
                func.sum(case((status == InstallmentStatus.PAID.value, Installment.amount))),
                func.sum(case((status.in_(open_statuses), Installment.amount))),
                func.min(case((status.in_(open_statuses), Installment.due_date))),
                func.max(case((status == InstallmentStatus.PAID.value, Installment.due_date))),
            )
            .filter(Installment.client_id == client_id)
            .one()
        )
        return {
            "client_id": client_id,
            "total_installments": row[0] or 0,
            "paid_installments": row[1] or 0,
            "pending_installments": row[2] or 0,
            "pending_approval_installments": row[3] or 0,
            "overdue_installments": row[4] or 0,
            "late_installments": row[5] or 0,
            "total_paid": _money(row[6]),
            "total_remaining": _money(row[7]),
            "next_due_date": row[8],
            "last_payment_date": row[9],
        }


class PaymentRepository:
    """Repository for uploaded payment records"""

    def __init__(self, db: Session):
        self.db = db

    def create_payment(
        self,
        installment_id: int,
        client_id: int,
        amount: Decimal,
        payment_method: str,
        reference_number: Optional[str],
        proof_file_path: Optional[str],
        notes: Optional[str],
    ) -> Payment:
        """Persist a pending payment submission"""
        payment = Payment(
            installment_id=installment_id,
            client_id=client_id,
            amount=amount,
            payment_method=payment_method,
            reference_number=reference_number,
            proof_file_path=proof_file_path,
            status=PaymentStatus.PENDING.value,
            notes=notes,
        )
        self.db.add(payment)
        self.db.flush()  # Get ID without committing
        return payment

    def get(self, payment_id: int) -> Optional[Payment]:
        return self.db.query(Payment).filter(Payment.id == payment_id).first()

    def get_for_update(self, payment_id: int) -> Optional[Payment]:
        """Fetch and lock the payment row so a decision is applied once"""
        return (
            self.db.query(Payment)
            .filter(Payment.id == payment_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def record_decision(self, payment: Payment, status: PaymentStatus, approver_id: int, notes: Optional[str]) -> Payment:
        payment.status = status.value
        payment.approved_by = approver_id
        payment.approved_at = datetime.now(timezone.utc)
        payment.notes = notes
        self.db.flush()
        return payment

    def clear_proof(self, payment: Payment) -> None:
        payment.proof_file_path = None
        self.db.flush()

    def list_for_client(
        self,
        client_id: int,
        status: Optional[str] = None,
        installment_id: Optional[int] = None,
    ) -> List[Payment]:
        """Client payment history, newest first"""
        q = self.db.query(Payment).filter(Payment.client_id == client_id)
        if status:
            q = q.filter(Payment.status == status)
        if installment_id is not None:
            q = q.filter(Payment.installment_id == installment_id)
        return q.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()

    def list_pending(self, real_estate_id: Optional[int] = None, seller_id: Optional[int] = None) -> List[Payment]:
        """Payments awaiting an approver decision"""
        q = (
            self.db.query(Payment)
            .join(Client, Payment.client_id == Client.id)
            .filter(Payment.status == PaymentStatus.PENDING.value)
        )
        if real_estate_id is not None:
            q = q.filter(Client.real_estate_id == real_estate_id)
        if seller_id is not None:
            q = q.filter(Client.assigned_seller_id == seller_id)
        return q.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()

    def statistics(self, client_id: Optional[int] = None) -> Dict[str, Any]:
        status = Payment.status
        q = self.db.query(
            func.count(Payment.id),
            func.count(case((status == PaymentStatus.APPROVED.value, 1))),
            func.count(case((status == PaymentStatus.PENDING.value, 1))),
            func.count(case((status == PaymentStatus.REJECTED.value, 1))),
            func.sum(case((status == PaymentStatus.APPROVED.value, Payment.amount))),
            func.sum(Payment.amount),
        )
        if client_id is not None:
            q = q.filter(Payment.client_id == client_id)
        row = q.one()
        return {
            "total_payments": row[0] or 0,
            "approved_payments": row[1] or 0,
            "pending_payments": row[2] or 0,
            "rejected_payments": row[3] or 0,
            "total_approved_amount": _money(row[4]),
            "total_amount": _money(row[5]),
        }


class NotificationRepository:
    """Repository for user inbox messages"""

    def __init__(self, db: Session):
        self.db = db

    def create_notification(self, event: NotificationEvent) -> Notification:
        notification = Notification(
            recipient_id=event.recipient_id,
            sender_id=event.sender_id,
            type=NotificationType(event.type).value,
            title=event.title,
            message=event.message,
            related_client_id=event.related_client_id,
            related_payment_id=event.related_payment_id,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def list_for_user(
        self,
        user_id: int,
        is_read: Optional[bool] = None,
        notification_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Notification]:
        q = self.db.query(Notification).filter(Notification.recipient_id == user_id)
        if is_read is not None:
            q = q.filter(Notification.is_read == is_read)
        if notification_type:
            q = q.filter(Notification.type == notification_type)
        q = q.order_by(Notification.created_at.desc(), Notification.id.desc())
        if limit:
            q = q.limit(limit)
        return q.all()

    def get_for_user(self, notification_id: int, user_id: int) -> Optional[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.recipient_id == user_id)
            .first()
        )

    def mark_all_read(self, user_id: int) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )

    def statistics(self, user_id: int) -> Dict[str, int]:
        kind = Notification.type
        row = (
            self.db.query(
                func.count(Notification.id),
                func.count(case((Notification.is_read.is_(False), 1))),
                func.count(case((kind == NotificationType.PAYMENT_UPLOADED.value, 1))),
                func.count(case((kind == NotificationType.PAYMENT_APPROVED.value, 1))),
                func.count(case((kind == NotificationType.PAYMENT_REJECTED.value, 1))),
                func.count(case((kind == NotificationType.PAYMENT_OVERDUE.value, 1))),
            )
            .filter(Notification.recipient_id == user_id)
            .one()
        )
        return {
            "total_notifications": row[0] or 0,
            "unread_notifications": row[1] or 0,
            "payment_uploads": row[2] or 0,
            "payment_approvals": row[3] or 0,
            "payment_rejections": row[4] or 0,
            "overdue_alerts": row[5] or 0,
        }

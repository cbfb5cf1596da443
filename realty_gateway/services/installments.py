"""Installment schedule setup and administrative status changes"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from realty_gateway.domain.exceptions import InvalidReferenceError, InvalidStatusError, NotFoundError
from realty_gateway.domain.installments import ensure_status_overridable, generate_installment_schedule
from realty_gateway.domain.models import MANUAL_INSTALLMENT_STATUSES, InstallmentStatus
from realty_gateway.infrastructure.database.models import Installment
from realty_gateway.infrastructure.database.repositories import ClientRepository, InstallmentRepository
from realty_gateway.infrastructure.database.session import transaction
from realty_gateway.config import settings


def create_client_schedule(
    db: Session,
    client_id: int,
    total_installments: int,
    installment_amount: Decimal,
    start_date: Optional[date] = None,
) -> List[Installment]:
    """
    Create the installment batch of a financed purchase.

    Seeds remaining_balance with the schedule total. A client gets one
    schedule; a second attempt is rejected.
    """
    clients = ClientRepository(db)
    installments = InstallmentRepository(db)

    try:
        with transaction(db):
            client = clients.get(client_id)
            if client is None:
                raise NotFoundError("Client not found")

            if installments.count_for_client(client_id) > 0:
                raise InvalidReferenceError("Installment schedule already exists for this client")

            scheduled = generate_installment_schedule(
                total_installments,
                installment_amount,
                start_date=start_date,
                interval_months=settings.schedule_interval_months,
            )
            rows = installments.create_schedule(client_id, scheduled)
            clients.set_remaining_balance(client_id, sum((s.amount for s in scheduled), Decimal("0")))
    except IntegrityError as e:
        raise InvalidReferenceError("Installment number already exists for this client") from e

    return rows


def update_installment_status(db: Session, installment_id: int, status: str) -> Installment:
    """
    Administrative override used for aging (overdue/late) and corrections.

    pending_approval is reserved for the payment workflow, and neither a
    paid nor an in-review installment can be overridden.
    """
    if status not in [s.value for s in MANUAL_INSTALLMENT_STATUSES]:
        raise InvalidStatusError("Invalid status")

    installments = InstallmentRepository(db)
    with transaction(db):
        installment = installments.get_for_update(installment_id)
        if installment is None:
            raise NotFoundError("Installment not found")
        ensure_status_overridable(installment.status)

        installment.status = InstallmentStatus(status).value
        db.flush()

    return installment

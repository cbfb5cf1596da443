"""Installment schedule generation and read-time aging rules"""

from datetime import date
from decimal import Decimal
from typing import List
from realty_gateway.domain.exceptions import InvalidStatusError
from realty_gateway.domain.models import InstallmentStatus, ScheduledInstallment
from realty_gateway.utils.date_utils import add_months, days_between

OVERDUE_CANDIDATE_STATUSES = (InstallmentStatus.PENDING, InstallmentStatus.OVERDUE)
OPEN_STATUSES = (InstallmentStatus.PENDING, InstallmentStatus.OVERDUE, InstallmentStatus.LATE)
FROZEN_STATUSES = (InstallmentStatus.PAID, InstallmentStatus.PENDING_APPROVAL)


def generate_installment_schedule(
    total_installments: int,
    installment_amount: Decimal,
    start_date: date | None = None,
    interval_months: int = 1,
) -> List[ScheduledInstallment]:
    """
    Generate a fixed-amount monthly schedule for a financed purchase.

    Requirements:
    - Installments are numbered 1..total_installments
    - Every installment carries the same amount (no rounding split)
    - First due date is one interval after today unless given
    - Day-of-month is clamped for short months (Jan 31 -> Feb 28)

    Example:
        3 x 100.00 from 2024-01-31 -> 2024-01-31, 2024-02-29, 2024-03-31
    """
    if total_installments <= 0:
        return []

    if start_date is None:
        start_date = add_months(date.today(), interval_months)

    return [
        ScheduledInstallment(
            installment_number=number,
            due_date=add_months(start_date, (number - 1) * interval_months),
            amount=Decimal(installment_amount),
        )
        for number in range(1, total_installments + 1)
    ]


def ensure_status_overridable(current_status: str) -> None:
    """
    Administrative overrides never touch settled or in-review installments.

    paid is terminal; pending_approval belongs to the payment awaiting a
    decision.
    """
    if current_status in FROZEN_STATUSES:
        raise InvalidStatusError(f"Installment status cannot be changed from {current_status}")


def days_overdue(due_date: date, today: date) -> int:
    return days_between(due_date, today)


def days_until_due(due_date: date, today: date) -> int:
    return days_between(today, due_date)

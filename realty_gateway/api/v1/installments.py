"""Installment read projections and the administrative status endpoint"""

from datetime import date
from typing import List, Optional, Tuple
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from realty_gateway.api.dependencies import ensure_client_access, get_current_user, get_request_id, require_roles
from realty_gateway.api.errors import handle_domain_error, handle_unexpected_error
from realty_gateway.api.v1.schemas import (
    AgedInstallmentListResponse,
    AgedInstallmentSchema,
    InstallmentListResponse,
    InstallmentSchema,
    InstallmentStatisticsResponse,
    InstallmentStatusUpdate,
)
from realty_gateway.config import settings
from realty_gateway.domain.exceptions import DomainException
from realty_gateway.domain.installments import days_overdue, days_until_due
from realty_gateway.domain.models import APPROVER_ROLES, CurrentUser, Role
from realty_gateway.infrastructure.database.models import Client, Installment
from realty_gateway.infrastructure.database.repositories import ClientRepository, InstallmentRepository
from realty_gateway.infrastructure.database.session import get_db
from realty_gateway.services.installments import update_installment_status

router = APIRouter()


def _aged(rows: List[Tuple[Installment, Client]], overdue: bool) -> AgedInstallmentListResponse:
    today = date.today()
    items = []
    for installment, client in rows:
        item = AgedInstallmentSchema(
            **InstallmentSchema.model_validate(installment).model_dump(),
            user_id=client.user_id,
            assigned_seller_id=client.assigned_seller_id,
            real_estate_id=client.real_estate_id,
        )
        if overdue:
            item.days_overdue = days_overdue(installment.due_date, today)
        else:
            item.days_until_due = days_until_due(installment.due_date, today)
        items.append(item)
    return AgedInstallmentListResponse(installments=items, count=len(items))


@router.get("/installments", response_model=InstallmentListResponse)
def list_installments(
    client_id: Optional[int] = Query(None, ge=1),
    status: Optional[str] = Query(None),
    real_estate_id: Optional[int] = Query(None, ge=1),
    due_date_from: Optional[date] = Query(None),
    due_date_to: Optional[date] = Query(None),
    current_user: CurrentUser = Depends(require_roles(*APPROVER_ROLES)),
    db: Session = Depends(get_db),
):
    """Filtered installment listing ordered by due date"""
    if client_id is not None and current_user.role == Role.SELLER:
        client = ClientRepository(db).get(client_id)
        if client is None:
            raise HTTPException(status_code=404, detail="Client not found")
        ensure_client_access(current_user, client)

    installments = InstallmentRepository(db).list_installments(
        client_id=client_id,
        status=status,
        real_estate_id=real_estate_id,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
    )
    return InstallmentListResponse(
        installments=[InstallmentSchema.model_validate(i) for i in installments],
        count=len(installments),
    )


@router.get("/installments/mine", response_model=InstallmentListResponse)
def list_my_installments(
    current_user: CurrentUser = Depends(require_roles(Role.CLIENT)),
    db: Session = Depends(get_db),
):
    client = ClientRepository(db).get_by_user_id(current_user.id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client profile not found")

    installments = InstallmentRepository(db).list_installments(client_id=client.id)
    return InstallmentListResponse(
        installments=[InstallmentSchema.model_validate(i) for i in installments],
        count=len(installments),
    )


@router.get("/installments/overdue", response_model=AgedInstallmentListResponse)
def list_overdue_installments(
    real_estate_id: Optional[int] = Query(None, ge=1),
    current_user: CurrentUser = Depends(require_roles(*APPROVER_ROLES)),
    db: Session = Depends(get_db),
):
    """
    Unpaid installments past due.

    Aging is computed from today's date at read time: status pending or
    overdue with a due date before today.
    """
    rows = InstallmentRepository(db).list_overdue(real_estate_id=real_estate_id)
    return _aged(rows, overdue=True)


@router.get("/installments/upcoming", response_model=AgedInstallmentListResponse)
def list_upcoming_installments(
    real_estate_id: Optional[int] = Query(None, ge=1),
    current_user: CurrentUser = Depends(require_roles(*APPROVER_ROLES)),
    db: Session = Depends(get_db),
):
    """Pending installments due within the configured window (30 days)"""
    rows = InstallmentRepository(db).list_upcoming(
        real_estate_id=real_estate_id,
        window_days=settings.upcoming_window_days,
    )
    return _aged(rows, overdue=False)


@router.get("/installments/statistics", response_model=InstallmentStatisticsResponse)
def get_installment_statistics(
    real_estate_id: Optional[int] = Query(None, ge=1),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    current_user: CurrentUser = Depends(require_roles(Role.SYSTEM_ADMIN, Role.REAL_ESTATE_ADMIN)),
    db: Session = Depends(get_db),
):
    stats = InstallmentRepository(db).statistics(
        real_estate_id=real_estate_id,
        date_from=date_from,
        date_to=date_to,
    )
    return InstallmentStatisticsResponse(**stats)


def _load_accessible_installment(db: Session, installment_id: int, current_user: CurrentUser) -> Installment:
    installment = InstallmentRepository(db).get(installment_id)
    if installment is None:
        raise HTTPException(status_code=404, detail="Installment not found")
    ensure_client_access(current_user, installment.client)
    return installment


@router.get("/installments/{installment_id}", response_model=InstallmentSchema)
def get_installment(
    installment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    installment = _load_accessible_installment(db, installment_id, current_user)
    return InstallmentSchema.model_validate(installment)


@router.put("/installments/{installment_id}/status", response_model=InstallmentSchema)
def set_installment_status(
    installment_id: int,
    body: InstallmentStatusUpdate,
    request: Request,
    current_user: CurrentUser = Depends(require_roles(*APPROVER_ROLES)),
    db: Session = Depends(get_db),
):
    """
    Administrative status override (pending, paid, overdue, late).

    Does not touch client balances; settlement goes through payment approval.
    """
    request_id = get_request_id(request)
    _load_accessible_installment(db, installment_id, current_user)

    try:
        installment = update_installment_status(db, installment_id, body.status)
    except DomainException as e:
        raise handle_domain_error(e, db, request_id)
    except Exception as e:
        raise handle_unexpected_error(e, db, request_id)

    return InstallmentSchema.model_validate(installment)

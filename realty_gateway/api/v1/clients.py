"""Client-scoped payment history, installment summary and schedule setup"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from realty_gateway.api.dependencies import ensure_client_access, get_request_id, require_roles
from realty_gateway.api.errors import handle_domain_error, handle_unexpected_error
from realty_gateway.api.v1.schemas import (
    ClientInstallmentSummary,
    InstallmentListResponse,
    InstallmentSchema,
    PaymentListResponse,
    PaymentSchema,
    ScheduleRequest,
)
from realty_gateway.domain.exceptions import DomainException
from realty_gateway.domain.models import APPROVER_ROLES, CurrentUser, Role
from realty_gateway.infrastructure.database.models import Client
from realty_gateway.infrastructure.database.repositories import (
    ClientRepository,
    InstallmentRepository,
    PaymentRepository,
)
from realty_gateway.infrastructure.database.session import get_db
from realty_gateway.services.installments import create_client_schedule

router = APIRouter()


def _load_accessible_client(db: Session, client_id: int, current_user: CurrentUser) -> Client:
    client = ClientRepository(db).get(client_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    ensure_client_access(current_user, client)
    return client


@router.get("/clients/{client_id}/payments", response_model=PaymentListResponse)
def get_client_payments(
    client_id: int,
    status: Optional[str] = Query(None),
    installment_id: Optional[int] = Query(None, ge=1),
    current_user: CurrentUser = Depends(require_roles(*APPROVER_ROLES)),
    db: Session = Depends(get_db),
):
    """Payment history of a client, newest first"""
    _load_accessible_client(db, client_id, current_user)

    payments = PaymentRepository(db).list_for_client(client_id, status=status, installment_id=installment_id)
    return PaymentListResponse(
        payments=[PaymentSchema.model_validate(p) for p in payments],
        count=len(payments),
    )


@router.get("/clients/{client_id}/installments/summary", response_model=ClientInstallmentSummary)
def get_client_installment_summary(
    client_id: int,
    current_user: CurrentUser = Depends(require_roles(*APPROVER_ROLES, Role.CLIENT)),
    db: Session = Depends(get_db),
):
    """Repayment progress: counts per status, paid and remaining amounts, next due date"""
    _load_accessible_client(db, client_id, current_user)
    return ClientInstallmentSummary(**InstallmentRepository(db).client_summary(client_id))


@router.post("/clients/{client_id}/installments/schedule", response_model=InstallmentListResponse, status_code=201)
def create_installment_schedule(
    client_id: int,
    body: ScheduleRequest,
    request: Request,
    current_user: CurrentUser = Depends(require_roles(Role.SYSTEM_ADMIN, Role.REAL_ESTATE_ADMIN)),
    db: Session = Depends(get_db),
):
    """
    Set up the monthly installment plan of a financed purchase.

    Returns:
        The created installments, numbered from 1
    """
    request_id = get_request_id(request)

    try:
        installments = create_client_schedule(
            db,
            client_id=client_id,
            total_installments=body.total_installments,
            installment_amount=body.installment_amount,
            start_date=body.start_date,
        )
    except DomainException as e:
        raise handle_domain_error(e, db, request_id)
    except Exception as e:
        raise handle_unexpected_error(e, db, request_id)

    return InstallmentListResponse(
        installments=[InstallmentSchema.model_validate(i) for i in installments],
        count=len(installments),
    )

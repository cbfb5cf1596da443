"""Payment proof submission, approval and read endpoints"""

from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from realty_gateway.api.dependencies import (
    ensure_client_access,
    get_current_user,
    get_notification_emitter,
    get_proof_storage,
    get_request_id,
    require_roles,
)
from realty_gateway.api.errors import handle_domain_error, handle_unexpected_error
from realty_gateway.api.v1.schemas import (
    MessageResponse,
    PaymentDecisionRequest,
    PaymentListResponse,
    PaymentSchema,
    PaymentStatisticsResponse,
)
from realty_gateway.domain.exceptions import DomainException
from realty_gateway.domain.models import APPROVER_ROLES, CurrentUser, PaymentMethod, ProofFile, Role
from realty_gateway.infrastructure.database.repositories import ClientRepository, PaymentRepository
from realty_gateway.infrastructure.database.session import get_db
from realty_gateway.infrastructure.storage import ProofStorage
from realty_gateway.services.notifications import NotificationEmitter
from realty_gateway.services.payment_workflow import PaymentWorkflow

router = APIRouter()


def _resolve_client_id(db: Session, current_user: CurrentUser, client_id: Optional[int]) -> int:
    """Clients pay for themselves; staff must name the client they act for"""
    clients = ClientRepository(db)
    if current_user.role == Role.CLIENT:
        client = clients.get_by_user_id(current_user.id)
        if client is None:
            raise HTTPException(status_code=404, detail="Client profile not found")
        return client.id

    if client_id is None:
        raise HTTPException(status_code=400, detail="client_id is required")
    client = clients.get(client_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    ensure_client_access(current_user, client)
    return client.id


@router.post("/payments", response_model=PaymentSchema, status_code=201)
async def submit_payment(
    request: Request,
    background_tasks: BackgroundTasks,
    installment_id: int = Form(..., ge=1),
    amount: Decimal = Form(..., ge=0),
    payment_method: PaymentMethod = Form(...),
    reference_number: Optional[str] = Form(None, min_length=1, max_length=100),
    notes: Optional[str] = Form(None, max_length=500),
    client_id: Optional[int] = Form(None, ge=1),
    proof: Optional[UploadFile] = File(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: ProofStorage = Depends(get_proof_storage),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    """
    Upload a payment proof for a pending installment.

    Flow:
    1. Resolve the paying client (own profile for clients)
    2. Validate installment ownership/state and exact amount
    3. Store proof, create payment, move installment to pending_approval
    4. Notify the assigned seller in the background
    """
    request_id = get_request_id(request)
    resolved_client_id = _resolve_client_id(db, current_user, client_id)

    proof_file = None
    if proof is not None and proof.filename:
        proof_file = ProofFile(
            filename=proof.filename,
            content_type=proof.content_type or "application/octet-stream",
            content=await proof.read(),
        )

    workflow = PaymentWorkflow(
        db,
        storage=storage,
        dispatch=lambda event: background_tasks.add_task(emitter.notify, event),
        request_id=request_id,
    )

    try:
        payment = workflow.submit_payment(
            installment_id=installment_id,
            client_id=resolved_client_id,
            amount=amount,
            payment_method=payment_method.value,
            reference_number=reference_number,
            notes=notes,
            proof=proof_file,
        )
    except DomainException as e:
        raise handle_domain_error(e, db, request_id)
    except Exception as e:
        raise handle_unexpected_error(e, db, request_id)

    return PaymentSchema.model_validate(payment)


@router.get("/payments/mine", response_model=PaymentListResponse)
def get_my_payments(
    status: Optional[str] = Query(None),
    installment_id: Optional[int] = Query(None, ge=1),
    current_user: CurrentUser = Depends(require_roles(Role.CLIENT)),
    db: Session = Depends(get_db),
):
    """Payment history of the authenticated client"""
    client = ClientRepository(db).get_by_user_id(current_user.id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client profile not found")

    payments = PaymentRepository(db).list_for_client(client.id, status=status, installment_id=installment_id)
    return PaymentListResponse(
        payments=[PaymentSchema.model_validate(p) for p in payments],
        count=len(payments),
    )


@router.get("/payments/pending", response_model=PaymentListResponse)
def get_pending_payments(
    real_estate_id: Optional[int] = Query(None, ge=1),
    seller_id: Optional[int] = Query(None, ge=1),
    current_user: CurrentUser = Depends(require_roles(*APPROVER_ROLES)),
    db: Session = Depends(get_db),
):
    """
    Payments waiting for an approver.

    Sellers only ever see their own clients' submissions.
    """
    if current_user.role == Role.SELLER:
        seller_id = current_user.id

    payments = PaymentRepository(db).list_pending(real_estate_id=real_estate_id, seller_id=seller_id)
    return PaymentListResponse(
        payments=[PaymentSchema.model_validate(p) for p in payments],
        count=len(payments),
    )


@router.get("/payments/statistics", response_model=PaymentStatisticsResponse)
def get_payment_statistics(
    client_id: Optional[int] = Query(None, ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Counts and amounts per payment status, optionally for one client"""
    if current_user.role == Role.CLIENT:
        client = ClientRepository(db).get_by_user_id(current_user.id)
        if client is None:
            raise HTTPException(status_code=404, detail="Client profile not found")
        client_id = client.id

    return PaymentStatisticsResponse(**PaymentRepository(db).statistics(client_id=client_id))


def _load_accessible_payment(db: Session, payment_id: int, current_user: CurrentUser):
    payment = PaymentRepository(db).get(payment_id)
    if payment is None:
        raise HTTPException(status_code=404, detail="Payment not found")
    ensure_client_access(current_user, payment.client)
    return payment


@router.get("/payments/{payment_id}", response_model=PaymentSchema)
def get_payment(
    payment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payment = _load_accessible_payment(db, payment_id, current_user)
    return PaymentSchema.model_validate(payment)


@router.get("/payments/{payment_id}/proof")
def download_payment_proof(
    payment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: ProofStorage = Depends(get_proof_storage),
):
    """Stream the stored proof file back to an authorized user"""
    payment = _load_accessible_payment(db, payment_id, current_user)

    if not payment.proof_file_path:
        raise HTTPException(status_code=404, detail="Payment proof not found")
    if not storage.exists(payment.proof_file_path):
        raise HTTPException(status_code=404, detail="Payment proof file not found on server")

    return FileResponse(payment.proof_file_path)


@router.put("/payments/{payment_id}/decision", response_model=PaymentSchema)
def decide_payment(
    payment_id: int,
    body: PaymentDecisionRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(require_roles(*APPROVER_ROLES)),
    db: Session = Depends(get_db),
    storage: ProofStorage = Depends(get_proof_storage),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
):
    """
    Approve or reject a pending payment.

    Approval settles the installment and reduces the client's balance;
    rejection reopens the installment. A payment is decided once: repeat
    decisions get 409.
    """
    request_id = get_request_id(request)
    _load_accessible_payment(db, payment_id, current_user)

    workflow = PaymentWorkflow(
        db,
        storage=storage,
        dispatch=lambda event: background_tasks.add_task(emitter.notify, event),
        request_id=request_id,
    )

    try:
        payment = workflow.decide_payment(
            payment_id=payment_id,
            approver_id=current_user.id,
            decision=body.status.value,
            notes=body.notes,
        )
    except DomainException as e:
        raise handle_domain_error(e, db, request_id)
    except Exception as e:
        raise handle_unexpected_error(e, db, request_id)

    return PaymentSchema.model_validate(payment)


@router.delete("/payments/{payment_id}/proof", response_model=MessageResponse)
def delete_payment_proof(
    payment_id: int,
    request: Request,
    current_user: CurrentUser = Depends(require_roles(Role.SYSTEM_ADMIN)),
    db: Session = Depends(get_db),
    storage: ProofStorage = Depends(get_proof_storage),
):
    """Remove the proof file of a payment (maintenance)"""
    request_id = get_request_id(request)
    workflow = PaymentWorkflow(db, storage=storage, request_id=request_id)

    try:
        result = workflow.delete_proof(payment_id)
    except DomainException as e:
        raise handle_domain_error(e, db, request_id)
    except Exception as e:
        raise handle_unexpected_error(e, db, request_id)

    return MessageResponse(**result)

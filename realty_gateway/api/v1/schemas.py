"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field

from realty_gateway.domain.models import PaymentDecision


class InstallmentSchema(BaseModel):
    """Single installment in a client's schedule"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    installment_number: int
    amount: Decimal
    due_date: date
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InstallmentListResponse(BaseModel):
    installments: List[InstallmentSchema]
    count: int


class AgedInstallmentSchema(InstallmentSchema):
    """Installment row from overdue/upcoming queries, with routing and aging data"""

    user_id: int
    assigned_seller_id: Optional[int] = None
    real_estate_id: Optional[int] = None
    days_overdue: Optional[int] = None
    days_until_due: Optional[int] = None


class AgedInstallmentListResponse(BaseModel):
    installments: List[AgedInstallmentSchema]
    count: int


class InstallmentStatusUpdate(BaseModel):
    """Request body for PUT /v1/installments/{installment_id}/status"""

    status: str = Field(..., description="pending, paid, overdue or late")


class InstallmentStatisticsResponse(BaseModel):
    total_installments: int
    paid_installments: int
    pending_installments: int
    pending_approval_installments: int
    overdue_installments: int
    late_installments: int
    total_paid_amount: Decimal
    total_pending_amount: Decimal
    total_overdue_amount: Decimal
    average_installment_amount: Decimal
    next_due_date: Optional[date] = None


class ClientInstallmentSummary(BaseModel):
    client_id: int
    total_installments: int
    paid_installments: int
    pending_installments: int
    pending_approval_installments: int
    overdue_installments: int
    late_installments: int
    total_paid: Decimal
    total_remaining: Decimal
    next_due_date: Optional[date] = None
    last_payment_date: Optional[date] = None


class ScheduleRequest(BaseModel):
    """Request body for POST /v1/clients/{client_id}/installments/schedule"""

    total_installments: int = Field(..., gt=0, le=600, description="Number of monthly installments")
    installment_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    start_date: Optional[date] = Field(None, description="First due date (default: one month from today)")


class PaymentSchema(BaseModel):
    """Uploaded payment proof record"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    installment_id: int
    client_id: int
    amount: Decimal
    payment_method: str
    reference_number: Optional[str] = None
    status: str
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None
    payment_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    proof_file_path: Optional[str] = Field(None, exclude=True)

    @computed_field
    @property
    def has_proof(self) -> bool:
        return self.proof_file_path is not None


class PaymentListResponse(BaseModel):
    payments: List[PaymentSchema]
    count: int


class PaymentDecisionRequest(BaseModel):
    """Request body for PUT /v1/payments/{payment_id}/decision"""

    status: PaymentDecision
    notes: Optional[str] = Field(None, max_length=500)


class PaymentStatisticsResponse(BaseModel):
    total_payments: int
    approved_payments: int
    pending_payments: int
    rejected_payments: int
    total_approved_amount: Decimal
    total_amount: Decimal


class MessageResponse(BaseModel):
    message: str


class NotificationSchema(BaseModel):
    """Inbox message"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    recipient_id: int
    sender_id: Optional[int] = None
    type: str
    title: str
    message: str
    related_client_id: Optional[int] = None
    related_payment_id: Optional[int] = None
    is_read: bool
    created_at: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    notifications: List[NotificationSchema]
    count: int


class NotificationStatisticsResponse(BaseModel):
    total_notifications: int
    unread_notifications: int
    payment_uploads: int
    payment_approvals: int
    payment_rejections: int
    overdue_alerts: int

"""Payment workflow engine - submission, approval/rejection and contract completion"""

import logging
from decimal import Decimal
from typing import Callable, Dict, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from realty_gateway.domain.exceptions import InvalidInstallmentStateError, InvalidReferenceError, NotFoundError
from realty_gateway.domain.models import (
    InstallmentStatus,
    NotificationEvent,
    PaymentDecision,
    PaymentMethod,
    PaymentStatus,
    ProofFile,
)
from realty_gateway.domain.payments import (
    build_decision_notification,
    build_upload_notification,
    ensure_amount_matches,
    ensure_installment_submittable,
    ensure_payment_pending,
    installment_status_after,
    is_contract_complete,
)
from realty_gateway.infrastructure.database.models import Payment
from realty_gateway.infrastructure.database.repositories import (
    ClientRepository,
    InstallmentRepository,
    PaymentRepository,
)
from realty_gateway.infrastructure.database.session import transaction
from realty_gateway.infrastructure.observability.logging import log_payment_event
from realty_gateway.infrastructure.observability.metrics import record_payment_decision, record_submission
from realty_gateway.infrastructure.storage import ProofStorage

logger = logging.getLogger(__name__)

NotificationDispatch = Callable[[NotificationEvent], None]


class PaymentWorkflow:
    """
    Orchestrates the installment payment lifecycle.

    Installment:  pending -> pending_approval -> paid | pending
    Payment:      pending -> approved | rejected

    Every operation runs in a single transaction on the given session.
    Notifications are handed to `dispatch` only after commit; a failing
    dispatch is logged and never changes the outcome.
    """

    def __init__(
        self,
        db: Session,
        storage: Optional[ProofStorage] = None,
        dispatch: Optional[NotificationDispatch] = None,
        request_id: Optional[str] = None,
    ):
        self.db = db
        self.clients = ClientRepository(db)
        self.installments = InstallmentRepository(db)
        self.payments = PaymentRepository(db)
        self.storage = storage or ProofStorage()
        if dispatch is None:
            from realty_gateway.services.notifications import NotificationEmitter

            dispatch = NotificationEmitter().notify
        self.dispatch = dispatch
        self.request_id = request_id

    def submit_payment(
        self,
        installment_id: int,
        client_id: int,
        amount: Decimal,
        payment_method: str,
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
        proof: Optional[ProofFile] = None,
    ) -> Payment:
        """
        Record a payment proof against a pending installment.

        Raises:
            InvalidInstallmentStateError: Installment missing, owned by another client, or not pending
            AmountMismatchError: Amount differs from the installment amount
            InvalidProofFileError: Proof has a forbidden type or size
            InvalidReferenceError: Store rejected a foreign key
        """
        method = PaymentMethod(payment_method)
        if proof is not None:
            self.storage.validate(proof)

        proof_path = None
        event = None
        try:
            with transaction(self.db):
                installment = self.installments.get_for_update(installment_id)
                if installment is None:
                    raise InvalidInstallmentStateError()
                ensure_installment_submittable(installment.client_id, installment.status, client_id)
                ensure_amount_matches(amount, installment.amount)

                if proof is not None:
                    proof_path = self.storage.save(proof)

                payment = self.payments.create_payment(
                    installment_id=installment.id,
                    client_id=client_id,
                    amount=Decimal(str(amount)),
                    payment_method=method.value,
                    reference_number=reference_number,
                    proof_file_path=proof_path,
                    notes=notes,
                )

                # Another submission may have claimed the installment since the read
                moved = self.installments.transition_status(
                    installment.id,
                    InstallmentStatus.PENDING,
                    InstallmentStatus.PENDING_APPROVAL,
                )
                if not moved:
                    raise InvalidInstallmentStateError()

                client = self.clients.get(client_id)
                if client is not None and client.assigned_seller_id:
                    event = build_upload_notification(
                        seller_id=client.assigned_seller_id,
                        client_user_id=client.user_id,
                        client_id=client_id,
                        payment_id=payment.id,
                        installment_number=installment.installment_number,
                    )

        except IntegrityError as e:
            self.storage.delete(proof_path)
            raise InvalidReferenceError("Invalid installment or client reference") from e
        except Exception:
            self.storage.delete(proof_path)
            raise

        record_submission(method.value)
        log_payment_event(
            self.request_id,
            "payment_submitted",
            payment.id,
            client_id,
            installment_id=installment_id,
            payment_method=method.value,
            has_proof=proof_path is not None,
        )

        if event is not None:
            self._emit(event)
        return payment

    def decide_payment(
        self,
        payment_id: int,
        approver_id: int,
        decision: str,
        notes: Optional[str] = None,
    ) -> Payment:
        """
        Approve or reject a pending payment.

        Flow (one transaction):
        1. Lock the payment row and require status pending
        2. Record status, approver, timestamp and notes
        3. Approved: installment -> paid, balance -= amount, completion check
           Rejected: installment -> pending so the client can resubmit
        4. After commit: notify the client

        Raises:
            NotFoundError: Payment does not exist
            PaymentAlreadyDecidedError: Payment was already approved or rejected
            InvalidInstallmentStateError: Installment left pending_approval outside the workflow
        """
        decision = PaymentDecision(decision)
        contract_completed = False

        with transaction(self.db):
            payment = self.payments.get_for_update(payment_id)
            if payment is None:
                raise NotFoundError("Payment not found")
            ensure_payment_pending(payment.id, payment.status)

            self.payments.record_decision(payment, PaymentStatus(decision.value), approver_id, notes)

            installment = self.installments.get_for_update(payment.installment_id)
            # Settles only the submission the installment is still waiting on
            moved = self.installments.transition_status(
                installment.id,
                InstallmentStatus.PENDING_APPROVAL,
                installment_status_after(decision),
            )
            if not moved:
                raise InvalidInstallmentStateError("Installment is no longer awaiting approval")

            client = self.clients.get(payment.client_id)
            was_signed = bool(client.contract_signed)

            if decision == PaymentDecision.APPROVED:
                self.clients.decrement_balance(payment.client_id, payment.amount)
                total, paid = self.clients.installment_counts(payment.client_id)
                if is_contract_complete(total, paid):
                    self.clients.mark_contract_signed(payment.client_id)
                    contract_completed = not was_signed

            event = build_decision_notification(
                decision=decision,
                client_user_id=client.user_id,
                approver_id=approver_id,
                client_id=payment.client_id,
                payment_id=payment.id,
                installment_number=installment.installment_number,
                notes=notes,
            )

        record_payment_decision(decision.value, contract_completed)
        log_payment_event(
            self.request_id,
            f"payment_{decision.value}",
            payment_id,
            event.related_client_id,
            approver_id=approver_id,
            contract_completed=contract_completed,
        )

        self._emit(event)
        return payment

    def delete_proof(self, payment_id: int) -> Dict[str, str]:
        """
        Drop the proof file of a payment, leaving its status untouched.

        The reference is cleared first so a crash never leaves the record
        pointing at a deleted file.
        """
        with transaction(self.db):
            payment = self.payments.get(payment_id)
            if payment is None:
                raise NotFoundError("Payment not found")
            proof_path = payment.proof_file_path
            self.payments.clear_proof(payment)

        self.storage.delete(proof_path)
        log_payment_event(self.request_id, "proof_deleted", payment_id, payment.client_id)
        return {"message": "Payment proof deleted successfully"}

    def _emit(self, event: NotificationEvent) -> None:
        try:
            self.dispatch(event)
        except Exception as e:
            logger.error(
                f"Error creating notification: {e}",
                extra={"request_id": self.request_id, "related_payment_id": event.related_payment_id},
            )

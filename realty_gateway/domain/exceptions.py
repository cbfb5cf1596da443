"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Request is well-formed but violates a business rule the caller can fix"""

    pass


class InvalidInstallmentStateError(ValidationError):
    """Installment does not belong to the client or is not pending"""

    def __init__(self, message: str = "Invalid installment or installment not pending"):
        super().__init__(message)


class AmountMismatchError(ValidationError):
    """Submitted amount differs from the installment amount"""

    def __init__(self, message: str = "Payment amount must match installment amount"):
        super().__init__(message)


class InvalidReferenceError(ValidationError):
    """A referenced row does not exist or a uniqueness rule was violated"""

    pass


class InvalidProofFileError(ValidationError):
    """Uploaded proof file has a forbidden type or is too large"""

    pass


class InvalidStatusError(ValidationError):
    """Requested status is not allowed for this operation"""

    pass


class NotFoundError(DomainException):
    """Requested entity does not exist"""

    pass


class PaymentAlreadyDecidedError(DomainException):
    """Approve/reject attempted on a payment that is no longer pending"""

    def __init__(self, payment_id: int, status: str):
        self.payment_id = payment_id
        self.status = getattr(status, "value", status)
        super().__init__(f"Payment {payment_id} has already been {self.status}")


class PermissionDeniedError(DomainException):
    """Authenticated user is not allowed to act on this resource"""

    pass

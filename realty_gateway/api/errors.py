"""Translation of domain exceptions into HTTP errors"""

import logging
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from realty_gateway.domain.exceptions import (
    DomainException,
    NotFoundError,
    PaymentAlreadyDecidedError,
    PermissionDeniedError,
    ValidationError,
)


def to_http_exception(error: DomainException) -> HTTPException:
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, PaymentAlreadyDecidedError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, PermissionDeniedError):
        return HTTPException(status_code=403, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


def handle_domain_error(error: DomainException, db: Session, request_id: str) -> HTTPException:
    """Roll back, log as a client-side failure and build the HTTP error"""
    db.rollback()
    logging.warning(f"{type(error).__name__}: {error}", extra={"request_id": request_id})
    return to_http_exception(error)


def handle_unexpected_error(error: Exception, db: Session, request_id: str) -> HTTPException:
    db.rollback()
    logging.error(f"Unexpected error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")


async def domain_exception_handler(request: Request, error: DomainException) -> JSONResponse:
    """
    Fallback for domain errors raised outside a route's own except block,
    such as access checks in the shared loaders.
    """
    http_error = to_http_exception(error)
    logging.warning(
        f"{type(error).__name__}: {error}",
        extra={"request_id": getattr(request.state, "request_id", "unknown"), "path": request.url.path},
    )
    return JSONResponse(status_code=http_error.status_code, content={"detail": http_error.detail})

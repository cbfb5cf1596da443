"""Dependency injection for FastAPI endpoints"""

from typing import Callable, Optional
from fastapi import Depends, Header, HTTPException, Request
from realty_gateway.domain.exceptions import PermissionDeniedError
from realty_gateway.domain.models import CurrentUser, Role
from realty_gateway.infrastructure.database.models import Client
from realty_gateway.infrastructure.storage import ProofStorage
from realty_gateway.services.notifications import NotificationEmitter


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    """
    Authentication context forwarded by the upstream auth gateway.

    Tokens are verified before requests reach this service; only the
    resolved user id and role arrive here.
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        return CurrentUser(id=int(x_user_id), role=Role(x_user_role))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid authentication context")


def require_roles(*roles: Role) -> Callable[..., CurrentUser]:
    """Build a dependency that admits only the given roles"""

    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user

    return dependency


def ensure_client_access(current_user: CurrentUser, client: Client) -> None:
    """
    Admins see every client, sellers only their assigned clients and
    clients only themselves.
    """
    if current_user.role in (Role.SYSTEM_ADMIN, Role.REAL_ESTATE_ADMIN):
        return
    if current_user.role == Role.SELLER and client.assigned_seller_id == current_user.id:
        return
    if current_user.role == Role.CLIENT and client.user_id == current_user.id:
        return
    raise PermissionDeniedError("Access denied: not assigned to this client")


def get_proof_storage() -> ProofStorage:
    """Provide proof file storage instance"""
    return ProofStorage()


def get_notification_emitter() -> NotificationEmitter:
    """Provide notification emitter instance"""
    return NotificationEmitter()

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from loguru import logger

from app.core.audit import _perform_audit_log
from app.core.dependencies import get_user_service, require_roles
from app.db.schema import AuditAction, User, UserRole
from app.models.user import UserCreate, UserRead, UserStatusUpdate
from app.services.user import UserService


router = APIRouter()


@router.post(
    "/",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create User",
    description="Administrators create accounts of any profile (student or staff)."
)
def create_user(
    data: UserCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    service: UserService = Depends(get_user_service)
):
    try:
        user = service.create_user(data)
    except ValueError as e:
        logger.warning(f"Admin user creation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )

    background_tasks.add_task(
        _perform_audit_log,
        user_id=current_user.id,
        entity_type="user",
        entity_id=user.id,
        action=AuditAction.CREATE,
        changes={"role": user.role.value, "is_active": user.is_active},
        ip_address=request.client.host if request.client else None
    )
    return user


@router.get(
    "/",
    response_model=List[UserRead],
    status_code=status.HTTP_200_OK,
    summary="List Users"
)
def list_users(
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    service: UserService = Depends(get_user_service)
):
    return service.list_users(role=role, is_active=is_active)


@router.patch(
    "/{user_id}/status",
    response_model=UserRead,
    status_code=status.HTTP_200_OK,
    summary="Activate / Deactivate User"
)
def update_user_status(
    user_id: UUID,
    data: UserStatusUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    service: UserService = Depends(get_user_service)
):
    is_active = data.status == "active"
    user = service.set_active(current_user, user_id, is_active)

    background_tasks.add_task(
        _perform_audit_log,
        user_id=current_user.id,
        entity_type="user",
        entity_id=user.id,
        action=AuditAction.UPDATE,
        changes={"is_active": is_active},
        ip_address=request.client.host if request.client else None
    )
    return user

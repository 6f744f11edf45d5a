import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from . import models, security
from .db import get_session
from .permissions import Permissions, PermissionService
from .security import PermissionChecker
from .models import User

logger = logging.getLogger(__name__)

router = APIRouter()

KNOWN_PERMISSIONS = {p.value for p in Permissions}


def _validated_permissions(current_user: User, permissions: list[str]) -> list[str]:
    """Only holders of users.manage_permissions may hand out explicit permission lists."""
    if not PermissionService.has_any_permission(current_user, [Permissions.USERS_MANAGE_PERMISSIONS]):
        raise HTTPException(status_code=403, detail="Not allowed to manage permissions")
    unknown = sorted(set(permissions) - KNOWN_PERMISSIONS)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown permissions: {', '.join(unknown)}")
    return sorted(set(permissions))


@router.get("/users", response_model=list[models.UserRead])
def list_users(
    current_user: Annotated[User, Depends(PermissionChecker(Permissions.USERS_VIEW))],
    session: Session = Depends(get_session),
):
    return session.exec(select(User).order_by(User.username)).all()


@router.post("/users", response_model=models.UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    user_create: models.UserCreate,
    current_user: Annotated[User, Depends(PermissionChecker(Permissions.USERS_CREATE))],
    session: Session = Depends(get_session),
):
    """Create a staff account. Without explicit permissions the role defaults apply."""
    existing = session.exec(select(User).where(User.username == user_create.username)).first()
    if existing:
        raise HTTPException(status_code=400, detail="Username already taken")

    if user_create.permissions is None:
        permissions = PermissionService.default_permissions(user_create.role)
    else:
        permissions = _validated_permissions(current_user, user_create.permissions)

    user = User(
        username=user_create.username,
        hashed_password=security.get_password_hash(user_create.password),
        full_name=user_create.full_name,
        email=user_create.email,
        phone=user_create.phone,
        role=user_create.role,
        permissions=permissions,
        created_by=current_user.id,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info(f"User '{user.username}' ({user.role.value}) created by {current_user.username}")
    return user


@router.put("/users/{user_id}", response_model=models.UserRead)
def update_user(
    user_id: int,
    user_update: models.UserUpdate,
    current_user: Annotated[User, Depends(PermissionChecker(Permissions.USERS_EDIT))],
    session: Session = Depends(get_session),
):
    """Update a user. A role change without a permission list resets to the role defaults."""
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user_update.full_name is not None:
        user.full_name = user_update.full_name
    if user_update.email is not None:
        user.email = user_update.email
    if user_update.phone is not None:
        user.phone = user_update.phone

    if user_update.is_active is not None:
        if user.id == current_user.id and not user_update.is_active:
            raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
        user.is_active = user_update.is_active

    if user_update.permissions is not None:
        user.permissions = _validated_permissions(current_user, user_update.permissions)
    elif user_update.role is not None and user_update.role != user.role:
        user.permissions = PermissionService.default_permissions(user_update.role)
    if user_update.role is not None:
        user.role = user_update.role

    if user_update.password:
        user.hashed_password = security.get_password_hash(user_update.password)

    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    current_user: Annotated[User, Depends(PermissionChecker(Permissions.USERS_DELETE))],
    session: Session = Depends(get_session),
) -> dict:
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    # Accounts this user created outlive it
    for created in session.exec(select(User).where(User.created_by == user_id)).all():
        created.created_by = None
        session.add(created)

    session.delete(user)
    session.commit()
    logger.info(f"User #{user_id} deleted by {current_user.username}")
    return {"status": "deleted", "id": user_id}


@router.get("/permissions")
def list_permissions(
    current_user: Annotated[
        User,
        Depends(PermissionChecker(Permissions.USERS_VIEW, Permissions.USERS_MANAGE_PERMISSIONS))
    ],
) -> dict:
    """All permission strings and the defaults granted to each role."""
    return {
        "permissions": [p.value for p in Permissions],
        "roles": {
            role.value: PermissionService.default_permissions(role)
            for role in models.UserRole
        },
    }

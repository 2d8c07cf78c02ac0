from fastapi import APIRouter, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Callable
import logging

from database.connection import get_db
from services.auth import authenticate_admin, issue_admin_token, update_last_login, verify_token
from schemas.user import AdminIdentity, UserLogin, Token, UserResponse
from core.exceptions import AuthenticationError, AuthorizationError
from core.permissions import PermissionLike, RolePermissionTable, get_permission_table

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)

# Dependency to get the calling admin
def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> AdminIdentity:
    """Identity and admin role taken from the bearer token, trusted as issued."""
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Authentication credentials required")

    token_data = verify_token(credentials.credentials)
    if token_data is None:
        raise AuthenticationError("Could not validate credentials")

    return AdminIdentity(
        id=token_data.user_id,
        email=token_data.email,
        admin_role=token_data.admin_role
    )

def _permission_guard(permissions, require_all: bool) -> Callable:
    required = [getattr(p, "value", p) for p in permissions]

    def guard(
        current_admin: AdminIdentity = Depends(get_current_admin),
        permission_table: RolePermissionTable = Depends(get_permission_table)
    ) -> AdminIdentity:
        if require_all:
            allowed = permission_table.has_all_permissions(current_admin.admin_role, permissions)
        else:
            allowed = permission_table.has_any_permission(current_admin.admin_role, permissions)

        if not allowed:
            logger.warning(
                f"Permission denied for admin {current_admin.id} "
                f"(role={current_admin.admin_role}): requires {required}"
            )
            raise AuthorizationError(details={"required_permissions": required})
        return current_admin

    return guard

def require_permission(*permissions: PermissionLike) -> Callable:
    """Dependency admitting only roles that hold every listed permission"""
    return _permission_guard(permissions, require_all=True)

def require_any_permission(*permissions: PermissionLike) -> Callable:
    """Dependency admitting roles that hold at least one listed permission"""
    return _permission_guard(permissions, require_all=False)

@router.post("/login", response_model=Token)
def login(user_credentials: UserLogin, db: Session = Depends(get_db)):
    """Exchange admin credentials for an access token carrying the admin role."""
    logger.info(f"Login attempt for email: {user_credentials.email}")

    user = authenticate_admin(db, user_credentials.email, user_credentials.password)
    if not user:
        raise AuthenticationError("Incorrect email or password")

    update_last_login(db, user)
    access_token = issue_admin_token(user)

    return Token(
        access_token=access_token,
        token_type="bearer",
        user=UserResponse.from_orm(user)
    )

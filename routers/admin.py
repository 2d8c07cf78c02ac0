from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from database.connection import get_db
from core.permissions import (
    AdminPermission,
    AdminRole,
    PERMISSION_DESCRIPTIONS,
    RolePermissionTable,
    get_custom_permissions,
    get_permission_table
)
from core.response import success_response, pagination_meta
from schemas.user import AdminIdentity
from services.audit import list_audit_logs
from routers.auth import get_current_admin, require_permission, require_any_permission

logger = logging.getLogger(__name__)

router = APIRouter()

def _sorted_values(permissions) -> list:
    return sorted(permission.value for permission in permissions)

@router.get("/permissions/me")
def get_my_permissions(
    current_admin: AdminIdentity = Depends(get_current_admin),
    permission_table: RolePermissionTable = Depends(get_permission_table)
):
    """
    Permissions of the calling admin, used by the dashboard to decide which
    screens to show. An unrecognised role comes back with nothing granted.
    """
    role = current_admin.admin_role
    return success_response(
        data={
            "admin_id": current_admin.id,
            "role": role,
            "permissions": _sorted_values(permission_table.get_effective_permissions(role, current_admin.id)),
            "role_permissions": _sorted_values(permission_table.get_user_permissions(role)),
            "custom_permissions": _sorted_values(get_custom_permissions(current_admin.id)),
            "groups": sorted(permission_table.get_user_permission_groups(role))
        },
        message="Permissions retrieved successfully"
    )

@router.get("/permissions/roles")
def get_role_matrix(
    current_admin: AdminIdentity = Depends(
        require_any_permission(AdminPermission.MANAGE_ROLES, AdminPermission.MANAGE_PERMISSIONS)
    ),
    permission_table: RolePermissionTable = Depends(get_permission_table)
):
    """Every role with its permissions and groups, plus the permission catalogue"""
    roles = [
        {
            "role": role.value,
            "permissions": _sorted_values(permission_table.get_user_permissions(role)),
            "groups": sorted(permission_table.get_user_permission_groups(role))
        }
        for role in AdminRole
    ]
    permissions = [
        {"permission": permission.value, "description": PERMISSION_DESCRIPTIONS.get(permission, "")}
        for permission in AdminPermission
    ]
    groups = {name: _sorted_values(members) for name, members in permission_table.groups.items()}

    return success_response(
        data={"roles": roles, "permissions": permissions, "groups": groups},
        message="Role permissions retrieved successfully"
    )

@router.get("/audit-logs")
def get_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    current_admin: AdminIdentity = Depends(require_permission(AdminPermission.VIEW_AUDIT_LOGS)),
    db: Session = Depends(get_db)
):
    result = list_audit_logs(
        db,
        page=page,
        limit=limit,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id
    )
    return success_response(
        data={
            "entries": result["entries"],
            "pagination": pagination_meta(page, limit, result["total"])
        },
        message=f"Retrieved {len(result['entries'])} audit entries"
    )

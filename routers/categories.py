from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from database.connection import get_db
from core.config import settings
from core.permissions import AdminPermission
from core.response import success_response, pagination_meta
from schemas.category import CategoryCreate, CategoryUpdate
from schemas.user import AdminIdentity
from services import audit
from services.audit import AuditLogger, get_audit_logger
from services.category import (
    list_categories,
    get_category,
    create_category,
    update_category,
    delete_category
)
from routers.auth import require_permission

logger = logging.getLogger(__name__)

router = APIRouter()

manage_categories = require_permission(AdminPermission.MANAGE_CATEGORIES)

@router.get("")
def list_admin_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.CATEGORY_PAGE_SIZE, ge=1, le=settings.CATEGORY_MAX_PAGE_SIZE),
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status", description="active or inactive"),
    parent_id: Optional[str] = None,
    include_products: bool = Query(False, alias="includeProducts"),
    current_admin: AdminIdentity = Depends(manage_categories),
    db: Session = Depends(get_db)
):
    """
    List categories. ``flat_categories`` is the requested page;
    ``categories`` nests that same page under its roots, so subtrees that
    continue on other pages show up partially.
    """
    result = list_categories(
        db=db,
        page=page,
        limit=limit,
        search=search,
        status=status_filter,
        parent_id=parent_id,
        include_products=include_products
    )

    return success_response(
        data={
            "categories": result["categories"],
            "flat_categories": result["flat_categories"],
            "pagination": pagination_meta(page, limit, result["total"])
        },
        message=f"Retrieved {len(result['flat_categories'])} categories"
    )

@router.get("/{category_id}")
def get_admin_category(
    category_id: str,
    current_admin: AdminIdentity = Depends(manage_categories),
    db: Session = Depends(get_db)
):
    return success_response(data=get_category(db, category_id), message="Category retrieved successfully")

@router.post("", status_code=status.HTTP_201_CREATED)
def create_admin_category(
    category_data: CategoryCreate,
    background_tasks: BackgroundTasks,
    current_admin: AdminIdentity = Depends(manage_categories),
    audit_logger: AuditLogger = Depends(get_audit_logger),
    db: Session = Depends(get_db)
):
    """Create a category, optionally under an active parent"""
    category = create_category(db, category_data)
    logger.info(f"Category {category['id']} created by admin {current_admin.id}")

    background_tasks.add_task(
        audit_logger.record,
        current_admin.id,
        audit.CREATE_CATEGORY,
        audit.RESOURCE_CATEGORY,
        category["id"],
        {"category_name": category["name"], "parent_id": category["parent_id"]}
    )

    return success_response(data=category, message="Category created successfully")

@router.put("")
def update_admin_category(
    category_data: CategoryUpdate,
    background_tasks: BackgroundTasks,
    current_admin: AdminIdentity = Depends(manage_categories),
    audit_logger: AuditLogger = Depends(get_audit_logger),
    db: Session = Depends(get_db)
):
    category, changes = update_category(db, category_data.category_id, category_data)
    logger.info(f"Category {category['id']} updated by admin {current_admin.id}")

    background_tasks.add_task(
        audit_logger.record,
        current_admin.id,
        audit.UPDATE_CATEGORY,
        audit.RESOURCE_CATEGORY,
        category["id"],
        {"category_name": category["name"], "changes": changes}
    )

    return success_response(data=category, message="Category updated successfully")

@router.delete("")
def delete_admin_category(
    background_tasks: BackgroundTasks,
    category_id: str = Query(..., alias="id", min_length=1),
    force: Optional[str] = Query(None, description="Only the exact value 'true' forces the delete"),
    current_admin: AdminIdentity = Depends(manage_categories),
    audit_logger: AuditLogger = Depends(get_audit_logger),
    db: Session = Depends(get_db)
):
    """
    Delete a category. Refused with 409 while it owns products or
    subcategories unless ``force=true``, which moves them to its parent.
    """
    force_delete = force == "true"
    deleted = delete_category(db, category_id, force=force_delete)
    logger.info(f"Category {category_id} deleted by admin {current_admin.id} (force={force_delete})")

    background_tasks.add_task(
        audit_logger.record,
        current_admin.id,
        audit.DELETE_CATEGORY,
        audit.RESOURCE_CATEGORY,
        category_id,
        {"category_name": deleted["name"], "force_delete": force_delete}
    )

    return success_response(data=deleted, message="Category deleted successfully")

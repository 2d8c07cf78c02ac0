"""
Category tree management.

Keeps the category hierarchy consistent: names are unique within a parent
scope (the root scope included), subcategories never land under an inactive
parent, a category is never its own parent, and deleting a category either
fails while it still owns products or children or, when forced, hands them
to its own parent first.

Uniqueness is checked with a query before the write, so two concurrent
requests for the same (name, parent) can both pass the check.
"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from core.config import settings
from core.exceptions import BaseCustomException, ConflictError, ResourceNotFoundError, ValidationError
from models.category import Category
from models.product import Product
from schemas.category import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = ("name", "is_active", "sort_order")
PRODUCT_PREVIEW_LIMIT = 10


def _products_count_by_category(db: Session, category_ids: Iterable[str]) -> Dict[str, int]:
    category_ids = list(category_ids)
    if not category_ids:
        return {}
    rows = db.query(Product.category_id, func.count(Product.id)).filter(
        Product.category_id.in_(category_ids)
    ).group_by(Product.category_id).all()
    return {category_id: count for category_id, count in rows}


def _children_by_parent(db: Session, parent_ids: Iterable[str]) -> Dict[str, List[Category]]:
    parent_ids = list(parent_ids)
    if not parent_ids:
        return {}
    children = db.query(Category).filter(
        Category.parent_id.in_(parent_ids)
    ).order_by(Category.name.asc()).all()

    grouped = defaultdict(list)
    for child in children:
        grouped[child.parent_id].append(child)
    return grouped


def _product_previews(db: Session, category_ids: Iterable[str]) -> Dict[str, List[Dict[str, Any]]]:
    """First products of each category, by name, with their seller"""
    previews = {}
    for category_id in category_ids:
        products = db.query(Product).options(joinedload(Product.seller)).filter(
            Product.category_id == category_id
        ).order_by(Product.name.asc()).limit(PRODUCT_PREVIEW_LIMIT).all()

        previews[category_id] = [
            {
                "id": product.id,
                "name": product.name,
                "price": float(product.price),
                "is_active": product.is_active,
                "seller": {
                    "id": product.seller.id,
                    "name": f"{product.seller.first_name} {product.seller.last_name}".strip(),
                } if product.seller else None,
            }
            for product in products
        ]
    return previews


def _serialize(
    category: Category,
    products_count: int,
    children: List[Category],
    child_products: Dict[str, int]
) -> Dict[str, Any]:
    parent = category.parent
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "image": category.image,
        "parent_id": category.parent_id,
        "is_active": category.is_active,
        "sort_order": category.sort_order,
        "meta_title": category.meta_title,
        "meta_description": category.meta_description,
        "keywords": category.keywords or [],
        "icon": category.icon,
        "color": category.color,
        "created_at": category.created_at,
        "updated_at": category.updated_at,
        "parent": {"id": parent.id, "name": parent.name} if parent else None,
        "children": [
            {
                "id": child.id,
                "name": child.name,
                "is_active": child.is_active,
                "products_count": child_products.get(child.id, 0),
            }
            for child in children
        ],
        "products_count": products_count,
        "children_count": len(children),
    }


def _serialize_many(
    db: Session,
    categories: List[Category],
    include_products: bool = False
) -> List[Dict[str, Any]]:
    """Serialize a batch with direct product and child counts.

    With ``include_products`` each entry also carries a ``products`` preview
    of at most ``PRODUCT_PREVIEW_LIMIT`` items.
    """
    ids = [category.id for category in categories]
    children = _children_by_parent(db, ids)
    child_ids = [child.id for group in children.values() for child in group]
    products = _products_count_by_category(db, ids + child_ids)

    serialized = [
        _serialize(category, products.get(category.id, 0), children.get(category.id, []), products)
        for category in categories
    ]

    if include_products:
        previews = _product_previews(db, ids)
        for entry in serialized:
            entry["products"] = previews.get(entry["id"], [])

    return serialized


def serialize_category(db: Session, category: Category) -> Dict[str, Any]:
    return _serialize_many(db, [category])[0]


def build_category_tree(
    categories: List[Dict[str, Any]],
    parent_id: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Nest serialized categories under their parents, starting at ``parent_id``.

    Works only on the entries it is given. When ``categories`` is one page of
    a larger listing, children outside that page are missing from the tree,
    and entries whose parent is not on the page do not appear at all.
    """
    by_parent = defaultdict(list)
    for category in categories:
        by_parent[category["parent_id"]].append(category)

    # Nodes reachable from a root cannot sit on a parent cycle, so this terminates
    def nest(current_parent_id: Optional[str]) -> List[Dict[str, Any]]:
        return [
            {**category, "children": nest(category["id"])}
            for category in by_parent.get(current_parent_id, [])
        ]

    return nest(parent_id)


def _find_name_conflict(
    db: Session,
    name: str,
    parent_id: Optional[str],
    exclude_id: Optional[str] = None
) -> Optional[Category]:
    query = db.query(Category).filter(Category.name == name)
    if parent_id is None:
        query = query.filter(Category.parent_id.is_(None))
    else:
        query = query.filter(Category.parent_id == parent_id)
    if exclude_id:
        query = query.filter(Category.id != exclude_id)
    return query.first()


def _require_active_parent(db: Session, parent_id: str, inactive_message: str) -> Category:
    parent = db.query(Category).filter(Category.id == parent_id).first()
    if not parent:
        raise ValidationError("Parent category not found", field="parent_id", details={"parent_id": parent_id})
    if not parent.is_active:
        raise ValidationError(inactive_message, field="parent_id", details={"parent_id": parent_id})
    return parent


def _is_ancestor(db: Session, category_id: str, start_id: Optional[str]) -> bool:
    """True if ``category_id`` appears on the parent chain starting at ``start_id``"""
    visited = set()
    current_id = start_id
    while current_id and current_id not in visited:
        if current_id == category_id:
            return True
        visited.add(current_id)
        current_id = db.query(Category.parent_id).filter(Category.id == current_id).scalar()
    return False


def list_categories(
    db: Session,
    page: int = 1,
    limit: int = 50,
    search: Optional[str] = None,
    status: Optional[str] = None,
    parent_id: Optional[str] = None,
    include_products: bool = False
) -> Dict[str, Any]:
    """One page of categories, flat and nested, plus the filtered total."""
    page = max(page, 1)
    limit = max(limit, 1)

    query = db.query(Category)

    if search:
        escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        search_term = f"%{escaped}%"
        query = query.filter(or_(
            Category.name.ilike(search_term, escape="\\"),
            Category.description.ilike(search_term, escape="\\")
        ))

    if status == "active":
        query = query.filter(Category.is_active.is_(True))
    elif status == "inactive":
        query = query.filter(Category.is_active.is_(False))

    if parent_id:
        query = query.filter(Category.parent_id == parent_id)

    total = query.count()
    categories = query.order_by(Category.name.asc()).offset((page - 1) * limit).limit(limit).all()

    flat = _serialize_many(db, categories, include_products=include_products)
    return {
        "categories": build_category_tree(flat),
        "flat_categories": flat,
        "total": total,
    }


def get_category(db: Session, category_id: str) -> Dict[str, Any]:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise ResourceNotFoundError("Category", category_id)
    return serialize_category(db, category)


def create_category(db: Session, category_data: CategoryCreate) -> Dict[str, Any]:
    """Create a category after the scope-uniqueness and parent checks."""
    try:
        data = category_data.dict()
        parent_id = data.get("parent_id")

        if _find_name_conflict(db, data["name"], parent_id):
            logger.warning(f"Duplicate category name '{data['name']}' under parent {parent_id}")
            raise ConflictError(
                "Category with this name already exists in the same parent",
                details={"name": data["name"], "parent_id": parent_id}
            )

        if parent_id:
            _require_active_parent(db, parent_id, "Cannot create subcategory under inactive parent")

        now = datetime.utcnow()
        category = Category(**data, created_at=now, updated_at=now)

        db.add(category)
        db.commit()
        db.refresh(category)

        logger.info(f"Category created: {category.name} ({category.id})")
        return serialize_category(db, category)

    except BaseCustomException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error creating category: {str(e)}")
        raise


def update_category(db: Session, category_id: str, category_data: CategoryUpdate) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Apply a sparse update. Returns the updated category and the applied changes."""
    changes = category_data.changes()

    try:
        category = db.query(Category).filter(Category.id == category_id).first()
        if not category:
            logger.warning(f"Attempt to update non-existent category: {category_id}")
            raise ResourceNotFoundError("Category", category_id)

        for field in NON_NULLABLE_FIELDS:
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null", field=field)

        parent_changing = "parent_id" in changes and changes["parent_id"] != category.parent_id
        effective_parent_id = changes["parent_id"] if "parent_id" in changes else category.parent_id
        new_name = changes.get("name", category.name)

        if new_name != category.name or parent_changing:
            if _find_name_conflict(db, new_name, effective_parent_id, exclude_id=category_id):
                logger.warning(f"Category update would duplicate '{new_name}' under parent {effective_parent_id}")
                raise ConflictError(
                    "Category with this name already exists in the same parent",
                    details={"name": new_name, "parent_id": effective_parent_id}
                )

        if parent_changing and effective_parent_id is not None:
            if effective_parent_id == category_id:
                raise ValidationError("Category cannot be its own parent", field="parent_id")

            _require_active_parent(db, effective_parent_id, "Cannot move category under inactive parent")

            if settings.CATEGORY_STRICT_CYCLE_CHECK and _is_ancestor(db, category_id, effective_parent_id):
                raise ValidationError(
                    "Category cannot be moved under one of its own descendants",
                    field="parent_id"
                )

        for field, value in changes.items():
            setattr(category, field, value)
        category.updated_at = datetime.utcnow()

        db.commit()
        db.refresh(category)

        logger.info(f"Category updated: {category_id} fields={sorted(changes)}")
        return serialize_category(db, category), changes

    except BaseCustomException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error updating category {category_id}: {str(e)}")
        raise


def delete_category(db: Session, category_id: str, force: bool = False) -> Dict[str, Any]:
    """Delete a category.

    Without ``force`` the delete is refused while the category owns products
    or child categories. With ``force`` its products and children move to its
    own parent (products become uncategorized and children become roots when
    it was a root) before the row is removed, in a single transaction.
    """
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        logger.warning(f"Attempt to delete non-existent category: {category_id}")
        raise ResourceNotFoundError("Category", category_id)

    products_count = db.query(func.count(Product.id)).filter(Product.category_id == category_id).scalar()
    children_count = db.query(func.count(Category.id)).filter(Category.parent_id == category_id).scalar()

    if not force and (products_count > 0 or children_count > 0):
        raise ConflictError(
            "Category has products or subcategories",
            details={"products_count": products_count, "children_count": children_count}
        )

    name = category.name
    target_parent_id = category.parent_id

    try:
        if products_count:
            db.query(Product).filter(Product.category_id == category_id).update(
                {Product.category_id: target_parent_id}, synchronize_session=False
            )
        if children_count:
            db.query(Category).filter(Category.parent_id == category_id).update(
                {Category.parent_id: target_parent_id}, synchronize_session=False
            )
        db.query(Category).filter(Category.id == category_id).delete(synchronize_session=False)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting category {category_id}: {str(e)}")
        raise

    logger.info(
        f"Category deleted: {name} ({category_id}) force={force} "
        f"products_moved={products_count} children_moved={children_count}"
    )
    return {
        "id": category_id,
        "name": name,
        "parent_id": target_parent_id,
        "force": force,
        "products_moved": products_count,
        "children_moved": children_count,
    }

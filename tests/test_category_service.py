import pytest
from sqlalchemy import event

from core.config import settings
from core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from models.category import Category
from models.product import Product
from models.user import User, UserRole
from schemas.category import CategoryCreate, CategoryUpdate
from services.category import (
    build_category_tree,
    create_category,
    delete_category,
    get_category,
    list_categories,
    update_category,
)


def _create(db, name, parent=None, **fields):
    return create_category(db, CategoryCreate(name=name, parent_id=parent["id"] if parent else None, **fields))


def _update(db, category, **fields):
    return update_category(db, category["id"], CategoryUpdate(category_id=category["id"], **fields))


def _add_product(db, category, name="Widget"):
    product = Product(name=name, price=10, category_id=category["id"] if category else None)
    db.add(product)
    db.commit()
    return product.id


def test_create_defaults_and_counts(db):
    electronics = _create(db, "Electronics", description="Gadgets", keywords=["tech"])

    assert electronics["is_active"] is True
    assert electronics["sort_order"] == 0
    assert electronics["parent"] is None
    assert electronics["keywords"] == ["tech"]
    assert electronics["products_count"] == 0
    assert electronics["children_count"] == 0
    assert electronics["created_at"] is not None

    phones = _create(db, "Phones", electronics)
    assert phones["parent"] == {"id": electronics["id"], "name": "Electronics"}

    refreshed = get_category(db, electronics["id"])
    assert refreshed["children_count"] == 1
    assert refreshed["children"][0]["name"] == "Phones"


def test_names_are_unique_per_parent_scope(db):
    electronics = _create(db, "Electronics")
    books = _create(db, "Books")
    _create(db, "Accessories", electronics)

    with pytest.raises(ConflictError):
        _create(db, "Electronics")
    with pytest.raises(ConflictError):
        _create(db, "Accessories", electronics)

    # Same name under another parent is fine
    accessories = _create(db, "Accessories", books)
    assert accessories["parent_id"] == books["id"]
    assert db.query(Category).filter(Category.name == "Accessories").count() == 2


def test_name_comparison_is_case_sensitive(db):
    _create(db, "Electronics")
    assert _create(db, "electronics")["name"] == "electronics"


def test_create_under_missing_or_inactive_parent_fails(db):
    archived = _create(db, "Archived", is_active=False)

    with pytest.raises(ValidationError) as exc:
        _create(db, "Old Phones", archived)
    assert exc.value.details["field"] == "parent_id"

    with pytest.raises(ValidationError):
        create_category(db, CategoryCreate(name="Orphan", parent_id="missing"))

    assert db.query(Category).count() == 1


def test_conflict_is_checked_before_parent_state(db):
    parent = _create(db, "Seasonal")
    _create(db, "Winter", parent)
    _update(db, parent, is_active=False)

    with pytest.raises(ConflictError):
        _create(db, "Winter", parent)


def test_empty_parent_id_means_root():
    assert CategoryCreate(name="Garden", parent_id="").parent_id is None


def test_rename_into_collision_fails_and_leaves_state(db):
    _create(db, "Books")
    music = _create(db, "Music")

    with pytest.raises(ConflictError):
        _update(db, music, name="Books")

    db.expire_all()
    assert get_category(db, music["id"])["name"] == "Music"


def test_move_into_scope_with_same_name_fails(db):
    electronics = _create(db, "Electronics")
    _create(db, "Cables", electronics)
    loose_cables = _create(db, "Cables")

    with pytest.raises(ConflictError):
        _update(db, loose_cables, parent_id=electronics["id"])


def test_update_returns_applied_changes(db):
    phones = _create(db, "Phones")

    updated, changes = _update(db, phones, name="Smartphones", sort_order=3)

    assert updated["name"] == "Smartphones"
    assert updated["sort_order"] == 3
    assert changes == {"name": "Smartphones", "sort_order": 3}


def test_update_cannot_null_required_fields(db):
    phones = _create(db, "Phones")
    with pytest.raises(ValidationError):
        _update(db, phones, is_active=None)


def test_category_cannot_be_its_own_parent(db):
    phones = _create(db, "Phones")
    with pytest.raises(ValidationError) as exc:
        _update(db, phones, parent_id=phones["id"])
    assert exc.value.details["field"] == "parent_id"


def test_move_under_inactive_parent_fails(db):
    archived = _create(db, "Archived", is_active=False)
    phones = _create(db, "Phones")

    with pytest.raises(ValidationError):
        _update(db, phones, parent_id=archived["id"])


def test_move_to_root(db):
    electronics = _create(db, "Electronics")
    phones = _create(db, "Phones", electronics)

    updated, changes = _update(db, phones, parent_id=None)

    assert updated["parent_id"] is None
    assert changes == {"parent_id": None}


def test_update_missing_category(db):
    with pytest.raises(ResourceNotFoundError):
        update_category(db, "missing", CategoryUpdate(category_id="missing", name="Anything"))


def test_deep_cycle_is_not_checked_by_default(db):
    a = _create(db, "Alpha")
    b = _create(db, "Beta", a)

    updated, _ = _update(db, a, parent_id=b["id"])
    assert updated["parent_id"] == b["id"]


def test_strict_cycle_check_rejects_moving_under_descendant(db, monkeypatch):
    monkeypatch.setattr(settings, "CATEGORY_STRICT_CYCLE_CHECK", True)
    a = _create(db, "Alpha")
    b = _create(db, "Beta", a)
    c = _create(db, "Gamma", b)

    with pytest.raises(ValidationError):
        _update(db, a, parent_id=c["id"])

    other = _create(db, "Delta")
    moved, _ = _update(db, other, parent_id=c["id"])
    assert moved["parent_id"] == c["id"]


def test_delete_without_force_reports_counts_and_changes_nothing(db):
    electronics = _create(db, "Electronics")
    phones = _create(db, "Phones", electronics)
    product_id = _add_product(db, electronics)
    _add_product(db, electronics, "Cable")

    with pytest.raises(ConflictError) as exc:
        delete_category(db, electronics["id"])
    assert exc.value.details == {"products_count": 2, "children_count": 1}

    db.expire_all()
    assert db.query(Category).filter(Category.id == electronics["id"]).count() == 1
    assert db.query(Category).filter(Category.id == phones["id"]).one().parent_id == electronics["id"]
    assert db.query(Product).filter(Product.id == product_id).one().category_id == electronics["id"]


def test_delete_empty_category(db):
    empty = _create(db, "Empty")

    deleted = delete_category(db, empty["id"])

    assert deleted["name"] == "Empty"
    assert deleted["products_moved"] == 0
    assert db.query(Category).count() == 0


def test_forced_delete_moves_children_and_products_to_grandparent(db):
    store = _create(db, "Store")
    electronics = _create(db, "Electronics", store)
    phones = _create(db, "Phones", electronics)
    tablets = _create(db, "Tablets", electronics)
    product_id = _add_product(db, electronics)

    deleted = delete_category(db, electronics["id"], force=True)

    assert deleted["parent_id"] == store["id"]
    assert deleted["children_moved"] == 2
    assert deleted["products_moved"] == 1

    db.expire_all()
    assert db.query(Category).filter(Category.id == electronics["id"]).first() is None
    for child in (phones, tablets):
        assert db.query(Category).filter(Category.id == child["id"]).one().parent_id == store["id"]
    assert db.query(Product).filter(Product.id == product_id).one().category_id == store["id"]


def test_forced_delete_of_root_uncategorizes_products(db):
    electronics = _create(db, "Electronics")
    phones = _create(db, "Phones", electronics)
    product_id = _add_product(db, electronics)

    delete_category(db, electronics["id"], force=True)

    db.expire_all()
    assert db.query(Category).filter(Category.id == phones["id"]).one().parent_id is None
    assert db.query(Product).filter(Product.id == product_id).one().category_id is None


def test_delete_missing_category(db):
    with pytest.raises(ResourceNotFoundError):
        delete_category(db, "missing", force=True)


def test_electronics_lifecycle(db):
    electronics = _create(db, "Electronics")
    phones = _create(db, "Phones", electronics)

    with pytest.raises(ConflictError):
        _create(db, "Phones", electronics)

    smartphones, _ = _update(db, phones, name="Smartphones")
    assert smartphones["name"] == "Smartphones"

    with pytest.raises(ConflictError) as exc:
        delete_category(db, electronics["id"])
    assert exc.value.details["children_count"] == 1

    delete_category(db, electronics["id"], force=True)

    db.expire_all()
    assert db.query(Category).filter(Category.id == electronics["id"]).first() is None
    assert db.query(Category).filter(Category.id == phones["id"]).one().parent_id is None


def test_list_orders_by_name_and_paginates(db):
    for name in ("Toys", "Books", "Garden"):
        _create(db, name)

    first = list_categories(db, page=1, limit=2)
    second = list_categories(db, page=2, limit=2)

    assert [c["name"] for c in first["flat_categories"]] == ["Books", "Garden"]
    assert [c["name"] for c in second["flat_categories"]] == ["Toys"]
    assert first["total"] == second["total"] == 3


def test_list_search_matches_name_and_description(db):
    _create(db, "Smartphones")
    _create(db, "Chargers", description="Power for PHONES")
    _create(db, "Books")

    result = list_categories(db, search="phone")

    assert sorted(c["name"] for c in result["flat_categories"]) == ["Chargers", "Smartphones"]


def test_list_search_treats_wildcards_literally(db):
    _create(db, "Books")
    _create(db, "100% Cotton")

    result = list_categories(db, search="%")

    assert [c["name"] for c in result["flat_categories"]] == ["100% Cotton"]


def test_list_filters_by_status_and_parent(db):
    electronics = _create(db, "Electronics")
    _create(db, "Phones", electronics)
    _create(db, "Pagers", electronics, is_active=False)

    inactive = list_categories(db, status="inactive")
    assert [c["name"] for c in inactive["flat_categories"]] == ["Pagers"]

    children = list_categories(db, parent_id=electronics["id"], status="active")
    assert [c["name"] for c in children["flat_categories"]] == ["Phones"]


def test_hierarchy_nests_the_page(db):
    electronics = _create(db, "Electronics")
    phones = _create(db, "Phones", electronics)
    _create(db, "Android", phones)
    _create(db, "Books")

    tree = list_categories(db)["categories"]

    assert [c["name"] for c in tree] == ["Books", "Electronics"]
    assert tree[1]["children"][0]["name"] == "Phones"
    assert tree[1]["children"][0]["children"][0]["name"] == "Android"


def test_hierarchy_is_partial_when_subtree_spans_pages(db):
    alpha = _create(db, "Alpha")
    _create(db, "Zulu", alpha)

    first = list_categories(db, page=1, limit=1)
    assert first["flat_categories"][0]["children_count"] == 1
    assert first["categories"][0]["children"] == []

    second = list_categories(db, page=2, limit=1)
    assert [c["name"] for c in second["flat_categories"]] == ["Zulu"]
    assert second["categories"] == []


def test_build_category_tree_from_given_root():
    flat = [
        {"id": "a", "parent_id": None, "name": "A"},
        {"id": "b", "parent_id": "a", "name": "B"},
        {"id": "c", "parent_id": "b", "name": "C"},
    ]

    tree = build_category_tree(flat, parent_id="a")

    assert [node["id"] for node in tree] == ["b"]
    assert tree[0]["children"][0]["id"] == "c"


def test_get_missing_category(db):
    with pytest.raises(ResourceNotFoundError):
        get_category(db, "missing")


def test_failed_forced_delete_leaves_everything_in_place(db, engine):
    electronics = _create(db, "Electronics")
    phones = _create(db, "Phones", electronics)
    product_id = _add_product(db, electronics)

    def fail_category_delete(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("DELETE FROM categories"):
            raise RuntimeError("storage unavailable")

    event.listen(engine, "before_cursor_execute", fail_category_delete)
    try:
        with pytest.raises(Exception, match="storage unavailable"):
            delete_category(db, electronics["id"], force=True)
    finally:
        event.remove(engine, "before_cursor_execute", fail_category_delete)

    db.expire_all()
    assert db.query(Category).filter(Category.id == electronics["id"]).count() == 1
    assert db.query(Category).filter(Category.id == phones["id"]).one().parent_id == electronics["id"]
    assert db.query(Product).filter(Product.id == product_id).one().category_id == electronics["id"]


def test_list_includes_product_previews_on_request(db):
    seller = User(
        id="seller-1",
        email="seller@marketplace.com",
        password_hash="x",
        first_name="Sara",
        last_name="Seller",
        role=UserRole.SHOP_OWNER
    )
    db.add(seller)
    db.commit()

    electronics = _create(db, "Electronics")
    for index in range(12):
        db.add(Product(name=f"Item {index:02d}", price=9.5, category_id=electronics["id"], seller_id="seller-1"))
    db.commit()

    plain = list_categories(db)["flat_categories"][0]
    assert "products" not in plain

    entry = list_categories(db, include_products=True)["flat_categories"][0]
    assert entry["products_count"] == 12
    assert len(entry["products"]) == 10
    assert entry["products"][0] == {
        "id": entry["products"][0]["id"],
        "name": "Item 00",
        "price": 9.5,
        "is_active": True,
        "seller": {"id": "seller-1", "name": "Sara Seller"},
    }

"""
Menu catalog operations.

Every function takes an open SQLAlchemy session and leaves committing to the
caller's ``session_scope()``.
"""

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import selectinload

from lineup.Database.menu_item import (
    CATEGORIES, STATE_ACTIVE, STATE_ARCHIVED, MenuItem,
)
from lineup.Database.user_models import User
from lineup.utils.errors import ConflictError, NotFoundError, ValidationError
from lineup.utils.helpers.validators import (
    parse_bool, parse_int, parse_number, require_fields,
)
from lineup.utils.websocket_utils.change_stream import track_change
from lineup.utils.websocket_utils.send_notification import (
    notify_menu_item_added, notify_menu_item_deleted, notify_menu_updated,
)

SORT_OPTIONS = {
    "price-low": (MenuItem.price.asc(),),
    "price-high": (MenuItem.price.desc(),),
    "rating": (MenuItem.rating_average.desc(),),
    "popular": (MenuItem.rating_count.desc(),),
}
DEFAULT_SORT = (MenuItem.created_at.desc(), MenuItem.id.desc())

# request key -> (attribute, kind)
EDITABLE_FIELDS = {
    "name": ("name", "name"),
    "description": ("description", "description"),
    "price": ("price", "price"),
    "category": ("category", "category"),
    "image": ("image", "dict"),
    "stock": ("stock", "stock"),
    "available": ("available", "bool"),
    "ingredients": ("ingredients", "list"),
    "nutritionalInfo": ("nutritional_info", "dict"),
    "dietary": ("dietary", "dict"),
    "tags": ("tags", "list"),
    "preparationTime": ("preparation_time", "preparation_time"),
}

DEFAULT_ITEMS = [
    {
        "name": "Butter Chicken",
        "price": 250,
        "category": "Main Course",
        "stock": 50,
        "description": "Creamy and rich butter chicken curry",
        "preparationTime": 20,
        "dietary": {"spicy": True},
    },
    {
        "name": "Naan",
        "price": 40,
        "category": "Bread",
        "stock": 100,
        "description": "Fresh baked naan bread",
        "preparationTime": 5,
        "dietary": {"vegetarian": True},
    },
    {
        "name": "Dal Makhani",
        "price": 180,
        "category": "Main Course",
        "stock": 30,
        "description": "Rich and creamy black lentil curry",
        "preparationTime": 15,
        "dietary": {"vegetarian": True},
    },
    {
        "name": "Biryani",
        "price": 220,
        "category": "Rice",
        "stock": 25,
        "description": "Aromatic basmati rice with spices",
        "preparationTime": 25,
        "dietary": {"spicy": True},
    },
    {
        "name": "Lassi",
        "price": 60,
        "category": "Beverage",
        "stock": 40,
        "description": "Refreshing yogurt-based drink",
        "preparationTime": 2,
        "dietary": {"vegetarian": True},
    },
]


def _coerce(kind, key, value):
    if kind == "name":
        value = (value or "").strip()
        if not value:
            raise ValidationError("name is required")
        if len(value) > 100:
            raise ValidationError("name must be at most 100 characters")
        return value
    if kind == "description":
        value = (value or "").strip() or None
        if value and len(value) > 500:
            raise ValidationError("description must be at most 500 characters")
        return value
    if kind == "price":
        return parse_number(value, "price", minimum=0)
    if kind == "category":
        if value not in CATEGORIES:
            raise ValidationError(
                f"category must be one of: {', '.join(CATEGORIES)}",
                details={"allowed": list(CATEGORIES)},
            )
        return value
    if kind == "stock":
        return parse_int(value, "stock", minimum=0)
    if kind == "bool":
        return parse_bool(value)
    if kind == "preparation_time":
        if value is None:
            return None
        return parse_int(value, "preparationTime", minimum=1, maximum=120)
    if kind == "list":
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValidationError(f"{key} must be a list")
        return value
    if kind == "dict":
        if value is None:
            return None
        if not isinstance(value, dict):
            raise ValidationError(f"{key} must be an object")
        return value
    raise ValueError(f"Unknown field kind: {kind}")


def _active_name_taken(session, vendor_id, name, exclude_id=None) -> bool:
    query = session.query(MenuItem.id).filter(
        MenuItem.vendor_id == vendor_id,
        MenuItem.name == name,
        MenuItem.state == STATE_ACTIVE,
    )
    if exclude_id is not None:
        query = query.filter(MenuItem.id != exclude_id)
    return query.first() is not None


def _customer_visible(query):
    return query.filter(
        MenuItem.available.is_(True),
        MenuItem.state == STATE_ACTIVE,
        MenuItem.stock > 0,
    )


def get_menu_item(session, item_id) -> MenuItem:
    item = session.get(MenuItem, item_id)
    if not item:
        raise NotFoundError("Menu item not found")
    return item


def list_menu_items(
    session,
    category=None,
    vendor=None,
    search=None,
    sort_by=None,
    page=1,
    limit=50,
    include_inactive=False,
    include_unavailable=False,
):
    """
    Browse the catalog.

    Customers only ever see items that are available, active and in stock.
    Vendor and admin screens pass ``include_unavailable`` and/or
    ``include_inactive`` to see the rest.

    Returns ``(items, total)``.
    """
    query = session.query(MenuItem).options(selectinload(MenuItem.vendor))

    if not include_inactive:
        query = query.filter(MenuItem.state == STATE_ACTIVE)
    if not include_unavailable:
        query = query.filter(MenuItem.available.is_(True), MenuItem.stock > 0)

    if vendor:
        query = query.filter(MenuItem.vendor_id == parse_int(vendor, "vendor"))
    if category and category != "all":
        query = query.filter(MenuItem.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                MenuItem.name.ilike(pattern),
                MenuItem.description.ilike(pattern),
                cast(MenuItem.tags, String).ilike(pattern),
            )
        )

    total = query.count()
    items = (
        query.order_by(*SORT_OPTIONS.get(sort_by, DEFAULT_SORT))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def list_categories(session):
    rows = (
        _customer_visible(session.query(MenuItem.category))
        .distinct()
        .order_by(MenuItem.category)
        .all()
    )
    return [row[0] for row in rows]


def vendor_menu(session, vendor_id, include_inactive=False):
    query = session.query(MenuItem).filter(MenuItem.vendor_id == vendor_id)
    if not include_inactive:
        query = query.filter(MenuItem.state == STATE_ACTIVE)
    return query.order_by(MenuItem.category, MenuItem.name).all()


def create_menu_item(session, vendor_id, fields: dict) -> MenuItem:
    require_fields(
        {**fields, "vendor": vendor_id},
        ["name", "price", "category", "vendor"],
        message="Name, price, category, and vendor are required",
    )

    vendor = session.get(User, parse_int(vendor_id, "vendor"))
    if not vendor or vendor.role != "vendor":
        raise NotFoundError("Vendor not found")

    item = MenuItem(vendor_id=vendor.id, stock=0, available=True, state=STATE_ACTIVE)
    for key, (attribute, kind) in EDITABLE_FIELDS.items():
        if key in fields:
            setattr(item, attribute, _coerce(kind, key, fields[key]))

    if _active_name_taken(session, vendor.id, item.name):
        raise ConflictError(
            "An item with this name already exists in your menu",
            error_type="DUPLICATE_ITEM_NAME",
        )

    session.add(item)
    session.flush()
    notify_menu_item_added(session, item.to_dict())
    return item


def update_menu_item(session, item_id, fields: dict) -> MenuItem:
    item = get_menu_item(session, item_id)
    updates = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}

    if "name" in updates:
        new_name = _coerce("name", "name", updates["name"])
        if new_name != item.name and _active_name_taken(session, item.vendor_id, new_name, exclude_id=item.id):
            raise ConflictError(
                "An item with this name already exists in your menu",
                error_type="DUPLICATE_ITEM_NAME",
            )

    previous_stock = item.stock
    for key, value in updates.items():
        attribute, kind = EDITABLE_FIELDS[key]
        setattr(item, attribute, _coerce(kind, key, value))

    # restocking from zero brings an active item back unless the caller said otherwise
    if (
        "stock" in updates
        and "available" not in updates
        and previous_stock == 0
        and item.stock > 0
        and item.is_active
    ):
        item.available = True

    session.flush()
    notify_menu_updated(session, item.to_dict())
    return item


def adjust_stock(session, item_id, quantity, direction="decrease") -> MenuItem:
    quantity = parse_int(quantity, "quantity", minimum=1)
    direction = (direction or "decrease").lower()

    item = get_menu_item(session, item_id)
    if direction in ("decrease", "subtract"):
        MenuItem.drain(session, item.id, quantity)
    elif direction in ("increase", "add"):
        MenuItem.replenish(session, item.id, quantity)
    else:
        raise ValidationError("operation must be one of: add, subtract, increase, decrease")

    session.refresh(item)
    track_change(session, item)
    notify_menu_updated(session, item.to_dict())
    return item


def toggle_availability(session, item_id) -> MenuItem:
    item = get_menu_item(session, item_id)
    if not item.available and item.stock == 0:
        raise ValidationError(
            "Cannot enable an item that is out of stock",
            error_type="OUT_OF_STOCK",
        )
    item.available = not item.available
    session.flush()
    notify_menu_updated(session, item.to_dict())
    return item


def soft_delete_menu_item(session, item_id) -> MenuItem:
    item = get_menu_item(session, item_id)
    item.state = STATE_ARCHIVED
    session.flush()
    notify_menu_item_deleted(session, item.id)
    return item


def restore_menu_item(session, item_id) -> MenuItem:
    item = get_menu_item(session, item_id)
    if item.is_active:
        raise ValidationError("Menu item is already active", error_type="ALREADY_ACTIVE")

    if _active_name_taken(session, item.vendor_id, item.name, exclude_id=item.id):
        raise ConflictError(
            "Cannot restore: An active item with this name already exists in your menu",
            error_type="DUPLICATE_ITEM_NAME",
        )

    item.state = STATE_ACTIVE
    session.flush()
    notify_menu_item_added(session, item.to_dict())
    return item


def record_rating(session, item_id, score) -> MenuItem:
    score = parse_number(score, "rating", minimum=1, maximum=5)
    item = get_menu_item(session, item_id)
    MenuItem.add_rating(session, item.id, score)
    session.refresh(item)
    track_change(session, item)
    return item


def archive_vendor_menu(session, vendor_id) -> int:
    """Soft-delete every active item of a vendor; returns how many were archived."""
    items = (
        session.query(MenuItem)
        .filter(MenuItem.vendor_id == vendor_id, MenuItem.state == STATE_ACTIVE)
        .all()
    )
    for item in items:
        item.state = STATE_ARCHIVED
        notify_menu_item_deleted(session, item.id)
    session.flush()
    return len(items)


def purge_vendor_menu(session, vendor_id) -> int:
    """Hard-delete every item of a vendor; order lines keep their snapshots."""
    items = session.query(MenuItem).filter(MenuItem.vendor_id == vendor_id).all()
    for item in items:
        session.delete(item)
        notify_menu_item_deleted(session, item.id)
    session.flush()
    return len(items)


def create_default_items(session, vendor_id):
    created = []
    for data in DEFAULT_ITEMS:
        exists = (
            session.query(MenuItem.id)
            .filter(MenuItem.vendor_id == vendor_id, MenuItem.name == data["name"])
            .first()
        )
        if exists:
            continue
        created.append(create_menu_item(session, vendor_id, data))
    return created

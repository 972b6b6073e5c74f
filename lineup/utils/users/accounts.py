"""
User accounts and the vendor approval workflow.
"""

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from lineup.Database.order import Order
from lineup.Database.user_models import User
from lineup.utils.catalog.menu_catalog import archive_vendor_menu, purge_vendor_menu
from lineup.utils.errors import (
    AuthenticationError, ConflictError, ForbiddenError, NotFoundError, ValidationError,
)
from lineup.utils.helpers.clock import utcnow
from lineup.utils.helpers.validators import (
    normalize_email, parse_bool, parse_int, require_fields, validate_phone,
)
from lineup.utils.websocket_utils.send_notification import (
    broadcast_notification, notify_vendor_approval,
)

SELF_SERVICE_ROLES = ("customer", "vendor")
MIN_PASSWORD_LENGTH = 6


def _check_password_length(password, field="Password"):
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"{field} must be at least {MIN_PASSWORD_LENGTH} characters long")


def _email_taken(session, email, exclude_id=None) -> bool:
    query = session.query(User.id).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _clean_address(address):
    if address is None:
        return {}
    if not isinstance(address, dict):
        raise ValidationError("address must be an object")
    return {k: address.get(k) for k in ("street", "city", "state", "zipCode") if address.get(k)}


def register_user(session, data: dict) -> User:
    require_fields(data, ["email", "password", "name"], message="Email, password, and name are required")

    email = normalize_email(data["email"])
    _check_password_length(data["password"])
    name = data["name"].strip()
    if len(name) > 100:
        raise ValidationError("Name cannot exceed 100 characters")

    role = data.get("role") or "customer"
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError(
            "Role must be customer or vendor",
            error_type="INVALID_ROLE",
            details={"allowed": list(SELF_SERVICE_ROLES)},
        )

    if _email_taken(session, email):
        raise ConflictError(
            "User with this email already exists",
            error_type="EMAIL_ALREADY_REGISTERED",
        )

    user = User(
        email=email,
        password_hash=generate_password_hash(data["password"]),
        name=name,
        role=role,
        phone=validate_phone(data.get("phone")),
        address=_clean_address(data.get("address")),
        is_active=True,
        # vendors wait for an admin before they can sign in
        is_approved=role != "vendor",
        preferences=data.get("preferences") or {},
    )
    if role == "vendor":
        user.restaurant_name = (data.get("restaurantName") or "").strip() or f"{name}'s Kitchen"

    session.add(user)
    session.flush()

    if role == "vendor":
        broadcast_notification(
            session,
            "admin",
            "New vendor registration",
            f"{user.restaurant_name} is waiting for approval",
        )
    current_app.logger.info(f"Registered {role} {user.id} ({email})")
    return user


def authenticate(session, email, password) -> User:
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = session.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user:
        raise NotFoundError(
            "Email not found. Please check your email or register for a new account.",
            error_type="EMAIL_NOT_FOUND",
        )
    if not user.is_active:
        raise AuthenticationError(
            "Account is deactivated. Please contact support.",
            error_type="ACCOUNT_DEACTIVATED",
        )
    if not check_password_hash(user.password_hash, password):
        raise AuthenticationError("Invalid email or password")
    if user.role == "vendor" and not user.is_approved:
        raise ForbiddenError(
            "Your vendor account is pending admin approval",
            error_type="VENDOR_PENDING_APPROVAL",
        )

    user.last_login = utcnow()
    session.flush()
    return user


def list_users(session, role=None, active=None):
    query = session.query(User)
    if role:
        query = query.filter(User.role == role)
    if active is not None and active != "":
        query = query.filter(User.is_active.is_(parse_bool(active)))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def get_user(session, user_id) -> User:
    user = session.get(User, parse_int(user_id, "user id"))
    if not user:
        raise NotFoundError("User not found")
    return user


def update_user(session, user_id, data: dict) -> User:
    user = get_user(session, user_id)

    if "name" in data:
        name = (data["name"] or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        user.name = name
    if "email" in data:
        email = normalize_email(data["email"])
        if _email_taken(session, email, exclude_id=user.id):
            raise ConflictError(
                "User with this email already exists",
                error_type="EMAIL_ALREADY_REGISTERED",
            )
        user.email = email
    if "phone" in data:
        user.phone = validate_phone(data["phone"])
    if "address" in data:
        user.address = _clean_address(data["address"])
    if "restaurantName" in data and user.role == "vendor":
        user.restaurant_name = (data["restaurantName"] or "").strip() or f"{user.name}'s Kitchen"
    if "preferences" in data:
        user.preferences = data["preferences"] or {}
    if "isActive" in data:
        user.is_active = parse_bool(data["isActive"])
    if data.get("password"):
        _check_password_length(data["password"])
        user.password_hash = generate_password_hash(data["password"])

    session.flush()
    return user


def change_password(session, user_id, current_password, new_password):
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required")
    _check_password_length(new_password, field="New password")

    user = get_user(session, user_id)
    if not check_password_hash(user.password_hash, current_password):
        raise AuthenticationError("Current password is incorrect", error_type="INVALID_PASSWORD")

    user.password_hash = generate_password_hash(new_password)
    session.flush()
    return user


def deactivate_user(session, user_id):
    """Deactivate an account; a vendor's menu is archived with it. Returns (user, archived_count)."""
    user = get_user(session, user_id)
    user.is_active = False
    archived = 0
    if user.role == "vendor":
        archived = archive_vendor_menu(session, user.id)
    session.flush()
    current_app.logger.info(f"Deactivated user {user.id}, archived {archived} menu items")
    return user, archived


def pending_vendors(session):
    return (
        session.query(User)
        .filter(User.role == "vendor", User.is_approved.is_(False))
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )


def _get_vendor(session, vendor_id) -> User:
    user = get_user(session, vendor_id)
    if user.role != "vendor":
        raise NotFoundError("Vendor not found")
    return user


def approve_vendor(session, vendor_id) -> User:
    vendor = _get_vendor(session, vendor_id)
    vendor.is_approved = True
    session.flush()
    notify_vendor_approval(session, vendor.id, approved=True)
    current_app.logger.info(f"Vendor {vendor.id} approved")
    return vendor


def reject_vendor(session, vendor_id) -> int:
    """Remove a vendor and their whole menu. Returns how many items were deleted."""
    vendor = _get_vendor(session, vendor_id)

    has_orders = (
        session.query(Order.id).filter(Order.vendor_id == vendor.id).first() is not None
    )
    if has_orders:
        raise ConflictError(
            "Vendor has orders on record; deactivate the account instead",
            error_type="VENDOR_HAS_ORDERS",
        )

    deleted = purge_vendor_menu(session, vendor.id)
    vendor_key = vendor.id
    session.delete(vendor)
    session.flush()
    notify_vendor_approval(session, vendor_key, approved=False)
    current_app.logger.info(f"Vendor {vendor_key} rejected, {deleted} menu items deleted")
    return deleted


def ensure_admin(session, email, password, name="Admin User") -> User:
    """Create the admin account if it does not exist yet."""
    email = normalize_email(email)
    admin = session.query(User).filter(User.email == email).first()
    if admin:
        return admin

    _check_password_length(password)
    admin = User(
        email=email,
        password_hash=generate_password_hash(password),
        name=name,
        role="admin",
        is_active=True,
        is_approved=True,
    )
    session.add(admin)
    session.flush()
    current_app.logger.info(f"Created admin account {email}")
    return admin

import pytest

from conftest import make_item, make_user
from lineup.Database.menu_item import MenuItem
from lineup.Database.user_models import User
from lineup.extensions import session_scope
from lineup.utils.errors import (
    AuthenticationError, ConflictError, ForbiddenError, NotFoundError, ValidationError,
)
from lineup.utils.orders.order_ledger import place_order
from lineup.utils.users import accounts


def register(**data):
    payload = {"email": "asha@example.com", "password": "secret123", "name": "Asha"}
    payload.update(data)
    with session_scope() as session:
        return accounts.register_user(session, payload).to_dict()


def login(email="asha@example.com", password="secret123"):
    with session_scope() as session:
        return accounts.authenticate(session, email, password).to_dict()


def test_register_customer(app):
    user = register(email="  Asha@Example.COM ", phone="9876543210")
    assert user["email"] == "asha@example.com"
    assert user["role"] == "customer"
    assert user["isApproved"] is True
    assert user["phone"] == "9876543210"
    assert "password" not in user and "passwordHash" not in user


def test_vendor_needs_approval_before_login(app):
    vendor = register(role="vendor")
    assert vendor["isApproved"] is False
    assert vendor["restaurantName"] == "Asha's Kitchen"

    with pytest.raises(ForbiddenError) as excinfo:
        login()
    assert excinfo.value.error_type == "VENDOR_PENDING_APPROVAL"

    with session_scope() as session:
        assert [v.id for v in accounts.pending_vendors(session)] == [vendor["id"]]
        accounts.approve_vendor(session, vendor["id"])

    user = login()
    assert user["id"] == vendor["id"]
    assert user["lastLogin"] is not None


@pytest.mark.parametrize(
    "data",
    [
        {"email": ""},
        {"email": "not-an-email"},
        {"password": "123"},
        {"phone": "12345"},
        {"role": "admin"},
    ],
)
def test_register_validation(app, data):
    with pytest.raises(ValidationError):
        register(**data)


def test_duplicate_email(app):
    register()
    with pytest.raises(ConflictError) as excinfo:
        register(email="ASHA@example.com")
    assert excinfo.value.error_type == "EMAIL_ALREADY_REGISTERED"


def test_login_failures(app):
    register()

    with pytest.raises(NotFoundError) as excinfo:
        login(email="nobody@example.com")
    assert excinfo.value.error_type == "EMAIL_NOT_FOUND"

    with pytest.raises(AuthenticationError) as excinfo:
        login(password="wrong-password")
    assert excinfo.value.error_type == "INVALID_CREDENTIALS"


def test_deactivated_account_cannot_login(app):
    user = register()
    with session_scope() as session:
        accounts.deactivate_user(session, user["id"])

    with pytest.raises(AuthenticationError) as excinfo:
        login()
    assert excinfo.value.error_type == "ACCOUNT_DEACTIVATED"


def test_deactivating_vendor_archives_menu(vendor_id):
    make_item(vendor_id, name="One")
    make_item(vendor_id, name="Two")

    with session_scope() as session:
        user, archived = accounts.deactivate_user(session, vendor_id)
        assert user.is_active is False
    assert archived == 2

    with session_scope() as session:
        states = {item.state for item in session.query(MenuItem).filter(MenuItem.vendor_id == vendor_id)}
    assert states == {"archived"}


def test_reject_vendor_deletes_menu_and_account(app):
    vendor_id = make_user("vendor", email="new@example.com", approved=False)
    make_item(vendor_id, name="One")
    make_item(vendor_id, name="Two")

    with session_scope() as session:
        assert accounts.reject_vendor(session, vendor_id) == 2

    with session_scope() as session:
        assert session.get(User, vendor_id) is None
        assert session.query(MenuItem).count() == 0


def test_reject_vendor_with_orders_is_refused(vendor_id, customer_id):
    item_id = make_item(vendor_id)
    with session_scope() as session:
        place_order(session, {"customer": customer_id, "vendor": vendor_id, "items": [{"menuItem": item_id, "quantity": 1}]})

    with session_scope() as session:
        with pytest.raises(ConflictError) as excinfo:
            accounts.reject_vendor(session, vendor_id)
    assert excinfo.value.error_type == "VENDOR_HAS_ORDERS"


def test_update_user_profile(app):
    user = register(role="vendor", restaurantName="Asha Dhaba")
    with session_scope() as session:
        updated = accounts.update_user(
            session,
            user["id"],
            {
                "name": "Asha K",
                "phone": "9123456780",
                "address": {"street": "1 Main Rd", "city": "Pune", "country": "IN"},
                "restaurantName": "Asha's Canteen",
                "preferences": {"theme": "dark"},
            },
        ).to_dict()

    assert updated["name"] == "Asha K"
    assert updated["restaurantName"] == "Asha's Canteen"
    assert updated["address"] == {"street": "1 Main Rd", "city": "Pune"}
    assert updated["fullAddress"] == "1 Main Rd, Pune"
    assert updated["preferences"] == {"theme": "dark"}


def test_update_user_email_conflict(app):
    register()
    other = register(email="ravi@example.com")
    with session_scope() as session:
        with pytest.raises(ConflictError):
            accounts.update_user(session, other["id"], {"email": "asha@example.com"})


def test_change_password(app):
    user = register()
    with session_scope() as session:
        with pytest.raises(AuthenticationError):
            accounts.change_password(session, user["id"], "wrong", "newsecret")
    with session_scope() as session:
        with pytest.raises(ValidationError):
            accounts.change_password(session, user["id"], "secret123", "short")
    with session_scope() as session:
        accounts.change_password(session, user["id"], "secret123", "newsecret")

    assert login(password="newsecret")["id"] == user["id"]


def test_list_users_filters(app):
    register()
    register(email="v@example.com", role="vendor")
    inactive = register(email="old@example.com")
    with session_scope() as session:
        accounts.deactivate_user(session, inactive["id"])

    with session_scope() as session:
        assert len(accounts.list_users(session)) == 3
        assert [u.role for u in accounts.list_users(session, role="vendor")] == ["vendor"]
        assert len(accounts.list_users(session, active="true")) == 2
        assert [u.id for u in accounts.list_users(session, active="false")] == [inactive["id"]]


def test_ensure_admin_is_idempotent(app):
    with session_scope() as session:
        first = accounts.ensure_admin(session, "admin@example.com", "admin_pass")
    with session_scope() as session:
        second = accounts.ensure_admin(session, "admin@example.com", "admin_pass")
        assert session.query(User).filter(User.role == "admin").count() == 1
    assert first.id == second.id
    assert login("admin@example.com", "admin_pass")["role"] == "admin"

"""
Shared fixtures: an app on in-memory SQLite, HTTP and Socket.IO test clients,
and small factories for users, menu items and orders.
"""

import pytest
from werkzeug.security import generate_password_hash

from lineup import create_app
from lineup.config import TestingConfig
from lineup.Database.menu_item import MenuItem
from lineup.Database.user_models import User
from lineup.extensions import session_scope
from lineup.utils.websocket_utils import change_stream


@pytest.fixture
def app():
    app, _ = create_app(TestingConfig)
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def socketio_client(app, client):
    from lineup.extensions import socketio

    clients = []

    def connect(**kwargs):
        sio_client = socketio.test_client(app, flask_test_client=client, **kwargs)
        clients.append(sio_client)
        return sio_client

    yield connect

    for sio_client in clients:
        if sio_client.is_connected():
            sio_client.disconnect()


@pytest.fixture
def events(monkeypatch):
    """Every event the change stream delivers, as (event, data, room)."""
    delivered = []

    def record(event, data, room=None):
        delivered.append((event, data, room))

    monkeypatch.setattr(change_stream, "publish_event", record)
    return delivered


def make_user(role="customer", email=None, password="secret123", approved=True, **fields):
    with session_scope() as session:
        user = User(
            email=email or f"{role}{session.query(User).count() + 1}@example.com",
            password_hash=generate_password_hash(password),
            name=fields.pop("name", f"Test {role.title()}"),
            role=role,
            is_active=fields.pop("is_active", True),
            is_approved=approved,
            restaurant_name=fields.pop("restaurant_name", "Test Kitchen" if role == "vendor" else None),
            **fields,
        )
        session.add(user)
        session.flush()
        return user.id


def make_item(vendor_id, name="Paneer Tikka", price=100.0, stock=10, category="Main Course", **fields):
    with session_scope() as session:
        item = MenuItem(
            vendor_id=vendor_id,
            name=name,
            price=price,
            stock=stock,
            category=category,
            available=fields.pop("available", True),
            **fields,
        )
        session.add(item)
        session.flush()
        return item.id


def stock_of(item_id):
    with session_scope() as session:
        item = session.get(MenuItem, item_id)
        return item.stock, item.available


@pytest.fixture
def vendor_id(app):
    return make_user("vendor", email="vendor@example.com")


@pytest.fixture
def customer_id(app):
    return make_user("customer", email="customer@example.com")

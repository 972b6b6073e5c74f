import warnings

import pytest

from conftest import make_item, stock_of
from lineup.extensions import session_scope
from lineup.utils.catalog import menu_catalog
from lineup.utils.errors import CapacityError
from lineup.utils.jwt_tokens.generate_jwt import create_jwt_token, decode_jwt_token
from lineup.utils.orders.order_ledger import place_order


def _names(received):
    return [packet["name"] for packet in received]


def _order_payload(customer_id, vendor_id, item_id, quantity=1):
    return {
        "customer": customer_id,
        "vendor": vendor_id,
        "items": [{"menuItem": item_id, "quantity": quantity}],
    }


def test_order_events_are_delivered_after_commit(customer_id, vendor_id, events):
    item_id = make_item(vendor_id, stock=3)
    events.clear()

    with session_scope() as session:
        order = place_order(session, _order_payload(customer_id, vendor_id, item_id))
        assert events == []
        order_id = order.id

    delivered = {(event, room) for event, _, room in events}
    assert ("order:created", None) in delivered
    assert ("menu:updated", None) in delivered
    assert ("new_order", "vendor") in delivered
    assert ("vendor_new_order", f"vendor_{vendor_id}") in delivered
    assert ("order_created", f"user_{customer_id}") in delivered
    assert ("notification", f"user_{customer_id}") in delivered

    created = next(data for event, data, _ in events if event == "order:created")
    assert created["id"] == order_id
    stock_update = next(data for event, data, _ in events if event == "menu:updated")
    assert stock_update["stock"] == 2


def test_rolled_back_order_publishes_nothing(customer_id, vendor_id, events):
    item_id = make_item(vendor_id, stock=1)
    events.clear()

    with pytest.raises(CapacityError):
        with session_scope() as session:
            place_order(session, _order_payload(customer_id, vendor_id, item_id, quantity=2))

    assert events == []


def test_savepoint_release_does_not_publish_early(app, vendor_id, events):
    from lineup.utils.orders.token_allocator import next_token

    item_id = make_item(vendor_id, stock=5)
    events.clear()

    with pytest.raises(RuntimeError):
        with session_scope() as session:
            menu_catalog.adjust_stock(session, item_id, 2, "decrease")
            # first token of the day seeds its counter inside a SAVEPOINT
            assert next_token(session) == 1
            assert events == []
            raise RuntimeError("request failed after the stock change")

    assert events == []
    assert stock_of(item_id) == (5, True)


def test_menu_changes_stream(vendor_id, events):
    with session_scope() as session:
        item = menu_catalog.create_menu_item(
            session, vendor_id, {"name": "Kulfi", "price": 40, "category": "Dessert", "stock": 2}
        )
        item_id = item.id
    with session_scope() as session:
        menu_catalog.soft_delete_menu_item(session, item_id)
    with session_scope() as session:
        from lineup.Database.menu_item import MenuItem

        session.delete(session.get(MenuItem, item_id))

    names = [event for event, _, _ in events]
    assert names == [
        "menu:created",
        "menu_item_added",
        "menu:updated",
        "menu_item_deleted",
        "menu:deleted",
    ]
    assert events[-1][1] == {"id": item_id, "vendorId": vendor_id}


def test_status_update_notifies_customer(customer_id, vendor_id, events):
    from lineup.utils.orders.order_ledger import update_status

    item_id = make_item(vendor_id)
    with session_scope() as session:
        order_id = place_order(session, _order_payload(customer_id, vendor_id, item_id)).id
    events.clear()

    with session_scope() as session:
        update_status(session, order_id, "ready")

    notification = next(
        data for event, data, room in events if event == "notification" and room == f"user_{customer_id}"
    )
    assert notification["type"] == "success"
    assert "ready for pickup" in notification["message"]
    assert any(event == "order_status_updated" for event, _, _ in events)
    assert any(event == "order:updated" for event, _, _ in events)


def test_jwt_round_trip(app):
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        token = create_jwt_token(user_id=7, role="vendor", name="Meera")
        payload = decode_jwt_token(f"Bearer {token}")
    assert caught == []
    assert len(app.config["JWT_SECRET_KEY"].encode()) >= 32
    assert payload["user_id"] == 7
    assert payload["role"] == "vendor"
    assert decode_jwt_token("garbage") is None
    assert decode_jwt_token(None) is None


def test_socket_rooms_scope_delivery(client, socketio_client, customer_id, vendor_id):
    item_id = make_item(vendor_id, stock=5)

    vendor_socket = socketio_client()
    vendor_socket.emit("register_user", {"userId": vendor_id, "role": "vendor", "name": "Vendor"})
    registered = vendor_socket.get_received()
    assert "registered" in _names(registered)

    token = create_jwt_token(user_id=customer_id, role="customer", name="Customer")
    customer_socket = socketio_client(auth={"token": token})
    connected = customer_socket.get_received()
    assert connected[0]["name"] == "connected"
    assert f"user_{customer_id}" in connected[0]["args"][0]["rooms"]

    response = client.post("/api/orders", json=_order_payload(customer_id, vendor_id, item_id))
    assert response.status_code == 201

    vendor_names = _names(vendor_socket.get_received())
    customer_names = _names(customer_socket.get_received())

    assert "new_order" in vendor_names
    assert "vendor_new_order" in vendor_names
    assert "order_created" not in vendor_names

    assert "order_created" in customer_names
    assert "notification" in customer_names
    assert "new_order" not in customer_names

    # unscoped change events reach everyone
    assert "order:created" in vendor_names
    assert "order:created" in customer_names


def test_register_user_requires_role(socketio_client):
    sio = socketio_client()
    sio.get_received()
    sio.emit("register_user", {"userId": 1, "role": "chef"})
    received = sio.get_received()
    assert received[0]["name"] == "error"


def test_typing_is_relayed_to_others(socketio_client):
    first = socketio_client()
    second = socketio_client()
    first.get_received()
    second.get_received()

    first.emit("typing", {"userId": 1})
    assert _names(second.get_received()) == ["user_typing"]
    assert first.get_received() == []

    first.emit("stop_typing", {"userId": 1})
    assert _names(second.get_received()) == ["user_stop_typing"]

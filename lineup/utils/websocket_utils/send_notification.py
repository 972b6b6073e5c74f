"""
Room-scoped notifications for the role based clients.

Rooms: one per role (``customer``, ``vendor``, ``admin``), one per user
(``user_<id>``) and one per vendor (``vendor_<id>``). Everything is queued on
the session and delivered after commit.
"""

from lineup.utils.websocket_utils.change_stream import queue_event

STATUS_MESSAGES = {
    "confirmed": "Order confirmed!",
    "preparing": "Your order is being prepared",
    "ready": "Your order is ready for pickup!",
    "completed": "Order completed. Enjoy your meal!",
}


def user_room(user_id) -> str:
    return f"user_{user_id}"


def vendor_room(vendor_id) -> str:
    return f"vendor_{vendor_id}"


def send_notification(session, user_id, title, message, kind="info"):
    queue_event(
        session,
        "notification",
        {"title": title, "message": message, "type": kind},
        room=user_room(user_id),
    )


def broadcast_notification(session, role, title, message, kind="info"):
    queue_event(
        session,
        "notification",
        {"title": title, "message": message, "type": kind},
        room=role,
    )


def notify_order_created(session, order: dict):
    queue_event(session, "new_order", order, room="vendor")
    queue_event(session, "vendor_new_order", order, room=vendor_room(order["vendorId"]))
    queue_event(
        session,
        "notification",
        {"title": "New Order!", "message": f"Order #{order['tokenId']} received", "type": "success"},
        room=vendor_room(order["vendorId"]),
    )
    queue_event(session, "order_created", order, room=user_room(order["customerId"]))
    send_notification(
        session,
        order["customerId"],
        "Order Placed!",
        f"Your order #{order['tokenId']} has been placed successfully",
        kind="success",
    )


def notify_order_status(session, order: dict):
    queue_event(session, "order_status_updated", order, room=user_room(order["customerId"]))
    queue_event(session, "order_queue_updated", order, room="vendor")
    queue_event(session, "vendor_order_updated", order, room=vendor_room(order["vendorId"]))

    message = STATUS_MESSAGES.get(order["status"])
    if message:
        send_notification(
            session,
            order["customerId"],
            "Order Status Update",
            f"Order #{order['tokenId']}: {message}",
            kind="success" if order["status"] == "ready" else "info",
        )


def notify_order_cancelled(session, order: dict):
    queue_event(session, "order_cancelled", order, room=user_room(order["customerId"]))
    queue_event(session, "order_cancelled", order, room="vendor")
    queue_event(session, "vendor_order_cancelled", order, room=vendor_room(order["vendorId"]))


def notify_menu_item_added(session, item: dict):
    queue_event(session, "menu_item_added", item)


def notify_menu_updated(session, item: dict):
    queue_event(session, "menu_updated", item)


def notify_menu_item_deleted(session, item_id):
    queue_event(session, "menu_item_deleted", {"menuItemId": item_id})


def notify_vendor_approval(session, vendor_id, approved: bool):
    if approved:
        send_notification(
            session,
            vendor_id,
            "Account approved",
            "Your vendor account has been approved. You can now sign in.",
            kind="success",
        )
    broadcast_notification(
        session,
        "admin",
        "Vendor review",
        f"Vendor #{vendor_id} {'approved' if approved else 'rejected'}",
    )

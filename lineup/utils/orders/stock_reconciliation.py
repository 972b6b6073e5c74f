"""
Keeps menu stock in step with the order ledger.

Both functions run inside the caller's transaction: if anything later in the
request fails, the stock movement rolls back together with the order.
"""

from collections import OrderedDict

from flask import current_app

from lineup.Database.menu_item import MenuItem
from lineup.utils.errors import CapacityError, ValidationError
from lineup.utils.websocket_utils.change_stream import track_change


def _shortage_message(item, requested):
    return (
        f"Insufficient stock for {item.name}. "
        f"Available: {item.stock}, Requested: {requested}"
    )


def _shortage(item, requested):
    return {
        "menuItem": item.id,
        "name": item.name,
        "available": item.stock,
        "requested": requested,
    }


def reserve_stock(session, lines, vendor_id=None) -> dict:
    """
    Validate and take stock for ``lines``, a list of ``(menu_item_id, quantity)``.

    Quantities for the same item are summed. Returns ``{id: MenuItem}`` for
    snapshotting. Raises:

    * ``CapacityError(ITEMS_NOT_AVAILABLE)`` for unknown, archived or
      switched-off items,
    * ``ValidationError(ITEM_VENDOR_MISMATCH)`` when ``vendor_id`` is given and
      an item belongs to someone else,
    * ``CapacityError(INSUFFICIENT_STOCK)`` when a quantity exceeds stock,
      including when a concurrent order took the stock first.
    """
    requested = OrderedDict()
    for item_id, quantity in lines:
        requested[item_id] = requested.get(item_id, 0) + quantity

    items = {
        item.id: item
        for item in session.query(MenuItem).filter(MenuItem.id.in_(list(requested))).all()
    }

    # sold-out items are reported as a stock shortage below
    unavailable = [
        item_id
        for item_id in requested
        if item_id not in items
        or not items[item_id].is_active
        or (not items[item_id].available and items[item_id].stock > 0)
    ]
    if unavailable:
        raise CapacityError(
            "Some menu items are not available",
            error_type="ITEMS_NOT_AVAILABLE",
            details={"menuItemIds": unavailable},
        )

    if vendor_id is not None:
        foreign = [i for i in requested if items[i].vendor_id != vendor_id]
        if foreign:
            raise ValidationError(
                "All items must belong to the selected vendor",
                error_type="ITEM_VENDOR_MISMATCH",
                details={"menuItemIds": foreign},
            )

    shortages = [
        (items[i], quantity) for i, quantity in requested.items() if quantity > items[i].stock
    ]
    if shortages:
        item, quantity = shortages[0]
        raise CapacityError(
            _shortage_message(item, quantity),
            details=[_shortage(i, q) for i, q in shortages],
        )

    for item_id, quantity in requested.items():
        item = items[item_id]
        if not MenuItem.reserve(session, item_id, quantity):
            session.refresh(item)
            raise CapacityError(
                _shortage_message(item, quantity),
                details=[_shortage(item, quantity)],
            )
        session.refresh(item)
        track_change(session, item)

    return items


def release_stock(session, order):
    """Put every line of ``order`` back on the shelf."""
    restored = 0
    for line in order.items:
        if line.menu_item_id is None or not MenuItem.replenish(session, line.menu_item_id, line.quantity):
            current_app.logger.warning(
                f"Order {order.id}: menu item for '{line.name}' no longer exists, stock not restored"
            )
            continue

        item = session.get(MenuItem, line.menu_item_id)
        session.refresh(item)
        track_change(session, item)
        restored += 1
    return restored

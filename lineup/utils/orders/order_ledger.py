"""
Order ledger: placing, querying, progressing and cancelling pre-orders.

Each function works on the caller's session. The blueprint wraps a call in
``session_scope()`` so the order row, its line items, the token counter and
every stock movement commit or roll back together.
"""

from datetime import datetime, timedelta
from math import ceil
from typing import Optional

from flask import current_app
from sqlalchemy import func

from lineup.Database.order import (
    PAYMENT_METHODS, Order, OrderItem,
)
from lineup.Database.user_models import User
from lineup.utils.errors import (
    ConflictError, ForbiddenError, NotFoundError, ValidationError,
)
from lineup.utils.helpers.clock import as_utc, isoformat
from lineup.utils.helpers.validators import parse_int, parse_number, require_fields
from lineup.utils.orders.status_engine import append_note, transition
from lineup.utils.orders.stock_reconciliation import release_stock, reserve_stock
from lineup.utils.orders.token_allocator import local_day, next_token
from lineup.utils.websocket_utils.change_stream import track_change
from lineup.utils.websocket_utils.send_notification import (
    notify_order_cancelled, notify_order_created, notify_order_status,
)

ORDER_SORT_FIELDS = {
    "createdAt": Order.created_at,
    "tokenId": Order.token_id,
    "totalAmount": Order.total_amount,
    "status": Order.status,
    "updatedAt": Order.updated_at,
}
DELIVERY_TYPES = ("pickup", "delivery")


def _money(value) -> float:
    return round(float(value), 2)


def _discount_amount(discount: dict, items_total: float) -> float:
    if not isinstance(discount, dict):
        raise ValidationError("Each discount must be an object")
    if discount.get("percentage") not in (None, ""):
        percentage = parse_number(discount["percentage"], "discount percentage", minimum=0, maximum=100)
        return items_total * percentage / 100
    return parse_number(discount.get("amount", 0), "discount amount", minimum=0)


def compute_totals(lines, discounts=None, delivery=None, tax=None) -> dict:
    """
    Price a basket.

    ``lines`` are dicts with ``price`` and ``quantity``; each gets a
    ``subtotal``. The result is
    ``totalAmount = itemsTotal - discountTotal + deliveryFee + taxTotal``.
    """
    items_total = 0.0
    priced = []
    for line in lines:
        subtotal = _money(line["price"] * line["quantity"])
        priced.append({**line, "subtotal": subtotal})
        items_total += subtotal
    items_total = _money(items_total)

    discount_total = _money(sum(_discount_amount(d, items_total) for d in discounts or []))

    delivery_fee = 0.0
    if delivery:
        delivery_fee = parse_number(delivery.get("fee", 0), "delivery fee", minimum=0)

    tax_total = 0.0
    if tax:
        if tax.get("total") not in (None, ""):
            tax_total = parse_number(tax["total"], "tax total", minimum=0)
        else:
            tax_total = parse_number(tax.get("cgst", 0), "cgst", minimum=0) + parse_number(
                tax.get("sgst", 0), "sgst", minimum=0
            )

    total = _money(items_total - discount_total + delivery_fee + tax_total)
    if total < 0:
        raise ValidationError(
            "Discounts cannot exceed the order total",
            error_type="NEGATIVE_TOTAL",
        )

    return {
        "lines": priced,
        "itemsTotal": items_total,
        "discountTotal": discount_total,
        "deliveryFee": _money(delivery_fee),
        "taxTotal": _money(tax_total),
        "totalAmount": total,
    }


def _parse_lines(raw_items):
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Customer, vendor, and items are required")

    lines = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        lines.append({
            "menuItem": parse_int(raw.get("menuItem"), f"items[{index}].menuItem"),
            "quantity": parse_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1),
            "specialInstructions": (raw.get("specialInstructions") or "").strip() or None,
        })
    return lines


def _load_customer(session, customer_id) -> User:
    customer = session.get(User, parse_int(customer_id, "customer"))
    if not customer:
        raise NotFoundError("Customer not found", error_type="CUSTOMER_NOT_FOUND")
    if not customer.is_active:
        raise ForbiddenError("Customer account is deactivated", error_type="ACCOUNT_DEACTIVATED")
    if customer.role not in ("customer", "admin"):
        raise ValidationError("Only customers can place orders", error_type="INVALID_CUSTOMER")
    return customer


def _load_vendor(session, vendor_id) -> User:
    vendor = session.get(User, parse_int(vendor_id, "vendor"))
    if not vendor or vendor.role != "vendor" or not vendor.is_active:
        raise NotFoundError("Vendor not found", error_type="VENDOR_NOT_FOUND")
    if not vendor.is_approved:
        raise ForbiddenError(
            "Vendor is not accepting orders yet",
            error_type="VENDOR_PENDING_APPROVAL",
        )
    return vendor


def _clean_delivery(delivery):
    if delivery is None:
        return None
    if not isinstance(delivery, dict):
        raise ValidationError("delivery must be an object")
    kind = delivery.get("type", "pickup")
    if kind not in DELIVERY_TYPES:
        raise ValidationError(f"delivery type must be one of: {', '.join(DELIVERY_TYPES)}")
    return {
        "type": kind,
        "address": delivery.get("address"),
        "fee": parse_number(delivery.get("fee", 0), "delivery fee", minimum=0),
    }


def place_order(session, payload: dict, now: Optional[datetime] = None) -> Order:
    require_fields(
        payload,
        ["customer", "vendor", "items"],
        message="Customer, vendor, and items are required",
    )
    customer = _load_customer(session, payload["customer"])
    vendor = _load_vendor(session, payload["vendor"])
    lines = _parse_lines(payload["items"])

    payment_method = payload.get("paymentMethod", "cash")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"paymentMethod must be one of: {', '.join(PAYMENT_METHODS)}")
    delivery = _clean_delivery(payload.get("delivery"))
    discounts = payload.get("discounts") or []
    if not isinstance(discounts, list):
        raise ValidationError("discounts must be a list")
    tax = payload.get("tax")
    if tax is not None and not isinstance(tax, dict):
        raise ValidationError("tax must be an object")

    items = reserve_stock(
        session,
        [(line["menuItem"], line["quantity"]) for line in lines],
        vendor_id=vendor.id,
    )

    # snapshot name and price so later menu edits leave this order alone
    for line in lines:
        item = items[line["menuItem"]]
        line["name"] = item.name
        line["price"] = item.price
    totals = compute_totals(lines, discounts, delivery, tax)

    moment = as_utc(now)
    order = Order(
        token_id=next_token(session, moment),
        token_date=local_day(moment),
        customer_id=customer.id,
        vendor_id=vendor.id,
        total_amount=totals["totalAmount"],
        status="ordered",
        ordered_at=moment,
        payment_method=payment_method,
        payment_status="pending",
        delivery=delivery,
        discounts=discounts,
        tax=tax,
        created_at=moment,
        updated_at=moment,
    )
    for line in totals["lines"]:
        order.items.append(OrderItem(
            menu_item_id=line["menuItem"],
            name=line["name"],
            price=line["price"],
            quantity=line["quantity"],
            subtotal=line["subtotal"],
            special_instructions=line["specialInstructions"],
        ))
    if payload.get("notes"):
        append_note(order, "customer", str(payload["notes"]))

    session.add(order)
    session.flush()

    notify_order_created(session, order.to_dict(include_parties=True))
    current_app.logger.info(
        f"Order {order.id} placed: token #{order.token_id} for vendor {vendor.id}, total {order.total_amount}"
    )
    return order


def get_order(session, order_id) -> Order:
    order = session.get(Order, parse_int(order_id, "order id"))
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_orders(
    session,
    customer=None,
    vendor=None,
    status=None,
    page=1,
    limit=50,
    sort_by="createdAt",
    sort_order="desc",
):
    """Returns ``(orders, total)``."""
    query = session.query(Order)
    if customer:
        query = query.filter(Order.customer_id == parse_int(customer, "customer"))
    if vendor:
        query = query.filter(Order.vendor_id == parse_int(vendor, "vendor"))
    if status:
        query = query.filter(Order.status == status)

    column = ORDER_SORT_FIELDS.get(sort_by, Order.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()

    total = query.count()
    orders = query.order_by(ordering, Order.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return orders, total


def total_pages(total, limit) -> int:
    return ceil(total / limit) if limit else 0


def customer_orders(session, customer_id, status=None, limit=20):
    query = session.query(Order).filter(Order.customer_id == parse_int(customer_id, "customer"))
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def vendor_orders(session, vendor_id, status=None, limit=50):
    query = session.query(Order).filter(Order.vendor_id == parse_int(vendor_id, "vendor"))
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def update_order_details(session, order_id, estimated_time=None, notes=None) -> Order:
    order = get_order(session, order_id)

    if estimated_time is not None:
        order.estimated_time = parse_int(estimated_time, "estimatedTime", minimum=0, default=0)

    if notes is not None:
        if isinstance(notes, dict):
            for actor, field in (("customer", "customer_note"), ("vendor", "vendor_note"), ("admin", "admin_note")):
                if actor in notes:
                    setattr(order, field, notes[actor] or None)
        else:
            order.vendor_note = str(notes) or None

    session.flush()
    return order


def update_status(
    session,
    order_id,
    status,
    note=None,
    estimated_time=None,
    actor="vendor",
    now: Optional[datetime] = None,
) -> Order:
    order = get_order(session, order_id)
    if estimated_time is not None:
        order.estimated_time = parse_int(estimated_time, "estimatedTime", minimum=0)

    previous = order.status
    transition(session, order, status, note=note, actor=actor, now=now)
    session.flush()

    payload = order.to_dict(include_parties=True)
    if status == "cancelled":
        notify_order_cancelled(session, payload)
    else:
        notify_order_status(session, payload)
    current_app.logger.info(f"Order {order.id} moved from {previous} to {status}")
    return order


def cancel_order(
    session,
    order_id,
    reason=None,
    cancelled_by="customer",
    now: Optional[datetime] = None,
) -> Order:
    order = get_order(session, order_id)
    if order.is_terminal:
        raise ConflictError(
            "Cannot cancel completed or already cancelled orders",
            error_type="ORDER_FINALIZED",
        )

    transition(session, order, "cancelled", now=now)

    reason = (reason or "").strip()
    if reason:
        if (cancelled_by or "customer") == "customer":
            append_note(order, "customer", f"Cancelled by customer: {reason}")
        else:
            append_note(order, "vendor", f"Cancelled: {reason}")

    session.flush()
    notify_order_cancelled(session, order.to_dict(include_parties=True))
    current_app.logger.info(f"Order {order.id} cancelled by {cancelled_by or 'customer'}")
    return order


def delete_order(session, order_id) -> int:
    order = get_order(session, order_id)
    if not order.is_terminal:
        release_stock(session, order)
    order_key = order.id
    session.delete(order)
    session.flush()
    current_app.logger.info(f"Order {order_key} deleted")
    return order_key


def rate_order(session, order_id, food=None, service=None, overall=None, comment=None,
               now: Optional[datetime] = None) -> Order:
    if not food or not service or not overall:
        raise ValidationError("Food, service, and overall ratings are required")

    order = get_order(session, order_id)
    if order.status != "completed":
        raise ValidationError("Can only rate completed orders", error_type="ORDER_NOT_COMPLETED")

    order.rating_food = parse_int(food, "food", minimum=1, maximum=5)
    order.rating_service = parse_int(service, "service", minimum=1, maximum=5)
    order.rating_overall = parse_int(overall, "overall", minimum=1, maximum=5)
    order.rating_comment = (comment or "").strip() or None
    order.rated_at = as_utc(now)
    session.flush()
    track_change(session, order)
    return order


def vendor_analytics(session, vendor_id, days=7, now: Optional[datetime] = None) -> dict:
    vendor_id = parse_int(vendor_id, "vendor")
    days = parse_int(days, "days", minimum=1, default=7)
    end = as_utc(now)
    start = end - timedelta(days=days)

    window = (
        Order.vendor_id == vendor_id,
        Order.status == "completed",
        Order.completed_at >= start,
        Order.completed_at <= end,
    )

    count, revenue, average_value, average_prep = session.query(
        func.count(Order.id),
        func.sum(Order.total_amount),
        func.avg(Order.total_amount),
        func.avg(Order.actual_time),
    ).filter(*window).one()

    quantity = func.sum(OrderItem.quantity).label("total_quantity")
    popular = (
        session.query(
            OrderItem.menu_item_id,
            func.min(OrderItem.name),
            quantity,
            func.sum(OrderItem.subtotal),
            func.count(OrderItem.id),
        )
        .join(Order, OrderItem.order_id == Order.id)
        .filter(*window)
        .group_by(OrderItem.menu_item_id)
        .order_by(quantity.desc())
        .limit(10)
        .all()
    )

    return {
        "period": {
            "startDate": isoformat(start),
            "endDate": isoformat(end),
            "days": days,
        },
        "analytics": {
            "totalOrders": count or 0,
            "totalRevenue": _money(revenue or 0),
            "averageOrderValue": _money(average_value or 0),
            "averagePreparationTime": _money(average_prep or 0),
        },
        "popularItems": [
            {
                "menuItem": menu_item_id,
                "itemName": name,
                "totalQuantity": int(total_quantity or 0),
                "totalRevenue": _money(total_revenue or 0),
                "orderCount": order_count,
            }
            for menu_item_id, name, total_quantity, total_revenue, order_count in popular
        ],
    }



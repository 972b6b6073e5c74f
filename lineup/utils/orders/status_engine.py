from datetime import datetime
from typing import Optional

from lineup.Database.order import STATUSES, Order
from lineup.utils.errors import ConflictError, ValidationError
from lineup.utils.helpers.clock import as_utc, minutes_between
from lineup.utils.orders.stock_reconciliation import release_stock

NOTE_FIELDS = {
    "customer": "customer_note",
    "vendor": "vendor_note",
    "admin": "admin_note",
}


def append_note(order: Order, actor: str, note: str):
    field = NOTE_FIELDS.get(actor)
    if field is None:
        raise ValidationError(
            f"Unknown note author: {actor}",
            details={"allowed": list(NOTE_FIELDS)},
        )
    note = (note or "").strip()
    if not note:
        return
    existing = getattr(order, field)
    setattr(order, field, f"{existing}\n{note}" if existing else note)


def ensure_not_final(order: Order):
    if order.is_terminal:
        raise ConflictError(
            f"Order is already {order.status}",
            error_type="ORDER_FINALIZED",
        )


def transition(
    session,
    order: Order,
    new_status: str,
    note: Optional[str] = None,
    actor: str = "vendor",
    now: Optional[datetime] = None,
) -> Order:
    """
    Move ``order`` to ``new_status``.

    Completed and cancelled orders are frozen. Between the other states any
    move is accepted, including going backwards. Each status keeps the time
    it was first reached; entering ``completed`` derives ``actual_time`` from
    the ``preparing`` timestamp. Cancelling here puts the stock back.
    """
    if new_status not in STATUSES:
        raise ValidationError(
            "Invalid status",
            error_type="INVALID_STATUS",
            details={"allowed": list(STATUSES)},
        )
    ensure_not_final(order)

    moment = as_utc(now)

    if new_status == "cancelled":
        release_stock(session, order)

    order.status = new_status
    if order.status_timestamp(new_status) is None:
        order.set_status_timestamp(new_status, moment)

    if new_status == "completed" and order.preparing_at is not None:
        order.actual_time = minutes_between(order.preparing_at, order.completed_at)

    if note:
        append_note(order, actor, note)

    return order

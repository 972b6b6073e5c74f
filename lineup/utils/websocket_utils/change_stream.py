"""
Change stream for the catalog and the order ledger.

Session hooks collect every created, updated and deleted ``MenuItem`` and
``Order`` while a transaction runs and hand them to the broadcaster only after
the transaction commits. A rolled back transaction publishes nothing.

Set-based UPDATE statements bypass the unit of work, so code that uses them
calls ``track_change`` itself. Room-scoped notifications are queued with
``queue_event`` and ride along in the same outbox.
"""

from collections import OrderedDict

from sqlalchemy import event

from lineup.Database.menu_item import MenuItem
from lineup.Database.order import Order
from lineup.utils.websocket_utils.broadcast import publish_event

OUTBOX_KEY = "lineup_outbox"

WATCHED = (
    (MenuItem, "menu"),
    (Order, "order"),
)


def _entity_name(obj):
    for model, name in WATCHED:
        if isinstance(obj, model):
            return name
    return None


def _outbox(session):
    return session.info.setdefault(OUTBOX_KEY, {"changes": OrderedDict(), "events": []})


def _deleted_payload(obj):
    if isinstance(obj, Order):
        return {
            "id": obj.id,
            "tokenId": obj.token_id,
            "customerId": obj.customer_id,
            "vendorId": obj.vendor_id,
        }
    return {"id": obj.id, "vendorId": obj.vendor_id}


def track_change(session, obj, action="updated"):
    entity = _entity_name(obj)
    if entity is None:
        return

    changes = _outbox(session)["changes"]
    key = (entity, obj.id)
    previous = changes.get(key)

    if action == "deleted":
        if previous and previous[0] == "created":
            # never visible outside this transaction
            del changes[key]
        else:
            changes[key] = ("deleted", _deleted_payload(obj))
        return

    if previous and previous[0] == "deleted":
        return
    if previous and previous[0] == "created":
        action = "created"
    changes[key] = (action, obj.to_dict())


def queue_event(session, event_name, data, room=None):
    _outbox(session)["events"].append((event_name, data, room))


def _collect(session, flush_context):
    for obj in session.new:
        track_change(session, obj, "created")
    for obj in session.dirty:
        if session.is_modified(obj, include_collections=False):
            track_change(session, obj, "updated")
    for obj in session.deleted:
        track_change(session, obj, "deleted")


def _deliver(session):
    # releasing a SAVEPOINT also fires after_commit; wait for the outer commit
    if session.in_nested_transaction():
        return
    outbox = session.info.pop(OUTBOX_KEY, None)
    if not outbox:
        return
    for (entity, _), (action, payload) in outbox["changes"].items():
        publish_event(f"{entity}:{action}", payload)
    for event_name, data, room in outbox["events"]:
        publish_event(event_name, data, room)


def _discard(session, transaction):
    if transaction.parent is None:
        session.info.pop(OUTBOX_KEY, None)


def watch_changes(session_factory):
    """Attach the change stream hooks to a sessionmaker."""
    event.listen(session_factory, "after_flush", _collect)
    event.listen(session_factory, "after_commit", _deliver)
    event.listen(session_factory, "after_transaction_end", _discard)
    return session_factory

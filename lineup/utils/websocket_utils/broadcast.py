import json

import redis
from flask import current_app

from lineup import extensions


def publish_event(event: str, data: dict, room: str = None):
    """
    Fire-and-forget delivery of one event.

    Emits over Socket.IO (to a room, or to every client when no room is
    given) and mirrors the event on the Redis channel for other processes.
    Delivery failures are logged and never raised: clients that miss an
    event catch up on their next refresh.
    """
    try:
        if room:
            extensions.emit_to_room(room, event, data)
        else:
            extensions.socketio.emit(event, data)
    except Exception:
        current_app.logger.exception(f"Socket.IO emit failed for {event}")

    client = extensions.redis_client
    if client is None:
        return

    channel = current_app.config.get("REDIS_EVENTS_CHANNEL", "lineup:events")
    try:
        client.publish(channel, json.dumps({"event": event, "room": room, "data": data}))
    except redis.RedisError:
        current_app.logger.exception(f"Redis publish failed for {event}")

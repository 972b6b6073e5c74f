from flask import current_app, request
from flask_socketio import Namespace, emit, join_room

from lineup.extensions import socketio
from lineup.utils.jwt_tokens.generate_jwt import decode_jwt_token
from lineup.utils.websocket_utils.send_notification import user_room, vendor_room

# sid -> {"userId", "role", "name"}
connected_users = {}


def _join_rooms(user_id, role, name):
    rooms = [role, user_room(user_id)]
    if role == "vendor":
        rooms.append(vendor_room(user_id))
    for room in rooms:
        join_room(room)

    connected_users[request.sid] = {"userId": user_id, "role": role, "name": name}
    return rooms


class LiveNamespace(Namespace):
    """
    Default namespace the browser clients connect to.

    A client either passes its login token on connect or sends
    ``register_user`` right after; both put it in its role, user and (for
    vendors) vendor rooms.
    """

    # ---------- CONNECT ----------
    def on_connect(self, auth=None):
        token = (auth or {}).get("token") or request.args.get("token")
        if not token:
            emit("connected", {"sid": request.sid})
            return

        payload = decode_jwt_token(token)
        if payload is None:
            # anonymous clients still get public menu and order events
            emit("connected", {"sid": request.sid})
            return

        rooms = _join_rooms(payload["user_id"], payload["role"], payload.get("name"))
        emit("connected", {"sid": request.sid, "userId": payload["user_id"], "rooms": rooms})

    # ---------- REGISTER ----------
    def on_register_user(self, data):
        data = data or {}
        user_id = data.get("userId")
        role = data.get("role")
        if user_id is None or role not in ("customer", "vendor", "admin"):
            emit("error", {"message": "userId and a valid role are required"})
            return

        rooms = _join_rooms(user_id, role, data.get("name"))
        current_app.logger.info(f"Socket {request.sid}: {data.get('name')} ({role}) joined {rooms}")
        emit("registered", {"userId": user_id, "role": role, "rooms": rooms})

    # ---------- TYPING ----------
    def on_typing(self, data):
        emit("user_typing", data, broadcast=True, include_self=False)

    def on_stop_typing(self, data):
        emit("user_stop_typing", data, broadcast=True, include_self=False)

    # ---------- DISCONNECT ----------
    def on_disconnect(self, *args):
        user = connected_users.pop(request.sid, None)
        if user:
            current_app.logger.info(f"Socket {request.sid}: {user['name']} ({user['role']}) disconnected")


socketio.on_namespace(LiveNamespace("/"))

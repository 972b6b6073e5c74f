import datetime

import jwt
from flask import current_app


def create_jwt_token(user_id, role, name):
    """
    Create a login token for a user.

    Parameters
    ----------
    user_id : int
    role : str
        One of "customer", "vendor", "admin".
    name : str

    Returns
    -------
    str
        Encoded JWT token
    """
    days = current_app.config.get("JWT_EXPIRES_DAYS", 10)
    payload = {
        "user_id": user_id,
        "role": role,
        "name": name,
        "exp": datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=days),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET_KEY"], algorithm="HS256")


def decode_jwt_token(token):
    """Return the payload of a valid token, or None."""
    if not token:
        return None
    if token.startswith("Bearer "):
        token = token.split(" ", 1)[1]
    try:
        return jwt.decode(token, current_app.config["JWT_SECRET_KEY"], algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None

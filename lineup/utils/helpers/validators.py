import re

from lineup.utils.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[0-9]{10}$")


def require_fields(data: dict, fields, message=None):
    missing = [f for f in fields if data.get(f) in (None, "", [])]
    if missing:
        raise ValidationError(
            message or f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )


def parse_int(value, field, minimum=None, maximum=None, default=None):
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float) and value != number:
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be at most {maximum}")
    return number


def parse_number(value, field, minimum=None, maximum=None):
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be at most {maximum}")
    return number


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def normalize_email(email) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Please enter a valid email")
    return email


def validate_phone(phone):
    phone = (phone or "").strip()
    if not phone:
        return None
    if not PHONE_RE.match(phone):
        raise ValidationError("Please enter a valid 10-digit phone number")
    return phone


def paginate(page, limit, default_limit=50):
    page = parse_int(page, "page", minimum=1, default=1)
    limit = parse_int(limit, "limit", minimum=1, maximum=200, default=default_limit)
    return page, limit

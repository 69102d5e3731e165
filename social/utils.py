import uuid

from .errors import InvalidArgument


def parse_id(value, label="id"):
    """
    Convert a client-supplied identifier into a UUID.

    Raises InvalidArgument for anything that is not a well-formed id, so
    malformed ids never reach the database layer.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise InvalidArgument(f"Invalid {label}")


def is_truthy(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")

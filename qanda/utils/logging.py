from typing import Any


def get_logging_user_id(user: Any) -> str:
    """
    Identify ``user`` in structured logs: the primary key as a string, or
    "anonymous" for visitors and accounts which have not been saved yet.
    """
    if getattr(user, "is_authenticated", False) and getattr(user, "pk", None):
        return str(user.pk)
    return "anonymous"

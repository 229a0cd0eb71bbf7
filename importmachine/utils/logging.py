from typing import Any


def get_logging_user_id(user: Any) -> str:
    """
    Return a consistent identifier for logging purposes.

    Accepts either a user object or a bare primary key, since most of the
    cache and lifecycle code is handed a user id rather than a user.

    Args:
        user (Any): A Django user object, a user primary key or None.

    Returns:
        user_id (str): The user's ID or "anonymous" if there isn't one.
    """
    if user is None:
        return "anonymous"

    if isinstance(user, (int, str)):
        return str(user)

    if not getattr(user, "is_authenticated", True):
        return "anonymous"

    user_id = getattr(user, "pk", None)
    if user_id is None:
        return "anonymous"

    return str(user_id)

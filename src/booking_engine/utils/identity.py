from typing import Optional

from booking_engine.models.users import Identity, UserRole


def identity_from_event(event: dict) -> Optional[Identity]:
    """Build the caller identity from the API Gateway authorizer context.

    Returns None for anonymous callers. Unknown roles fall back to USER so a
    malformed claim can never grant admin rights.
    """
    try:
        authorizer = event["requestContext"]["authorizer"]
        user_id = authorizer["user_id"]
    except (KeyError, TypeError):
        return None

    if not user_id:
        return None

    role_raw = authorizer.get("role") or ""
    try:
        role = UserRole(role_raw.upper())
    except ValueError:
        role = UserRole.USER

    return Identity(user_id=user_id, role=role)

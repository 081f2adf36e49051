"""Auth domain event catalog."""

from __future__ import annotations

AUTH_USER_REGISTERED = "auth.user.registered"
AUTH_USER_ROLE_CHANGED = "auth.user.role_changed"

EVENT_CATALOG = {
    AUTH_USER_REGISTERED: {
        "version": "v1",
        "payload": {
            "user_id": "int",
            "email": "str",
            "name": "str?",
            "role": "str",
        },
    },
    AUTH_USER_ROLE_CHANGED: {
        "version": "v1",
        "payload": {
            "user_id": "int",
            "previous_role": "str",
            "role": "str",
            "changed_by": "int?",
        },
    },
}

__all__ = ["AUTH_USER_REGISTERED", "AUTH_USER_ROLE_CHANGED", "EVENT_CATALOG"]

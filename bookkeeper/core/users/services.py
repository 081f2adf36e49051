"""User profile service layer."""

from __future__ import annotations

import logging
from typing import List, Optional

from bookkeeper.core.auth.events import AUTH_USER_ROLE_CHANGED
from bookkeeper.core.users.models import ROLE_HIERARCHY, User
from bookkeeper.core.users.schemas import ProfileUpdateRequest
from bookkeeper.extensions import db
from bookkeeper.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)


def get_user(user_id) -> Optional[User]:
    if user_id is None:
        return None
    return db.session.get(User, int(user_id))


def list_users() -> List[User]:
    return User.query.order_by(User.created_at.desc(), User.id.desc()).all()


def update_profile(user: User, payload: ProfileUpdateRequest) -> User:
    """Apply the provided profile fields; omitted fields are left alone."""
    fields = payload.model_dump(exclude_unset=True)
    if "name" in fields:
        user.name = fields["name"]
    if "avatar_url" in fields:
        user.avatar_url = fields["avatar_url"]
    db.session.commit()
    return user


def change_role(user_id: int, role: str, changed_by: Optional[int] = None) -> User:
    if role not in ROLE_HIERARCHY:
        raise ValueError("invalid_role")
    user = get_user(user_id)
    if not user:
        raise ValueError("not_found")
    previous = user.role
    if previous == role:
        return user
    user.role = role
    enqueue_outbox(
        AUTH_USER_ROLE_CHANGED,
        {
            "user_id": user.id,
            "previous_role": previous,
            "role": role,
            "changed_by": changed_by,
        },
        user_id=user.id,
    )
    db.session.commit()
    logger.info("User %s role changed from %s to %s", user.id, previous, role)
    return user

"""Authentication service layer."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from flask_jwt_extended import create_access_token, create_refresh_token
from sqlalchemy import func

from bookkeeper.core.auth.events import AUTH_USER_REGISTERED
from bookkeeper.core.auth.models import RevokedToken
from bookkeeper.core.auth.password import hash_password, verify_password
from bookkeeper.core.auth.schemas import RegisterRequest
from bookkeeper.core.users.models import ROLE_USER, User
from bookkeeper.extensions import db
from bookkeeper.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)


def authenticate_user(email: str, password: str) -> Optional[User]:
    """Return the user if credentials are valid."""
    user = User.query.filter(func.lower(User.email) == (email or "").strip().lower()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def issue_access_token(user: User) -> str:
    return create_access_token(identity=str(user.id), additional_claims={"roles": user.role_codes})


def issue_tokens(user: User) -> dict[str, str]:
    return {
        "access_token": issue_access_token(user),
        "refresh_token": create_refresh_token(identity=str(user.id)),
    }


def revoke_token(claims: dict) -> None:
    """Blocklist a decoded JWT by its jti; repeated logouts are no-ops."""
    jti = claims.get("jti")
    if not jti or is_token_revoked(jti):
        return
    expires = claims.get("exp")
    subject = claims.get("sub")
    db.session.add(
        RevokedToken(
            jti=jti,
            token_type=claims.get("type", "refresh"),
            user_id=int(subject) if subject and str(subject).isdigit() else None,
            expires_at=datetime.utcfromtimestamp(expires) if expires else None,
        )
    )
    db.session.commit()
    logger.info("Revoked %s token for user %s", claims.get("type", "refresh"), subject)


def is_token_revoked(jti: str) -> bool:
    return db.session.query(RevokedToken.id).filter_by(jti=jti).first() is not None


def register_user(payload: RegisterRequest, auto_issue_tokens: bool = False) -> dict:
    """Create a user with the base role and stage the registration event."""
    normalized_email = payload.email.strip().lower()
    existing = User.query.filter(func.lower(User.email) == normalized_email).first()
    if existing:
        raise ValueError("email_already_exists")

    user = User(
        email=normalized_email,
        name=payload.name,
        role=ROLE_USER,
        password_hash=hash_password(payload.password),
    )
    db.session.add(user)
    db.session.flush()  # ensure user.id for events

    enqueue_outbox(
        AUTH_USER_REGISTERED,
        {"user_id": user.id, "email": user.email, "name": user.name, "role": user.role},
        user_id=user.id,
    )
    db.session.commit()
    logger.info("Registered user %s", user.id)

    tokens = issue_tokens(user) if auto_issue_tokens else {}
    return {"user": user, **tokens}

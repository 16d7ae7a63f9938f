from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..models import Addon, User
from ..schemas import UserProfileUpdate
from .addons import isoformat, serialize_addon

logger = logging.getLogger(__name__)


class UsernameTakenError(ValueError):
    def __init__(self, username: str):
        super().__init__("Username already taken")
        self.username = username


def serialize_public_user(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "avatar": user.avatar_url,
        "bio": user.bio,
        "createdAt": isoformat(user.created_at),
    }


def serialize_self_user(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "avatarUrl": user.avatar_url,
        "bio": user.bio,
        "role": user.role or "user",
        "createdAt": isoformat(user.created_at),
    }


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_profile(db: Session, user_id: str) -> Optional[dict]:
    """Public profile, every owned addon (newest first) and totals over them."""
    user = get_user(db, user_id)
    if not user:
        return None

    addons = (
        db.query(Addon)
        .options(joinedload(Addon.user))
        .filter(Addon.user_id == user_id)
        .order_by(Addon.created_at.desc(), Addon.id.desc())
        .all()
    )
    return {
        "user": serialize_public_user(user),
        "addons": [serialize_addon(addon) for addon in addons],
        "stats": {
            "totalAddons": len(addons),
            "totalViews": sum(addon.views or 0 for addon in addons),
            "totalDownloads": sum(addon.downloads or 0 for addon in addons),
        },
    }


def username_taken(db: Session, username: str, exclude_user_id: Optional[str] = None) -> bool:
    query = db.query(User.id).filter(User.username == username)
    if exclude_user_id:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def update_profile(db: Session, user: User, payload: UserProfileUpdate) -> User:
    changes = payload.model_dump(exclude_unset=True)
    username = changes.get("username")
    if username and username != user.username and username_taken(db, username, user.id):
        raise UsernameTakenError(username)

    for field, value in changes.items():
        setattr(user, field, value)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with another rename to the same username.
        db.rollback()
        if username:
            raise UsernameTakenError(username)
        raise
    db.refresh(user)
    logger.info("Profile %s updated (%s)", user.id, ", ".join(sorted(changes)) or "no fields")
    return user

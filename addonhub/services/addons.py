from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from ..models import Addon, User
from ..schemas import AddonCreate, AddonUpdate

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("newest", "popular", "downloads")
COUNTER_FIELDS = ("views", "downloads")
ALL_CATEGORIES = "all"


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def serialize_author(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "avatar": user.avatar_url,
    }


def serialize_addon(addon: Addon) -> dict:
    return {
        "id": addon.id,
        "title": addon.title,
        "description": addon.description or "",
        "category": addon.category,
        "version": addon.version,
        "images": list(addon.images or []),
        "downloadLinks": list(addon.download_links or []),
        "coverImage": addon.cover_image,
        "views": addon.views or 0,
        "downloads": addon.downloads or 0,
        "featured": bool(addon.featured),
        "createdAt": isoformat(addon.created_at),
        "updatedAt": isoformat(addon.updated_at),
        "author": serialize_author(addon.user),
    }


def build_pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _order_by(sort_by: Optional[str]):
    if sort_by == "popular":
        return (Addon.views.desc(), Addon.created_at.desc(), Addon.id.desc())
    if sort_by == "downloads":
        return (Addon.downloads.desc(), Addon.created_at.desc(), Addon.id.desc())
    return (Addon.created_at.desc(), Addon.id.desc())


def paginate(query, page: int, limit: int, order_by) -> dict:
    """Run ``query`` as one page of denormalized addons plus its pagination block."""
    total = query.count()
    rows = (
        query.options(joinedload(Addon.user))
        .order_by(*order_by)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "addons": [serialize_addon(addon) for addon in rows],
        "pagination": build_pagination(page, limit, total),
    }


def list_addons(
    db: Session,
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: Optional[str] = "newest",
    page: int = 1,
    limit: int = 20,
    featured_only: bool = False,
) -> dict:
    query = db.query(Addon)
    if search:
        pattern = f"%{_escape_like(search)}%"
        query = query.filter(
            Addon.title.ilike(pattern, escape="\\")
            | Addon.description.ilike(pattern, escape="\\")
        )
    if category and category != ALL_CATEGORIES:
        query = query.filter(Addon.category == category)
    if featured_only:
        query = query.filter(Addon.featured.is_(True))
    return paginate(query, page, limit, _order_by(sort_by))


def list_addons_by_user(db: Session, user_id: str, page: int, limit: int) -> dict:
    query = db.query(Addon).filter(Addon.user_id == user_id)
    return paginate(query, page, limit, _order_by("newest"))


def get_addon(db: Session, addon_id: str) -> Optional[Addon]:
    return (
        db.query(Addon)
        .options(joinedload(Addon.user))
        .filter(Addon.id == addon_id)
        .first()
    )


def create_addon(db: Session, owner: User, payload: AddonCreate) -> Addon:
    addon = Addon(
        user_id=owner.id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        version=payload.version,
        images=list(payload.images),
        cover_image=payload.images[0],
        download_links=payload.link_dicts(),
        views=0,
        downloads=0,
        featured=False,
    )
    db.add(addon)
    db.commit()
    db.refresh(addon)
    logger.info("Addon %s created by user %s", addon.id, owner.id)
    return addon


def update_addon(db: Session, addon: Addon, payload: AddonUpdate) -> Addon:
    changes = payload.model_dump(exclude_unset=True, exclude={"download_links"})
    if "download_links" in payload.model_fields_set:
        changes["download_links"] = payload.link_dicts()
    if "images" in changes:
        changes["cover_image"] = changes["images"][0]

    for field, value in changes.items():
        setattr(addon, field, value)
    db.commit()
    db.refresh(addon)
    logger.info("Addon %s updated (%s)", addon.id, ", ".join(sorted(changes)) or "no fields")
    return addon


def delete_addon(db: Session, addon: Addon) -> None:
    addon_id = addon.id
    db.delete(addon)
    db.commit()
    logger.info("Addon %s deleted", addon_id)


def increment_counter(db: Session, addon_id: str, field: str) -> Optional[int]:
    """Atomically add one to a counter column and return its new value.

    The increment is issued as ``SET col = col + 1 RETURNING col`` so concurrent
    callers never lose updates and each sees the value its own update produced.
    Returns None when no addon has ``addon_id``.
    """
    if field not in COUNTER_FIELDS:
        raise ValueError(f"Unsupported counter: {field}")
    column = getattr(Addon, field)
    statement = (
        update(Addon)
        .where(Addon.id == addon_id)
        .values({column: column + 1})
        .returning(column)
        .execution_options(synchronize_session=False)
    )
    value = db.execute(statement).scalar_one_or_none()
    if value is None:
        db.rollback()
        return None
    db.commit()
    return value


def increment_views(db: Session, addon_id: str) -> Optional[int]:
    return increment_counter(db, addon_id, "views")


def increment_downloads(db: Session, addon_id: str) -> Optional[int]:
    return increment_counter(db, addon_id, "downloads")


def set_featured(db: Session, addon: Addon, featured: bool) -> Addon:
    addon.featured = featured
    db.commit()
    db.refresh(addon)
    logger.info("Addon %s featured=%s", addon.id, featured)
    return addon

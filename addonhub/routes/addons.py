from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..db import get_db
from ..models import Addon, User
from ..schemas import (
    AddonCreate,
    AddonListOut,
    AddonMutationOut,
    AddonOut,
    AddonUpdate,
    DownloadsOut,
    MessageOut,
    ViewsOut,
)
from ..services import addons as addon_service
from .deps import get_current_user, get_current_user_optional

router = APIRouter()


def _get_owned_addon(db: Session, addon_id: str, user: User, action: str) -> Addon:
    addon = addon_service.get_addon(db, addon_id)
    if not addon:
        raise HTTPException(status_code=404, detail="Addon not found")
    if addon.user_id != user.id:
        raise HTTPException(status_code=403, detail=f"You can only {action} your own addons")
    return addon


@router.get("", response_model=AddonListOut)
def list_addons(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    sort_by: Optional[str] = Query("newest", alias="sortBy"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    featured: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    return addon_service.list_addons(
        db,
        search=search,
        category=category,
        sort_by=sort_by,
        page=page,
        limit=limit,
        featured_only=featured == "true",
    )


@router.get("/{addon_id}", response_model=AddonOut)
def get_addon(
    addon_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    addon = addon_service.get_addon(db, addon_id)
    if not addon:
        raise HTTPException(status_code=404, detail="Addon not found")
    return addon_service.serialize_addon(addon)


@router.post("", response_model=AddonMutationOut, status_code=201)
def create_addon(
    payload: AddonCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    addon = addon_service.create_addon(db, current_user, payload)
    return {
        "message": "Addon created successfully",
        "addon": addon_service.serialize_addon(addon),
    }


@router.put("/{addon_id}", response_model=AddonMutationOut)
def update_addon(
    addon_id: str,
    payload: AddonUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    addon = _get_owned_addon(db, addon_id, current_user, "edit")
    addon = addon_service.update_addon(db, addon, payload)
    return {
        "message": "Addon updated successfully",
        "addon": addon_service.serialize_addon(addon),
    }


@router.delete("/{addon_id}", response_model=MessageOut)
def delete_addon(
    addon_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    addon = _get_owned_addon(db, addon_id, current_user, "delete")
    addon_service.delete_addon(db, addon)
    return {"message": "Addon deleted successfully"}


@router.patch("/{addon_id}/views", response_model=ViewsOut)
def increment_views(addon_id: str, db: Session = Depends(get_db)):
    views = addon_service.increment_views(db, addon_id)
    if views is None:
        raise HTTPException(status_code=404, detail="Addon not found")
    return {"views": views}


@router.patch("/{addon_id}/downloads", response_model=DownloadsOut)
def increment_downloads(addon_id: str, db: Session = Depends(get_db)):
    downloads = addon_service.increment_downloads(db, addon_id)
    if downloads is None:
        raise HTTPException(status_code=404, detail="Addon not found")
    return {"downloads": downloads}

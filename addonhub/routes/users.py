from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..db import get_db
from ..models import User
from ..schemas import AddonListOut, ProfileOut, ProfileUpdateOut, UserProfileUpdate
from ..services import addons as addon_service
from ..services import profiles as profile_service
from .deps import require_profile_owner

router = APIRouter()


@router.get("/{user_id}", response_model=ProfileOut)
def get_user_profile(user_id: str, db: Session = Depends(get_db)):
    profile = profile_service.get_profile(db, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


@router.get("/{user_id}/addons", response_model=AddonListOut)
def list_user_addons(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    return addon_service.list_addons_by_user(db, user_id, page, limit)


@router.put("/{user_id}", response_model=ProfileUpdateOut)
def update_user_profile(
    user_id: str,
    payload: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_profile_owner),
):
    try:
        user = profile_service.update_profile(db, current_user, payload)
    except profile_service.UsernameTakenError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {
        "message": "Profile updated successfully",
        "user": profile_service.serialize_self_user(user),
    }

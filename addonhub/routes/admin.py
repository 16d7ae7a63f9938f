from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import User
from ..schemas import AddonMutationOut, FeaturedUpdate
from ..services import addons as addon_service
from .deps import require_admin

router = APIRouter()


@router.patch("/addons/{addon_id}/featured", response_model=AddonMutationOut)
def set_addon_featured(
    addon_id: str,
    payload: FeaturedUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    addon = addon_service.get_addon(db, addon_id)
    if not addon:
        raise HTTPException(status_code=404, detail="Addon not found")
    addon = addon_service.set_featured(db, addon, payload.featured)
    message = "Addon featured" if addon.featured else "Addon unfeatured"
    return {"message": message, "addon": addon_service.serialize_addon(addon)}

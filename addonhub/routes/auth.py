import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..core.security import create_access_token, hash_password, verify_password
from ..db import get_db
from ..models import User
from ..schemas import AuthOut, CurrentUserOut, UserCreate, UserLogin
from ..services.profiles import serialize_self_user
from .deps import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=AuthOut, status_code=201)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    email = payload.email.lower()
    existing = (
        db.query(User)
        .filter((User.email == email) | (User.username == payload.username))
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=400,
            detail="User already exists with this email or username",
        )

    user = User(
        email=email,
        username=payload.username,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, user.username)
    return {
        "message": "User created successfully",
        "user": serialize_self_user(user),
        "token": create_access_token(user.id),
    }


@router.post("/login", response_model=AuthOut)
def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {
        "message": "Login successful",
        "user": serialize_self_user(user),
        "token": create_access_token(user.id),
    }


@router.get("/me", response_model=CurrentUserOut)
def get_me(current_user: User = Depends(get_current_user)):
    return {"user": serialize_self_user(current_user)}

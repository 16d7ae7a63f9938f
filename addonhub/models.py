import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .db import Base

ADDON_CATEGORIES = (
    "weapons",
    "mobs",
    "maps",
    "textures",
    "tools",
    "blocks",
    "items",
    "vehicles",
    "furniture",
    "other",
)
DEFAULT_ADDON_VERSION = "1.0.0"


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    # Stored naive, always UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(20), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(String(500), nullable=True)
    role = Column(String(20), default="user", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    addons = relationship(
        "Addon",
        back_populates="user",
        cascade="all, delete",
        order_by="Addon.created_at.desc()",
    )


class Addon(Base):
    __tablename__ = "addons"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, default="", nullable=False)
    category = Column(String(20), index=True, nullable=False)
    version = Column(String(40), default=DEFAULT_ADDON_VERSION, nullable=False)
    images = Column(JSON, default=list, nullable=False)
    cover_image = Column(Text, nullable=True)
    download_links = Column(JSON, default=list, nullable=False)
    views = Column(Integer, default=0, nullable=False)
    downloads = Column(Integer, default=0, nullable=False)
    featured = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="addons")

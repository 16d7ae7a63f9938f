from typing import List, Literal, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import DEFAULT_ADDON_VERSION

AddonCategory = Literal[
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
]

_IMAGE_PREFIXES = ("http://", "https://", "data:image/")


def is_absolute_uri(value: str) -> bool:
    if not value or any(char.isspace() for char in value):
        return False
    parts = urlsplit(value)
    return bool(parts.scheme and parts.netloc)


def is_image_source(value: str) -> bool:
    return value.startswith(_IMAGE_PREFIXES)


class _RequestModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests


class DownloadLinkIn(_RequestModel):
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    platform: Optional[str] = Field(default=None, min_length=1)

    @field_validator("url")
    @classmethod
    def url_is_absolute(cls, value: str) -> str:
        if not is_absolute_uri(value):
            raise ValueError("must be a valid uri")
        return value


class _AddonPayload(_RequestModel):
    @field_validator("images", check_fields=False)
    @classmethod
    def images_are_urls_or_data_uris(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        for index, image in enumerate(value):
            if not is_image_source(image):
                raise ValueError(
                    f"image {index} must be an http(s) URL or a data:image/ URI"
                )
        return value

    def link_dicts(self) -> Optional[List[dict]]:
        links = getattr(self, "download_links", None)
        if links is None:
            return None
        return [link.model_dump(exclude_none=True) for link in links]


class AddonCreate(_AddonPayload):
    title: str = Field(min_length=1, max_length=100)
    description: str = ""
    category: AddonCategory
    version: str = Field(default=DEFAULT_ADDON_VERSION, min_length=1)
    images: List[str] = Field(min_length=1)
    download_links: List[DownloadLinkIn] = Field(alias="downloadLinks", min_length=1)


class AddonUpdate(_AddonPayload):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[AddonCategory] = None
    version: Optional[str] = Field(default=None, min_length=1)
    images: Optional[List[str]] = Field(default=None, min_length=1)
    download_links: Optional[List[DownloadLinkIn]] = Field(
        default=None, alias="downloadLinks", min_length=1
    )

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class FeaturedUpdate(_RequestModel):
    featured: bool


class UserProfileUpdate(_RequestModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=20)
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    bio: Optional[str] = Field(default=None, max_length=500)

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value

    @field_validator("username")
    @classmethod
    def username_alphanumeric(cls, value: str) -> str:
        if not (value.isascii() and value.isalnum()):
            raise ValueError("must only contain alpha-numeric characters")
        return value

    @field_validator("avatar_url")
    @classmethod
    def avatar_is_uri(cls, value: str) -> str:
        if value and not is_absolute_uri(value):
            raise ValueError("must be a valid uri")
        return value


class UserCreate(_RequestModel):
    username: str = Field(min_length=3, max_length=20)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

    @field_validator("username")
    @classmethod
    def username_alphanumeric(cls, value: str) -> str:
        if not (value.isascii() and value.isalnum()):
            raise ValueError("must only contain alpha-numeric characters")
        return value


class UserLogin(_RequestModel):
    email: EmailStr
    password: str = Field(min_length=1)


# Responses


class AuthorOut(_ResponseModel):
    id: str
    username: str
    avatar: Optional[str] = None


class AddonOut(_ResponseModel):
    id: str
    title: str
    description: str
    category: str
    version: str
    images: List[str]
    download_links: List[dict]
    cover_image: Optional[str] = None
    views: int
    downloads: int
    featured: bool
    created_at: str
    updated_at: str
    author: AuthorOut


class PaginationOut(_ResponseModel):
    page: int
    limit: int
    total: int
    pages: int


class AddonListOut(_ResponseModel):
    addons: List[AddonOut]
    pagination: PaginationOut


class AddonMutationOut(_ResponseModel):
    message: str
    addon: AddonOut


class MessageOut(_ResponseModel):
    message: str


class ViewsOut(_ResponseModel):
    views: int


class DownloadsOut(_ResponseModel):
    downloads: int


class UserPublicOut(_ResponseModel):
    id: str
    username: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    created_at: str


class UserSelfOut(_ResponseModel):
    id: str
    username: str
    email: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    role: str
    created_at: str


class ProfileStatsOut(_ResponseModel):
    total_addons: int
    total_views: int
    total_downloads: int


class ProfileOut(_ResponseModel):
    user: UserPublicOut
    addons: List[AddonOut]
    stats: ProfileStatsOut


class ProfileUpdateOut(_ResponseModel):
    message: str
    user: UserSelfOut


class AuthOut(_ResponseModel):
    message: str
    user: UserSelfOut
    token: str


class CurrentUserOut(_ResponseModel):
    user: UserSelfOut

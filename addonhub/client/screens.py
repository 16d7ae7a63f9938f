"""Per-screen view state for AddonHub front ends.

Each screen owns one :class:`FetchState` for its main fetch plus whatever
local state the screen needs (filters, carousel index, form fields). Screens
never share state with each other.
"""
from __future__ import annotations

import base64
import logging
import mimetypes
from pathlib import Path
from typing import Callable, List, Optional

import requests

from ..models import ADDON_CATEGORIES, DEFAULT_ADDON_VERSION
from ..schemas import is_absolute_uri, is_image_source
from .api import AddonHubClient, ApiError
from .state import FetchState

logger = logging.getLogger(__name__)

SORT_CHOICES = ("newest", "popular", "downloads")
ALL_CATEGORIES = "all"
NETWORK_ERROR = "Could not reach the server. Try again."


class _Screen:
    def __init__(self, client: AddonHubClient):
        self.client = client
        self.state: FetchState = FetchState.pending()

    def _fetch(self, loader: Callable[[], dict]) -> FetchState:
        self.state = FetchState.pending()
        try:
            data = loader()
        except ApiError as exc:
            self.state = FetchState.failure(exc.message)
        except requests.RequestException as exc:
            logger.warning("Request failed: %s", exc)
            self.state = FetchState.failure(NETWORK_ERROR)
        else:
            self.state = FetchState.success(data)
        return self.state

    def load(self) -> FetchState:
        raise NotImplementedError

    def retry(self) -> FetchState:
        return self.load()


class HomeScreen(_Screen):
    """Listing with search, category filter, sort order and page navigation."""

    def __init__(self, client: AddonHubClient, page_size: int = 20):
        super().__init__(client)
        self.page_size = page_size
        self.search = ""
        self.category = ALL_CATEGORIES
        self.sort_by = "newest"
        self.page = 1

    def load(self) -> FetchState:
        return self._fetch(
            lambda: self.client.get_addons(
                search=self.search or None,
                category=None if self.category == ALL_CATEGORIES else self.category,
                sort_by=self.sort_by,
                page=self.page,
                limit=self.page_size,
            )
        )

    def set_search(self, query: str) -> FetchState:
        self.search = query.strip()
        self.page = 1
        return self.load()

    def set_category(self, category: str) -> FetchState:
        if category != ALL_CATEGORIES and category not in ADDON_CATEGORIES:
            raise ValueError(f"Unknown category: {category}")
        self.category = category
        self.page = 1
        return self.load()

    def set_sort(self, sort_by: str) -> FetchState:
        if sort_by not in SORT_CHOICES:
            raise ValueError(f"Unknown sort order: {sort_by}")
        self.sort_by = sort_by
        self.page = 1
        return self.load()

    @property
    def addons(self) -> List[dict]:
        return self.state.data["addons"] if self.state.is_success else []

    @property
    def featured_addons(self) -> List[dict]:
        return [addon for addon in self.addons if addon.get("featured")]

    @property
    def pagination(self) -> Optional[dict]:
        return self.state.data["pagination"] if self.state.is_success else None

    @property
    def has_next_page(self) -> bool:
        pagination = self.pagination
        return bool(pagination) and self.page < pagination["pages"]

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    def next_page(self) -> FetchState:
        if self.has_next_page:
            self.page += 1
            return self.load()
        return self.state

    def previous_page(self) -> FetchState:
        if self.has_previous_page:
            self.page -= 1
            return self.load()
        return self.state


class AddonDetailScreen(_Screen):
    """Single addon page: image carousel and download actions.

    Every successful load counts one view; every download counts one download.
    """

    def __init__(self, client: AddonHubClient, addon_id: str):
        super().__init__(client)
        self.addon_id = addon_id
        self.image_index = 0

    def load(self) -> FetchState:
        self.image_index = 0
        state = self._fetch(lambda: self.client.get_addon(self.addon_id))
        if state.is_success:
            try:
                self.client.increment_views(self.addon_id)
            except (ApiError, requests.RequestException) as exc:
                logger.warning("Could not record view for %s: %s", self.addon_id, exc)
        return state

    @property
    def addon(self) -> Optional[dict]:
        return self.state.data if self.state.is_success else None

    @property
    def images(self) -> List[str]:
        return list(self.addon["images"]) if self.addon else []

    @property
    def current_image(self) -> Optional[str]:
        images = self.images
        return images[self.image_index] if images else None

    def next_image(self) -> int:
        count = len(self.images)
        if count > 1:
            self.image_index = (self.image_index + 1) % count
        return self.image_index

    def previous_image(self) -> int:
        count = len(self.images)
        if count > 1:
            self.image_index = (self.image_index - 1 + count) % count
        return self.image_index

    def select_image(self, index: int) -> int:
        if not 0 <= index < len(self.images):
            raise IndexError(f"No image at position {index}")
        self.image_index = index
        return self.image_index

    def download(self, link_index: int = 0) -> str:
        """Count a download and return the link URL to open."""
        addon = self.addon
        if addon is None:
            raise RuntimeError("Addon is not loaded")
        link = addon["downloadLinks"][link_index]
        try:
            result = self.client.increment_downloads(self.addon_id)
        except (ApiError, requests.RequestException) as exc:
            logger.warning("Could not record download for %s: %s", self.addon_id, exc)
        else:
            self.state = FetchState.success({**addon, "downloads": result["downloads"]})
        return link["url"]


class ProfileScreen(_Screen):
    def __init__(self, client: AddonHubClient, user_id: str):
        super().__init__(client)
        self.user_id = user_id

    def load(self) -> FetchState:
        return self._fetch(lambda: self.client.get_user(self.user_id))

    @property
    def user(self) -> Optional[dict]:
        return self.state.data["user"] if self.state.is_success else None

    @property
    def addons(self) -> List[dict]:
        return self.state.data["addons"] if self.state.is_success else []

    @property
    def stats(self) -> dict:
        if self.state.is_success:
            return self.state.data["stats"]
        return {"totalAddons": 0, "totalViews": 0, "totalDownloads": 0}


class DashboardScreen(ProfileScreen):
    """The signed-in creator's own profile, with delete support."""

    def __init__(self, client: AddonHubClient, user_id: str):
        super().__init__(client, user_id)
        self.action_error: Optional[str] = None

    def delete_addon(self, addon_id: str) -> bool:
        self.action_error = None
        try:
            self.client.delete_addon(addon_id)
        except ApiError as exc:
            self.action_error = exc.message
            return False
        except requests.RequestException:
            self.action_error = NETWORK_ERROR
            return False

        if self.state.is_success:
            data = self.state.data
            removed = [addon for addon in data["addons"] if addon["id"] == addon_id]
            remaining = [addon for addon in data["addons"] if addon["id"] != addon_id]
            stats = dict(data["stats"])
            stats["totalAddons"] = len(remaining)
            stats["totalViews"] -= sum(addon["views"] for addon in removed)
            stats["totalDownloads"] -= sum(addon["downloads"] for addon in removed)
            self.state = FetchState.success({**data, "addons": remaining, "stats": stats})
        return True


def image_file_to_data_uri(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise ValueError(f"{path.name} is not an image file")
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class AddonFormScreen:
    """Upload form, or edit form when ``addon_id`` is given.

    Blank image rows and incomplete download-link rows are dropped on submit,
    and the remaining values are checked against the same rules the API
    enforces so obvious mistakes never leave the client.
    """

    def __init__(self, client: AddonHubClient, addon_id: Optional[str] = None):
        self.client = client
        self.addon_id = addon_id
        self.title = ""
        self.description = ""
        self.category = "other"
        self.version = DEFAULT_ADDON_VERSION
        self.images: List[str] = [""]
        self.download_links: List[dict] = [{"name": "", "url": ""}]
        self.state: FetchState = FetchState.success(None)

    @property
    def edit_mode(self) -> bool:
        return self.addon_id is not None

    def load(self) -> FetchState:
        if not self.edit_mode:
            return self.state
        self.state = FetchState.pending()
        try:
            addon = self.client.get_addon(self.addon_id)
        except ApiError as exc:
            self.state = FetchState.failure(exc.message)
            return self.state
        except requests.RequestException:
            self.state = FetchState.failure(NETWORK_ERROR)
            return self.state
        self.title = addon["title"]
        self.description = addon["description"]
        self.category = addon["category"]
        self.version = addon["version"]
        self.images = list(addon["images"]) or [""]
        self.download_links = [dict(link) for link in addon["downloadLinks"]] or [
            {"name": "", "url": ""}
        ]
        self.state = FetchState.success(addon)
        return self.state

    def set_image(self, index: int, value: str) -> None:
        self.images[index] = value

    def set_image_file(self, index: int, path) -> None:
        self.images[index] = image_file_to_data_uri(Path(path))

    def add_image(self) -> None:
        self.images.append("")

    def remove_image(self, index: int) -> None:
        if len(self.images) > 1:
            del self.images[index]

    def set_download_link(self, index: int, field: str, value: str) -> None:
        if field not in ("name", "url", "platform"):
            raise ValueError(f"Unknown download link field: {field}")
        self.download_links[index] = {**self.download_links[index], field: value}

    def add_download_link(self) -> None:
        self.download_links.append({"name": "", "url": ""})

    def remove_download_link(self, index: int) -> None:
        if len(self.download_links) > 1:
            del self.download_links[index]

    def payload(self) -> dict:
        images = [image for image in self.images if image.strip()]
        links = []
        for link in self.download_links:
            if not (link.get("name", "").strip() and link.get("url", "").strip()):
                continue
            cleaned = {"name": link["name"], "url": link["url"]}
            if link.get("platform"):
                cleaned["platform"] = link["platform"]
            links.append(cleaned)
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "version": self.version,
            "images": images,
            "downloadLinks": links,
        }

    def validate(self) -> Optional[str]:
        payload = self.payload()
        if not payload["title"]:
            return "Title is required"
        if len(payload["title"]) > 100:
            return "Title must be at most 100 characters"
        if payload["category"] not in ADDON_CATEGORIES:
            return "Choose a valid category"
        if not payload["images"]:
            return "Add at least one image"
        if not all(is_image_source(image) for image in payload["images"]):
            return "Images must be http(s) URLs or uploaded image files"
        if not payload["downloadLinks"]:
            return "Add at least one download link"
        if not all(is_absolute_uri(link["url"]) for link in payload["downloadLinks"]):
            return "Download links must be valid URLs"
        return None

    def submit(self) -> FetchState:
        problem = self.validate()
        if problem:
            self.state = FetchState.failure(problem)
            return self.state

        self.state = FetchState.pending()
        try:
            if self.edit_mode:
                result = self.client.update_addon(self.addon_id, self.payload())
            else:
                result = self.client.create_addon(self.payload())
        except ApiError as exc:
            self.state = FetchState.failure(exc.message)
        except requests.RequestException:
            self.state = FetchState.failure(NETWORK_ERROR)
        else:
            self.addon_id = result["addon"]["id"]
            self.state = FetchState.success(result["addon"])
        return self.state

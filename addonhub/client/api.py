from __future__ import annotations

from typing import Any, Optional

import requests

DEFAULT_TIMEOUT = 15
FALLBACK_ERROR = "Something went wrong"


class ApiError(Exception):
    """Non-2xx response from the API, carrying the server's ``error`` message."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _clean_params(params: Optional[dict]) -> dict:
    cleaned = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


class AddonHubClient:
    """Thin HTTP client for the AddonHub API.

    ``session`` may be any object with a requests-style ``request`` method,
    which lets tests pass a FastAPI ``TestClient`` directly.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000/api",
        token: Optional[str] = None,
        session: Any = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, *, params: Optional[dict] = None, json: Any = None):
        response = self.session.request(
            method,
            f"{self.base_url}{path}",
            params=_clean_params(params),
            json=json,
            headers=self._headers(),
            timeout=self.timeout,
        )
        try:
            data = response.json()
        except ValueError:
            data = None
        if not 200 <= response.status_code < 300:
            message = data.get("error") if isinstance(data, dict) else None
            raise ApiError(response.status_code, message or FALLBACK_ERROR)
        return data

    # Auth

    def register(self, username: str, email: str, password: str) -> dict:
        data = self._request(
            "POST",
            "/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        self.token = data["token"]
        return data

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data

    def logout(self) -> None:
        self.token = None

    def get_current_user(self) -> dict:
        return self._request("GET", "/auth/me")

    # Addons

    def get_addons(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort_by: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        featured: Optional[bool] = None,
    ) -> dict:
        params = {
            "search": search or None,
            "category": category,
            "sortBy": sort_by,
            "page": page,
            "limit": limit,
            "featured": featured,
        }
        return self._request("GET", "/addons", params=params)

    def get_addon(self, addon_id: str) -> dict:
        return self._request("GET", f"/addons/{addon_id}")

    def create_addon(self, addon_data: dict) -> dict:
        return self._request("POST", "/addons", json=addon_data)

    def update_addon(self, addon_id: str, addon_data: dict) -> dict:
        return self._request("PUT", f"/addons/{addon_id}", json=addon_data)

    def delete_addon(self, addon_id: str) -> dict:
        return self._request("DELETE", f"/addons/{addon_id}")

    def increment_views(self, addon_id: str) -> dict:
        return self._request("PATCH", f"/addons/{addon_id}/views")

    def increment_downloads(self, addon_id: str) -> dict:
        return self._request("PATCH", f"/addons/{addon_id}/downloads")

    def set_featured(self, addon_id: str, featured: bool) -> dict:
        return self._request(
            "PATCH", f"/admin/addons/{addon_id}/featured", json={"featured": featured}
        )

    # Users

    def get_user(self, user_id: str) -> dict:
        return self._request("GET", f"/users/{user_id}")

    def get_user_addons(
        self, user_id: str, page: Optional[int] = None, limit: Optional[int] = None
    ) -> dict:
        return self._request(
            "GET", f"/users/{user_id}/addons", params={"page": page, "limit": limit}
        )

    def update_profile(self, user_id: str, profile_data: dict) -> dict:
        return self._request("PUT", f"/users/{user_id}", json=profile_data)

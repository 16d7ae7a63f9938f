"""
Tests for the /api/addons endpoints
"""
from datetime import datetime, timedelta

import pytest

from addonhub.models import Addon, utcnow


def _create(client, headers, payload):
    response = client.post("/api/addons", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["addon"]


class TestCreateAddon:
    def test_create_returns_denormalized_addon(self, client, make_user, auth_headers, addon_payload):
        user = make_user(username="alice")
        response = client.post("/api/addons", json=addon_payload(), headers=auth_headers(user))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Addon created successfully"
        addon = body["addon"]
        assert addon["title"] == "Modern Weapons Pack"
        assert addon["category"] == "weapons"
        assert addon["version"] == "1.0.0"
        assert addon["coverImage"] == "https://x/a.png"
        assert addon["views"] == 0
        assert addon["downloads"] == 0
        assert addon["featured"] is False
        assert addon["downloadLinks"] == [{"name": "MediaFire", "url": "https://mediafire.com/x"}]
        assert addon["author"] == {"id": user.id, "username": "alice", "avatar": None}
        assert addon["createdAt"].endswith("Z")

    def test_cover_image_is_first_image(self, client, make_user, auth_headers, addon_payload):
        user = make_user()
        payload = addon_payload(images=["https://x/1.png", "https://x/2.png"])
        addon = _create(client, auth_headers(user), payload)
        assert addon["coverImage"] == "https://x/1.png"
        assert addon["images"] == ["https://x/1.png", "https://x/2.png"]

    def test_data_uri_images_are_accepted(self, client, make_user, auth_headers, addon_payload):
        user = make_user()
        payload = addon_payload(images=["data:image/png;base64,iVBORw0KGgo="])
        addon = _create(client, auth_headers(user), payload)
        assert addon["coverImage"].startswith("data:image/png")

    def test_platform_is_kept_on_links(self, client, make_user, auth_headers, addon_payload):
        user = make_user()
        links = [{"name": "Drive", "url": "https://drive.example.com/f", "platform": "android"}]
        addon = _create(client, auth_headers(user), addon_payload(downloadLinks=links))
        assert addon["downloadLinks"] == links

    def test_requires_token(self, client, addon_payload):
        response = client.post("/api/addons", json=addon_payload())
        assert response.status_code == 401
        assert response.json() == {"error": "Access token required"}

    def test_rejects_invalid_token(self, client, addon_payload):
        headers = {"Authorization": "Bearer not-a-jwt"}
        response = client.post("/api/addons", json=addon_payload(), headers=headers)
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or expired token"}

    @pytest.mark.parametrize(
        "overrides",
        [
            {"images": []},
            {"downloadLinks": []},
            {"downloadLinks": [{"name": "Bad", "url": "not a url"}]},
            {"downloadLinks": [{"name": "", "url": "https://x/y"}]},
            {"images": ["ftp://x/a.png"]},
            {"category": "spaceships"},
            {"title": ""},
            {"title": "x" * 101},
            {"featured": True},
            {"views": 100},
        ],
    )
    def test_invalid_payload_is_rejected_and_nothing_stored(
        self, client, db, make_user, auth_headers, addon_payload, overrides
    ):
        user = make_user()
        response = client.post(
            "/api/addons", json=addon_payload(**overrides), headers=auth_headers(user)
        )
        assert response.status_code == 400
        assert isinstance(response.json()["error"], str)
        assert db.query(Addon).count() == 0

    def test_missing_title_names_the_field(self, client, make_user, auth_headers, addon_payload):
        user = make_user()
        payload = addon_payload()
        del payload["title"]
        response = client.post("/api/addons", json=payload, headers=auth_headers(user))
        assert response.status_code == 400
        assert response.json()["error"].startswith("title:")


class TestGetAddon:
    def test_get_by_id(self, client, make_user, auth_headers, addon_payload):
        user = make_user()
        created = _create(client, auth_headers(user), addon_payload())

        response = client.get(f"/api/addons/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    def test_unknown_id_is_404(self, client):
        response = client.get("/api/addons/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"error": "Addon not found"}

    def test_get_does_not_count_a_view(self, client, make_user, make_addon):
        addon = make_addon(make_user())
        client.get(f"/api/addons/{addon.id}")
        client.get(f"/api/addons/{addon.id}")
        assert client.get(f"/api/addons/{addon.id}").json()["views"] == 0


class TestListAddons:
    def test_default_listing_is_newest_first(self, client, make_user, make_addon):
        user = make_user()
        first = make_addon(user)
        second = make_addon(user)
        third = make_addon(user)

        body = client.get("/api/addons").json()
        assert [addon["id"] for addon in body["addons"]] == [third.id, second.id, first.id]
        assert body["pagination"] == {"page": 1, "limit": 20, "total": 3, "pages": 1}

    def test_pagination(self, client, make_user, make_addon):
        user = make_user()
        for _ in range(5):
            make_addon(user)

        body = client.get("/api/addons", params={"page": 3, "limit": 2}).json()
        assert len(body["addons"]) == 1
        assert body["pagination"] == {"page": 3, "limit": 2, "total": 5, "pages": 3}

    def test_page_past_the_end_is_empty(self, client, make_user, make_addon):
        make_addon(make_user())
        body = client.get("/api/addons", params={"page": 4}).json()
        assert body["addons"] == []
        assert body["pagination"]["total"] == 1

    def test_empty_store(self, client):
        body = client.get("/api/addons").json()
        assert body == {"addons": [], "pagination": {"page": 1, "limit": 20, "total": 0, "pages": 0}}

    @pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"limit": 101}, {"page": "x"}])
    def test_bad_paging_parameters(self, client, params):
        response = client.get("/api/addons", params=params)
        assert response.status_code == 400
        assert "error" in response.json()

    def test_search_matches_title_or_description_case_insensitively(
        self, client, make_user, make_addon
    ):
        user = make_user()
        by_title = make_addon(user, title="Dragon Mobs")
        by_description = make_addon(user, description="Adds a fire-breathing DRAGON")
        make_addon(user, title="Stone Bricks")

        body = client.get("/api/addons", params={"search": "dragon"}).json()
        ids = {addon["id"] for addon in body["addons"]}
        assert ids == {by_title.id, by_description.id}
        assert body["pagination"]["total"] == 2

    def test_search_treats_wildcards_literally(self, client, make_user, make_addon):
        user = make_user()
        discount = make_addon(user, title="100% Better Swords")
        make_addon(user, title="1000 Better Swords")

        body = client.get("/api/addons", params={"search": "100%"}).json()
        assert [addon["id"] for addon in body["addons"]] == [discount.id]

    def test_category_filter(self, client, make_user, make_addon):
        user = make_user()
        mob = make_addon(user, category="mobs")
        make_addon(user, category="maps")

        body = client.get("/api/addons", params={"category": "mobs"}).json()
        assert [addon["id"] for addon in body["addons"]] == [mob.id]

        body = client.get("/api/addons", params={"category": "all"}).json()
        assert body["pagination"]["total"] == 2

    def test_featured_filter(self, client, make_user, make_addon):
        user = make_user()
        featured = make_addon(user, featured=True)
        make_addon(user)

        body = client.get("/api/addons", params={"featured": "true"}).json()
        assert [addon["id"] for addon in body["addons"]] == [featured.id]

        body = client.get("/api/addons", params={"featured": "false"}).json()
        assert body["pagination"]["total"] == 2

    def test_sort_by_popular_and_downloads(self, client, make_user, make_addon):
        user = make_user()
        quiet = make_addon(user, views=1, downloads=50)
        busy = make_addon(user, views=90, downloads=2)
        middle = make_addon(user, views=10, downloads=10)

        popular = client.get("/api/addons", params={"sortBy": "popular"}).json()
        assert [a["id"] for a in popular["addons"]] == [busy.id, middle.id, quiet.id]

        downloaded = client.get("/api/addons", params={"sortBy": "downloads"}).json()
        assert [a["id"] for a in downloaded["addons"]] == [quiet.id, middle.id, busy.id]

    def test_sort_ties_fall_back_to_newest(self, client, make_user, make_addon):
        user = make_user()
        older = make_addon(user, views=5)
        newer = make_addon(user, views=5)

        body = client.get("/api/addons", params={"sortBy": "popular"}).json()
        assert [a["id"] for a in body["addons"]] == [newer.id, older.id]

    def test_unknown_sort_uses_newest(self, client, make_user, make_addon):
        user = make_user()
        older = make_addon(user)
        newer = make_addon(user)

        body = client.get("/api/addons", params={"sortBy": "alphabetical"}).json()
        assert [a["id"] for a in body["addons"]] == [newer.id, older.id]

    def test_listing_is_public_even_with_bad_token(self, client, make_user, make_addon):
        make_addon(make_user())
        response = client.get("/api/addons", headers={"Authorization": "Bearer junk"})
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1


class TestUpdateAddon:
    def test_owner_can_update_some_fields(self, client, make_user, auth_headers, addon_payload):
        user = make_user()
        created = _create(client, auth_headers(user), addon_payload())

        response = client.put(
            f"/api/addons/{created['id']}",
            json={"title": "Modern Weapons Pack II", "version": "2.0.0"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Addon updated successfully"
        assert body["addon"]["title"] == "Modern Weapons Pack II"
        assert body["addon"]["version"] == "2.0.0"
        assert body["addon"]["description"] == created["description"]
        assert body["addon"]["images"] == created["images"]

    def test_update_advances_updated_at_only(self, client, make_user, make_addon, auth_headers):
        user = make_user()
        stamp = utcnow() - timedelta(hours=1)
        addon = make_addon(user, created_at=stamp, updated_at=stamp)
        before = client.get(f"/api/addons/{addon.id}").json()

        response = client.put(
            f"/api/addons/{addon.id}",
            json={"description": "Now with more"},
            headers=auth_headers(user),
        )
        after = response.json()["addon"]
        assert after["createdAt"] == before["createdAt"]
        assert datetime.fromisoformat(after["updatedAt"].rstrip("Z")) > datetime.fromisoformat(
            before["updatedAt"].rstrip("Z")
        )

    def test_new_images_recompute_cover(self, client, make_user, auth_headers, addon_payload):
        user = make_user()
        created = _create(client, auth_headers(user), addon_payload())

        response = client.put(
            f"/api/addons/{created['id']}",
            json={"images": ["https://x/new.png", "https://x/a.png"]},
            headers=auth_headers(user),
        )
        assert response.json()["addon"]["coverImage"] == "https://x/new.png"

    @pytest.mark.parametrize(
        "update",
        [
            {"images": []},
            {"downloadLinks": []},
            {"title": None},
            {"category": "spaceships"},
            {"featured": True},
        ],
    )
    def test_invalid_update_is_rejected(
        self, client, db, make_user, make_addon, auth_headers, update
    ):
        user = make_user()
        addon = make_addon(user, title="Original")

        response = client.put(f"/api/addons/{addon.id}", json=update, headers=auth_headers(user))
        assert response.status_code == 400
        db.expire_all()
        stored = db.get(Addon, addon.id)
        assert stored.title == "Original"
        assert stored.featured is False

    def test_non_owner_is_forbidden_and_record_unchanged(
        self, client, db, make_user, make_addon, auth_headers
    ):
        owner = make_user()
        intruder = make_user()
        addon = make_addon(owner, title="Mine")

        response = client.put(
            f"/api/addons/{addon.id}", json={"title": "Stolen"}, headers=auth_headers(intruder)
        )
        assert response.status_code == 403
        assert response.json() == {"error": "You can only edit your own addons"}
        db.expire_all()
        assert db.get(Addon, addon.id).title == "Mine"

    def test_unknown_addon_is_404(self, client, make_user, auth_headers):
        response = client.put(
            "/api/addons/missing", json={"title": "x"}, headers=auth_headers(make_user())
        )
        assert response.status_code == 404

    def test_requires_token(self, client, make_user, make_addon):
        addon = make_addon(make_user())
        response = client.put(f"/api/addons/{addon.id}", json={"title": "x"})
        assert response.status_code == 401


class TestDeleteAddon:
    def test_owner_can_delete(self, client, db, make_user, make_addon, auth_headers):
        user = make_user()
        addon = make_addon(user)

        response = client.delete(f"/api/addons/{addon.id}", headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json() == {"message": "Addon deleted successfully"}
        assert client.get(f"/api/addons/{addon.id}").status_code == 404
        db.expire_all()
        assert db.query(Addon).count() == 0

    def test_non_owner_is_forbidden(self, client, make_user, make_addon, auth_headers):
        addon = make_addon(make_user())
        response = client.delete(f"/api/addons/{addon.id}", headers=auth_headers(make_user()))
        assert response.status_code == 403
        assert response.json() == {"error": "You can only delete your own addons"}
        assert client.get(f"/api/addons/{addon.id}").status_code == 200

    def test_unknown_addon_is_404(self, client, make_user, auth_headers):
        response = client.delete("/api/addons/missing", headers=auth_headers(make_user()))
        assert response.status_code == 404
        assert response.json() == {"error": "Addon not found"}


class TestCounters:
    def test_views_increment(self, client, make_user, make_addon):
        addon = make_addon(make_user())
        assert client.patch(f"/api/addons/{addon.id}/views").json() == {"views": 1}
        assert client.patch(f"/api/addons/{addon.id}/views").json() == {"views": 2}
        assert client.get(f"/api/addons/{addon.id}").json()["views"] == 2

    def test_downloads_increment(self, client, make_user, make_addon):
        addon = make_addon(make_user(), downloads=7)
        response = client.patch(f"/api/addons/{addon.id}/downloads")
        assert response.status_code == 200
        assert response.json() == {"downloads": 8}

    def test_counters_are_independent(self, client, make_user, make_addon):
        addon = make_addon(make_user())
        client.patch(f"/api/addons/{addon.id}/views")
        stored = client.get(f"/api/addons/{addon.id}").json()
        assert stored["views"] == 1
        assert stored["downloads"] == 0

    @pytest.mark.parametrize("counter", ["views", "downloads"])
    def test_unknown_addon_is_404(self, client, counter):
        response = client.patch(f"/api/addons/missing/{counter}")
        assert response.status_code == 404
        assert response.json() == {"error": "Addon not found"}

    def test_counters_need_no_token(self, client, make_user, make_addon):
        addon = make_addon(make_user())
        assert client.patch(f"/api/addons/{addon.id}/downloads").status_code == 200


def test_publish_browse_and_count_scenario(client, make_user, auth_headers, addon_payload):
    creator = make_user(username="alice")
    created = _create(client, auth_headers(creator), addon_payload())

    listing = client.get("/api/addons", params={"category": "weapons"}).json()
    assert [addon["id"] for addon in listing["addons"]] == [created["id"]]

    assert client.patch(f"/api/addons/{created['id']}/views").json() == {"views": 1}
    assert client.patch(f"/api/addons/{created['id']}/downloads").json() == {"downloads": 1}

    profile = client.get(f"/api/users/{creator.id}").json()
    assert profile["stats"] == {"totalAddons": 1, "totalViews": 1, "totalDownloads": 1}

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from bistro.core.exceptions import InvalidationError
from bistro.repositories.dish import DishRepository
from bistro.services.revalidation import RevalidationDispatcher

DISHES = "/api/admin/dishes"
CATEGORIES = "/api/admin/categories"
SETTINGS = "/api/admin/settings"


def create_category(client: TestClient, **overrides: Any) -> dict[str, Any]:
    body = {"name": "מנות עיקריות", "type_scope": "RESTAURANT", **overrides}
    response = client.post(CATEGORIES, json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def create_dish(client: TestClient, **overrides: Any) -> dict[str, Any]:
    body = {"title": "Shakshuka", "price": 48, "type": "RESTAURANT", **overrides}
    response = client.post(DISHES, json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class FailingInvalidator:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def invalidate(self, path: str) -> None:
        self.calls.append(path)
        raise InvalidationError(path, "edge down")


# ------------------------------------------------------------------
# Dishes
# ------------------------------------------------------------------


def test_create_dish_generates_slug(admin_client: TestClient) -> None:
    dish = create_dish(admin_client, title="קובה סלק")
    assert dish["slug"] == "kvbh-slk"
    assert dish["status"] == "DRAFT"
    assert dish["is_vegan"] is False


def test_generated_slugs_are_unique(admin_client: TestClient) -> None:
    assert create_dish(admin_client)["slug"] == "shakshuka"
    assert create_dish(admin_client)["slug"] == "shakshuka-1"


def test_explicit_duplicate_slug_conflicts(admin_client: TestClient) -> None:
    create_dish(admin_client, slug="house-special")
    response = admin_client.post(DISHES, json={"title": "Other", "price": 10, "slug": "house-special"})
    assert response.status_code == 409
    assert response.json()["error"] == "CONFLICT"


@pytest.mark.parametrize(
    "body",
    [
        {"title": "", "price": 10},
        {"title": "Soup", "price": -1},
        {"title": "Soup", "price": 10, "slug": "Not A Slug"},
        {"title": "Soup", "price": 10, "spice_level": 4},
        {"price": 10},
    ],
)
def test_invalid_dish_body_is_rejected(admin_client: TestClient, body: dict) -> None:
    response = admin_client.post(DISHES, json=body)
    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "VALIDATION_ERROR"
    assert payload["details"]


def test_unknown_category_is_rejected(admin_client: TestClient) -> None:
    response = admin_client.post(DISHES, json={"title": "Soup", "price": 10, "category_id": 999})
    assert response.status_code == 400
    assert response.json()["details"] == {"category_id": "הקטגוריה לא נמצא"}


def test_list_filters_and_pagination(admin_client: TestClient) -> None:
    category = create_category(admin_client)
    create_dish(admin_client, title="Hummus", category_id=category["id"])
    create_dish(admin_client, title="Falafel", type="CATERING")
    create_dish(admin_client, title="Sabich", type="CATERING")

    body = admin_client.get(DISHES, params={"limit": 2}).json()
    assert body["meta"] == {"total": 3, "page": 1, "limit": 2, "hasMore": True}
    assert len(body["data"]) == 2

    catering = admin_client.get(DISHES, params={"type": "CATERING"}).json()["data"]
    assert {d["title"] for d in catering} == {"Falafel", "Sabich"}

    by_category = admin_client.get(DISHES, params={"category_id": category["id"]}).json()["data"]
    assert [d["title"] for d in by_category] == ["Hummus"]

    search = admin_client.get(DISHES, params={"search": "fal"}).json()["data"]
    assert [d["title"] for d in search] == ["Falafel"]

    drafts = admin_client.get(DISHES, params={"status": "DRAFT"}).json()["meta"]["total"]
    assert drafts == 3


def test_get_update_and_delete(admin_client: TestClient) -> None:
    dish = create_dish(admin_client)
    url = f"{DISHES}/{dish['id']}"

    assert admin_client.get(url).json()["data"]["title"] == "Shakshuka"

    patched = admin_client.patch(url, json={"price": 52.5}).json()["data"]
    assert patched["price"] == 52.5
    assert patched["title"] == "Shakshuka"

    replaced = admin_client.put(url, json={"title": "Green Shakshuka"}).json()["data"]
    assert replaced["slug"] == "green-shakshuka"

    assert admin_client.delete(url).status_code == 200
    missing = admin_client.get(url)
    assert missing.status_code == 404
    assert missing.json()["error"] == "NOT_FOUND"


def test_missing_dish_operations_return_404(admin_client: TestClient) -> None:
    assert admin_client.patch(f"{DISHES}/404", json={"price": 1}).status_code == 404
    assert admin_client.delete(f"{DISHES}/404").status_code == 404
    assert admin_client.post(f"{DISHES}/404/publish").status_code == 404


def test_publish_rules(admin_client: TestClient) -> None:
    category = create_category(admin_client)
    incomplete = create_dish(admin_client)
    response = admin_client.post(f"{DISHES}/{incomplete['id']}/publish")
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"

    free = create_dish(admin_client, title="Water", price=0, category_id=category["id"])
    assert admin_client.post(f"{DISHES}/{free['id']}/publish").status_code == 400

    dish = create_dish(admin_client, title="Hummus", category_id=category["id"])
    published = admin_client.post(f"{DISHES}/{dish['id']}/publish")
    assert published.status_code == 200
    assert published.json()["data"]["status"] == "PUBLISHED"
    assert published.json()["data"]["publish_at"] is not None

    again = admin_client.post(f"{DISHES}/{dish['id']}/publish")
    assert again.status_code == 409


# ------------------------------------------------------------------
# Public cache + revalidation
# ------------------------------------------------------------------


def test_public_list_shows_published_only_and_is_revalidated(admin_client: TestClient) -> None:
    category = create_category(admin_client)
    dish = create_dish(admin_client, title="Hummus", category_id=category["id"])

    first = admin_client.get("/api/public/dishes")
    assert first.headers["X-Cache"] == "MISS"
    assert first.json()["data"] == []
    assert admin_client.get("/api/public/dishes").headers["X-Cache"] == "HIT"

    admin_client.post(f"{DISHES}/{dish['id']}/publish")

    after = admin_client.get("/api/public/dishes")
    assert after.headers["X-Cache"] == "MISS"
    assert [d["slug"] for d in after.json()["data"]] == ["hummus"]


def test_public_detail_is_revalidated_on_update(admin_client: TestClient) -> None:
    category = create_category(admin_client)
    dish = create_dish(admin_client, title="Hummus", category_id=category["id"])
    admin_client.post(f"{DISHES}/{dish['id']}/publish")

    assert admin_client.get("/api/public/dishes/hummus").json()["data"]["price"] == 48
    admin_client.patch(f"{DISHES}/{dish['id']}", json={"price": 50})

    detail = admin_client.get("/api/public/dishes/hummus")
    assert detail.headers["X-Cache"] == "MISS"
    assert detail.json()["data"]["price"] == 50


def test_unrecognized_query_parameters_share_one_cache_entry(admin_client: TestClient) -> None:
    cache = admin_client.app.state.response_cache
    for i in range(50):
        admin_client.get("/api/public/dishes", params={"junk": i})

    assert cache.variant_count("/api/public/dishes") == 1
    assert admin_client.get("/api/public/dishes?junk=x").headers["X-Cache"] == "HIT"


def test_filter_order_does_not_split_the_cache(admin_client: TestClient) -> None:
    category = create_category(admin_client)
    first = admin_client.get(
        "/api/public/dishes", params={"type": "RESTAURANT", "category_id": category["id"]}
    )
    second = admin_client.get(
        "/api/public/dishes", params={"category_id": category["id"], "type": "RESTAURANT"}
    )
    assert first.headers["X-Cache"] == "MISS"
    assert second.headers["X-Cache"] == "HIT"


def test_read_overlapping_an_invalidation_is_not_cached(
    admin_client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    cache = admin_client.app.state.response_cache
    original = DishRepository.list_filtered
    raced = []

    async def list_then_race(self, **kwargs):
        result = await original(self, **kwargs)
        if not raced:
            raced.append(True)
            await cache.invalidate("/api/public/dishes")
        return result

    monkeypatch.setattr(DishRepository, "list_filtered", list_then_race)

    assert admin_client.get("/api/public/dishes").headers["X-Cache"] == "MISS"
    assert "/api/public/dishes" not in cache
    assert admin_client.get("/api/public/dishes").headers["X-Cache"] == "MISS"
    assert admin_client.get("/api/public/dishes").headers["X-Cache"] == "HIT"


def test_public_detail_hides_drafts(admin_client: TestClient) -> None:
    create_dish(admin_client, title="Secret")
    assert admin_client.get("/api/public/dishes/secret").status_code == 404


def test_invalidation_failure_does_not_fail_write(admin_client: TestClient) -> None:
    failing = FailingInvalidator()
    admin_client.app.state.revalidation = RevalidationDispatcher(failing)

    dish = create_dish(admin_client, title="Hummus")
    assert failing.calls == ["/api/public/dishes", "/api/public/dishes/hummus", "/menu"]

    response = admin_client.patch(f"{DISHES}/{dish['id']}", json={"price": 1})
    assert response.status_code == 200


# ------------------------------------------------------------------
# Categories
# ------------------------------------------------------------------


def test_category_crud_and_reorder(admin_client: TestClient) -> None:
    mains = create_category(admin_client)
    assert mains["slug"] == "mnvt-ykryvt"
    starters = create_category(admin_client, name="Starters", order=1)

    updated = admin_client.put(f"{CATEGORIES}/{mains['id']}", json={"order": 5}).json()["data"]
    assert updated["order"] == 5

    reordered = admin_client.post(
        f"{CATEGORIES}/reorder",
        json={"categories": [{"id": mains["id"], "order": 0}, {"id": starters["id"], "order": 1}]},
    ).json()["data"]
    assert [c["id"] for c in reordered] == [mains["id"], starters["id"]]

    public = admin_client.get("/api/public/categories").json()["data"]
    assert [c["name"] for c in public] == ["מנות עיקריות", "Starters"]


def test_reorder_unknown_category_is_404(admin_client: TestClient) -> None:
    response = admin_client.post(f"{CATEGORIES}/reorder", json={"categories": [{"id": 9, "order": 0}]})
    assert response.status_code == 404


def test_category_delete_refused_while_in_use(admin_client: TestClient) -> None:
    category = create_category(admin_client)
    dish = create_dish(admin_client, category_id=category["id"])

    refused = admin_client.delete(f"{CATEGORIES}/{category['id']}")
    assert refused.status_code == 409
    assert refused.json()["details"] == {"dishCount": 1}

    admin_client.delete(f"{DISHES}/{dish['id']}")
    assert admin_client.delete(f"{CATEGORIES}/{category['id']}").status_code == 200


def test_category_slug_conflict(admin_client: TestClient) -> None:
    create_category(admin_client, name="Desserts", slug="desserts")
    response = admin_client.post(CATEGORIES, json={"name": "Sweets", "slug": "desserts"})
    assert response.status_code == 409


# ------------------------------------------------------------------
# Settings
# ------------------------------------------------------------------


def test_settings_defaults(admin_client: TestClient) -> None:
    data = admin_client.get(SETTINGS).json()["data"]
    assert data["ui"] == {"rtl": True}
    assert data["brand"] == {}


def test_settings_patch_merges_sections(admin_client: TestClient) -> None:
    admin_client.patch(SETTINGS, json={"brand": {"name": "Bistro", "tagline": "Since 1999"}})
    response = admin_client.patch(SETTINGS, json={"brand": {"tagline": "Fresh"}, "contact": {"phone": "03-555"}})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["brand"] == {"name": "Bistro", "tagline": "Fresh"}
    assert data["contact"] == {"phone": "03-555"}
    assert data["ui"] == {"rtl": True}
    assert response.json()["message"]


def test_settings_update_revalidates_public_settings(admin_client: TestClient) -> None:
    assert admin_client.get("/api/public/settings").headers["X-Cache"] == "MISS"
    assert admin_client.get("/api/public/settings").headers["X-Cache"] == "HIT"

    admin_client.put(SETTINGS, json={"hours": {"sun": "12-23"}})

    public = admin_client.get("/api/public/settings")
    assert public.headers["X-Cache"] == "MISS"
    assert public.json()["data"]["hours"] == {"sun": "12-23"}


def test_settings_section_must_be_object(admin_client: TestClient) -> None:
    response = admin_client.patch(SETTINGS, json={"brand": "Bistro"})
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

DISHES = "/api/admin/dishes"
BULK = "/api/admin/dishes/bulk"
CATEGORIES = "/api/admin/categories"
BUNDLES = "/api/admin/bundles"
PUBLIC_BUNDLES = "/api/public/bundles"


def create_category(client: TestClient, name: str = "סלטים") -> dict[str, Any]:
    response = client.post(CATEGORIES, json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()["data"]


def create_dish(client: TestClient, title: str) -> dict[str, Any]:
    response = client.post(DISHES, json={"title": title, "price": 40, "type": "CATERING"})
    assert response.status_code == 201, response.text
    return response.json()["data"]


def create_bundle(client: TestClient, **overrides: Any) -> dict[str, Any]:
    body = {
        "title": "Shabbat Tray",
        "price_per_person": 95,
        "includes": {"mains": 2, "salads": 4, "desserts": 1},
        **overrides,
    }
    response = client.post(BUNDLES, json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# ------------------------------------------------------------------
# Bundles
# ------------------------------------------------------------------


def test_create_bundle_defaults(admin_client: TestClient) -> None:
    bundle = create_bundle(admin_client)

    assert bundle["slug"] == "shabbat-tray"
    assert bundle["status"] == "DRAFT"
    assert bundle["min_persons"] == 10
    assert bundle["max_persons"] is None
    assert bundle["includes"] == {"mains": 2, "salads": 4, "desserts": 1}
    assert bundle["dish_ids"] == []


def test_bundle_slugs_are_unique(admin_client: TestClient) -> None:
    assert create_bundle(admin_client)["slug"] == "shabbat-tray"
    assert create_bundle(admin_client)["slug"] == "shabbat-tray-1"

    response = admin_client.post(
        BUNDLES, json={"title": "Other", "price_per_person": 10, "slug": "shabbat-tray"}
    )
    assert response.status_code == 409


@pytest.mark.parametrize(
    "body",
    [
        {"title": "", "price_per_person": 10},
        {"title": "Tray", "price_per_person": -1},
        {"title": "Tray", "price_per_person": 10, "min_persons": 30, "max_persons": 20},
        {"title": "Tray", "price_per_person": 10, "includes": {"mains": -1}},
    ],
)
def test_invalid_bundle_body_is_rejected(admin_client: TestClient, body: dict) -> None:
    response = admin_client.post(BUNDLES, json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_bundle_with_unknown_dish_is_rejected(admin_client: TestClient) -> None:
    dish = create_dish(admin_client, "Tabbouleh")
    response = admin_client.post(
        BUNDLES, json={"title": "Tray", "price_per_person": 10, "dish_ids": [dish["id"], 999]}
    )
    assert response.status_code == 400
    assert "999" in response.json()["details"]["dish_ids"]


def test_bundle_update_and_delete(admin_client: TestClient) -> None:
    bundle = create_bundle(admin_client, max_persons=40)

    renamed = admin_client.patch(f"{BUNDLES}/{bundle['id']}", json={"title": "Friday Tray"})
    assert renamed.status_code == 200
    assert renamed.json()["data"]["slug"] == "friday-tray"

    too_many = admin_client.put(f"{BUNDLES}/{bundle['id']}", json={"min_persons": 50})
    assert too_many.status_code == 400
    assert "max_persons" in too_many.json()["details"]

    cleared = admin_client.put(
        f"{BUNDLES}/{bundle['id']}", json={"max_persons": None, "min_persons": 50}
    )
    assert cleared.status_code == 200
    assert cleared.json()["data"]["max_persons"] is None

    deleted = admin_client.delete(f"{BUNDLES}/{bundle['id']}")
    assert deleted.json()["data"] == {"id": bundle["id"], "deleted": True}
    assert admin_client.get(f"{BUNDLES}/{bundle['id']}").status_code == 404


def test_bundle_list_filters(admin_client: TestClient) -> None:
    create_bundle(admin_client, title="Brunch Box")
    create_bundle(admin_client, title="Party Tray", status="PUBLISHED")

    published = admin_client.get(BUNDLES, params={"status": "PUBLISHED"}).json()
    assert [b["title"] for b in published["data"]] == ["Party Tray"]

    searched = admin_client.get(BUNDLES, params={"search": "brunch"}).json()
    assert searched["meta"]["total"] == 1


def test_missing_bundle_is_localized_404(admin_client: TestClient) -> None:
    response = admin_client.get(f"{BUNDLES}/999")
    assert response.status_code == 404
    assert response.json()["message"] == "המגש לא נמצא"


def test_bundle_routes_are_gated(client: TestClient) -> None:
    assert client.get(BUNDLES).status_code == 401


# ------------------------------------------------------------------
# Public bundles
# ------------------------------------------------------------------


def test_public_bundles_are_published_only_and_revalidated(admin_client: TestClient) -> None:
    bundle = create_bundle(admin_client)

    first = admin_client.get(PUBLIC_BUNDLES)
    assert first.headers["X-Cache"] == "MISS"
    assert first.json()["data"] == []
    assert admin_client.get(PUBLIC_BUNDLES).headers["X-Cache"] == "HIT"
    assert admin_client.get(f"{PUBLIC_BUNDLES}/shabbat-tray").status_code == 404

    admin_client.patch(f"{BUNDLES}/{bundle['id']}", json={"status": "PUBLISHED"})

    listing = admin_client.get(PUBLIC_BUNDLES)
    assert listing.headers["X-Cache"] == "MISS"
    assert [b["slug"] for b in listing.json()["data"]] == ["shabbat-tray"]

    detail = admin_client.get(f"{PUBLIC_BUNDLES}/shabbat-tray")
    assert detail.status_code == 200
    assert detail.json()["data"]["price_per_person"] == 95


def test_bundle_write_invalidates_bundle_paths(admin_client: TestClient) -> None:
    cache = admin_client.app.state.response_cache
    create_bundle(admin_client, status="PUBLISHED")
    admin_client.get(PUBLIC_BUNDLES)
    admin_client.get(f"{PUBLIC_BUNDLES}/shabbat-tray")
    assert PUBLIC_BUNDLES in cache

    create_bundle(admin_client, title="Second Tray")

    assert PUBLIC_BUNDLES not in cache
    assert f"{PUBLIC_BUNDLES}/shabbat-tray" in cache


# ------------------------------------------------------------------
# Bulk dish operations
# ------------------------------------------------------------------


def test_bulk_assign_category(admin_client: TestClient) -> None:
    category = create_category(admin_client)
    first = create_dish(admin_client, "Fattoush")
    second = create_dish(admin_client, "Tabbouleh")

    response = admin_client.post(
        BULK,
        json={
            "action": "assign_category",
            "dish_ids": [first["id"], second["id"], 999],
            "category_id": category["id"],
        },
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"updatedCount": 2}
    for dish in (first, second):
        stored = admin_client.get(f"{DISHES}/{dish['id']}").json()["data"]
        assert stored["category_id"] == category["id"]


def test_bulk_assign_unknown_category_is_rejected(admin_client: TestClient) -> None:
    dish = create_dish(admin_client, "Fattoush")
    response = admin_client.post(
        BULK, json={"action": "assign_category", "dish_ids": [dish["id"]], "category_id": 999}
    )
    assert response.status_code == 400
    assert admin_client.get(f"{DISHES}/{dish['id']}").json()["data"]["category_id"] is None


def test_bulk_add_to_bundles_skips_existing_members(admin_client: TestClient) -> None:
    first = create_dish(admin_client, "Fattoush")
    second = create_dish(admin_client, "Tabbouleh")
    bundle = create_bundle(admin_client, dish_ids=[first["id"]])
    other = create_bundle(admin_client, title="Brunch Box")

    response = admin_client.post(
        BULK,
        json={
            "action": "add_to_bundles",
            "dish_ids": [first["id"], second["id"]],
            "bundle_ids": [bundle["id"], other["id"], 999],
        },
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"updatedCount": 2}
    stored = admin_client.get(f"{BUNDLES}/{bundle['id']}").json()["data"]
    assert stored["dish_ids"] == [first["id"], second["id"]]
    stored_other = admin_client.get(f"{BUNDLES}/{other['id']}").json()["data"]
    assert stored_other["dish_ids"] == [first["id"], second["id"]]


@pytest.mark.parametrize(
    "body",
    [
        {"action": "assign_category", "dish_ids": [1]},
        {"action": "add_to_bundles", "dish_ids": [1]},
        {"action": "assign_category", "dish_ids": [], "category_id": 1},
        {"action": "explode", "dish_ids": [1]},
    ],
)
def test_bulk_request_validation(admin_client: TestClient, body: dict) -> None:
    response = admin_client.post(BULK, json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_bulk_delete_detaches_dishes_from_bundles(admin_client: TestClient) -> None:
    first = create_dish(admin_client, "Fattoush")
    second = create_dish(admin_client, "Tabbouleh")
    keep = create_dish(admin_client, "Baba Ganoush")
    bundle = create_bundle(admin_client, dish_ids=[first["id"], keep["id"], second["id"]])

    response = admin_client.request(
        "DELETE", BULK, json={"dish_ids": [first["id"], second["id"]]}
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"deletedCount": 2}
    assert admin_client.get(f"{DISHES}/{first['id']}").status_code == 404
    stored = admin_client.get(f"{BUNDLES}/{bundle['id']}").json()["data"]
    assert stored["dish_ids"] == [keep["id"]]


def test_single_delete_detaches_dish_from_bundles(admin_client: TestClient) -> None:
    dish = create_dish(admin_client, "Fattoush")
    bundle = create_bundle(admin_client, dish_ids=[dish["id"]], status="PUBLISHED")
    admin_client.get(f"{PUBLIC_BUNDLES}/shabbat-tray")

    admin_client.delete(f"{DISHES}/{dish['id']}")

    detail = admin_client.get(f"{PUBLIC_BUNDLES}/shabbat-tray")
    assert detail.headers["X-Cache"] == "MISS"
    assert detail.json()["data"]["dish_ids"] == []
    assert admin_client.get(f"{BUNDLES}/{bundle['id']}").json()["data"]["dish_ids"] == []

"""
Category endpoint tests: create, rename, delete with and without the
category's contents, and the list / frequent reads.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient


@pytest_asyncio.fixture
async def headers(async_client: AsyncClient) -> dict:
    resp = await async_client.post("/api/v1/users", json={"email": "sorter@example.com"})
    assert resp.status_code == 201
    return {"X-User-Id": str(resp.json()["id"])}


async def _create(client: AsyncClient, headers: dict, name: str, parent_id: int | None = None) -> dict:
    resp = await client.post("/api/v1/categories", json={"name": name, "parent_id": parent_id}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _names(client: AsyncClient, headers: dict) -> list[str]:
    resp = await client.get("/api/v1/categories", headers=headers)
    assert resp.status_code == 200
    return [c["name"] for c in resp.json()]


@pytest.mark.asyncio
async def test_create_category(async_client: AsyncClient, headers: dict):
    category = await _create(async_client, headers, "Dev Tools")
    assert category["slug"] == "dev-tools"
    assert category["parent_id"] is None
    assert await _names(async_client, headers) == ["꿀팁", "쇼핑", "Dev Tools"]


@pytest.mark.asyncio
async def test_create_duplicate_category(async_client: AsyncClient, headers: dict):
    resp = await async_client.post("/api/v1/categories", json={"name": "쇼핑"}, headers=headers)
    assert resp.status_code == 409
    assert resp.json() == {"detail": "Category already exists", "error": "conflict"}


@pytest.mark.asyncio
async def test_same_name_under_different_parents(async_client: AsyncClient, headers: dict):
    dev = await _create(async_client, headers, "Dev")
    reading = await _create(async_client, headers, "Reading")
    a = await _create(async_client, headers, "Python", dev["id"])
    b = await _create(async_client, headers, "Python", reading["id"])
    assert a["id"] != b["id"]
    assert a["slug"] == b["slug"] == "python"


@pytest.mark.asyncio
async def test_depth_limit(async_client: AsyncClient, headers: dict):
    root = await _create(async_client, headers, "Dev")
    child = await _create(async_client, headers, "Python", root["id"])
    leaf = await _create(async_client, headers, "Asyncio", child["id"])
    resp = await async_client.post(
        "/api/v1/categories", json={"name": "Too Deep", "parent_id": leaf["id"]}, headers=headers
    )
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Category depth must not exceed 3"


@pytest.mark.asyncio
async def test_rename_category(async_client: AsyncClient, headers: dict):
    saved = await async_client.post(
        "/api/v1/contents", json={"link": "https://a.example", "category_name": "쇼핑"}, headers=headers
    )
    assert saved.status_code == 201

    resp = await async_client.patch(
        "/api/v1/categories", json={"original_name": "쇼핑", "name": "Shopping"}, headers=headers
    )
    assert resp.status_code == 200
    renamed = resp.json()
    assert renamed["name"] == "Shopping"
    assert await _names(async_client, headers) == ["꿀팁", "Shopping"]

    page = (await async_client.get(
        "/api/v1/contents", params={"category_id": renamed["id"]}, headers=headers
    )).json()
    assert [c["link"] for c in page["items"]] == ["https://a.example"]


@pytest.mark.asyncio
async def test_rename_missing_category(async_client: AsyncClient, headers: dict):
    resp = await async_client.patch(
        "/api/v1/categories", json={"original_name": "Nope", "name": "Still Nope"}, headers=headers
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Category doesn't exist in current user."


@pytest.mark.asyncio
async def test_delete_category_keeps_contents(async_client: AsyncClient, headers: dict):
    saved = (await async_client.post(
        "/api/v1/contents", json={"link": "https://a.example", "category_name": "Reading"}, headers=headers
    )).json()

    resp = await async_client.delete(
        f"/api/v1/categories/{saved['category']['id']}",
        params={"delete_content_flag": "false"},
        headers=headers,
    )
    assert resp.status_code == 204
    assert "Reading" not in await _names(async_client, headers)

    page = (await async_client.get("/api/v1/contents", headers=headers)).json()
    assert page["total"] == 1
    assert page["items"][0]["category"] is None


@pytest.mark.asyncio
async def test_delete_category_with_contents(async_client: AsyncClient, headers: dict):
    saved = (await async_client.post(
        "/api/v1/contents", json={"link": "https://a.example", "category_name": "Reading"}, headers=headers
    )).json()

    resp = await async_client.delete(
        f"/api/v1/categories/{saved['category']['id']}",
        params={"delete_content_flag": "true"},
        headers=headers,
    )
    assert resp.status_code == 204
    page = (await async_client.get("/api/v1/contents", headers=headers)).json()
    assert page["total"] == 0


@pytest.mark.asyncio
async def test_delete_category_requires_flag(async_client: AsyncClient, headers: dict):
    category = await _create(async_client, headers, "Reading")
    resp = await async_client.delete(f"/api/v1/categories/{category['id']}", headers=headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_foreign_category(async_client: AsyncClient, headers: dict):
    category = await _create(async_client, headers, "Reading")
    other = await async_client.post("/api/v1/users", json={"email": "other@example.com"})
    resp = await async_client.delete(
        f"/api/v1/categories/{category['id']}",
        params={"delete_content_flag": "true"},
        headers={"X-User-Id": str(other.json()["id"])},
    )
    assert resp.status_code == 404
    assert "Reading" in await _names(async_client, headers)


@pytest.mark.asyncio
async def test_frequent_categories(async_client: AsyncClient, headers: dict):
    for i in range(2):
        await async_client.post(
            "/api/v1/contents", json={"link": f"https://s{i}.example", "category_name": "쇼핑"}, headers=headers
        )
    await async_client.post(
        "/api/v1/contents", json={"link": "https://t.example", "category_name": "꿀팁"}, headers=headers
    )

    resp = await async_client.get("/api/v1/categories/frequent", headers=headers)
    assert resp.status_code == 200
    assert [(c["name"], c["content_count"]) for c in resp.json()] == [("쇼핑", 2), ("꿀팁", 1)]


@pytest.mark.asyncio
async def test_create_categories_differing_only_in_punctuation(async_client: AsyncClient, headers: dict):
    plus = await _create(async_client, headers, "C++")
    sharp = await _create(async_client, headers, "C#")
    assert plus["slug"] != sharp["slug"]
    assert await _names(async_client, headers) == ["꿀팁", "쇼핑", "C++", "C#"]


@pytest.mark.asyncio
async def test_auto_categorize(async_client: AsyncClient, headers: dict, categorizer):
    categorizer.suggestions["https://shop.example"] = "쇼핑"
    resp = await async_client.get(
        "/api/v1/categories/auto-categorize", params={"link": "https://shop.example"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json() == {"category": "쇼핑"}
    assert categorizer.offered == [["꿀팁", "쇼핑"]]


@pytest.mark.asyncio
async def test_auto_categorize_without_suggestion(async_client: AsyncClient, headers: dict):
    resp = await async_client.get(
        "/api/v1/categories/auto-categorize", params={"link": "https://a.example"}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json() == {"category": None}


@pytest.mark.asyncio
async def test_auto_categorize_requires_link(async_client: AsyncClient, headers: dict):
    resp = await async_client.get("/api/v1/categories/auto-categorize", headers=headers)
    assert resp.status_code == 422

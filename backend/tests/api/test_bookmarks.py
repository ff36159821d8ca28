"""Tests for bookmark CRUD endpoints."""
from unittest.mock import AsyncMock

from httpx import AsyncClient

from services.url_scraper import PageMetadata


async def _create(
    client: AsyncClient,
    headers: dict[str, str],
    **payload: object,
) -> dict:
    payload.setdefault("title", "A bookmark")
    response = await client.post("/bookmarks/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test__create_bookmark__returns_bookmark_with_tags(
    client: AsyncClient,
    alice_headers: dict[str, str],
) -> None:
    response = await client.post(
        "/bookmarks/",
        json={
            "url": "https://example.com",
            "title": "Example",
            "description": "An example",
            "favicon": "https://example.com/icon.png",
            "folder": "Reading",
            "tags": ["web", "  Python  ", "web"],
        },
        headers=alice_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["url"] == "https://example.com"
    assert data["folder"] == "Reading"
    assert data["is_public"] is False
    assert [t["name"] for t in data["tags"]] == ["Python", "web"]


async def test__create_bookmark__fills_missing_fields_from_page(
    client: AsyncClient,
    alice_headers: dict[str, str],
    metadata_fetch: AsyncMock,
) -> None:
    metadata_fetch.side_effect = None
    metadata_fetch.return_value = PageMetadata(
        title="Page Title",
        description="Page description",
        favicon="https://example.com/favicon.png",
    )

    response = await client.post(
        "/bookmarks/", json={"url": "https://example.com"}, headers=alice_headers,
    )

    data = response.json()["data"]
    assert data["title"] == "Page Title"
    assert data["description"] == "Page description"
    assert data["favicon"] == "https://example.com/favicon.png"


async def test__create_bookmark__unreachable_page_still_created(
    client: AsyncClient,
    alice_headers: dict[str, str],
) -> None:
    response = await client.post(
        "/bookmarks/", json={"url": "https://example.com"}, headers=alice_headers,
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["title"] == "example.com"
    assert data["description"] == ""
    assert data["favicon"] == "https://example.com/favicon.ico"


async def test__create_bookmark__duplicate_url_409(
    client: AsyncClient,
    alice_headers: dict[str, str],
    bob_headers: dict[str, str],
) -> None:
    await _create(client, alice_headers, url="https://example.com")

    response = await client.post(
        "/bookmarks/", json={"url": "https://example.com", "title": "x"}, headers=alice_headers,
    )
    assert response.status_code == 409
    assert "already exists" in response.json()["error"]

    # Another user may bookmark the same URL
    await _create(client, bob_headers, url="https://example.com")


async def test__create_bookmark__invalid_url_400(
    client: AsyncClient,
    alice_headers: dict[str, str],
) -> None:
    response = await client.post(
        "/bookmarks/", json={"url": "ftp://example.com", "title": "x"}, headers=alice_headers,
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


async def test__create_bookmark__tag_too_long_400(
    client: AsyncClient,
    alice_headers: dict[str, str],
) -> None:
    response = await client.post(
        "/bookmarks/",
        json={"url": "https://example.com", "title": "x", "tags": ["t" * 51]},
        headers=alice_headers,
    )
    assert response.status_code == 400


async def test__create_bookmark__requires_token(client: AsyncClient) -> None:
    response = await client.post("/bookmarks/", json={"url": "https://example.com"})
    assert response.status_code == 401


async def test__list_bookmarks__filters_and_isolation(
    client: AsyncClient,
    alice_headers: dict[str, str],
    bob_headers: dict[str, str],
) -> None:
    tagged = await _create(client, alice_headers, url="https://a.example", tags=["a", "b"])
    await _create(client, alice_headers, url="https://c.example", tags=["c"], folder="Work")
    await _create(client, bob_headers, url="https://bob.example", tags=["a"])

    response = await client.get("/bookmarks/", params={"tag": "a"}, headers=alice_headers)
    assert [b["id"] for b in response.json()["data"]] == [tagged["id"]]

    response = await client.get("/bookmarks/", params={"folder": "Work"}, headers=alice_headers)
    assert [b["url"] for b in response.json()["data"]] == ["https://c.example"]

    response = await client.get("/bookmarks/", headers=bob_headers)
    assert [b["url"] for b in response.json()["data"]] == ["https://bob.example"]


async def test__list_bookmarks__search(
    client: AsyncClient,
    alice_headers: dict[str, str],
) -> None:
    await _create(client, alice_headers, url="https://a.example", title="Learning Rust")
    await _create(client, alice_headers, url="https://b.example", title="Cooking")

    response = await client.get("/bookmarks/", params={"search": "rust"}, headers=alice_headers)

    assert [b["title"] for b in response.json()["data"]] == ["Learning Rust"]


async def test__list_folders(
    client: AsyncClient,
    alice_headers: dict[str, str],
) -> None:
    await _create(client, alice_headers, url="https://a.example", folder="Work")
    await _create(client, alice_headers, url="https://b.example")

    response = await client.get("/bookmarks/folders", headers=alice_headers)

    assert response.status_code == 200
    assert response.json()["data"] == [
        {"folder": "Unsorted", "count": 1},
        {"folder": "Work", "count": 1},
    ]


async def test__get_bookmark__visibility(
    client: AsyncClient,
    alice_headers: dict[str, str],
    bob_headers: dict[str, str],
) -> None:
    bookmark = await _create(client, alice_headers, url="https://a.example")
    url = f"/bookmarks/{bookmark['id']}"

    assert (await client.get(url, headers=alice_headers)).status_code == 200
    assert (await client.get(url, headers=bob_headers)).status_code == 403
    anonymous = await client.get(url)
    assert anonymous.status_code == 403
    assert anonymous.json()["success"] is False

    await client.patch(f"{url}/privacy", headers=alice_headers)

    assert (await client.get(url)).status_code == 200
    assert (await client.get(url, headers=bob_headers)).status_code == 200
    # A bad token on an optional-auth route is treated as anonymous
    assert (await client.get(url, headers={"Authorization": "Bearer junk"})).status_code == 200


async def test__get_bookmark__missing_404(client: AsyncClient) -> None:
    response = await client.get("/bookmarks/999999")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Bookmark not found"}


async def test__update_bookmark__partial_and_tag_replacement(
    client: AsyncClient,
    alice_headers: dict[str, str],
) -> None:
    bookmark = await _create(
        client, alice_headers, url="https://a.example", description="keep", tags=["a", "b"],
    )
    url = f"/bookmarks/{bookmark['id']}"

    response = await client.put(url, json={"title": "Renamed"}, headers=alice_headers)
    data = response.json()["data"]
    assert data["title"] == "Renamed"
    assert data["description"] == "keep"
    assert [t["name"] for t in data["tags"]] == ["a", "b"]

    response = await client.put(url, json={"tags": ["z"]}, headers=alice_headers)
    assert [t["name"] for t in response.json()["data"]["tags"]] == ["z"]

    response = await client.put(url, json={"tags": []}, headers=alice_headers)
    assert response.json()["data"]["tags"] == []


async def test__update_bookmark__non_owner_403_and_unchanged(
    client: AsyncClient,
    alice_headers: dict[str, str],
    bob_headers: dict[str, str],
) -> None:
    bookmark = await _create(client, alice_headers, url="https://a.example", title="Original")
    url = f"/bookmarks/{bookmark['id']}"

    response = await client.put(url, json={"title": "Hijacked"}, headers=bob_headers)
    assert response.status_code == 403

    current = await client.get(url, headers=alice_headers)
    assert current.json()["data"]["title"] == "Original"


async def test__update_bookmark__missing_404(
    client: AsyncClient,
    alice_headers: dict[str, str],
) -> None:
    response = await client.put("/bookmarks/999999", json={"title": "x"}, headers=alice_headers)
    assert response.status_code == 404


async def test__toggle_privacy__twice_restores(
    client: AsyncClient,
    alice_headers: dict[str, str],
    bob_headers: dict[str, str],
) -> None:
    bookmark = await _create(client, alice_headers, url="https://a.example")
    url = f"/bookmarks/{bookmark['id']}/privacy"

    first = await client.patch(url, headers=alice_headers)
    assert first.json()["data"] == {"id": bookmark["id"], "is_public": True}
    second = await client.patch(url, headers=alice_headers)
    assert second.json()["data"]["is_public"] is False

    assert (await client.patch(url, headers=bob_headers)).status_code == 403


async def test__delete_bookmark(
    client: AsyncClient,
    alice_headers: dict[str, str],
    bob_headers: dict[str, str],
) -> None:
    bookmark = await _create(client, alice_headers, url="https://a.example")
    url = f"/bookmarks/{bookmark['id']}"

    # Someone else's bookmark looks missing
    assert (await client.delete(url, headers=bob_headers)).status_code == 404

    response = await client.delete(url, headers=alice_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert (await client.get(url, headers=alice_headers)).status_code == 404

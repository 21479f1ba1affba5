"""Tests for the HTTP API."""

from __future__ import annotations

import pytest

from tagkeep import __version__
from tagkeep.db import set_database


async def create_tag(client, name: str, **fields) -> dict:
    response = await client.post("/api/v1/tags", json={"name": name, **fields})
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# Health
# =============================================================================


class TestHealth:
    """Tests for GET /api/health."""

    async def test_health_reports_backend(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == __version__
        assert data["database"] == "connected"
        assert data["backend"] == "sqlite"
        assert data["capabilities"] == {"fuzzy_search": False, "native_json": False}

    async def test_health_without_database(self, client):
        set_database(None)

        response = await client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["database"] == "disconnected"

    async def test_endpoints_unavailable_without_database(self, client):
        set_database(None)

        response = await client.get("/api/v1/tags")

        assert response.status_code == 503
        assert response.json()["code"] == "CONNECTION_ERROR"


# =============================================================================
# Tags
# =============================================================================


class TestTagsApi:
    """Tests for /api/v1/tags."""

    async def test_create_and_get(self, client):
        created = await create_tag(client, "Reading", color="#00FF00")

        response = await client.get(f"/api/v1/tags/{created['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Reading"
        assert data["color"] == "#00FF00"
        assert data["font_color"] == "#000000"
        assert data["usage_count"] == 0

    async def test_create_duplicate(self, client):
        await create_tag(client, "dup")

        response = await client.post("/api/v1/tags", json={"name": "dup"})

        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_TAG"

    async def test_create_blank_name(self, client):
        response = await client.post("/api/v1/tags", json={"name": "   "})

        assert response.status_code == 422
        assert response.json()["code"] == "EMPTY_NAME"

    async def test_create_bad_color(self, client):
        response = await client.post("/api/v1/tags", json={"name": "x", "color": "red"})
        assert response.status_code == 422

    async def test_get_missing(self, client):
        response = await client.get("/api/v1/tags/999")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_patch_distinguishes_absent_and_null(self, client):
        parent = await create_tag(client, "parent")
        child = await create_tag(client, "child", parent_id=parent["id"], color="#123456")

        response = await client.patch(f"/api/v1/tags/{child['id']}", json={"parent_id": None})

        assert response.status_code == 200
        data = response.json()
        assert data["parent_id"] is None
        assert data["color"] == "#123456"

    async def test_patch_cycle(self, client):
        parent = await create_tag(client, "parent")
        child = await create_tag(client, "child", parent_id=parent["id"])

        response = await client.patch(
            f"/api/v1/tags/{parent['id']}", json={"parent_id": child["id"]}
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CYCLE_DETECTED"

    async def test_children_and_delete(self, client):
        parent = await create_tag(client, "parent")
        child = await create_tag(client, "child", parent_id=parent["id"])

        children = await client.get(f"/api/v1/tags/{parent['id']}/children")
        assert [t["id"] for t in children.json()["items"]] == [child["id"]]

        deleted = await client.delete(f"/api/v1/tags/{parent['id']}")
        assert deleted.json()["deleted_ids"] == [parent["id"], child["id"]]

        assert (await client.get(f"/api/v1/tags/{child['id']}")).status_code == 404

    async def test_search_and_list(self, client):
        await create_tag(client, "Alpha")
        await create_tag(client, "alphabet")
        await create_tag(client, "beta")

        found = await client.get("/api/v1/tags/search", params={"keyword": "alpha"})
        assert {t["name"] for t in found.json()["items"]} == {"Alpha", "alphabet"}

        empty = await client.get("/api/v1/tags/search", params={"keyword": ""})
        assert empty.json()["items"] == []

        listed = await client.get("/api/v1/tags", params={"mode": "most_used", "limit": 2})
        assert listed.json()["total"] == 2

    async def test_list_bad_mode(self, client):
        response = await client.get("/api/v1/tags", params={"mode": "random"})
        assert response.status_code == 422


# =============================================================================
# Files and Events
# =============================================================================


class TestFilesApi:
    """Tests for /api/v1/files and /api/v1/events."""

    async def test_tag_move_and_query(self, client):
        tag = await create_tag(client, "project")

        tagged = await client.post(
            "/api/v1/files/tag",
            json={"paths": ["/work/a.txt", "/work/b.txt"], "tag_id": tag["id"]},
        )
        assert tagged.json() == {"succeeded": ["/work/a.txt", "/work/b.txt"], "failed": []}

        moved = await client.post(
            "/api/v1/events/moved",
            json={"items": [{"old_path": "/work", "new_path": "/archive/work"}]},
        )
        assert moved.status_code == 200

        tags = await client.get("/api/v1/files/tags", params={"path": "/archive/work/a.txt"})
        assert [t["id"] for t in tags.json()["items"]] == [tag["id"]]

        listing = await client.get(f"/api/v1/tags/{tag['id']}/files")
        data = listing.json()
        assert data["total"] == 2
        assert [f["current_path"] for f in data["items"]] == [
            "/archive/work/a.txt",
            "/archive/work/b.txt",
        ]
        assert data["items"][0]["tags"][0]["confidence"] == 1.0

    async def test_tag_unknown_tag(self, client):
        response = await client.post("/api/v1/files/tag", json={"paths": ["/a"], "tag_id": 5})
        assert response.status_code == 404

    async def test_untag(self, client):
        tag = await create_tag(client, "temp")
        await client.post("/api/v1/files/tag", json={"paths": ["/t.txt"], "tag_id": tag["id"]})

        response = await client.post(
            "/api/v1/files/untag", json={"paths": ["/t.txt"], "tag_id": tag["id"]}
        )

        assert response.json()["failed"] == []
        tags = await client.get("/api/v1/files/tags", params={"path": "/t.txt"})
        assert tags.json()["items"] == []

    async def test_search_by_tags(self, client):
        red = await create_tag(client, "red")
        blue = await create_tag(client, "blue")
        await client.post("/api/v1/files/tag", json={"paths": ["/1", "/2"], "tag_id": red["id"]})
        await client.post("/api/v1/files/tag", json={"paths": ["/2", "/3"], "tag_id": blue["id"]})

        response = await client.post(
            "/api/v1/files/search-by-tags",
            json={
                "tag_groups": [{"tag_ids": [red["id"], blue["id"]], "logic": "AND"}],
                "group_logic": "AND",
            },
        )

        assert [f["current_path"] for f in response.json()] == ["/2"]

    async def test_list_files_filters(self, client):
        tag = await create_tag(client, "any")
        await client.post(
            "/api/v1/files/tag",
            json={"paths": ["/docs/report.pdf", "/pics/cat.png"], "tag_id": tag["id"]},
        )

        response = await client.get("/api/v1/files", params={"q": "report"})

        assert [f["name"] for f in response.json()["items"]] == ["report.pdf"]

    async def test_copy_and_delete_events(self, client):
        tag = await create_tag(client, "c")
        await client.post("/api/v1/files/tag", json={"paths": ["/orig"], "tag_id": tag["id"]})

        copied = await client.post(
            "/api/v1/events/copied",
            json={"items": [{"old_path": "/orig", "new_path": "/dup"}]},
        )
        assert copied.json()["succeeded"] == ["/orig"]

        deleted = await client.post("/api/v1/events/deleted", json={"paths": ["/orig", ""]})
        body = deleted.json()
        assert body["succeeded"] == ["/orig"]
        assert body["failed"][0]["path"] == ""

        remaining = await client.get(f"/api/v1/tags/{tag['id']}/files")
        assert [f["current_path"] for f in remaining.json()["items"]] == ["/dup"]

        history = await client.get("/api/v1/events/history", params={"status": "failed"})
        assert [h["change_type"] for h in history.json()] == ["deleted"]

    async def test_rename(self, client):
        tag = await create_tag(client, "r")
        await client.post("/api/v1/files/tag", json={"paths": ["/d/old.txt"], "tag_id": tag["id"]})

        response = await client.post(
            "/api/v1/events/renamed", json={"old_path": "/d/old.txt", "new_name": "new.txt"}
        )

        assert response.json() == {"moved": 1}

    async def test_rename_invalid_name(self, client):
        response = await client.post(
            "/api/v1/events/renamed", json={"old_path": "/d/old.txt", "new_name": "a/b"}
        )

        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_openapi_lists_routes(client):
    response = await client.get("/api/openapi.json")
    paths = response.json()["paths"]
    assert "/api/v1/tags/{tag_id}" in paths
    assert "/api/v1/events/moved" in paths

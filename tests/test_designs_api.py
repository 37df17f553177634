"""Tests for the /designs endpoints."""

API = "/api/v1/designs"


def _design(**overrides):
    return {
        "title": "Sunny Kitchen",
        "description": "A bright open kitchen remodel.",
        "category": "kitchen",
        "design_style": "modern",
        "status": "completed",
        **overrides,
    }


async def _create(client, **overrides):
    resp = await client.post(API, json=_design(**overrides))
    assert resp.status_code == 201
    return resp.json()


class TestCrud:
    async def test_create(self, client):
        """Created designs carry counters and computed fields."""
        design = await _create(client, images=[{"url": "https://x.com/a.jpg"}])
        assert design["views"] == 0
        assert design["likes"] == 0
        assert design["main_image"] == "https://x.com/a.jpg"
        assert design["team_member"] is None

    async def test_create_invalid_category(self, client):
        """Unknown categories are rejected."""
        resp = await client.post(API, json=_design(category="garage"))
        assert resp.status_code == 422

    async def test_get_counts_views(self, client):
        """Each fetch adds a view."""
        design = await _create(client)
        await client.get(f"{API}/{design['id']}")
        resp = await client.get(f"{API}/{design['id']}")
        assert resp.json()["views"] == 2

    async def test_get_missing(self, client):
        """Unknown ids return 404."""
        resp = await client.get(f"{API}/missing")
        assert resp.status_code == 404
        assert resp.json()["error"] == "design_not_found"

    async def test_team_member_attached(self, client):
        """A linked team member is summarised on the design."""
        member = (
            await client.post(
                "/api/v1/team",
                json={
                    "name": "Ana Lopez",
                    "position": "Lead Designer",
                    "image": "https://cdn.example.com/ana.jpg",
                    "description": "Ten years of residential interiors.",
                    "experience": "10 years",
                    "projects": "120+",
                },
            )
        ).json()
        design = await _create(client, team_member_id=member["id"])
        assert design["team_member"] == {
            "id": member["id"],
            "name": "Ana Lopez",
            "position": "Lead Designer",
            "image": "https://cdn.example.com/ana.jpg",
        }

    async def test_update(self, client):
        """Partial updates keep the other fields."""
        design = await _create(client)
        resp = await client.put(f"{API}/{design['id']}", json={"title": "Sunnier Kitchen"})
        assert resp.json()["title"] == "Sunnier Kitchen"
        assert resp.json()["category"] == "kitchen"

    async def test_delete(self, client):
        """Deleting returns 204, then 404."""
        design = await _create(client)
        assert (await client.delete(f"{API}/{design['id']}")).status_code == 204
        assert (await client.delete(f"{API}/{design['id']}")).status_code == 404


class TestListing:
    async def test_public_only(self, client):
        """Private designs never appear in the listing."""
        await _create(client, title="Public One")
        await _create(client, title="Hidden One", is_public=False)
        body = (await client.get(API)).json()
        assert [d["title"] for d in body["designs"]] == ["Public One"]
        assert body["pagination"]["total_items"] == 1

    async def test_filters(self, client):
        """Category, style and featured filters combine."""
        await _create(client, title="Kitchen Modern", is_featured=True)
        await _create(client, title="Kitchen Rustic", design_style="farmhouse")
        await _create(client, title="Bath Modern", category="bathroom")
        body = (
            await client.get(API, params={"category": "kitchen", "design_style": "modern"})
        ).json()
        assert [d["title"] for d in body["designs"]] == ["Kitchen Modern"]
        body = (await client.get(API, params={"featured": "true"})).json()
        assert [d["title"] for d in body["designs"]] == ["Kitchen Modern"]

    async def test_sort_by_title(self, client):
        """Sorting by title honours the order."""
        for title in ("Beta Room", "Alpha Room", "Gamma Room"):
            await _create(client, title=title)
        body = (await client.get(API, params={"sort_by": "title", "sort_order": "asc"})).json()
        assert [d["title"] for d in body["designs"]] == ["Alpha Room", "Beta Room", "Gamma Room"]

    async def test_search_param(self, client):
        """The search parameter matches titles and tags."""
        await _create(client, title="Cozy Den", tags=["fireplace"])
        await _create(client, title="Open Loft")
        body = (await client.get(API, params={"search": "FIRE"})).json()
        assert [d["title"] for d in body["designs"]] == ["Cozy Den"]

    async def test_featured_requires_completed(self, client):
        """Featured only shows completed public designs."""
        await _create(client, title="Done", is_featured=True)
        await _create(client, title="Draft", is_featured=True, status="draft")
        body = (await client.get(f"{API}/featured")).json()
        assert [d["title"] for d in body["designs"]] == ["Done"]
        assert body["total"] == 1

    async def test_by_category(self, client):
        """The category route filters by category."""
        await _create(client, title="Kitchen One")
        await _create(client, title="Office One", category="office")
        body = (await client.get(f"{API}/category/office")).json()
        assert body["category"] == "office"
        assert [d["title"] for d in body["designs"]] == ["Office One"]

    async def test_search_route_matches_style(self, client):
        """The search route also matches the design style."""
        await _create(client, title="Barn House", design_style="farmhouse")
        await _create(client, title="City Flat")
        body = (await client.get(f"{API}/search", params={"q": "farm"})).json()
        assert body["query"] == "farm"
        assert [d["title"] for d in body["designs"]] == ["Barn House"]

    async def test_search_requires_query(self, client):
        """An empty query is rejected."""
        resp = await client.get(f"{API}/search", params={"q": ""})
        assert resp.status_code == 422


class TestEngagement:
    async def test_toggle_featured(self, client):
        """Toggling flips the featured flag."""
        design = await _create(client)
        resp = await client.patch(f"{API}/{design['id']}/toggle-featured")
        assert resp.json()["is_featured"] is True

    async def test_like(self, client):
        """Likes accumulate."""
        design = await _create(client)
        await client.post(f"{API}/{design['id']}/like")
        resp = await client.post(f"{API}/{design['id']}/like")
        assert resp.json() == {"id": design["id"], "likes": 2}

    async def test_like_missing(self, client):
        """Liking an unknown design returns 404."""
        assert (await client.post(f"{API}/missing/like")).status_code == 404

    async def test_before_after(self, client):
        """Before/after pairs are appended to the design."""
        design = await _create(client)
        pair = {
            "before_image": "/uploads/interior-design/before-after/b.jpg",
            "after_image": "/uploads/interior-design/before-after/a.jpg",
            "caption": "Refresh",
        }
        resp = await client.post(f"{API}/{design['id']}/before-after", json=pair)
        assert resp.status_code == 201
        fetched = (await client.get(f"{API}/{design['id']}")).json()
        assert fetched["before_after_count"] == 1
        assert fetched["before_after_images"][0]["caption"] == "Refresh"

    async def test_stats(self, client):
        """Stats count public designs by category and style."""
        design = await _create(client, is_featured=True)
        await _create(client, category="office")
        await _create(client, is_public=False)
        await client.post(f"{API}/{design['id']}/like")
        body = (await client.get(f"{API}/stats/overview")).json()
        assert body["total_designs"] == 3
        assert body["public_designs"] == 2
        assert body["featured_designs"] == 1
        assert body["total_likes"] == 1
        assert {"name": "kitchen", "count": 1} in body["by_category"]
        assert body["by_style"] == [{"name": "modern", "count": 2}]

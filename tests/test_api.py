"""
Tests for the HTTP endpoints.
"""

import pytest
from httpx import AsyncClient


def actor(user) -> dict:
    return {"X-User-Id": str(user.id)}


@pytest.mark.asyncio
async def test_health_check(async_client: AsyncClient):
    """Test the health check endpoint."""
    response = await async_client.get("/api/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_database_health_check(async_client: AsyncClient):
    response = await async_client.get("/api/health/db")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "sqlite"}


@pytest.mark.asyncio
async def test_mutations_require_actor(async_client: AsyncClient):
    response = await async_client.post(
        "/api/budget-items/", json={"particulars": "Trust Fund", "total_budget_allocated": "1000.00"}
    )
    assert response.status_code == 401

    response = await async_client.post(
        "/api/budget-items/",
        json={"particulars": "Trust Fund", "total_budget_allocated": "1000.00"},
        headers={"X-User-Id": "00000000-0000-0000-0000-000000000000"},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_budget_item_project_breakdown_flow(async_client: AsyncClient, staff_user):
    """Test creating the hierarchy over HTTP and reading back the rollups."""
    headers = actor(staff_user)

    response = await async_client.post(
        "/api/budget-items/",
        json={"particulars": "Trust Fund", "total_budget_allocated": "100000.00", "year": 2024},
        headers=headers,
    )
    assert response.status_code == 201
    item_id = response.json()["id"]

    response = await async_client.post(
        "/api/projects/",
        json={
            "particulars": "Public Market",
            "budget_item_id": item_id,
            "implementing_office": "Municipal Engineering Office",
            "total_budget_allocated": "80000.00",
            "total_budget_utilized": "20000.00",
        },
        headers=headers,
    )
    assert response.status_code == 201
    project_id = response.json()["id"]

    response = await async_client.post(
        "/api/breakdowns/",
        json={"project_id": project_id, "status": "Delayed", "municipality": "Tagum"},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["status"] == "delayed"

    project = (await async_client.get(f"/api/projects/{project_id}")).json()
    assert project["status"] == "delayed"
    assert project["project_delayed"] == 1

    item = (await async_client.get(f"/api/budget-items/{item_id}")).json()
    assert item["status"] == "delayed"
    assert float(item["utilization_rate"]) == 20.0

    response = await async_client.delete(f"/api/budget-items/{item_id}", headers=headers)
    assert response.status_code == 409
    assert response.json() == {
        "detail": "Cannot delete budget item with 1 linked project(s).",
        "blocking_count": 1,
    }

    response = await async_client.get("/api/activities/", params={"target_type": "project"})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["target_name"] == "Public Market"
    assert body["items"][0]["performed_by_name"] == "Maria Santos"


@pytest.mark.asyncio
async def test_trash_and_restore_over_http(async_client: AsyncClient, staff_user, project):
    headers = actor(staff_user)
    project_id = str(project.id)

    response = await async_client.post(f"/api/trash/projects/{project_id}", json={"reason": "Cancelled"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["project_id"] == project_id

    trash = (await async_client.get("/api/trash/")).json()
    assert [p["id"] for p in trash] == [project_id]

    response = await async_client.post(f"/api/trash/projects/{project_id}", headers=headers)
    assert response.status_code == 409

    response = await async_client.post(f"/api/trash/projects/{project_id}/restore", headers=headers)
    assert response.status_code == 200

    history = (await async_client.get(f"/api/activities/project/{project_id}")).json()
    assert [entry["action"] for entry in history] == ["restored", "updated", "created"]


@pytest.mark.asyncio
async def test_review_requires_admin_over_http(async_client: AsyncClient, staff_user, admin_user, budget_item):
    staff_headers, admin_headers = actor(staff_user), actor(admin_user)
    entries = (await async_client.get("/api/activities/recent")).json()
    activity_id = entries[0]["id"]

    response = await async_client.post(
        f"/api/activities/{activity_id}/review", json={"review_notes": "ok"}, headers=staff_headers
    )
    assert response.status_code == 409

    response = await async_client.post(
        f"/api/activities/{activity_id}/review", json={"review_notes": "ok"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["is_reviewed"] is True


@pytest.mark.asyncio
async def test_unknown_project_returns_404(async_client: AsyncClient, staff_user):
    response = await async_client.post(
        "/api/breakdowns/",
        json={"project_id": "00000000-0000-0000-0000-000000000001"},
        headers=actor(staff_user),
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Project not found"


@pytest.mark.asyncio
async def test_create_user(async_client: AsyncClient):
    response = await async_client.post(
        "/api/users/", json={"email": "engineer@example.gov", "full_name": "Pedro Lim", "role": "user"}
    )
    assert response.status_code == 201
    assert response.json()["email"] == "engineer@example.gov"

    response = await async_client.post(
        "/api/users/", json={"email": "engineer@example.gov", "full_name": "Pedro Lim"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_sort_field_falls_back_to_timestamp(async_client: AsyncClient, budget_item):
    """Test that sorting on a non-column attribute is ignored."""
    for sort_by in ("metadata", "registry", "no_such_field"):
        response = await async_client.get("/api/activities/", params={"sort_by": sort_by})
        assert response.status_code == 200
        assert response.json()["total"] >= 1


@pytest.mark.asyncio
async def test_recalculate_returns_projects_and_budget_items(async_client: AsyncClient, db_session, staff_user, budget_item, project):
    budget_item.total_budget_utilized = 0
    await db_session.commit()

    response = await async_client.post("/api/budget-items/recalculate", headers=actor(staff_user))

    assert response.status_code == 200
    body = response.json()
    assert [r["entity_id"] for r in body["projects"]] == [str(project.id)]
    assert [r["entity_id"] for r in body["budget_items"]] == [str(budget_item.id)]
    assert float(body["budget_items"][0]["total_budget_utilized"]) == 25000.0


@pytest.mark.asyncio
async def test_remarks_over_http(async_client: AsyncClient, staff_user, budget_item, project):
    headers = actor(staff_user)
    project_id = str(project.id)

    response = await async_client.post(
        "/api/remarks/",
        json={"project_id": project_id, "content": "Site visit done", "category": "inspection", "priority": "high"},
        headers=headers,
    )
    assert response.status_code == 201
    remark = response.json()
    assert remark["budget_item_id"] == str(budget_item.id)
    assert remark["priority"] == "high"

    response = await async_client.post(f"/api/remarks/{remark['id']}/pin", headers=headers)
    assert response.json()["is_pinned"] is True

    stats = (await async_client.get(f"/api/remarks/projects/{project_id}/stats")).json()
    assert stats["total"] == 1
    assert stats["pinned"] == 1
    assert stats["categories"] == {"inspection": 1}

    response = await async_client.delete(f"/api/remarks/{remark['id']}", headers=headers)
    assert response.status_code == 204
    assert (await async_client.get(f"/api/remarks/{remark['id']}")).status_code == 404

    response = await async_client.post(
        "/api/remarks/", json={"project_id": "00000000-0000-0000-0000-000000000001", "content": "x"}, headers=headers
    )
    assert response.status_code == 404

from datetime import timedelta

from conftest import auth_headers
from internlink.constants.constants import TaskStatus, UserRole
from internlink.core.security import create_jwt_token

API = "/api/v1"


def task_payload(**overrides):
    payload = {
        "title": "Write onboarding guide",
        "description": "Document the local setup",
        "category": "documentation",
        "dueDate": "2030-03-01T12:00:00Z",
    }
    payload.update(overrides)
    return payload


async def test_requests_without_a_session_are_unauthorized(client):
    response = await client.get(f"{API}/tasks")
    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}


async def test_invalid_token_is_unauthorized(client):
    response = await client.get(f"{API}/auth/me", headers={"Cookie": "auth_token=not-a-jwt"})
    assert response.status_code == 401


async def test_expired_token_is_unauthorized(client, seed):
    user = await seed.user()
    token = create_jwt_token({"sub": user.user_id}, expires_delta=timedelta(minutes=-5))
    response = await client.get(f"{API}/auth/me", headers={"Cookie": f"auth_token={token}"})
    assert response.status_code == 401


async def test_inactive_user_is_forbidden(client, seed):
    user = await seed.user(is_active=False)
    response = await client.get(f"{API}/auth/me", headers=auth_headers(user))
    assert response.status_code == 403


async def test_first_gitlab_sign_in_provisions_a_pending_user(client):
    token = create_jwt_token({"gitlab_id": 4242, "username": "adjoa", "name": "Adjoa Mensah"})
    headers = {"Cookie": f"auth_token={token}"}

    first = await client.get(f"{API}/auth/me", headers=headers)
    assert first.status_code == 200
    user = first.json()["user"]
    assert user["role"] == "pending"
    assert user["gitlabId"] == "4242"

    second = await client.get(f"{API}/auth/me", headers=headers)
    assert second.json()["user"]["id"] == user["id"]


async def test_create_task_reports_missing_fields(client, seed):
    lead = await seed.user(UserRole.tech_lead)
    response = await client.post(f"{API}/tasks", json={"description": "x"}, headers=auth_headers(lead))
    assert response.status_code == 400
    error = response.json()["error"]
    assert error.startswith("Missing required field(s):")
    assert "title" in error
    assert "dueDate" in error
    assert "assignment" in error


async def test_interns_cannot_create_tasks(client, seed):
    intern = await seed.user()
    response = await client.post(
        f"{API}/tasks",
        json=task_payload(assignment={"mode": "individual", "assigneeId": intern.user_id}),
        headers=auth_headers(intern),
    )
    assert response.status_code == 403


async def test_assignment_is_a_tagged_union(client, seed):
    lead = await seed.user(UserRole.tech_lead)
    response = await client.post(
        f"{API}/tasks",
        json=task_payload(assignment={"mode": "cohort"}),
        headers=auth_headers(lead),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required field(s): assignment.cohort.cohortId"


async def test_negative_points_are_rejected(client, seed):
    lead = await seed.user(UserRole.tech_lead)
    intern = await seed.user()
    response = await client.post(
        f"{API}/tasks",
        json=task_payload(points=-5, assignment={"mode": "individual", "assigneeId": intern.user_id}),
        headers=auth_headers(lead),
    )
    assert response.status_code == 400


async def test_switching_assignment_clears_the_other_mode(client, seed):
    lead = await seed.user(UserRole.tech_lead)
    cohort = await seed.cohort()
    intern = await seed.user(cohort_id=cohort.cohort_id)
    headers = auth_headers(lead)

    created = await client.post(
        f"{API}/tasks",
        json=task_payload(assignment={"mode": "individual", "assigneeId": intern.user_id}),
        headers=headers,
    )
    task_id = created.json()["task"]["id"]

    response = await client.put(
        f"{API}/tasks/{task_id}",
        json={"assignment": {"mode": "cohort", "cohortId": cohort.cohort_id}},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["task"]["assignment"] == {"mode": "cohort", "cohortId": cohort.cohort_id}


async def test_malformed_id_is_a_bad_request(client, seed):
    lead = await seed.user(UserRole.tech_lead)
    response = await client.get(f"{API}/tasks/12345", headers=auth_headers(lead))
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid task id format"}


async def test_unknown_task_is_not_found(client, seed):
    lead = await seed.user(UserRole.tech_lead)
    response = await client.get(
        f"{API}/tasks/5b0a3f52-8d8e-4c55-9e4e-31b1b6c0a7d2", headers=auth_headers(lead)
    )
    assert response.status_code == 404


async def test_interns_do_not_see_drafts(client, seed):
    intern = await seed.user()
    await seed.task(assignee=intern, title="Visible")
    draft = await seed.task(assignee=intern, title="Hidden", status=TaskStatus.draft)

    response = await client.get(f"{API}/tasks", headers=auth_headers(intern))
    titles = [t["title"] for t in response.json()["tasks"]]
    assert titles == ["Visible"]
    assert response.json()["tasks"][0]["myProgress"]["status"] == "not_started"

    response = await client.get(f"{API}/tasks/{draft.task_id}", headers=auth_headers(intern))
    assert response.status_code == 404


async def test_soft_delete_records_actor(client, seed):
    admin = await seed.user(UserRole.admin)
    intern = await seed.user()
    task = await seed.task(assignee=intern)

    response = await client.delete(f"{API}/tasks/{task.task_id}", headers=auth_headers(admin))
    assert response.status_code == 200

    response = await client.get(f"{API}/tasks/{task.task_id}", headers=auth_headers(admin))
    assert response.status_code == 404


async def test_only_admins_cancel(client, seed):
    lead = await seed.user(UserRole.tech_lead)
    intern = await seed.user()
    task = await seed.task(assignee=intern, created_by=lead.user_id)
    response = await client.patch(
        f"{API}/tasks/{task.task_id}/status", json={"status": "cancelled"}, headers=auth_headers(lead)
    )
    assert response.status_code == 403


async def test_comments_are_appended_in_order(client, seed):
    intern = await seed.user()
    task = await seed.task(assignee=intern)
    headers = auth_headers(intern)

    await client.post(f"{API}/tasks/{task.task_id}/comments", json={"content": "First"}, headers=headers)
    response = await client.post(
        f"{API}/tasks/{task.task_id}/comments", json={"content": "Second"}, headers=headers
    )
    assert response.status_code == 201
    assert response.json()["totalComments"] == 2

    response = await client.get(f"{API}/tasks/{task.task_id}", headers=headers)
    assert [c["content"] for c in response.json()["task"]["comments"]] == ["First", "Second"]

from conftest import auth_headers
from internlink.constants.constants import ProgressStatus, UserRole
from internlink.models.attendance import Attendance
from internlink.models.base import utcnow

API = "/api/v1"


async def test_admin_creates_and_updates_users(client, seed):
    admin = await seed.user(UserRole.admin)
    headers = auth_headers(admin)

    response = await client.post(
        f"{API}/admin/users",
        json={"username": "efua", "name": "Efua Asante", "email": "efua@example.com"},
        headers=headers,
    )
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["role"] == "intern"

    duplicate = await client.post(
        f"{API}/admin/users", json={"username": "efua", "name": "Someone Else"}, headers=headers
    )
    assert duplicate.status_code == 400

    response = await client.patch(
        f"{API}/admin/users/{user['id']}", json={"role": "tech_lead", "name": None}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "tech_lead"
    assert response.json()["user"]["name"] == "Efua Asante"


async def test_invalid_email_is_rejected(client, seed):
    admin = await seed.user(UserRole.admin)
    response = await client.post(
        f"{API}/admin/users",
        json={"username": "kwesi", "name": "Kwesi", "email": "not-an-email"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("email:")


async def test_user_management_requires_admin(client, seed):
    lead = await seed.user(UserRole.tech_lead)
    response = await client.post(
        f"{API}/admin/users", json={"username": "x", "name": "X"}, headers=auth_headers(lead)
    )
    assert response.status_code == 403


async def test_deactivated_users_lose_access(client, seed):
    admin = await seed.user(UserRole.admin)
    intern = await seed.user()

    response = await client.delete(f"{API}/admin/users/{intern.user_id}", headers=auth_headers(admin))
    assert response.status_code == 200

    response = await client.get(f"{API}/auth/me", headers=auth_headers(intern))
    assert response.status_code == 403

    response = await client.delete(f"{API}/admin/users/{admin.user_id}", headers=auth_headers(admin))
    assert response.status_code == 400


async def test_purge_removes_owned_records(client, seed):
    admin = await seed.user(UserRole.admin)
    intern = await seed.user()
    task = await seed.task(assignee=intern)
    await seed.progress(task, intern, ProgressStatus.in_progress, 30)
    now = utcnow()
    await seed.add(Attendance(user_id=intern.user_id, date=now.date(), check_in=now))

    response = await client.delete(
        f"{API}/admin/users/{intern.user_id}/purge", headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["deleted"] == {"progressRecords": 1, "tasks": 1, "attendance": 1}

    response = await client.get(f"{API}/users?includeInactive=true", headers=auth_headers(admin))
    assert [u["id"] for u in response.json()["users"]] == [admin.user_id]


async def test_cohort_dates_are_validated(client, seed):
    admin = await seed.user(UserRole.admin)
    response = await client.post(
        f"{API}/cohorts",
        json={"name": "Late", "startDate": "2030-06-01T00:00:00Z", "endDate": "2030-01-01T00:00:00Z"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


async def test_tech_leads_see_only_their_cohorts(client, seed):
    admin = await seed.user(UserRole.admin)
    lead = await seed.user(UserRole.tech_lead)
    headers = auth_headers(admin)

    created = await client.post(
        f"{API}/cohorts",
        json={
            "name": "Backend 2030",
            "startDate": "2030-01-01T00:00:00Z",
            "endDate": "2030-06-01T00:00:00Z",
            "techLeadId": lead.user_id,
        },
        headers=headers,
    )
    assert created.status_code == 201
    led_id = created.json()["cohort"]["id"]
    await seed.cohort(name="Frontend 2030")
    await seed.user(name="Ato", cohort_id=led_id)

    response = await client.get(f"{API}/cohorts", headers=auth_headers(lead))
    assert [c["id"] for c in response.json()["cohorts"]] == [led_id]

    response = await client.get(f"{API}/users", headers=auth_headers(lead))
    assert [u["name"] for u in response.json()["users"]] == ["Ato"]

    response = await client.get(f"{API}/cohorts/{led_id}/interns", headers=headers)
    assert response.json()["total"] == 1

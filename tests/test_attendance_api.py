from datetime import timedelta

from conftest import auth_headers
from internlink.constants.constants import ProgressStatus, UserRole
from internlink.models.attendance import Attendance
from internlink.models.base import utcnow

API = "/api/v1"


async def test_check_in_then_check_out(client, seed):
    intern = await seed.user()
    headers = auth_headers(intern)

    response = await client.post(f"{API}/attendance/check-in", headers=headers)
    assert response.status_code == 201
    assert response.json()["attendance"]["checkIn"] is not None

    response = await client.post(f"{API}/attendance/check-in", headers=headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Already checked in today"}

    response = await client.post(f"{API}/attendance/check-out", headers=headers)
    assert response.status_code == 200
    attendance = response.json()["attendance"]
    assert attendance["status"] == "present"
    assert attendance["checkOut"] is not None

    response = await client.post(f"{API}/attendance/check-out", headers=headers)
    assert response.status_code == 400


async def test_check_out_requires_check_in(client, seed):
    intern = await seed.user()
    response = await client.post(f"{API}/attendance/check-out", headers=auth_headers(intern))
    assert response.status_code == 400
    assert response.json()["error"] == "You have not checked in today"


async def test_my_attendance_summary(client, seed):
    intern = await seed.user()
    yesterday = utcnow() - timedelta(days=1)
    await seed.add(
        Attendance(
            user_id=intern.user_id,
            date=yesterday.date(),
            check_in=yesterday.replace(hour=8, minute=55),
            check_out=yesterday.replace(hour=17, minute=5),
        )
    )

    response = await client.get(f"{API}/attendance/me?days=7", headers=auth_headers(intern))
    assert response.status_code == 200
    body = response.json()
    assert len(body["records"]) == 1
    assert body["records"][0]["status"] == "present"
    assert body["summary"]["present"] == 1
    assert body["summary"]["totalHours"] == 8.17


async def test_attendance_summary_is_staff_only(client, seed):
    intern = await seed.user()
    response = await client.get(f"{API}/attendance/summary", headers=auth_headers(intern))
    assert response.status_code == 403


async def test_attendance_summary_counts_missing_interns_absent(client, seed):
    admin = await seed.user(UserRole.admin)
    present = await seed.user(name="Abena")
    await seed.user(name="Kojo")
    now = utcnow()
    await seed.add(Attendance(user_id=present.user_id, date=now.date(), check_in=now))

    response = await client.get(
        f"{API}/attendance/summary?date={now.date().isoformat()}", headers=auth_headers(admin)
    )
    body = response.json()
    assert body["totalInterns"] == 2
    assert body["counts"]["present"] == 1
    assert body["counts"]["absent"] == 1
    assert body["records"][1]["attendance"] is None


async def test_streak_counts_consecutive_days(client, seed):
    intern = await seed.user()
    now = utcnow()
    for offset in (1, 2, 4):
        day = now - timedelta(days=offset)
        await seed.add(Attendance(user_id=intern.user_id, date=day.date(), check_in=day))

    response = await client.get(f"{API}/milestones/streak", headers=auth_headers(intern))
    body = response.json()
    assert body["currentStreak"] == 2
    assert body["longestStreak"] == 2
    assert body["totalDays"] == 3
    assert len(body["history"]) == 30


async def test_achievements_reflect_completed_tasks(client, seed):
    intern = await seed.user()
    done = await seed.task(assignee=intern)
    await seed.task(assignee=intern)
    await seed.progress(done, intern, ProgressStatus.completed, 100, points_earned=10)

    response = await client.get(f"{API}/milestones/achievements", headers=auth_headers(intern))
    assert response.status_code == 200
    body = response.json()
    achieved = [a["id"] for a in body["achievements"] if a["achieved"]]
    assert achieved == ["first-task", "completion-50"]
    assert body["totalPoints"] == 30
    assert body["counters"]["commits"] == 0
    assert body["totalCount"] == 20


async def test_dashboard_is_role_aware(client, seed):
    cohort = await seed.cohort()
    intern = await seed.user(cohort_id=cohort.cohort_id)
    admin = await seed.user(UserRole.admin)
    task = await seed.task(assignee=intern)
    await seed.progress(task, intern, ProgressStatus.in_progress, 40, needs_help=True)

    response = await client.get(f"{API}/dashboard/stats", headers=auth_headers(intern))
    body = response.json()
    assert body["role"] == "intern"
    assert body["totalTasks"] == 1
    assert body["cohortRank"] == 1
    assert body["cohortSize"] == 1

    response = await client.get(f"{API}/dashboard/stats", headers=auth_headers(admin))
    body = response.json()
    assert body["role"] == "admin"
    assert body["totalInterns"] == 1
    assert body["tasks"]["active"] == 1
    assert body["progress"]["in_progress"] == 1
    assert body["needsHelp"] == 1

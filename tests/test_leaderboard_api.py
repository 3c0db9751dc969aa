from conftest import auth_headers
from internlink.constants.constants import ProgressStatus, UserRole

API = "/api/v1"


async def seed_scoring_scenario(seed):
    college = await seed.college()
    cohort = await seed.cohort(college_id=college.college_id)
    x = await seed.user(name="Xola", cohort_id=cohort.cohort_id, college_id=college.college_id)
    y = await seed.user(name="Yaw", cohort_id=cohort.cohort_id, college_id=college.college_id)

    points = [10, None, 20, 30]
    tasks = [await seed.task(assignee=x, points=p) for p in points]
    await seed.progress(tasks[0], x, ProgressStatus.completed, 100, points_earned=10)
    await seed.progress(tasks[1], x, ProgressStatus.approved, 100, points_earned=10)
    await seed.progress(tasks[2], x, ProgressStatus.in_review, 95)
    await seed.progress(tasks[3], x, ProgressStatus.in_progress, 50)

    big = await seed.task(assignee=y, points=50)
    await seed.progress(big, y, ProgressStatus.completed, 100, points_earned=50)
    return college, cohort, x, y


async def test_leaderboard_scoring_and_ranking(client, seed):
    _, _, x, y = await seed_scoring_scenario(seed)

    response = await client.get(f"{API}/leaderboard?scope=cohort", headers=auth_headers(x))
    assert response.status_code == 200
    body = response.json()
    assert body["scope"] == "cohort"
    assert body["totalParticipants"] == 2

    first, second = body["leaderboard"]
    assert (first["internId"], first["rank"], first["pointsEarned"]) == (y.user_id, 1, 50)
    assert second["internId"] == x.user_id
    assert second["rank"] == 2
    assert second["totalTasks"] == 4
    assert second["tasksCompleted"] == 3
    assert second["completionRate"] == 75
    assert second["pointsEarned"] == 40
    assert second["isCurrentUser"] is True
    assert first["isCurrentUser"] is False
    assert body["currentUserRank"] == 2


async def test_leaderboard_other_metric(client, seed):
    _, _, x, y = await seed_scoring_scenario(seed)
    response = await client.get(
        f"{API}/leaderboard?scope=college&metric=tasks-completed", headers=auth_headers(y)
    )
    body = response.json()
    assert body["scope"] == "college"
    assert [e["internId"] for e in body["leaderboard"]] == [x.user_id, y.user_id]


async def test_leaderboard_falls_back_to_global(client, seed):
    _, _, x, y = await seed_scoring_scenario(seed)
    loner = await seed.user(name="Zara")
    admin = await seed.user(UserRole.admin)

    response = await client.get(f"{API}/leaderboard?scope=cohort", headers=auth_headers(admin))
    body = response.json()
    assert body["scope"] == "global"
    assert body["requestedScope"] == "cohort"
    assert body["totalParticipants"] == 3
    assert sorted(e["rank"] for e in body["leaderboard"]) == [1, 2, 3]
    assert body["leaderboard"][-1]["internId"] == loner.user_id
    assert body["currentUserRank"] is None


async def test_leaderboard_rejects_unknown_metric(client, seed):
    intern = await seed.user()
    response = await client.get(f"{API}/leaderboard?metric=karma", headers=auth_headers(intern))
    assert response.status_code == 400
    assert response.json()["error"].startswith("metric:")


async def test_admin_stats_lists_top_performers(client, seed):
    _, _, x, y = await seed_scoring_scenario(seed)
    admin = await seed.user(UserRole.admin)

    response = await client.get(f"{API}/admin/task-progress?action=stats", headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert body["totalRecords"] == 5
    assert body["byStatus"]["completed"] == 2
    assert body["byStatus"]["in_review"] == 1
    assert [p["internId"] for p in body["topPerformers"]] == [y.user_id, x.user_id]


async def test_cohort_progress_report(client, seed):
    _, cohort, x, y = await seed_scoring_scenario(seed)
    admin = await seed.user(UserRole.admin)
    shared = await seed.task(cohort=cohort, points=5)
    await seed.progress(shared, x, ProgressStatus.completed, 100, points_earned=5)

    response = await client.get(
        f"{API}/admin/task-progress?action=cohort-progress&cohortId={cohort.cohort_id}",
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["totalTasks"] == 1
    assert body["totalInterns"] == 2
    assert body["tasks"][0]["summary"]["completedCount"] == 1
    assert body["interns"][0]["intern"]["id"] == x.user_id

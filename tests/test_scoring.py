import pytest

from internlink.constants.constants import LeaderboardMetric, ProgressStatus
from internlink.utils.scoring import (
    LeaderboardEntry,
    ProgressSnapshot,
    is_completed,
    overview_sort_key,
    rank_leaderboard,
    resolve_points,
    round_half_up,
    round_percent,
    summarize_intern,
    summarize_overview,
)


def snapshot(status=ProgressStatus.not_started, progress=0, points=10, earned=0, hours=0.0, **fields):
    return ProgressSnapshot(
        task_id=fields.pop("task_id", "task"),
        intern_id=fields.pop("intern_id", "intern"),
        task_points=points,
        status=status,
        progress=progress,
        points_earned=earned,
        actual_hours=hours,
        **fields,
    )


@pytest.mark.parametrize(
    "status,progress,expected",
    [
        (ProgressStatus.completed, 100, True),
        (ProgressStatus.approved, 100, True),
        (ProgressStatus.in_review, 90, True),
        (ProgressStatus.in_review, 89, False),
        (ProgressStatus.in_progress, 95, False),
        (ProgressStatus.not_started, 0, False),
        (ProgressStatus.cancelled, 0, False),
    ],
)
def test_single_completion_predicate(status, progress, expected):
    assert is_completed(status, progress) is expected


def test_rounding_is_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_percent(1, 3) == 33
    assert round_percent(2, 3) == 67
    assert round_percent(1, 8) == 13
    assert round_percent(0, 0) == 0


def test_unset_points_default_but_zero_is_kept():
    assert resolve_points(None) == 10
    assert resolve_points(0) == 0
    assert resolve_points(25) == 25


def test_intern_stats_count_points_of_completed_tasks():
    stats = summarize_intern([
        snapshot(ProgressStatus.completed, 100, points=10, earned=10, hours=2),
        snapshot(ProgressStatus.approved, 100, points=10, earned=10, hours=1.5),
        snapshot(ProgressStatus.in_review, 90, points=20, hours=3),
        snapshot(ProgressStatus.in_progress, 40, points=30, hours=1),
    ])
    assert stats.total_tasks == 4
    assert stats.completed_tasks == 3
    assert stats.completion_rate == 75
    assert stats.points_earned == 40
    assert stats.hours_logged == 7.5


def test_intern_without_tasks_has_zero_rate():
    stats = summarize_intern([])
    assert stats.completion_rate == 0
    assert stats.points_earned == 0


def test_overview_summary_and_order():
    rows = [
        snapshot(ProgressStatus.not_started, 0, intern_id="a"),
        snapshot(ProgressStatus.in_progress, 40, intern_id="b", needs_help=True),
        snapshot(ProgressStatus.completed, 100, earned=10, intern_id="c", hours=4),
        snapshot(ProgressStatus.in_progress, 70, intern_id="d"),
        snapshot(ProgressStatus.in_review, 90, intern_id="e"),
    ]
    summary = summarize_overview(rows)
    assert summary["totalInterns"] == 5
    assert summary["completedCount"] == 2
    assert summary["inProgressCount"] == 2
    assert summary["reviewCount"] == 1
    assert summary["notStartedCount"] == 1
    assert summary["needsHelpCount"] == 1
    assert summary["averageProgress"] == 60
    assert summary["completionRate"] == 40
    assert summary["totalPointsEarned"] == 20
    assert summary["totalHoursLogged"] == 4.0

    ordered = [s.intern_id for s in sorted(rows, key=overview_sort_key)]
    assert ordered == ["c", "e", "d", "b", "a"]


def entry(intern_id, points=0, completed=0, rate=0):
    return LeaderboardEntry(
        intern_id=intern_id,
        name=intern_id,
        username=intern_id,
        points_earned=points,
        tasks_completed=completed,
        completion_rate=rate,
    )


def test_leaderboard_ranks_form_a_total_order():
    entries = [entry("a", 20, 2), entry("b", 40, 3), entry("c", 20, 4), entry("d", 20, 2), entry("e", 0)]
    ranked = rank_leaderboard(entries)

    assert [e.intern_id for e in ranked] == ["b", "c", "a", "d", "e"]
    assert sorted(e.rank for e in ranked) == [1, 2, 3, 4, 5]
    for better in ranked:
        for worse in ranked:
            if better.points_earned > worse.points_earned:
                assert better.rank < worse.rank


def test_leaderboard_by_other_metric():
    ranked = rank_leaderboard(
        [entry("a", points=50, rate=40), entry("b", points=10, rate=90)],
        LeaderboardMetric.completion_rate,
    )
    assert [e.intern_id for e in ranked] == ["b", "a"]
    assert ranked[0].rank == 1


def test_overview_and_intern_stats_agree_on_points():
    rows = [
        snapshot(ProgressStatus.in_review, 90, points=15),
        snapshot(ProgressStatus.completed, 100, points=10, earned=10),
        snapshot(ProgressStatus.in_review, 80, points=30),
    ]
    assert summarize_overview(rows)["totalPointsEarned"] == 25
    assert summarize_intern(rows).points_earned == 25

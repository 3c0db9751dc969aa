"""Milestone derivation: achievements are a pure function of a user's counters."""

from dataclasses import dataclass
from typing import List

from internlink.utils.scoring import round_half_up


@dataclass(frozen=True)
class AchievementRule:
    achievement_id: str
    category: str
    threshold: int
    title: str
    description: str
    points: int
    icon: str = "🏅"


@dataclass
class AchievementCounters:
    completed_tasks: int = 0
    commit_count: int = 0
    attendance_days: int = 0
    account_age_days: int = 0
    completion_rate: int = 0


ACHIEVEMENT_RULES: List[AchievementRule] = [
    AchievementRule("first-task", "tasks", 1, "First Steps", "Complete your first task", 10, "🎯"),
    AchievementRule("tasks-5", "tasks", 5, "Getting Started", "Complete 5 tasks", 25, "🚀"),
    AchievementRule("tasks-10", "tasks", 10, "Task Master", "Complete 10 tasks", 50, "⭐"),
    AchievementRule("tasks-25", "tasks", 25, "Quarter Century", "Complete 25 tasks", 25, "🏆"),
    AchievementRule("tasks-50", "tasks", 50, "Half Century", "Complete 50 tasks", 50, "🥇"),
    AchievementRule("tasks-100", "tasks", 100, "Centurion", "Complete 100 tasks", 100, "💯"),
    AchievementRule("attendance-7", "attendance", 7, "Week Warrior", "Attend 7 days", 15, "📅"),
    AchievementRule("attendance-14", "attendance", 14, "Fortnight Fighter", "Attend 14 days", 25, "📆"),
    AchievementRule("attendance-30", "attendance", 30, "Monthly Regular", "Attend 30 days", 50, "🗓️"),
    AchievementRule("attendance-60", "attendance", 60, "Dedicated", "Attend 60 days", 75, "🔥"),
    AchievementRule("attendance-90", "attendance", 90, "Unstoppable", "Attend 90 days", 100, "⚡"),
    AchievementRule("completion-50", "completion", 50, "Halfway Hero", "Reach a 50% completion rate", 20, "📈"),
    AchievementRule("completion-75", "completion", 75, "Reliable", "Reach a 75% completion rate", 35, "✅"),
    AchievementRule("completion-90", "completion", 90, "Consistent", "Reach a 90% completion rate", 50, "🎖️"),
    AchievementRule("completion-95", "completion", 95, "Perfectionist", "Reach a 95% completion rate", 75, "💎"),
    AchievementRule("first-commit", "commits", 1, "First Commit", "Push your first commit", 10, "💻"),
    AchievementRule("commits-50", "commits", 50, "Code Contributor", "Push 50 commits", 40, "🧑‍💻"),
    AchievementRule("commits-100", "commits", 100, "Code Machine", "Push 100 commits", 75, "🤖"),
    AchievementRule("member-week", "tenure", 7, "Settling In", "Be a member for 7 days", 20, "🌱"),
    AchievementRule("member-month", "tenure", 30, "Veteran", "Be a member for 30 days", 50, "🌳"),
]

CATEGORY_COUNTERS = {
    "tasks": "completed_tasks",
    "attendance": "attendance_days",
    "completion": "completion_rate",
    "commits": "commit_count",
    "tenure": "account_age_days",
}


def _progress_towards(value: int, threshold: int) -> int:
    # An unachieved record never reports a full bar.
    return min(round_half_up(value / threshold * 100), 99)


def derive_achievements(counters: AchievementCounters, rules: List[AchievementRule] = None) -> List[dict]:
    """
    Evaluate every rule against the counters.

    Achieved records come first in rule order, followed by the unachieved ones
    by descending progress.
    """
    rules = ACHIEVEMENT_RULES if rules is None else rules
    achieved, pending = [], []
    for rule in rules:
        value = getattr(counters, CATEGORY_COUNTERS[rule.category])
        is_achieved = value >= rule.threshold
        record = {
            "id": rule.achievement_id,
            "category": rule.category,
            "title": rule.title,
            "description": rule.description,
            "icon": rule.icon,
            "threshold": rule.threshold,
            "points": rule.points,
            "current": value,
            "achieved": is_achieved,
            "progress": 100 if is_achieved else _progress_towards(value, rule.threshold),
        }
        (achieved if is_achieved else pending).append(record)

    pending.sort(key=lambda record: -record["progress"])
    return achieved + pending


def total_achievement_points(achievements: List[dict]) -> int:
    return sum(a["points"] for a in achievements if a["achieved"])

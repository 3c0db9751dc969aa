from datetime import datetime
from types import SimpleNamespace

import pytest

from internlink.constants.constants import AssignmentMode, ProgressStatus, TaskStatus
from internlink.models.taskprogress import TaskProgress
from internlink.utils.progress import (
    ProgressRuleError,
    apply_progress_update,
    apply_review,
    mark_completed,
    mark_started,
    mark_submitted,
    record_time_log,
    request_help,
    resolve_help,
    set_subtask_state,
    sync_individual_task,
)
from internlink.utils.scoring import is_completed

NOW = datetime(2024, 2, 1, 10, 0)
SUBTASKS = {"s1", "s2", "s3", "s4"}


def make_record(**overrides):
    values = dict(
        task_id="task",
        intern_id="intern",
        status=ProgressStatus.not_started,
        progress=0,
        points_earned=0,
        actual_hours=0.0,
        needs_help=False,
        subtask_progress=[],
        time_logs=[],
    )
    values.update(overrides)
    return TaskProgress(**values)


def assert_completion_invariant(record, points):
    if record.status in (ProgressStatus.completed, ProgressStatus.approved):
        assert record.points_earned == points
        assert record.progress == 100
        assert record.completed_at is not None
    else:
        assert record.points_earned == 0


def test_progress_zero_keeps_not_started():
    record = apply_progress_update(make_record(), 0, 10, NOW)
    assert record.status == ProgressStatus.not_started
    assert record.points_earned == 0


def test_partial_progress_is_in_progress():
    record = apply_progress_update(make_record(), 45, 10, NOW)
    assert record.status == ProgressStatus.in_progress
    assert record.progress == 45
    assert record.started_at == NOW


def test_full_progress_completes_and_awards_points():
    record = apply_progress_update(make_record(), 100, 20, NOW)
    assert record.status == ProgressStatus.completed
    assert record.completed_at == NOW
    assert_completion_invariant(record, 20)


def test_full_progress_keeps_an_approved_record_approved():
    record = apply_review(make_record(status=ProgressStatus.in_review, progress=95), True, 20, NOW, "lead")
    apply_progress_update(record, 100, 20, NOW)
    assert record.status == ProgressStatus.approved
    assert record.completed_by == "lead"
    assert_completion_invariant(record, 20)


def test_sending_back_completed_work_drops_below_full_progress():
    record = mark_completed(make_record(), 10, NOW)
    apply_review(record, False, 10, NOW, "lead")
    assert record.status == ProgressStatus.in_progress
    assert record.progress < 100
    assert not is_completed(record.status, record.progress)
    assert_completion_invariant(record, 10)


def test_lowering_progress_after_completion_clears_points():
    record = apply_progress_update(make_record(), 100, 20, NOW)
    apply_progress_update(record, 60, 20, NOW)
    assert record.status == ProgressStatus.in_progress
    assert record.completed_at is None
    assert_completion_invariant(record, 20)


@pytest.mark.parametrize("value", [-1, 101, 150])
def test_out_of_range_progress_is_rejected_without_change(value):
    record = make_record(progress=30, status=ProgressStatus.in_progress)
    with pytest.raises(ProgressRuleError):
        apply_progress_update(record, value, 10, NOW)
    assert record.progress == 30
    assert record.status == ProgressStatus.in_progress


def test_cancelled_progress_rejects_updates():
    with pytest.raises(ProgressRuleError):
        apply_progress_update(make_record(status=ProgressStatus.cancelled), 50, 10, NOW)


def test_start_sets_minimum_progress_once():
    record = make_record()
    assert mark_started(record, NOW) is True
    assert record.status == ProgressStatus.in_progress
    assert record.progress == 10
    assert mark_started(record, NOW) is False


def test_submit_requires_url_and_moves_to_review():
    record = make_record(progress=40, status=ProgressStatus.in_progress)
    with pytest.raises(ProgressRuleError):
        mark_submitted(record, "  ", None, NOW)

    mark_submitted(record, "https://gitlab.com/acme/repo/-/merge_requests/1", "ready", NOW)
    assert record.status == ProgressStatus.in_review
    assert record.progress == 90
    assert is_completed(record.status, record.progress)


def test_submit_after_completion_keeps_completion():
    record = mark_completed(make_record(), 10, NOW, completed_by="lead")
    mark_submitted(record, "https://example.com/pr/2", None, NOW)
    assert record.status == ProgressStatus.completed
    assert record.progress == 100


def test_subtasks_complete_then_revert():
    record = make_record()
    for subtask_id in sorted(SUBTASKS):
        set_subtask_state(record, SUBTASKS, subtask_id, True, 15, NOW)
    assert record.status == ProgressStatus.completed
    assert_completion_invariant(record, 15)

    set_subtask_state(record, SUBTASKS, "s2", False, 15, NOW)
    assert record.progress == 75
    assert record.status == ProgressStatus.in_progress
    assert record.completed_at is None
    assert_completion_invariant(record, 15)


def test_first_checked_subtask_starts_the_task():
    record = set_subtask_state(make_record(), SUBTASKS, "s1", True, 10, NOW)
    assert record.status == ProgressStatus.in_progress
    assert record.progress == 25


def test_review_approves_or_sends_back():
    approved = apply_review(make_record(status=ProgressStatus.in_review, progress=90), True, 30, NOW, "lead", grade=88)
    assert approved.status == ProgressStatus.approved
    assert approved.grade == 88
    assert_completion_invariant(approved, 30)

    sent_back = apply_review(approved, False, 30, NOW, "lead", feedback="Add tests")
    assert sent_back.status == ProgressStatus.in_progress
    assert sent_back.feedback == "Add tests"
    assert sent_back.progress == 90
    assert_completion_invariant(sent_back, 30)


def test_time_logs_accumulate():
    record = make_record()
    record_time_log(record, 2.5, "setup", NOW)
    record_time_log(record, 1.25, None, NOW)
    assert record.actual_hours == 3.75
    assert len(record.time_logs) == 2

    with pytest.raises(ProgressRuleError):
        record_time_log(record, 0, None, NOW)


def test_help_request_round_trip():
    record = make_record()
    with pytest.raises(ProgressRuleError):
        request_help(record, "", NOW)

    request_help(record, "Stuck on the CI config", NOW)
    assert record.needs_help is True
    resolve_help(record)
    assert record.needs_help is False
    assert record.help_message is None


def test_individual_task_mirrors_progress():
    task = SimpleNamespace(
        assignment_mode=AssignmentMode.individual,
        status=TaskStatus.active,
        started_at=None,
        completed_at=None,
    )
    record = mark_completed(make_record(), 10, NOW)
    sync_individual_task(task, record, NOW)
    assert task.status == TaskStatus.completed
    assert task.completed_at == NOW

    cohort_task = SimpleNamespace(assignment_mode=AssignmentMode.cohort, status=TaskStatus.active)
    sync_individual_task(cohort_task, record, NOW)
    assert cohort_task.status == TaskStatus.active

"""Tests for task, recurrence rule and task instance repositories."""

import pytest
import uuid
from datetime import date, datetime, timedelta

from taskcadence.database.models import RecurrenceRuleDB, TaskInstanceDB
from taskcadence.database.recurrence_rule_repository import RuleAlreadyExistsError
from taskcadence.engine.errors import RecurrenceValidationError, RuleViolation
from taskcadence.models.recurrence import (
    CustomUnit,
    EndsAfterCount,
    EndsOnDate,
    RecurrencePattern,
    RecurrenceRule,
    RecurrenceRuleUpdate,
    Weekday,
)
from taskcadence.models.task import InstanceStatus, NonRecurring, Recurring, Task


class TestTaskRepository:
    def test_create_non_recurring(self, task_repository, sample_task):
        created = task_repository.create(sample_task)
        assert created.id == sample_task.id
        assert isinstance(created.recurrence, NonRecurring)
        assert task_repository.get(sample_task.id).title == "Test Task"

    def test_create_recurring_stores_rule(self, task_repository, rule_repository, recurring_task):
        created = task_repository.create(recurring_task)
        assert isinstance(created.recurrence, Recurring)
        assert created.recurrence.rule_id is not None
        assert created.rule.pattern == RecurrencePattern.DAILY

        row = rule_repository.get_for_task(recurring_task.id)
        assert row is not None
        assert row.id == created.recurrence.rule_id

    def test_create_normalizes_rule(self, task_repository, sample_task_base):
        rule = RecurrenceRule(pattern=RecurrencePattern.DAILY, day_of_month=12, custom_unit=CustomUnit.DAYS)
        task = Task(**{**sample_task_base, "recurrence": Recurring(rule=rule)})
        stored = task_repository.create(task).rule
        assert stored.day_of_month is None
        assert stored.custom_unit is None

    def test_create_rejects_invalid_rule(self, task_repository, sample_task_base):
        rule = RecurrenceRule(pattern=RecurrencePattern.WEEKLY)
        task = Task(**{**sample_task_base, "recurrence": Recurring(rule=rule)})
        with pytest.raises(RecurrenceValidationError) as exc_info:
            task_repository.create(task)
        assert exc_info.value.violation == RuleViolation.WEEKLY_WITHOUT_DAYS
        assert task_repository.get(task.id) is None

    def test_get_missing(self, task_repository):
        assert task_repository.get("nope") is None
        assert task_repository.exists("nope") is False

    def test_get_all_newest_first(self, task_repository, sample_task_base):
        base = datetime(2024, 1, 1)
        for i in range(3):
            task_repository.create(
                Task(**{**sample_task_base, "id": str(uuid.uuid4()), "title": f"T{i}", "created_at": base + timedelta(hours=i)})
            )
        assert [t.title for t in task_repository.get_all()] == ["T2", "T1", "T0"]

    def test_get_all_attaches_rules(self, task_repository, sample_task, recurring_task):
        task_repository.create(sample_task)
        task_repository.create(recurring_task)
        by_id = {t.id: t for t in task_repository.get_all()}
        assert by_id[sample_task.id].is_recurring is False
        assert by_id[recurring_task.id].is_recurring is True

    def test_soft_delete_removes_rule_and_pending_instances(
        self, task_repository, instance_repository, db_session, recurring_task
    ):
        created = task_repository.create(recurring_task)
        rule_id = created.recurrence.rule_id
        done = instance_repository.create_if_absent(created.id, rule_id, datetime(2024, 1, 2, 9, 0))
        instance_repository.update_status(done.id, InstanceStatus.COMPLETED)
        instance_repository.create_if_absent(created.id, rule_id, datetime(2024, 1, 3, 9, 0))

        assert task_repository.soft_delete(created.id) is True
        assert task_repository.get(created.id) is None
        assert task_repository.get_all() == []
        assert db_session.query(RecurrenceRuleDB).count() == 0

        remaining = instance_repository.list_for_task(created.id)
        assert [i.id for i in remaining] == [done.id]
        assert remaining[0].rule_id is None

        assert task_repository.soft_delete(created.id) is False


class TestRecurrenceRuleRepository:
    def test_create_for_task(self, task_repository, rule_repository, sample_task):
        task_repository.create(sample_task)
        rule = RecurrenceRule(
            pattern=RecurrencePattern.MONTHLY,
            week_of_month=5,
            day_of_week_for_month=Weekday.FR,
            end_condition=EndsOnDate(until=date(2024, 12, 31)),
        )
        row = rule_repository.create_for_task(sample_task.id, rule)
        assert row.day_of_week_for_month == 4
        assert row.end_type == "date"

        loaded = rule_repository.get(row.id).to_rule()
        assert loaded.day_of_week_for_month == Weekday.FR
        assert loaded.end_condition.until == date(2024, 12, 31)
        assert task_repository.get(sample_task.id).is_recurring is True

    def test_weekdays_round_trip_through_storage(self, task_repository, rule_repository, sample_task):
        task_repository.create(sample_task)
        rule = RecurrenceRule(pattern=RecurrencePattern.WEEKLY, days_of_week=[Weekday.SU, Weekday.MO])
        row = rule_repository.create_for_task(sample_task.id, rule)
        assert row.days_of_week == [0, 6]
        assert rule_repository.get_for_task(sample_task.id).to_rule().days_of_week == [Weekday.MO, Weekday.SU]

    def test_create_twice_conflicts(self, task_repository, rule_repository, recurring_task, daily_rule):
        task_repository.create(recurring_task)
        with pytest.raises(RuleAlreadyExistsError):
            rule_repository.create_for_task(recurring_task.id, daily_rule)

    def test_create_invalid_rule(self, task_repository, rule_repository, sample_task):
        task_repository.create(sample_task)
        with pytest.raises(RecurrenceValidationError):
            rule_repository.create_for_task(sample_task.id, RecurrenceRule(pattern=RecurrencePattern.MONTHLY))
        assert rule_repository.get_for_task(sample_task.id) is None

    def test_update_merges_partial_fields(self, task_repository, rule_repository, sample_task, weekly_rule):
        task_repository.create(sample_task)
        rule_repository.create_for_task(sample_task.id, weekly_rule)

        row = rule_repository.update_for_task(
            sample_task.id,
            RecurrenceRuleUpdate.model_validate({"interval": 2, "end_condition": {"type": "count", "count": 6}}),
        )
        rule = row.to_rule()
        assert rule.interval == 2
        assert rule.days_of_week == [Weekday.MO, Weekday.WE, Weekday.FR]
        assert isinstance(rule.end_condition, EndsAfterCount)
        assert rule.end_condition.count == 6

    def test_update_pattern_change_clears_stale_fields(self, task_repository, rule_repository, sample_task, weekly_rule):
        task_repository.create(sample_task)
        rule_repository.create_for_task(sample_task.id, weekly_rule)
        row = rule_repository.update_for_task(sample_task.id, RecurrenceRuleUpdate(pattern=RecurrencePattern.WORKDAYS))
        assert row.pattern == "workdays"
        assert row.days_of_week is None

    def test_invalid_update_leaves_rule_unchanged(self, task_repository, rule_repository, sample_task, weekly_rule):
        task_repository.create(sample_task)
        rule_repository.create_for_task(sample_task.id, weekly_rule)
        with pytest.raises(RecurrenceValidationError):
            rule_repository.update_for_task(sample_task.id, RecurrenceRuleUpdate.model_validate({"days_of_week": []}))
        assert rule_repository.get_for_task(sample_task.id).to_rule().days_of_week == weekly_rule.days_of_week

    def test_update_missing_rule(self, rule_repository):
        assert rule_repository.update_for_task("nope", RecurrenceRuleUpdate(interval=2)) is None

    def test_delete_keeps_completed_instances(
        self, task_repository, rule_repository, instance_repository, recurring_task
    ):
        created = task_repository.create(recurring_task)
        rule_id = created.recurrence.rule_id
        done = instance_repository.create_if_absent(created.id, rule_id, datetime(2024, 1, 2, 9, 0))
        instance_repository.update_status(done.id, InstanceStatus.COMPLETED)
        instance_repository.create_if_absent(created.id, rule_id, datetime(2024, 1, 3, 9, 0))

        assert rule_repository.delete_for_task(created.id) is True
        assert rule_repository.get_for_task(created.id) is None
        assert task_repository.get(created.id).is_recurring is False

        remaining = instance_repository.list_for_task(created.id)
        assert [i.id for i in remaining] == [done.id]
        assert remaining[0].rule_id is None

        assert rule_repository.delete_for_task(created.id) is False

    def test_record_progress(self, task_repository, rule_repository, recurring_task):
        task_repository.create(recurring_task)
        row = rule_repository.get_for_task(recurring_task.id)
        assert row.materialized_count == 0
        assert row.last_occurrence_at is None

        anchor = datetime(2024, 1, 1, 9, 0)
        rule_repository.record_progress(row, anchor, datetime(2024, 1, 3, 9, 0), 2)
        row = rule_repository.record_progress(row, datetime(2030, 1, 1), datetime(2024, 1, 2, 9, 0), 1)

        assert row.materialized_count == 3
        # First anchor sticks; the last occurrence never moves backward.
        assert row.series_anchor_at == anchor
        assert row.last_occurrence_at == datetime(2024, 1, 3, 9, 0)


class TestTaskInstanceRepository:
    def _recurring(self, task_repository, recurring_task):
        created = task_repository.create(recurring_task)
        return created.id, created.recurrence.rule_id

    def test_create_if_absent_is_idempotent(self, task_repository, instance_repository, db_session, recurring_task):
        task_id, rule_id = self._recurring(task_repository, recurring_task)
        at = datetime(2024, 1, 2, 9, 0)
        first = instance_repository.create_if_absent(task_id, rule_id, at)
        assert first is not None
        assert first.status == InstanceStatus.PENDING
        assert instance_repository.create_if_absent(task_id, rule_id, at) is None
        assert db_session.query(TaskInstanceDB).count() == 1

    def test_ordering_and_bounds(self, task_repository, instance_repository, recurring_task):
        task_id, rule_id = self._recurring(task_repository, recurring_task)
        for day in (5, 2, 9):
            instance_repository.create_if_absent(task_id, rule_id, datetime(2024, 1, day, 9, 0))

        listed = instance_repository.list_for_task(task_id)
        assert [i.occurrence_at.day for i in listed] == [2, 5, 9]
        assert instance_repository.latest_occurrence_for_task(task_id) == datetime(2024, 1, 9, 9, 0)

    def test_empty_task(self, instance_repository):
        assert instance_repository.list_for_task("nope") == []
        assert instance_repository.latest_occurrence_for_task("nope") is None

    def test_update_status(self, task_repository, instance_repository, recurring_task):
        task_id, rule_id = self._recurring(task_repository, recurring_task)
        instance = instance_repository.create_if_absent(task_id, rule_id, datetime(2024, 1, 2, 9, 0))

        completed = instance_repository.update_status(instance.id, InstanceStatus.COMPLETED)
        assert completed.status == InstanceStatus.COMPLETED
        assert completed.completed_at is not None

        reopened = instance_repository.update_status(instance.id, InstanceStatus.PENDING)
        assert reopened.status == InstanceStatus.PENDING
        assert reopened.completed_at is None

        assert instance_repository.update_status("nope", InstanceStatus.SKIPPED) is None

    def test_delete(self, task_repository, instance_repository, recurring_task):
        task_id, rule_id = self._recurring(task_repository, recurring_task)
        instance = instance_repository.create_if_absent(task_id, rule_id, datetime(2024, 1, 2, 9, 0))
        assert instance_repository.delete(instance.id) is True
        assert instance_repository.get(instance.id) is None
        assert instance_repository.delete(instance.id) is False

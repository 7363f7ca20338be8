"""Reminder rules tests: creation, editing, act operations and sweep steps"""
from datetime import datetime, timedelta

import pytest

from printops.domain.enums import ProjectStatus as S, ReminderRepeat, ReminderStatus, ReminderTriggerMode
from printops.domain.errors import (
    CannotDeleteScheduledError,
    InvalidStateError,
    InvalidTimeError,
    NoConcreteTriggerError,
    NotEditableError,
    PermissionDeniedError,
    ValidationError,
)
from printops.domain.models import ProjectHold, ReminderChannels, UserSnapshot
from printops.engine.reminder_rules import ReminderLimits, ReminderRules
from tests.conftest import T0

STAGE = ReminderTriggerMode.STAGE_BASED


@pytest.fixture
def rules() -> ReminderRules:
    return ReminderRules()


@pytest.fixture
def absolute(rules, sales):
    def _build(remind_at="2026-03-02T10:00:00Z", repeat=ReminderRepeat.NONE, **kwargs):
        return rules.build_reminder(
            reminder_id="REM-1", actor=sales, now=T0, title="Call the client",
            remind_at=remind_at, repeat=repeat, **kwargs
        )
    return _build


@pytest.fixture
def stage(rules, sales, make_project):
    def _build(project=None, watch_status="Pending Mockup", delay_minutes=0, repeat=ReminderRepeat.NONE):
        return rules.build_reminder(
            reminder_id="REM-2", actor=sales, now=T0, title="Chase graphics",
            trigger_mode=STAGE, watch_status=watch_status, delay_minutes=delay_minutes,
            repeat=repeat, project=project or make_project(),
        )
    return _build


class TestBuildReminder:

    def test_absolute_reminder_starts_scheduled(self, absolute, sales):
        reminder = absolute()
        assert reminder.status == ReminderStatus.SCHEDULED
        assert reminder.is_active
        assert reminder.remind_at == datetime(2026, 3, 2, 10, 0)
        assert reminder.next_trigger_at == reminder.remind_at
        assert reminder.recipients == [sales.user_id]

    def test_naive_time_is_read_in_the_reminder_timezone(self, absolute):
        reminder = absolute(remind_at="2026-07-01T09:00:00", timezone="America/New_York")
        assert reminder.next_trigger_at == datetime(2026, 7, 1, 13, 0)

    def test_unparseable_time_is_rejected(self, absolute):
        with pytest.raises(InvalidTimeError):
            absolute(remind_at="next tuesday")
        with pytest.raises(InvalidTimeError):
            absolute(remind_at=None)

    def test_past_time_is_accepted(self, absolute):
        reminder = absolute(remind_at="2020-01-01T00:00:00Z")
        assert reminder.next_trigger_at == datetime(2020, 1, 1)

    def test_title_and_channels_are_validated(self, rules, sales):
        with pytest.raises(ValidationError):
            rules.build_reminder(reminder_id="R", actor=sales, now=T0, title="  ", remind_at="2026-03-02T10:00:00Z")
        with pytest.raises(ValidationError):
            rules.build_reminder(
                reminder_id="R", actor=sales, now=T0, title="x", remind_at="2026-03-02T10:00:00Z",
                channels=ReminderChannels(in_app=False, email=False)
            )

    def test_unknown_timezone_is_rejected(self, absolute):
        with pytest.raises(ValidationError):
            absolute(timezone="Mars/Olympus")

    def test_non_admin_recipients_are_ignored(self, absolute, sales):
        assert absolute(recipient_ids=["u-other"]).recipients == [sales.user_id]

    def test_admin_recipients_include_the_creator_first(self, rules, admin):
        reminder = rules.build_reminder(
            reminder_id="R", actor=admin, now=T0, title="Team check-in",
            remind_at="2026-03-02T10:00:00Z", recipient_ids=["u-a", "u-admin", "u-b", "u-a"]
        )
        assert reminder.recipients == ["u-admin", "u-a", "u-b"]

    def test_stage_reminder_waits_for_its_status(self, stage):
        reminder = stage()
        assert reminder.next_trigger_at is None
        assert reminder.stage_matched_at is None
        assert reminder.watch_status == S.PENDING_MOCKUP

    def test_stage_reminder_matches_immediately_when_already_there(self, stage, make_project):
        reminder = stage(project=make_project(S.PENDING_MOCKUP), delay_minutes=30)
        assert reminder.stage_matched_at == T0
        assert reminder.next_trigger_at == T0 + timedelta(minutes=30)

    def test_stage_reminder_needs_a_project_and_a_valid_status(self, rules, sales, make_project):
        with pytest.raises(ValidationError):
            rules.build_reminder(
                reminder_id="R", actor=sales, now=T0, title="x", trigger_mode=STAGE, watch_status="Pending Mockup"
            )
        with pytest.raises(ValidationError):
            rules.build_reminder(
                reminder_id="R", actor=sales, now=T0, title="x", trigger_mode=STAGE,
                watch_status="Pending Mockup", project=make_project(project_type="Quote")
            )

    def test_delay_is_bounded(self, stage):
        with pytest.raises(ValidationError):
            stage(delay_minutes=-1)
        with pytest.raises(ValidationError):
            stage(delay_minutes=60 * 24 * 91)


class TestEdit:

    def test_editable_only_before_the_trigger(self, rules, absolute):
        reminder = absolute()
        assert rules.is_editable(reminder, T0)
        assert not rules.is_editable(reminder, datetime(2026, 3, 2, 10, 0))

    def test_waiting_stage_reminder_is_editable(self, rules, stage):
        assert rules.is_editable(stage(), T0 + timedelta(days=30))

    def test_edit_recomputes_the_trigger(self, rules, absolute, sales):
        edited = rules.apply_edit(absolute(), {"remind_at": "2026-03-05T08:00:00Z", "title": "New"}, sales, T0)
        assert edited.title == "New"
        assert edited.next_trigger_at == datetime(2026, 3, 5, 8, 0)

    def test_timezone_only_edit_keeps_a_snoozed_trigger(self, rules, absolute, sales):
        snoozed = rules.snooze(absolute(), 30, T0)
        edited = rules.apply_edit(snoozed, {"timezone": "Europe/London"}, sales, T0)
        assert edited.timezone == "Europe/London"
        assert edited.next_trigger_at == datetime(2026, 3, 2, 10, 30)

    def test_resending_the_same_time_keeps_a_snoozed_trigger(self, rules, absolute, sales):
        snoozed = rules.snooze(absolute(), 30, T0)
        edited = rules.apply_edit(snoozed, {"remind_at": "2026-03-02T10:00:00Z", "title": "Renamed"}, sales, T0)
        assert edited.title == "Renamed"
        assert edited.next_trigger_at == datetime(2026, 3, 2, 10, 30)

    def test_new_timezone_applies_to_a_new_time(self, rules, absolute, sales):
        edited = rules.apply_edit(
            absolute(), {"remind_at": "2026-07-01T09:00:00", "timezone": "America/New_York"}, sales, T0
        )
        assert edited.next_trigger_at == datetime(2026, 7, 1, 13, 0)

    def test_stage_edit_keeps_the_match_when_target_is_unchanged(self, rules, stage, make_project, sales):
        project = make_project(S.PENDING_MOCKUP)
        matched = stage(project=project, delay_minutes=30)
        edited = rules.apply_edit(matched, {"watch_status": "Pending Mockup"}, sales, T0 + timedelta(minutes=5), project)
        assert edited.stage_matched_at == T0
        assert edited.next_trigger_at == T0 + timedelta(minutes=30)

    def test_edit_after_trigger_is_rejected(self, rules, absolute, sales):
        with pytest.raises(NotEditableError):
            rules.apply_edit(absolute(), {"title": "Late"}, sales, datetime(2026, 3, 3))

    def test_changing_recipients_is_admin_only(self, rules, absolute, sales, admin):
        reminder = absolute()
        with pytest.raises(PermissionDeniedError):
            rules.apply_edit(reminder, {"recipient_ids": ["u-x"]}, sales, T0)
        edited = rules.apply_edit(reminder, {"recipient_ids": ["u-x"]}, admin, T0)
        assert edited.recipients == [sales.user_id, "u-x"]

    def test_channels_merge_partial_updates(self, rules, absolute, sales):
        edited = rules.apply_edit(absolute(), {"channels": {"email": True}}, sales, T0)
        assert edited.channels.in_app and edited.channels.email


class TestActOperations:

    def test_snooze_pushes_from_the_later_of_trigger_and_now(self, rules, absolute):
        reminder = absolute()
        early = rules.snooze(reminder, 15, T0)
        assert early.next_trigger_at == datetime(2026, 3, 2, 10, 15)
        late = rules.snooze(reminder, None, datetime(2026, 3, 2, 11, 0))
        assert late.next_trigger_at == datetime(2026, 3, 2, 12, 0)
        assert late.status == ReminderStatus.SCHEDULED

    def test_snooze_is_capped(self, rules, absolute):
        snoozed = rules.snooze(absolute(), 60 * 24 * 30, T0)
        assert snoozed.next_trigger_at == datetime(2026, 3, 16, 10, 0)

    def test_snooze_rejects_non_positive_minutes(self, rules, absolute):
        with pytest.raises(ValidationError):
            rules.snooze(absolute(), 0, T0)

    def test_waiting_stage_reminder_cannot_snooze(self, rules, stage):
        with pytest.raises(NoConcreteTriggerError):
            rules.snooze(stage(), 10, T0)

    def test_only_scheduled_reminders_snooze(self, rules, absolute):
        cancelled = rules.cancel(absolute(), T0)
        with pytest.raises(InvalidStateError):
            rules.snooze(cancelled, 10, T0)

    def test_complete_and_cancel_are_idempotent(self, rules, absolute):
        completed = rules.complete(absolute(), T0)
        assert completed.status == ReminderStatus.COMPLETED
        assert not completed.is_active
        assert rules.complete(completed, T0) is None

        cancelled = rules.cancel(absolute(), T0)
        assert cancelled.cancelled_at == T0
        assert rules.cancel(cancelled, T0) is None

    def test_scheduled_reminder_cannot_be_deleted(self, rules, absolute):
        reminder = absolute()
        with pytest.raises(CannotDeleteScheduledError):
            rules.check_deletable(reminder)
        rules.check_deletable(rules.cancel(reminder, T0))


class TestSweepSteps:

    def test_one_shot_absolute_fires_and_completes(self, rules, absolute):
        outcome = rules.process_due(absolute(), None, datetime(2026, 3, 2, 10, 0))
        assert outcome.fired
        assert outcome.reminder.status == ReminderStatus.COMPLETED
        assert outcome.reminder.trigger_count == 1

    def test_daily_absolute_rearms_a_day_later(self, rules, absolute):
        fire_at = datetime(2026, 3, 2, 10, 0)
        outcome = rules.process_due(absolute(repeat=ReminderRepeat.DAILY), None, fire_at)
        assert outcome.fired
        assert outcome.reminder.status == ReminderStatus.SCHEDULED
        assert outcome.reminder.remind_at == fire_at + timedelta(hours=24)
        assert outcome.reminder.next_trigger_at == fire_at + timedelta(hours=24)

    def test_missed_repeats_are_skipped(self, rules, absolute):
        outcome = rules.process_due(absolute(repeat=ReminderRepeat.DAILY), None, datetime(2026, 3, 5, 12, 0))
        assert outcome.reminder.next_trigger_at == datetime(2026, 3, 6, 10, 0)
        assert outcome.reminder.trigger_count == 1

    def test_monthly_repeat_uses_calendar_months(self, rules, absolute):
        outcome = rules.process_due(
            absolute(remind_at="2026-01-31T10:00:00Z", repeat=ReminderRepeat.MONTHLY), None,
            datetime(2026, 1, 31, 10, 0)
        )
        assert outcome.reminder.next_trigger_at == datetime(2026, 2, 28, 10, 0)

    def test_activation_matches_when_project_reaches_the_status(self, rules, stage, make_project):
        reminder = stage(delay_minutes=60)
        assert rules.activate_stage(reminder, make_project(), T0).reminder is None

        now = T0 + timedelta(minutes=5)
        outcome = rules.activate_stage(reminder, make_project(S.PENDING_MOCKUP), now)
        assert outcome.reminder.stage_matched_at == now
        assert outcome.reminder.next_trigger_at == now + timedelta(minutes=60)
        assert not outcome.fired

    def test_activation_waits_while_on_hold(self, rules, stage, make_project, admin):
        held = make_project(
            S.ON_HOLD,
            hold=ProjectHold(held_by=UserSnapshot.from_actor(admin), held_at=T0, previous_status=S.PENDING_MOCKUP)
        )
        assert rules.activate_stage(stage(), held, T0).reminder is None

    def test_missing_project_completes_the_reminder(self, rules, stage):
        outcome = rules.activate_stage(stage(), None, T0)
        assert outcome.reminder.status == ReminderStatus.COMPLETED
        assert outcome.reminder.last_error == "Project not found"

    def test_one_shot_stage_reminder_fires_once(self, rules, stage, make_project):
        matched = stage(project=make_project(S.PENDING_MOCKUP))
        outcome = rules.process_due(matched, make_project(S.PENDING_MOCKUP), T0)
        assert outcome.fired
        assert outcome.reminder.status == ReminderStatus.COMPLETED

    def test_stage_left_before_due_does_not_fire(self, rules, stage, make_project):
        matched = stage(project=make_project(S.PENDING_MOCKUP), delay_minutes=60)
        outcome = rules.process_due(matched, make_project(S.MOCKUP_COMPLETED), T0 + timedelta(hours=1))
        assert not outcome.fired
        assert outcome.reminder.status == ReminderStatus.COMPLETED

    def test_due_stage_reminder_is_deferred_while_on_hold(self, rules, stage, make_project, admin):
        matched = stage(project=make_project(S.PENDING_MOCKUP))
        held = make_project(
            S.ON_HOLD,
            hold=ProjectHold(held_by=UserSnapshot.from_actor(admin), held_at=T0, previous_status=S.PENDING_MOCKUP)
        )
        outcome = rules.process_due(matched, held, T0)
        assert not outcome.fired
        assert outcome.reason == "on_hold"
        assert outcome.reminder.status == ReminderStatus.SCHEDULED
        assert outcome.reminder.next_trigger_at == T0 + timedelta(minutes=60)
        assert outcome.reminder.stage_matched_at == T0

    def test_recheck_interval_comes_from_the_limits(self, absolute, make_project):
        rules = ReminderRules(ReminderLimits(recheck_minutes=15))
        reminder = absolute(condition_status="Pending Mockup", project=make_project())
        outcome = rules.process_due(reminder, make_project(), datetime(2026, 3, 2, 10, 0))
        assert outcome.reminder.next_trigger_at == datetime(2026, 3, 2, 10, 15)


class TestConditionStatus:

    def test_condition_needs_a_project(self, absolute):
        with pytest.raises(ValidationError):
            absolute(condition_status="Pending Mockup")

    def test_condition_must_belong_to_the_project_type(self, absolute, make_project):
        with pytest.raises(ValidationError):
            absolute(condition_status="Painting", project=make_project())
        with pytest.raises(ValidationError):
            absolute(condition_status="Pending Mockup", project=make_project(project_type="Quote"))

    def test_condition_met_fires(self, rules, absolute, make_project):
        reminder = absolute(condition_status="Pending Mockup", project=make_project())
        assert reminder.condition_status == S.PENDING_MOCKUP
        outcome = rules.process_due(reminder, make_project(S.PENDING_MOCKUP), datetime(2026, 3, 2, 10, 0))
        assert outcome.fired
        assert outcome.reminder.status == ReminderStatus.COMPLETED

    def test_condition_not_met_defers(self, rules, absolute, make_project):
        reminder = absolute(condition_status="Pending Mockup", project=make_project())
        now = datetime(2026, 3, 2, 10, 5)
        outcome = rules.process_due(reminder, make_project(), now)
        assert not outcome.fired
        assert outcome.reason == "condition_not_met"
        assert outcome.reminder.status == ReminderStatus.SCHEDULED
        assert outcome.reminder.next_trigger_at == now + timedelta(minutes=60)
        assert outcome.reminder.trigger_count == 0

    def test_missing_project_fires_anyway(self, rules, absolute, make_project):
        reminder = absolute(condition_status="Pending Mockup", project=make_project())
        assert rules.process_due(reminder, None, datetime(2026, 3, 2, 10, 0)).fired

    def test_edit_can_clear_the_condition(self, rules, absolute, make_project, sales):
        project = make_project()
        reminder = absolute(condition_status="Pending Mockup", project=project)
        edited = rules.apply_edit(reminder, {"condition_status": ""}, sales, T0, project)
        assert edited.condition_status is None
        assert edited.next_trigger_at == reminder.next_trigger_at

    def test_switching_to_stage_mode_drops_the_condition(self, rules, absolute, make_project, sales):
        project = make_project()
        reminder = absolute(condition_status="Pending Mockup", project=project)
        edited = rules.apply_edit(
            reminder, {"trigger_mode": "stage_based", "watch_status": "Pending Mockup"}, sales, T0, project
        )
        assert edited.condition_status is None
        assert edited.remind_at is None
        assert edited.watch_status == S.PENDING_MOCKUP

    def test_repeating_stage_reminder_rearms_only_on_reentry(self, rules, stage, make_project):
        in_stage = make_project(S.PENDING_MOCKUP)
        reminder = stage(project=in_stage, repeat=ReminderRepeat.DAILY)

        fired = rules.process_due(reminder, in_stage, T0)
        assert fired.fired
        after = fired.reminder
        assert after.status == ReminderStatus.SCHEDULED
        assert after.next_trigger_at is None
        assert after.awaiting_stage_exit

        # Still on the watched status: no re-match
        assert rules.activate_stage(after, in_stage, T0 + timedelta(days=1)).reminder is None

        left = rules.activate_stage(after, make_project(S.MOCKUP_COMPLETED), T0 + timedelta(days=2))
        assert not left.reminder.awaiting_stage_exit
        assert left.reminder.next_trigger_at is None

        back = rules.activate_stage(left.reminder, in_stage, T0 + timedelta(days=3))
        assert back.reminder.next_trigger_at == T0 + timedelta(days=3)

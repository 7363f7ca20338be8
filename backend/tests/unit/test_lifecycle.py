"""Project lifecycle engine tests"""
from datetime import timedelta

import pytest

from printops.domain.enums import ActivityAction, FeedbackType, Priority, ProjectStatus as S, ProjectType
from printops.domain.errors import (
    AttachmentRequiredError,
    EngagementNotAcknowledgedError,
    FeedbackNotOpenError,
    InvalidStateError,
    InvalidTransitionError,
    MockupRequiredError,
    NotLatestRevisionError,
    PaymentVerificationRequiredError,
    PermissionDeniedError,
    ProjectOnHoldError,
    ScopeApprovalIncompleteError,
    ValidationError,
)
from printops.domain.models import Acknowledgement, UserSnapshot
from printops.engine.lifecycle import ProjectLifecycle
from tests.conftest import T0

NOW = T0 + timedelta(hours=1)


@pytest.fixture
def lifecycle() -> ProjectLifecycle:
    return ProjectLifecycle()


def _apply(change):
    return change.project


class TestNewProject:

    def test_starts_in_order_confirmed(self, lifecycle, sales):
        change = lifecycle.new_project(
            project_id="PRJ-9", order_id="ORD-9", lineage_id="LIN-9",
            project_name="Flyers", project_type=ProjectType.STANDARD, actor=sales, now=T0,
            departments=["Graphics", "dtf", "graphics"],
        )
        project = change.project
        assert project.status == S.ORDER_CONFIRMED
        assert project.version_number == 1
        assert project.departments == ["graphics", "dtf"]
        assert project.priority == Priority.NORMAL
        assert change.action == ActivityAction.CREATE

    def test_emergency_projects_default_to_urgent(self, lifecycle, sales):
        change = lifecycle.new_project(
            project_id="PRJ-9", order_id="ORD-9", lineage_id="LIN-9",
            project_name="Rush job", project_type=ProjectType.EMERGENCY, actor=sales, now=T0,
        )
        assert change.project.priority == Priority.URGENT

    def test_unknown_department_is_rejected(self, lifecycle, sales):
        with pytest.raises(ValidationError):
            lifecycle.new_project(
                project_id="PRJ-9", order_id="ORD-9", lineage_id="LIN-9",
                project_name="Flyers", project_type=ProjectType.STANDARD, actor=sales, now=T0,
                departments=["accounts"],
            )


class TestTransitionStatus:

    def test_moves_to_the_next_status(self, lifecycle, make_project, sales):
        change = lifecycle.transition_status(make_project(), S.PENDING_SCOPE_APPROVAL, sales, NOW)
        assert change.project.status == S.PENDING_SCOPE_APPROVAL
        assert change.project.updated_at == NOW
        assert change.details == {"from": "Order Confirmed", "to": "Pending Scope Approval"}

    def test_unreachable_status_is_rejected_and_input_untouched(self, lifecycle, make_project, sales):
        project = make_project()
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_status(project, S.PENDING_PRODUCTION, sales, NOW)
        assert project.status == S.ORDER_CONFIRMED

    @pytest.mark.parametrize("target", [s for s in S if s not in (S.PENDING_SCOPE_APPROVAL,)])
    def test_only_the_successor_is_reachable_from_order_confirmed(self, lifecycle, make_project, sales, target):
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_status(make_project(), target, sales, NOW)

    def test_quote_project_follows_quote_sequence(self, lifecycle, make_project, sales):
        project = make_project(S.DEPARTMENTAL_ENGAGEMENT_COMPLETED, ProjectType.QUOTE)
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_status(project, S.PENDING_MOCKUP, sales, NOW)
        change = lifecycle.transition_status(project, S.PENDING_QUOTE_REQUEST, sales, NOW)
        assert change.project.status == S.PENDING_QUOTE_REQUEST

    def test_admin_may_step_back_one_status(self, lifecycle, make_project, admin, sales):
        project = make_project(S.PENDING_MOCKUP)
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_status(project, S.DEPARTMENTAL_ENGAGEMENT_COMPLETED, sales, NOW)
        change = lifecycle.transition_status(project, S.DEPARTMENTAL_ENGAGEMENT_COMPLETED, admin, NOW)
        assert change.project.status == S.DEPARTMENTAL_ENGAGEMENT_COMPLETED
        assert change.details["override"] is True

    def test_finished_is_not_a_regular_transition(self, lifecycle, make_project, admin):
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_status(make_project(S.COMPLETED), S.FINISHED, admin, NOW)

    def test_mark_finished_requires_completed(self, lifecycle, make_project, sales):
        with pytest.raises(InvalidTransitionError):
            lifecycle.mark_finished(make_project(S.FEEDBACK_COMPLETED), sales, NOW)
        change = lifecycle.mark_finished(make_project(S.COMPLETED), sales, NOW)
        assert change.project.status == S.FINISHED


class TestStageCompletion:

    def _acked(self, make_project, status, *departments):
        acks = [
            Acknowledgement(
                department=d,
                acknowledged_by=UserSnapshot(user_id="u-x"),
                acknowledged_at=T0,
            )
            for d in departments
        ]
        return make_project(status, acknowledgements=acks)

    def test_production_completed_needs_a_payment_verification(self, lifecycle, make_project, printer):
        project = self._acked(make_project, S.PENDING_PRODUCTION, "dtf")
        with pytest.raises(PaymentVerificationRequiredError):
            lifecycle.transition_status(project, S.PRODUCTION_COMPLETED, printer, NOW)
        assert project.status == S.PENDING_PRODUCTION

        paid = _apply(lifecycle.record_payment_verification(project, "deposit", printer, NOW))
        change = lifecycle.transition_status(paid, S.PRODUCTION_COMPLETED, printer, NOW, department="dtf")
        assert change.project.status == S.PRODUCTION_COMPLETED
        assert change.details["department"] == "dtf"

    def test_mockup_completed_needs_a_mockup(self, lifecycle, make_project, graphics):
        project = self._acked(make_project, S.PENDING_MOCKUP, "graphics")
        with pytest.raises(MockupRequiredError):
            lifecycle.transition_status(project, S.MOCKUP_COMPLETED, graphics, NOW)

        with_mockup = _apply(lifecycle.record_mockup(project, "s3://mockups/a.png", "a.png", graphics, NOW))
        change = lifecycle.transition_status(with_mockup, S.MOCKUP_COMPLETED, graphics, NOW)
        assert change.project.status == S.MOCKUP_COMPLETED

    def test_engaged_department_must_have_acknowledged(self, lifecycle, make_project, graphics):
        project = make_project(S.PENDING_MOCKUP)
        project = _apply(lifecycle.record_mockup(project, "s3://mockups/a.png", "a.png", graphics, NOW))
        with pytest.raises(EngagementNotAcknowledgedError):
            lifecycle.transition_status(project, S.MOCKUP_COMPLETED, graphics, NOW)

    def test_group_without_engaged_departments_needs_no_acknowledgement(self, lifecycle, make_project, graphics):
        project = make_project(S.PENDING_MOCKUP, departments=["dtf"])
        project = _apply(lifecycle.record_mockup(project, "s3://mockups/a.png", "a.png", graphics, NOW))
        change = lifecycle.transition_status(project, S.MOCKUP_COMPLETED, graphics, NOW)
        assert change.project.status == S.MOCKUP_COMPLETED

    def test_other_departments_cannot_complete_the_stage(self, lifecycle, make_project, graphics):
        project = self._acked(make_project, S.PENDING_PRODUCTION, "dtf")
        with pytest.raises(PermissionDeniedError):
            lifecycle.transition_status(project, S.PRODUCTION_COMPLETED, graphics, NOW)

    def test_department_must_belong_to_the_stage_group(self, lifecycle, make_project, admin):
        project = self._acked(make_project, S.PENDING_PRODUCTION, "dtf")
        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_status(project, S.PRODUCTION_COMPLETED, admin, NOW, department="graphics")


class TestAcknowledge:

    def test_acknowledge_is_idempotent(self, lifecycle, make_project, graphics):
        project = make_project(S.PENDING_DEPARTMENTAL_ENGAGEMENT)
        first = lifecycle.acknowledge_department(project, "graphics", graphics, NOW)
        assert first.changed
        acked = first.project

        second = lifecycle.acknowledge_department(acked, "Graphics", graphics, NOW + timedelta(minutes=5))
        assert not second.changed
        assert second.project.acknowledgements == acked.acknowledgements
        assert len(second.project.acknowledgements) == 1
        assert second.project.acknowledgements[0].acknowledged_at == NOW

    def test_requires_scope_approval(self, lifecycle, make_project, graphics):
        for status in (S.ORDER_CONFIRMED, S.PENDING_SCOPE_APPROVAL):
            with pytest.raises(ScopeApprovalIncompleteError):
                lifecycle.acknowledge_department(make_project(status), "graphics", graphics, NOW)

    def test_requires_membership(self, lifecycle, make_project, printer):
        with pytest.raises(PermissionDeniedError):
            lifecycle.acknowledge_department(
                make_project(S.PENDING_DEPARTMENTAL_ENGAGEMENT), "graphics", printer, NOW
            )

    def test_department_must_be_engaged(self, lifecycle, make_project, admin):
        with pytest.raises(ValidationError):
            lifecycle.acknowledge_department(
                make_project(S.PENDING_DEPARTMENTAL_ENGAGEMENT), "embroidery", admin, NOW
            )

    def test_undo_is_admin_only(self, lifecycle, make_project, graphics, admin):
        acked = _apply(lifecycle.acknowledge_department(
            make_project(S.PENDING_DEPARTMENTAL_ENGAGEMENT), "graphics", graphics, NOW
        ))
        with pytest.raises(PermissionDeniedError):
            lifecycle.undo_acknowledgement(acked, "graphics", graphics, NOW)
        change = lifecycle.undo_acknowledgement(acked, "graphics", admin, NOW)
        assert change.project.acknowledgements == []


class TestGates:

    def test_mockup_only_while_pending_mockup(self, lifecycle, make_project, graphics):
        with pytest.raises(InvalidStateError):
            lifecycle.record_mockup(make_project(S.MOCKUP_COMPLETED), "s3://m.png", "m.png", graphics, NOW)

    def test_payment_rejected_once_finished(self, lifecycle, make_project, sales):
        with pytest.raises(InvalidStateError):
            lifecycle.record_payment_verification(make_project(S.FINISHED), "full_payment", sales, NOW)

    def test_undo_payment_by_index(self, lifecycle, make_project, sales, admin):
        project = make_project(S.PENDING_PRODUCTION)
        project = _apply(lifecycle.record_payment_verification(project, "deposit", sales, NOW))
        project = _apply(lifecycle.record_payment_verification(project, "balance", sales, NOW))

        with pytest.raises(ValidationError):
            lifecycle.undo_payment_verification(project, 5, admin, NOW)
        change = lifecycle.undo_payment_verification(project, 0, admin, NOW)
        assert [p.type for p in change.project.payment_verifications] == ["balance"]


class TestFeedback:

    def test_not_open_before_delivery(self, lifecycle, make_project, sales):
        with pytest.raises(FeedbackNotOpenError):
            lifecycle.record_feedback(
                make_project(S.PENDING_DELIVERY_PICKUP), FeedbackType.POSITIVE, "", ["f.jpg"], sales, NOW, "FBK-1"
            )

    def test_attachment_required_while_pending_feedback(self, lifecycle, make_project, sales):
        with pytest.raises(AttachmentRequiredError):
            lifecycle.record_feedback(
                make_project(S.PENDING_FEEDBACK), FeedbackType.NEGATIVE, "Colours off", [" "], sales, NOW, "FBK-1"
            )

    def test_feedback_is_appended_without_status_change(self, lifecycle, make_project, sales):
        project = make_project(S.PENDING_FEEDBACK)
        change = lifecycle.record_feedback(
            project, FeedbackType.POSITIVE, "Looks great", ["files/photo-1.jpg"], sales, NOW, "FBK-1"
        )
        assert change.project.status == S.PENDING_FEEDBACK
        assert change.project.feedbacks[0].attachments == ["files/photo-1.jpg"]

    def test_attachments_optional_after_feedback_completed(self, lifecycle, make_project, sales):
        change = lifecycle.record_feedback(
            make_project(S.COMPLETED), FeedbackType.POSITIVE, "Late note", [], sales, NOW, "FBK-2"
        )
        assert len(change.project.feedbacks) == 1


class TestHold:

    def test_hold_blocks_changes_until_release(self, lifecycle, make_project, admin):
        held = _apply(lifecycle.set_hold(make_project(S.PENDING_MOCKUP), "Client unreachable", admin, NOW))
        assert held.status == S.ON_HOLD
        assert held.hold.previous_status == S.PENDING_MOCKUP

        with pytest.raises(ProjectOnHoldError):
            lifecycle.transition_status(held, S.MOCKUP_COMPLETED, admin, NOW)
        with pytest.raises(ProjectOnHoldError):
            lifecycle.record_payment_verification(held, "deposit", admin, NOW)

        released = _apply(lifecycle.release_hold(held, admin, NOW))
        assert released.status == S.PENDING_MOCKUP
        assert released.hold is None

    def test_cannot_hold_twice_or_hold_finished(self, lifecycle, make_project, admin):
        held = _apply(lifecycle.set_hold(make_project(), "", admin, NOW))
        with pytest.raises(InvalidTransitionError):
            lifecycle.set_hold(held, "", admin, NOW)
        with pytest.raises(InvalidTransitionError):
            lifecycle.set_hold(make_project(S.FINISHED), "", admin, NOW)


class TestReopen:

    def test_reopen_latest_creates_next_revision(self, lifecycle, make_project, sales):
        project = make_project(S.FINISHED, payment_verifications=[], items=[{"description": "Banner", "qty": 2}])
        change = lifecycle.reopen_as_revision(
            project, "Client wants a reprint", sales, NOW,
            latest_version_number=1, new_project_id="PRJ-2", new_order_id=project.order_id,
        )
        revision = change.project
        assert revision.project_id == "PRJ-2"
        assert revision.lineage_id == project.lineage_id
        assert revision.version_number == 2
        assert revision.status == S.ORDER_CONFIRMED
        assert revision.items[0].description == "Banner"
        assert revision.revision.reopened_from == "PRJ-1"
        assert project.status == S.FINISHED

    def test_superseded_revision_cannot_reopen(self, lifecycle, make_project, sales):
        with pytest.raises(NotLatestRevisionError):
            lifecycle.reopen_as_revision(
                make_project(S.FINISHED), "again", sales, NOW,
                latest_version_number=2, new_project_id="PRJ-3", new_order_id="ORD-1",
            )

    def test_only_finished_projects_reopen(self, lifecycle, make_project, sales):
        with pytest.raises(InvalidTransitionError):
            lifecycle.reopen_as_revision(
                make_project(S.COMPLETED), "again", sales, NOW,
                latest_version_number=1, new_project_id="PRJ-3", new_order_id="ORD-1",
            )

    def test_reason_is_required(self, lifecycle, make_project, sales):
        with pytest.raises(ValidationError):
            lifecycle.reopen_as_revision(
                make_project(S.FINISHED), "  ", sales, NOW,
                latest_version_number=1, new_project_id="PRJ-3", new_order_id="ORD-1",
            )

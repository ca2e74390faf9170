from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.modules.notifications.services import ListNotifications
from app.modules.points.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.modules.points.models import ChoreApproval, ChoreAssignment, ChoreSubmission, SubmissionStatus
from app.modules.points.services import notify_service
from app.modules.points.services.submission_service import (
    AUTO_APPROVE_FEEDBACK,
    CreateSubmission,
    ListPendingSubmissions,
    ParentMarkChore,
    ReviewSubmission,
    WeekStart,
)

COMPLETED_AT = datetime(2026, 10, 14, 9, 0, tzinfo=timezone.utc)


def test_week_start_is_monday():
    assert WeekStart(date(2026, 10, 12)) == date(2026, 10, 12)
    assert WeekStart(date(2026, 10, 14)) == date(2026, 10, 12)
    assert WeekStart(date(2026, 10, 18)) == date(2026, 10, 12)
    assert WeekStart(date(2026, 10, 19)) == date(2026, 10, 19)


def test_create_submission_is_pending_and_notifies_parents(db, repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])

    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT, notes="  done  ")

    assert submission.Status == SubmissionStatus.Pending.value
    assert submission.CompletedOn == date(2026, 10, 14)
    assert submission.Notes == "done"
    assert submission.Score is None
    assert repos.Balances.Get(family.Child.Id) is None
    notifications = ListNotifications(db, user_id=family.Parent.Id)
    assert len(notifications) == 1
    assert notifications[0].SourceId == str(submission.Id)
    assert notifications[0].Type == "PointsSubmissionPending"


def test_duplicate_submission_for_same_day_conflicts(repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])
    CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)

    with pytest.raises(ConflictError):
        CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT.replace(hour=17))


def test_unique_constraint_backs_up_duplicate_check(db, repos, family, make_chore, monkeypatch):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])
    CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)
    monkeypatch.setattr(repos.Submissions, "FindForDay", lambda assignment_id, on_date: None)

    with pytest.raises(ConflictError):
        CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)
    assert db.query(ChoreSubmission).count() == 1


def test_submission_requires_assignment(repos, family, make_chore):
    chore = make_chore(family.FamilyId)

    with pytest.raises(NotFoundError):
        CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)


def test_submission_before_assignment_week_is_rejected(repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])

    with pytest.raises(NotFoundError):
        CreateSubmission(
            repos,
            family.Child,
            chore.Id,
            completed_at=datetime(2026, 10, 11, 9, 0, tzinfo=timezone.utc),
        )


def test_submission_after_assignment_week_is_rejected(db, repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])

    with pytest.raises(NotFoundError):
        CreateSubmission(
            repos,
            family.Child,
            chore.Id,
            completed_at=datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc),
        )
    assert db.query(ChoreSubmission).count() == 0


def test_submission_in_the_future_is_rejected(db, repos, family, make_chore, ledger_clock):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])

    with pytest.raises(ValidationError):
        CreateSubmission(repos, family.Child, chore.Id, completed_at=ledger_clock + timedelta(hours=1))
    assert db.query(ChoreSubmission).count() == 0


def test_auto_approve_cannot_award_days_outside_the_week(db, repos, make_family, make_chore):
    family = make_family(auto_approve=True)
    chore = make_chore(family.FamilyId, points="10", assign_to=[family.Child.Id])

    for day in range(1, 11):
        with pytest.raises(ValidationError):
            CreateSubmission(
                repos,
                family.Child,
                chore.Id,
                completed_at=datetime(2030, 1, day, 9, 0, tzinfo=timezone.utc),
            )
    for day in (19, 20):
        with pytest.raises(NotFoundError):
            CreateSubmission(
                repos,
                family.Child,
                chore.Id,
                completed_at=datetime(2026, 10, day, 9, 0, tzinfo=timezone.utc),
            )

    assert repos.Balances.Get(family.Child.Id) is None
    assert db.query(ChoreSubmission).count() == 0


def test_completed_on_is_the_utc_date(repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])
    evening_in_new_york = datetime(2026, 10, 15, 23, 30, tzinfo=timezone(timedelta(hours=-5)))

    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=evening_in_new_york)

    assert submission.CompletedOn == date(2026, 10, 16)
    with pytest.raises(ConflictError):
        CreateSubmission(
            repos,
            family.Child,
            chore.Id,
            completed_at=datetime(2026, 10, 16, 8, 0, tzinfo=timezone.utc),
        )


def test_naive_completion_time_is_treated_as_utc(repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])

    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=datetime(2026, 10, 14, 23, 0))

    assert submission.CompletedOn == date(2026, 10, 14)


def test_submission_for_other_family_chore_is_not_found(repos, make_family, make_chore):
    first = make_family(name="First", parent_id=1, child_id=2)
    second = make_family(name="Second", parent_id=3, child_id=4)
    chore = make_chore(second.FamilyId, assign_to=[second.Child.Id])

    with pytest.raises(NotFoundError):
        CreateSubmission(repos, first.Child, chore.Id, completed_at=COMPLETED_AT)


def test_parent_cannot_create_submission(repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Parent.Id])

    with pytest.raises(AuthorizationError):
        CreateSubmission(repos, family.Parent, chore.Id, completed_at=COMPLETED_AT)


def test_auto_approve_awards_and_attributes_to_parent(db, repos, make_family, make_chore):
    family = make_family(auto_approve=True)
    chore = make_chore(family.FamilyId, points="12.5", assign_to=[family.Child.Id])

    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)

    assert submission.Status == SubmissionStatus.AutoApproved.value
    assert submission.Score == 100
    assert Decimal(submission.PointsAwarded) == Decimal("12.5")
    approval = db.query(ChoreApproval).filter(ChoreApproval.SubmissionId == submission.Id).one()
    assert approval.ApprovedByUserId == family.Parent.Id
    assert approval.Feedback == AUTO_APPROVE_FEEDBACK
    balance = repos.Balances.Get(family.Child.Id)
    assert Decimal(balance.AvailablePoints) == Decimal("12.5")
    assert Decimal(balance.LifetimePoints) == Decimal("12.5")
    assert ListNotifications(db, user_id=family.Parent.Id) == []


def test_auto_approve_without_parent_stays_pending(db, repos, make_family, make_chore):
    family = make_family(auto_approve=True, with_parent=False)
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])

    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)

    assert submission.Status == SubmissionStatus.Pending.value
    assert db.query(ChoreApproval).count() == 0
    assert repos.Balances.Get(family.Child.Id) is None


def test_auto_approved_submission_can_be_rescored(repos, make_family, make_chore):
    family = make_family(auto_approve=True)
    chore = make_chore(family.FamilyId, points="10", assign_to=[family.Child.Id])
    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)

    result = ReviewSubmission(repos, family.Parent, submission.Id, approved=True, score=50)

    assert result.PreviousPoints == Decimal("10")
    assert result.Delta == Decimal("-5")
    assert Decimal(repos.Balances.Get(family.Child.Id).AvailablePoints) == Decimal("5")


def test_review_notifies_child(db, repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])
    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)

    ReviewSubmission(repos, family.Parent, submission.Id, approved=True, score=90, feedback="Nice")

    notifications = ListNotifications(db, user_id=family.Child.Id)
    assert [item.Type for item in notifications] == ["PointsSubmissionReviewed"]
    assert notifications[0].CreatedByUserId == family.Parent.Id


def test_review_rejects_out_of_range_score_before_touching_storage(repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])
    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)

    with pytest.raises(ValidationError):
        ReviewSubmission(repos, family.Parent, submission.Id, approved=True, score=151)
    assert repos.Approvals.GetForSubmission(submission.Id, lock=False) is None


def test_review_by_parent_of_other_family_is_not_found(repos, make_family, make_chore):
    first = make_family(name="First", parent_id=1, child_id=2)
    second = make_family(name="Second", parent_id=3, child_id=4)
    chore = make_chore(first.FamilyId, assign_to=[first.Child.Id])
    submission = CreateSubmission(repos, first.Child, chore.Id, completed_at=COMPLETED_AT)

    with pytest.raises(NotFoundError):
        ReviewSubmission(repos, second.Parent, submission.Id, approved=True)
    assert repos.Balances.Get(first.Child.Id) is None


def test_review_by_child_is_denied(repos, family, make_chore):
    chore = make_chore(family.FamilyId, assign_to=[family.Child.Id])
    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)

    with pytest.raises(AuthorizationError):
        ReviewSubmission(repos, family.Child, submission.Id, approved=True)


def test_notification_failure_does_not_undo_review(db, repos, family, make_chore, monkeypatch):
    chore = make_chore(family.FamilyId, points="10", assign_to=[family.Child.Id])
    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)

    def _explode(*args, **kwargs):
        raise RuntimeError("notification store offline")

    monkeypatch.setattr(notify_service, "CreateNotificationsForUsers", _explode)
    result = ReviewSubmission(repos, family.Parent, submission.Id, approved=True)

    assert result.PointsAwarded == Decimal("10")
    assert Decimal(repos.Balances.Get(family.Child.Id).AvailablePoints) == Decimal("10")


def test_parent_mark_creates_assignment_and_submission(db, repos, family, make_chore):
    chore = make_chore(family.FamilyId, points="8")

    result = ParentMarkChore(
        repos,
        family.Parent,
        child_id=family.Child.Id,
        chore_id=chore.Id,
        on_date=date(2026, 10, 21),
        approved=True,
    )

    assignment = db.query(ChoreAssignment).filter(ChoreAssignment.ChoreId == chore.Id).one()
    assert assignment.WeekStart == date(2026, 10, 19)
    submission = repos.Submissions.Get(result.SubmissionId)
    assert submission.CompletedOn == date(2026, 10, 21)
    assert submission.Status == SubmissionStatus.Approved.value
    assert result.PointsAwarded == Decimal("8")


def test_parent_mark_rescores_existing_submission(db, repos, family, make_chore):
    chore = make_chore(family.FamilyId, points="10", is_required=True, assign_to=[family.Child.Id])
    submission = CreateSubmission(repos, family.Child, chore.Id, completed_at=COMPLETED_AT)

    first = ParentMarkChore(repos, family.Parent, family.Child.Id, chore.Id, date(2026, 10, 14), approved=True)
    second = ParentMarkChore(repos, family.Parent, family.Child.Id, chore.Id, date(2026, 10, 14), approved=False)

    assert first.SubmissionId == second.SubmissionId == submission.Id
    assert second.PointsAwarded == Decimal("-10")
    assert db.query(ChoreSubmission).count() == 1
    assert Decimal(repos.Balances.Get(family.Child.Id).AvailablePoints) == Decimal("-10")


def test_parent_mark_rejects_child_outside_family(repos, make_family, make_chore):
    first = make_family(name="First", parent_id=1, child_id=2)
    second = make_family(name="Second", parent_id=3, child_id=4)
    chore = make_chore(first.FamilyId)

    with pytest.raises(AuthorizationError):
        ParentMarkChore(repos, first.Parent, second.Child.Id, chore.Id, date(2026, 10, 14), approved=True)


def test_list_pending_is_family_scoped_and_oldest_first(repos, make_family, make_chore):
    first = make_family(name="First", parent_id=1, child_id=2)
    second = make_family(name="Second", parent_id=3, child_id=4)
    dishes = make_chore(first.FamilyId, title="Dishes", assign_to=[first.Child.Id])
    laundry = make_chore(first.FamilyId, title="Laundry", assign_to=[first.Child.Id])
    other = make_chore(second.FamilyId, title="Other", assign_to=[second.Child.Id])

    older = CreateSubmission(repos, first.Child, dishes.Id, completed_at=COMPLETED_AT)
    newer = CreateSubmission(repos, first.Child, laundry.Id, completed_at=COMPLETED_AT)
    CreateSubmission(repos, second.Child, other.Id, completed_at=COMPLETED_AT)
    reviewed = CreateSubmission(
        repos,
        first.Child,
        dishes.Id,
        completed_at=datetime(2026, 10, 15, 9, 0, tzinfo=timezone.utc),
    )
    ReviewSubmission(repos, first.Parent, reviewed.Id, approved=True)

    rows = ListPendingSubmissions(repos, first.Parent)

    assert [submission.Id for submission, _ in rows] == [older.Id, newer.Id]
    assert [chore.Title for _, chore in rows] == ["Dishes", "Laundry"]


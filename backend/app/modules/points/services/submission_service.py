from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy.exc import IntegrityError

from app.db import Atomic
from app.modules.auth.deps import NowUtc, UserContext
from app.modules.points.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.modules.points.models import Chore, ChoreSubmission, SubmissionStatus
from app.modules.points.repositories import LedgerRepositories
from app.modules.points.services.approval_service import ReconcileApproval, ReconcileResult
from app.modules.points.services.notify_service import NotifySubmissionPending, NotifySubmissionReviewed
from app.modules.points.services.scoring_service import FULL_SCORE, ValidateScore
from app.modules.points.utils.rbac import IsChild, IsParent

logger = logging.getLogger("app.points_ledger")

AUTO_APPROVE_FEEDBACK = "Auto-approved by system"
PARENT_MARK_NOTES = "Marked by parent"
DUPLICATE_SUBMISSION_DETAIL = "Chore already submitted for this day"
CLOCK_SKEW_ALLOWANCE = timedelta(minutes=5)


def WeekStart(on_date: date) -> date:
    return on_date - timedelta(days=on_date.weekday())


def _AsUtc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _RequireParent(user: UserContext) -> None:
    if not IsParent(user):
        raise AuthorizationError("Parent access required")


def _RequireChild(user: UserContext) -> None:
    if not IsChild(user):
        raise AuthorizationError("Child access required")


def _NewSubmission(assignment_id: int, user_id: int, completed_at: datetime, notes: str | None) -> ChoreSubmission:
    now = NowUtc()
    return ChoreSubmission(
        AssignmentId=assignment_id,
        UserId=user_id,
        CompletedAt=completed_at,
        CompletedOn=_AsUtc(completed_at).date(),
        Notes=notes,
        Status=SubmissionStatus.Pending.value,
        Score=None,
        PointsAwarded=0,
        SubmittedAt=now,
        UpdatedAt=now,
    )


def CreateSubmission(
    repos: LedgerRepositories,
    child: UserContext,
    chore_id: int,
    completed_at: datetime | None = None,
    notes: str | None = None,
) -> ChoreSubmission:
    _RequireChild(child)
    now = NowUtc()
    completed_at = _AsUtc(completed_at) if completed_at else now
    if completed_at > now + CLOCK_SKEW_ALLOWANCE:
        raise ValidationError("Completion time cannot be in the future")
    on_date = completed_at.date()
    notes = (notes or "").strip() or None

    try:
        with Atomic(repos.Db):
            chore = repos.Chores.GetForFamily(child.FamilyId, chore_id)
            if not chore:
                raise NotFoundError("Chore not found")
            assignment = repos.Chores.FindAssignmentForWeek(chore.Id, child.Id, WeekStart(on_date))
            if not assignment:
                raise NotFoundError("Chore is not assigned to you for that week")
            if repos.Submissions.FindForDay(assignment.Id, on_date):
                raise ConflictError(DUPLICATE_SUBMISSION_DETAIL)

            config = repos.Families.GetConfig(child.FamilyId)
            auto_approve = bool(config and config.AutoApproveChores)
            approver_id = repos.Families.FindAuditParentId(child.FamilyId) if auto_approve else None
            if auto_approve and approver_id is None:
                logger.warning(
                    "points auto-approve skipped, no active parent family_id=%s user_id=%s",
                    child.FamilyId,
                    child.Id,
                )

            submission = repos.Submissions.Add(_NewSubmission(assignment.Id, child.Id, completed_at, notes))
            submission_id = submission.Id
            if approver_id is not None:
                ReconcileApproval(
                    repos,
                    submission_id,
                    approved=True,
                    score=FULL_SCORE,
                    approver_user_id=approver_id,
                    feedback=AUTO_APPROVE_FEEDBACK,
                    status=SubmissionStatus.AutoApproved,
                )
    except IntegrityError as exc:
        raise ConflictError(DUPLICATE_SUBMISSION_DETAIL) from exc

    submission = repos.Submissions.Get(submission_id)
    logger.info(
        "points submission created submission_id=%s user_id=%s chore_id=%s status=%s",
        submission.Id,
        child.Id,
        chore_id,
        submission.Status,
    )
    if submission.Status == SubmissionStatus.Pending.value:
        NotifySubmissionPending(
            repos.Db,
            family_id=child.FamilyId,
            child_id=child.Id,
            child_name=child.Username,
            submission_id=submission.Id,
            chore_title=chore.Title,
        )
    return submission


def ReviewSubmission(
    repos: LedgerRepositories,
    parent: UserContext,
    submission_id: int,
    approved: bool,
    score: int | None = None,
    feedback: str | None = None,
) -> ReconcileResult:
    _RequireParent(parent)
    ValidateScore(score)

    with Atomic(repos.Db):
        if not repos.Submissions.GetForFamily(parent.FamilyId, submission_id):
            raise NotFoundError("Submission not found")
        result = ReconcileApproval(
            repos,
            submission_id,
            approved=approved,
            score=score,
            approver_user_id=parent.Id,
            feedback=feedback,
        )

    NotifySubmissionReviewed(
        repos.Db,
        child_id=result.UserId,
        reviewer_id=parent.Id,
        submission_id=result.SubmissionId,
        chore_title=result.ChoreTitle,
        approved=approved,
        points_awarded=result.PointsAwarded,
    )
    return result


def ParentMarkChore(
    repos: LedgerRepositories,
    parent: UserContext,
    child_id: int,
    chore_id: int,
    on_date: date,
    approved: bool,
    score: int | None = None,
    feedback: str | None = None,
) -> ReconcileResult:
    """Record a parent's verdict on a child's chore for one day.

    Creates the week's assignment and the day's submission when they do not
    exist yet, then scores it exactly like a review.
    """
    _RequireParent(parent)
    ValidateScore(score)

    try:
        with Atomic(repos.Db):
            if not repos.Families.IsActiveChild(parent.FamilyId, child_id):
                raise AuthorizationError("Child is not in your family")
            chore = repos.Chores.GetForFamily(parent.FamilyId, chore_id)
            if not chore:
                raise NotFoundError("Chore not found")

            assignment = repos.Chores.GetOrCreateAssignment(chore, child_id, WeekStart(on_date))
            submission = repos.Submissions.FindForDay(assignment.Id, on_date)
            if not submission:
                completed_at = datetime.combine(on_date, time(0, 0), tzinfo=timezone.utc)
                submission = repos.Submissions.Add(
                    _NewSubmission(assignment.Id, child_id, completed_at, PARENT_MARK_NOTES)
                )
            result = ReconcileApproval(
                repos,
                submission.Id,
                approved=approved,
                score=score,
                approver_user_id=parent.Id,
                feedback=feedback,
            )
    except IntegrityError as exc:
        raise ConflictError("Chore was marked concurrently, try again") from exc

    NotifySubmissionReviewed(
        repos.Db,
        child_id=child_id,
        reviewer_id=parent.Id,
        submission_id=result.SubmissionId,
        chore_title=result.ChoreTitle,
        approved=approved,
        points_awarded=result.PointsAwarded,
    )
    return result


def ListPendingSubmissions(repos: LedgerRepositories, parent: UserContext) -> list[tuple[ChoreSubmission, Chore]]:
    _RequireParent(parent)
    return repos.Submissions.ListPendingForFamily(parent.FamilyId)

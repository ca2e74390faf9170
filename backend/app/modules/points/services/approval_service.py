from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from app.modules.auth.deps import NowUtc
from app.modules.points.errors import NotFoundError
from app.modules.points.models import ChoreApproval, SubmissionStatus
from app.modules.points.repositories import LedgerRepositories
from app.modules.points.services.scoring_service import ResolveAward

logger = logging.getLogger("app.points_ledger")


@dataclass(frozen=True)
class ReconcileResult:
    SubmissionId: int
    ApprovalId: int
    UserId: int
    ChoreId: int
    ChoreTitle: str
    Status: SubmissionStatus
    Score: int | None
    PreviousPoints: Decimal
    PointsAwarded: Decimal
    Delta: Decimal


def ReconcileApproval(
    repos: LedgerRepositories,
    submission_id: int,
    approved: bool,
    score: int | None,
    approver_user_id: int,
    feedback: str | None = None,
    status: SubmissionStatus | None = None,
) -> ReconcileResult:
    """Score or re-score a submission and move only the difference onto the balance.

    Must run inside the caller's transaction. The approval row and the
    balance row are re-read with a lock here, never taken from the caller,
    so a concurrent re-score cannot be applied against a stale award.
    """
    submission = repos.Submissions.Get(submission_id, lock=True)
    if not submission:
        raise NotFoundError("Submission not found")
    assignment = repos.Chores.GetAssignment(submission.AssignmentId)
    if not assignment:
        raise NotFoundError("Assignment not found")
    chore = repos.Chores.Get(assignment.ChoreId)
    if not chore:
        raise NotFoundError("Chore not found")

    existing = repos.Approvals.GetForSubmission(submission.Id, lock=True)
    previous = Decimal(existing.PointsAwarded) if existing and existing.PointsAwarded is not None else Decimal("0")

    base_points = Decimal(chore.Points or 0)
    outcome = ResolveAward(base_points, approved, score, bool(chore.IsRequired))
    delta = outcome.PointsAwarded - previous

    repos.Balances.ApplyAwardDelta(submission.UserId, delta)

    now = NowUtc()
    if existing:
        existing.ApprovedByUserId = approver_user_id
        existing.Approved = approved
        existing.Score = outcome.Score
        existing.PointsAwarded = outcome.PointsAwarded
        existing.OriginalPoints = base_points
        existing.Feedback = feedback
        existing.UpdatedAt = now
        approval = existing
    else:
        approval = repos.Approvals.Add(
            ChoreApproval(
                SubmissionId=submission.Id,
                ApprovedByUserId=approver_user_id,
                Approved=approved,
                Score=outcome.Score,
                PointsAwarded=outcome.PointsAwarded,
                OriginalPoints=base_points,
                Feedback=feedback,
                CreatedAt=now,
                UpdatedAt=now,
            )
        )

    if status is None:
        status = SubmissionStatus.Approved if approved else SubmissionStatus.Denied
    submission.Score = outcome.Score
    submission.PointsAwarded = outcome.PointsAwarded
    submission.Status = status.value
    submission.UpdatedAt = now
    repos.Db.flush()

    logger.info(
        "points approval reconciled submission_id=%s user_id=%s status=%s previous=%s awarded=%s delta=%s",
        submission.Id,
        submission.UserId,
        status.value,
        previous,
        outcome.PointsAwarded,
        delta,
    )
    return ReconcileResult(
        SubmissionId=submission.Id,
        ApprovalId=approval.Id,
        UserId=submission.UserId,
        ChoreId=chore.Id,
        ChoreTitle=chore.Title,
        Status=status,
        Score=outcome.Score,
        PreviousPoints=previous,
        PointsAwarded=outcome.PointsAwarded,
        Delta=delta,
    )

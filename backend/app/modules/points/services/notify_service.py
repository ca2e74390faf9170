"""In-app notifications for ledger events.

Called only after the ledger transaction has committed. A failure here is
logged and discarded; it never changes the outcome of the ledger call.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from app.modules.families.services import ListActiveParentIds
from app.modules.notifications.services import CreateNotificationsForUsers

logger = logging.getLogger("app.points_notifications")

SOURCE_MODULE = "points"


def _Send(db: Session, *, user_ids: list[int], created_by_user_id: int, **kwargs) -> None:
    if not user_ids:
        return
    try:
        CreateNotificationsForUsers(
            db,
            user_ids=user_ids,
            created_by_user_id=created_by_user_id,
            source_module=SOURCE_MODULE,
            **kwargs,
        )
    except Exception:  # noqa: BLE001
        db.rollback()
        logger.exception(
            "points notification failed type=%s user_ids=%s",
            kwargs.get("notification_type"),
            ",".join(str(user_id) for user_id in user_ids),
        )


def NotifySubmissionPending(
    db: Session,
    *,
    family_id: int,
    child_id: int,
    child_name: str,
    submission_id: int,
    chore_title: str,
) -> None:
    _Send(
        db,
        user_ids=ListActiveParentIds(db, family_id),
        created_by_user_id=child_id,
        title="Chore waiting for review",
        body=f"{child_name} completed {chore_title}.",
        notification_type="PointsSubmissionPending",
        link_url="/points/review",
        source_id=str(submission_id),
    )


def NotifySubmissionReviewed(
    db: Session,
    *,
    child_id: int,
    reviewer_id: int,
    submission_id: int,
    chore_title: str,
    approved: bool,
    points_awarded: Decimal,
) -> None:
    outcome = "approved" if approved else "not approved"
    _Send(
        db,
        user_ids=[child_id],
        created_by_user_id=reviewer_id,
        title=f"{chore_title} was {outcome}",
        body=f"Points: {points_awarded}",
        notification_type="PointsSubmissionReviewed",
        link_url="/points",
        source_id=str(submission_id),
        meta={"Approved": approved, "PointsAwarded": points_awarded},
    )


def NotifyBankingRequested(
    db: Session,
    *,
    family_id: int,
    child_id: int,
    child_name: str,
    transaction_id: int,
    amount: Decimal,
    money_value: Decimal,
) -> None:
    _Send(
        db,
        user_ids=ListActiveParentIds(db, family_id),
        created_by_user_id=child_id,
        title="Banking request",
        body=f"{child_name} wants to bank {amount} points ({money_value}).",
        notification_type="PointsBankingRequested",
        link_url="/points/banking",
        source_id=str(transaction_id),
    )


def NotifyBankingProcessed(
    db: Session,
    *,
    child_id: int,
    parent_id: int,
    transaction_id: int,
    approved: bool,
    amount: Decimal,
) -> None:
    outcome = "approved" if approved else "denied"
    _Send(
        db,
        user_ids=[child_id],
        created_by_user_id=parent_id,
        title=f"Banking request {outcome}",
        body=f"{amount} points",
        notification_type="PointsBankingProcessed",
        link_url="/points/banking",
        source_id=str(transaction_id),
        meta={"Approved": approved, "Amount": amount},
    )

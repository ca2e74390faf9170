"""Storage access for the points ledger.

Services never query the session directly; they receive a
``LedgerRepositories`` bundle built from the request's session. Balance
counters are only ever changed with SQL-side increments so two requests
touching the same child cannot overwrite each other's arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.modules.auth.deps import NowUtc
from app.modules.families.models import ROLE_CHILD
from app.modules.families.services import (
    FamilyConfig,
    GetFamilyConfig,
    IsActiveMember,
    ListActiveParentIds,
)
from app.modules.points.models import (
    Chore,
    ChoreApproval,
    ChoreAssignment,
    ChoreSubmission,
    PointTransaction,
    SubmissionStatus,
    TransactionStatus,
    TransactionType,
    UserBalance,
)

ZERO = Decimal("0")


class BalanceRepository:
    def __init__(self, db: Session) -> None:
        self.Db = db

    def Get(self, user_id: int, lock: bool = False) -> UserBalance | None:
        query = self.Db.query(UserBalance).populate_existing().filter(UserBalance.UserId == user_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def Ensure(self, user_id: int) -> UserBalance:
        balance = self.Get(user_id, lock=True)
        if balance:
            return balance
        now = NowUtc()
        balance = UserBalance(
            UserId=user_id,
            AvailablePoints=ZERO,
            LifetimePoints=ZERO,
            BankedPoints=ZERO,
            BankedMoney=ZERO,
            CreatedAt=now,
            UpdatedAt=now,
        )
        self.Db.add(balance)
        self.Db.flush()
        return balance

    def _Increment(self, user_id: int, **deltas: Decimal) -> None:
        self.Ensure(user_id)
        values = {name: getattr(UserBalance, name) + amount for name, amount in deltas.items()}
        values["UpdatedAt"] = NowUtc()
        self.Db.execute(
            update(UserBalance)
            .where(UserBalance.UserId == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    def ApplyAwardDelta(self, user_id: int, delta: Decimal) -> None:
        if delta == 0:
            return
        # Corrections may lower the spendable balance but never the lifetime total.
        lifetime = delta if delta > 0 else ZERO
        self._Increment(user_id, AvailablePoints=delta, LifetimePoints=lifetime)

    def Reserve(self, user_id: int, amount: Decimal) -> bool:
        self.Ensure(user_id)
        result = self.Db.execute(
            update(UserBalance)
            .where(UserBalance.UserId == user_id, UserBalance.AvailablePoints >= amount)
            .values(AvailablePoints=UserBalance.AvailablePoints - amount, UpdatedAt=NowUtc())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def Release(self, user_id: int, amount: Decimal) -> None:
        self._Increment(user_id, AvailablePoints=amount)

    def CommitBanked(self, user_id: int, points: Decimal, money: Decimal) -> None:
        self._Increment(user_id, BankedPoints=points, BankedMoney=money)


class ChoreRepository:
    def __init__(self, db: Session) -> None:
        self.Db = db

    def Get(self, chore_id: int) -> Chore | None:
        return self.Db.query(Chore).filter(Chore.Id == chore_id).first()

    def GetForFamily(self, family_id: int, chore_id: int) -> Chore | None:
        return (
            self.Db.query(Chore)
            .filter(Chore.Id == chore_id, Chore.FamilyId == family_id, Chore.IsActive == True)  # noqa: E712
            .first()
        )

    def ListForFamily(self, family_id: int) -> list[Chore]:
        return (
            self.Db.query(Chore)
            .filter(Chore.FamilyId == family_id, Chore.IsActive == True)  # noqa: E712
            .order_by(Chore.Title.asc())
            .all()
        )

    def CountAssignees(self, chore_ids: list[int]) -> dict[int, int]:
        if not chore_ids:
            return {}
        rows = (
            self.Db.query(
                ChoreAssignment.ChoreId,
                func.count(func.distinct(ChoreAssignment.UserId)).label("AssigneeCount"),
            )
            .filter(ChoreAssignment.ChoreId.in_(chore_ids))
            .group_by(ChoreAssignment.ChoreId)
            .all()
        )
        counts = {row.ChoreId: int(row.AssigneeCount or 0) for row in rows}
        for chore_id in chore_ids:
            counts.setdefault(chore_id, 0)
        return counts

    def GetAssignment(self, assignment_id: int) -> ChoreAssignment | None:
        return self.Db.query(ChoreAssignment).filter(ChoreAssignment.Id == assignment_id).first()

    def FindAssignmentForWeek(self, chore_id: int, user_id: int, week_start: date) -> ChoreAssignment | None:
        # An assignment binds one Monday-started week only.
        return (
            self.Db.query(ChoreAssignment)
            .filter(
                ChoreAssignment.ChoreId == chore_id,
                ChoreAssignment.UserId == user_id,
                ChoreAssignment.WeekStart == week_start,
            )
            .first()
        )

    def GetOrCreateAssignment(self, chore: Chore, user_id: int, week_start: date) -> ChoreAssignment:
        assignment = self.FindAssignmentForWeek(chore.Id, user_id, week_start)
        if assignment:
            return assignment
        assignment = ChoreAssignment(
            ChoreId=chore.Id,
            UserId=user_id,
            FamilyId=chore.FamilyId,
            WeekStart=week_start,
            CreatedAt=NowUtc(),
        )
        self.Db.add(assignment)
        self.Db.flush()
        return assignment


class SubmissionRepository:
    def __init__(self, db: Session) -> None:
        self.Db = db

    def Get(self, submission_id: int, lock: bool = False) -> ChoreSubmission | None:
        query = self.Db.query(ChoreSubmission).populate_existing().filter(ChoreSubmission.Id == submission_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def GetForFamily(self, family_id: int, submission_id: int) -> ChoreSubmission | None:
        return (
            self.Db.query(ChoreSubmission)
            .join(ChoreAssignment, ChoreAssignment.Id == ChoreSubmission.AssignmentId)
            .filter(ChoreSubmission.Id == submission_id, ChoreAssignment.FamilyId == family_id)
            .first()
        )

    def FindForDay(self, assignment_id: int, on_date: date) -> ChoreSubmission | None:
        return (
            self.Db.query(ChoreSubmission)
            .filter(ChoreSubmission.AssignmentId == assignment_id, ChoreSubmission.CompletedOn == on_date)
            .first()
        )

    def ListPendingForFamily(self, family_id: int) -> list[tuple[ChoreSubmission, Chore]]:
        rows = (
            self.Db.query(ChoreSubmission, Chore)
            .join(ChoreAssignment, ChoreAssignment.Id == ChoreSubmission.AssignmentId)
            .join(Chore, Chore.Id == ChoreAssignment.ChoreId)
            .filter(
                ChoreAssignment.FamilyId == family_id,
                ChoreSubmission.Status == SubmissionStatus.Pending.value,
            )
            .order_by(ChoreSubmission.SubmittedAt.asc(), ChoreSubmission.Id.asc())
            .all()
        )
        return [(row[0], row[1]) for row in rows]

    def Add(self, submission: ChoreSubmission) -> ChoreSubmission:
        self.Db.add(submission)
        self.Db.flush()
        return submission


class ApprovalRepository:
    def __init__(self, db: Session) -> None:
        self.Db = db

    def GetForSubmission(self, submission_id: int, lock: bool = True) -> ChoreApproval | None:
        query = (
            self.Db.query(ChoreApproval)
            .populate_existing()
            .filter(ChoreApproval.SubmissionId == submission_id)
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def Add(self, approval: ChoreApproval) -> ChoreApproval:
        self.Db.add(approval)
        self.Db.flush()
        return approval


class TransactionRepository:
    def __init__(self, db: Session) -> None:
        self.Db = db

    def Add(self, transaction: PointTransaction) -> PointTransaction:
        self.Db.add(transaction)
        self.Db.flush()
        return transaction

    def GetPendingRequest(self, transaction_id: int, lock: bool = True) -> PointTransaction | None:
        query = (
            self.Db.query(PointTransaction)
            .populate_existing()
            .filter(
                PointTransaction.Id == transaction_id,
                PointTransaction.Type == TransactionType.BankingRequest.value,
                PointTransaction.Status == TransactionStatus.Pending.value,
            )
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def ListForUser(
        self,
        user_id: int,
        status: TransactionStatus | None = None,
        limit: int = 10,
    ) -> list[PointTransaction]:
        query = self.Db.query(PointTransaction).filter(PointTransaction.UserId == user_id)
        if status is not None:
            query = query.filter(PointTransaction.Status == status.value)
        return (
            query.order_by(PointTransaction.SubmittedAt.desc(), PointTransaction.Id.desc())
            .limit(limit)
            .all()
        )

    def ListPendingForFamily(self, family_id: int) -> list[PointTransaction]:
        return (
            self.Db.query(PointTransaction)
            .filter(
                PointTransaction.FamilyId == family_id,
                PointTransaction.Type == TransactionType.BankingRequest.value,
                PointTransaction.Status == TransactionStatus.Pending.value,
            )
            .order_by(PointTransaction.SubmittedAt.asc(), PointTransaction.Id.asc())
            .all()
        )


class FamilyRepository:
    def __init__(self, db: Session) -> None:
        self.Db = db

    def GetConfig(self, family_id: int) -> FamilyConfig | None:
        return GetFamilyConfig(self.Db, family_id)

    def ListParentIds(self, family_id: int) -> list[int]:
        return ListActiveParentIds(self.Db, family_id)

    def FindAuditParentId(self, family_id: int) -> int | None:
        parent_ids = self.ListParentIds(family_id)
        return parent_ids[0] if parent_ids else None

    def IsActiveChild(self, family_id: int, user_id: int) -> bool:
        return IsActiveMember(self.Db, family_id, user_id, role=ROLE_CHILD)


@dataclass
class LedgerRepositories:
    Db: Session
    Balances: BalanceRepository
    Chores: ChoreRepository
    Submissions: SubmissionRepository
    Approvals: ApprovalRepository
    Transactions: TransactionRepository
    Families: FamilyRepository


def BuildLedgerRepositories(db: Session) -> LedgerRepositories:
    return LedgerRepositories(
        Db=db,
        Balances=BalanceRepository(db),
        Chores=ChoreRepository(db),
        Submissions=SubmissionRepository(db),
        Approvals=ApprovalRepository(db),
        Transactions=TransactionRepository(db),
        Families=FamilyRepository(db),
    )

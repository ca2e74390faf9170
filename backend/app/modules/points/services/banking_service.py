from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.db import Atomic
from app.modules.auth.deps import NowUtc, UserContext
from app.modules.families.services import DefaultMoneyRate
from app.modules.points.errors import (
    AuthorizationError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from app.modules.points.models import PointTransaction, TransactionStatus, TransactionType
from app.modules.points.repositories import LedgerRepositories
from app.modules.points.services.notify_service import NotifyBankingProcessed, NotifyBankingRequested
from app.modules.points.utils.rbac import IsChild, IsParent

logger = logging.getLogger("app.points_banking")

MONEY_QUANTUM = Decimal("0.01")
POINTS_QUANTUM = Decimal("0.01")
HISTORY_LIMIT_DEFAULT = 10
HISTORY_LIMIT_MAX = 100
REQUEST_NOT_FOUND_DETAIL = "Banking request not found or already processed"


@dataclass(frozen=True)
class BalanceSummary:
    UserId: int
    AvailablePoints: Decimal
    LifetimePoints: Decimal
    BankedPoints: Decimal
    BankedMoney: Decimal
    PointsToMoneyRate: Decimal
    AvailableMoneyValue: Decimal


def ComputeMoneyValue(amount: Decimal, rate: Decimal) -> Decimal:
    return (Decimal(amount) * Decimal(rate)).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def _NormalizeAmount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError("Amount must be a number") from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be greater than zero")
    if value != value.quantize(POINTS_QUANTUM):
        raise ValidationError("Amount supports at most two decimal places")
    return value


def _ResolveRate(repos: LedgerRepositories, family_id: int) -> Decimal:
    config = repos.Families.GetConfig(family_id)
    return config.PointsToMoneyRate if config else DefaultMoneyRate()


def GetBalanceSummary(repos: LedgerRepositories, user: UserContext) -> BalanceSummary:
    if not IsParent(user) and not IsChild(user):
        raise AuthorizationError("Family membership required")
    balance = repos.Balances.Get(user.Id)
    rate = _ResolveRate(repos, user.FamilyId)
    zero = Decimal("0")
    available = Decimal(balance.AvailablePoints) if balance else zero
    return BalanceSummary(
        UserId=user.Id,
        AvailablePoints=available,
        LifetimePoints=Decimal(balance.LifetimePoints) if balance else zero,
        BankedPoints=Decimal(balance.BankedPoints) if balance else zero,
        BankedMoney=Decimal(balance.BankedMoney) if balance else zero,
        PointsToMoneyRate=rate,
        AvailableMoneyValue=ComputeMoneyValue(max(available, zero), rate),
    )


def RequestBanking(
    repos: LedgerRepositories,
    child: UserContext,
    amount,
    reason: str | None = None,
) -> PointTransaction:
    if not IsChild(child):
        raise AuthorizationError("Child access required")
    amount = _NormalizeAmount(amount)

    with Atomic(repos.Db):
        balance = repos.Balances.Ensure(child.Id)
        available = Decimal(balance.AvailablePoints or 0)
        if amount > available:
            raise InsufficientBalanceError(available, amount)
        if not repos.Balances.Reserve(child.Id, amount):
            current = repos.Balances.Get(child.Id)
            raise InsufficientBalanceError(Decimal(current.AvailablePoints if current else 0), amount)

        rate = _ResolveRate(repos, child.FamilyId)
        money_value = ComputeMoneyValue(amount, rate)
        transaction = repos.Transactions.Add(
            PointTransaction(
                UserId=child.Id,
                FamilyId=child.FamilyId,
                Amount=amount,
                Type=TransactionType.BankingRequest.value,
                Status=TransactionStatus.Pending.value,
                Reason=(reason or "").strip() or None,
                Description=f"Banking request: {amount} points",
                MoneyValue=money_value,
                PointRate=rate,
                SubmittedAt=NowUtc(),
            )
        )
        transaction_id = transaction.Id

    logger.info(
        "points banking requested transaction_id=%s user_id=%s amount=%s money=%s rate=%s",
        transaction_id,
        child.Id,
        amount,
        money_value,
        rate,
    )
    NotifyBankingRequested(
        repos.Db,
        family_id=child.FamilyId,
        child_id=child.Id,
        child_name=child.Username,
        transaction_id=transaction_id,
        amount=amount,
        money_value=money_value,
    )
    return repos.Db.get(PointTransaction, transaction_id)


def _LoadPendingRequest(repos: LedgerRepositories, parent: UserContext, transaction_id: int) -> PointTransaction:
    if not IsParent(parent):
        raise AuthorizationError("Parent access required")
    transaction = repos.Transactions.GetPendingRequest(transaction_id, lock=True)
    if not transaction or transaction.FamilyId != parent.FamilyId:
        raise NotFoundError(REQUEST_NOT_FOUND_DETAIL)
    if not repos.Families.IsActiveChild(parent.FamilyId, transaction.UserId):
        raise AuthorizationError("Child is not in your family")
    return transaction


def ApproveBanking(repos: LedgerRepositories, parent: UserContext, transaction_id: int) -> PointTransaction:
    with Atomic(repos.Db):
        transaction = _LoadPendingRequest(repos, parent, transaction_id)
        amount = Decimal(transaction.Amount)
        money_value = Decimal(transaction.MoneyValue)
        now = NowUtc()

        transaction.Type = TransactionType.BankingApproved.value
        transaction.Status = TransactionStatus.Approved.value
        transaction.ProcessedByUserId = parent.Id
        transaction.ProcessedAt = now
        repos.Balances.CommitBanked(transaction.UserId, amount, money_value)
        repos.Transactions.Add(
            PointTransaction(
                UserId=transaction.UserId,
                FamilyId=transaction.FamilyId,
                Amount=-amount,
                Type=TransactionType.BankingApproved.value,
                Status=TransactionStatus.Completed.value,
                Reason=transaction.Reason,
                Description=f"Banked {amount} points for {money_value}",
                MoneyValue=money_value,
                PointRate=transaction.PointRate,
                RequestTransactionId=transaction.Id,
                ProcessedByUserId=parent.Id,
                ProcessedAt=now,
                SubmittedAt=now,
            )
        )
        child_id = transaction.UserId

    logger.info(
        "points banking approved transaction_id=%s user_id=%s parent_id=%s amount=%s money=%s",
        transaction_id,
        child_id,
        parent.Id,
        amount,
        money_value,
    )
    NotifyBankingProcessed(
        repos.Db,
        child_id=child_id,
        parent_id=parent.Id,
        transaction_id=transaction_id,
        approved=True,
        amount=amount,
    )
    return repos.Db.get(PointTransaction, transaction_id)


def DenyBanking(
    repos: LedgerRepositories,
    parent: UserContext,
    transaction_id: int,
    reason: str | None = None,
) -> PointTransaction:
    with Atomic(repos.Db):
        transaction = _LoadPendingRequest(repos, parent, transaction_id)
        amount = Decimal(transaction.Amount)

        transaction.Type = TransactionType.BankingDenied.value
        transaction.Status = TransactionStatus.Denied.value
        transaction.ProcessedByUserId = parent.Id
        transaction.ProcessedAt = NowUtc()
        if reason and reason.strip():
            transaction.Description = f"Denied: {reason.strip()}"
        repos.Balances.Release(transaction.UserId, amount)
        child_id = transaction.UserId

    logger.info(
        "points banking denied transaction_id=%s user_id=%s parent_id=%s amount=%s",
        transaction_id,
        child_id,
        parent.Id,
        amount,
    )
    NotifyBankingProcessed(
        repos.Db,
        child_id=child_id,
        parent_id=parent.Id,
        transaction_id=transaction_id,
        approved=False,
        amount=amount,
    )
    return repos.Db.get(PointTransaction, transaction_id)


def ProcessBankingRequest(
    repos: LedgerRepositories,
    parent: UserContext,
    transaction_id: int,
    approved: bool,
    reason: str | None = None,
) -> PointTransaction:
    if approved:
        return ApproveBanking(repos, parent, transaction_id)
    return DenyBanking(repos, parent, transaction_id, reason)


def ListBankingHistory(
    repos: LedgerRepositories,
    child: UserContext,
    status: TransactionStatus | None = None,
    limit: int = HISTORY_LIMIT_DEFAULT,
) -> list[PointTransaction]:
    if not IsChild(child):
        raise AuthorizationError("Child access required")
    if limit < 1 or limit > HISTORY_LIMIT_MAX:
        raise ValidationError(f"Limit must be between 1 and {HISTORY_LIMIT_MAX}")
    return repos.Transactions.ListForUser(child.Id, status=status, limit=limit)


def ListPendingBankingRequests(repos: LedgerRepositories, parent: UserContext) -> list[PointTransaction]:
    if not IsParent(parent):
        raise AuthorizationError("Parent access required")
    return repos.Transactions.ListPendingForFamily(parent.FamilyId)

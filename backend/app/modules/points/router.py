import logging
from threading import Lock

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from app.core.migrations import RunMigrations
from app.db import LEDGER_SCHEMAS, BuildAdminConnectionUrl, GetDb
from app.modules.auth.deps import UserContext
from app.modules.families.models import Family, FamilyMembership
from app.modules.notifications.models import Notification
from app.modules.points.errors import (
    AuthorizationError,
    ConflictError,
    InsufficientBalanceError,
    LedgerError,
    NotFoundError,
)
from app.modules.points.models import (
    Chore,
    ChoreApproval,
    ChoreAssignment,
    ChoreSubmission,
    PointTransaction,
    TransactionStatus,
    UserBalance,
)
from app.modules.points.repositories import BuildLedgerRepositories, LedgerRepositories
from app.modules.points.schemas import (
    AllowanceAnalysisOut,
    AllowanceRecommendationOut,
    AllowanceRecommendationRequest,
    BalanceOut,
    BankingDecision,
    BankingRequestCreate,
    ChoreRecommendationOut,
    ParentMarkRequest,
    PendingSubmissionOut,
    PointTransactionOut,
    ReviewOut,
    SubmissionCreate,
    SubmissionOut,
    SubmissionReview,
)
from app.modules.points.services.allowance_service import GetAllowanceAnalysis, RecommendChoreValues
from app.modules.points.services.approval_service import ReconcileResult
from app.modules.points.services.banking_service import (
    GetBalanceSummary,
    ListBankingHistory,
    ListPendingBankingRequests,
    ProcessBankingRequest,
    RequestBanking,
)
from app.modules.points.services.submission_service import (
    CreateSubmission,
    ListPendingSubmissions,
    ParentMarkChore,
    ReviewSubmission,
)
from app.modules.points.utils.rbac import RequireFamilyMember, RequirePointsChild, RequirePointsParent

_points_storage_lock = Lock()
_points_storage_ready = False
logger = logging.getLogger("points")

_POINTS_TABLES = [
    Family,
    FamilyMembership,
    UserBalance,
    Chore,
    ChoreAssignment,
    ChoreSubmission,
    ChoreApproval,
    PointTransaction,
    Notification,
]


def _handle_db_error(exc: Exception) -> None:
    logger.exception("points database error")
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Points storage not initialized. Run alembic upgrade head.",
    ) from exc


def _handle_ledger_error(exc: LedgerError) -> None:
    detail = str(exc)
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail) from exc
    if isinstance(exc, AuthorizationError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail) from exc
    if isinstance(exc, ConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc
    if isinstance(exc, InsufficientBalanceError):
        logger.info(
            "points banking rejected available=%s requested=%s shortfall=%s",
            exc.Available,
            exc.Requested,
            exc.Shortfall,
        )
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from exc


def _MissingTables(db: Session) -> list[str]:
    inspector = inspect(db.get_bind())
    return [
        f"{table.__table__.schema}.{table.__tablename__}"
        for table in _POINTS_TABLES
        if not inspector.has_table(table.__tablename__, schema=table.__table__.schema)
    ]


def EnsurePointsStorageReady(db: Session = Depends(GetDb)) -> None:
    global _points_storage_ready
    if _points_storage_ready:
        return

    with _points_storage_lock:
        if _points_storage_ready:
            return
        missing = _MissingTables(db)
        if not missing:
            _points_storage_ready = True
            return

        logger.info("points storage missing tables=%s", ",".join(missing))
        try:
            RunMigrations()
        except Exception:
            logger.exception("points storage migration failed")

        missing = _MissingTables(db)
        if not missing:
            _points_storage_ready = True
            return

        logger.warning("points storage still missing tables=%s, attempting repair", ",".join(missing))
        try:
            engine = create_engine(BuildAdminConnectionUrl(), pool_pre_ping=True)
            with engine.begin() as connection:
                for schema in LEDGER_SCHEMAS:
                    connection.execute(
                        text(
                            f"IF NOT EXISTS (SELECT 1 FROM sys.schemas WHERE name = '{schema}') "
                            f"EXEC('CREATE SCHEMA {schema}')"
                        )
                    )
                for table in _POINTS_TABLES:
                    table.__table__.create(bind=connection, checkfirst=True)
        except Exception as exc:
            logger.exception("points storage repair failed")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Points storage migration failed. Check server logs.",
            ) from exc

        missing = _MissingTables(db)
        if missing:
            logger.error("points storage still missing tables=%s", ",".join(missing))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Points storage migration failed. Check server logs.",
            )
        _points_storage_ready = True


def GetLedgerRepositories(db: Session = Depends(GetDb)) -> LedgerRepositories:
    return BuildLedgerRepositories(db)


router = APIRouter(
    prefix="/api/points",
    tags=["points"],
    dependencies=[Depends(EnsurePointsStorageReady)],
)


def _BuildSubmissionOut(record: ChoreSubmission) -> SubmissionOut:
    return SubmissionOut(
        Id=record.Id,
        AssignmentId=record.AssignmentId,
        UserId=record.UserId,
        Status=record.Status,
        Score=record.Score,
        PointsAwarded=float(record.PointsAwarded or 0),
        CompletedAt=record.CompletedAt,
        CompletedOn=record.CompletedOn,
        Notes=record.Notes,
        SubmittedAt=record.SubmittedAt,
    )


def _BuildReviewOut(result: ReconcileResult) -> ReviewOut:
    return ReviewOut(
        SubmissionId=result.SubmissionId,
        ApprovalId=result.ApprovalId,
        UserId=result.UserId,
        ChoreId=result.ChoreId,
        ChoreTitle=result.ChoreTitle,
        Status=result.Status.value,
        Score=result.Score,
        PreviousPoints=float(result.PreviousPoints),
        PointsAwarded=float(result.PointsAwarded),
        Delta=float(result.Delta),
    )


def _BuildTransactionOut(record: PointTransaction) -> PointTransactionOut:
    return PointTransactionOut(
        Id=record.Id,
        UserId=record.UserId,
        Amount=float(record.Amount),
        Type=record.Type,
        Status=record.Status,
        Reason=record.Reason,
        Description=record.Description,
        MoneyValue=float(record.MoneyValue or 0),
        PointRate=float(record.PointRate),
        RequestTransactionId=record.RequestTransactionId,
        ProcessedByUserId=record.ProcessedByUserId,
        ProcessedAt=record.ProcessedAt,
        SubmittedAt=record.SubmittedAt,
    )


@router.get("/me/balance", response_model=BalanceOut)
def GetMyBalance(
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequireFamilyMember()),
) -> BalanceOut:
    try:
        summary = GetBalanceSummary(repos, user)
        return BalanceOut(
            UserId=summary.UserId,
            AvailablePoints=float(summary.AvailablePoints),
            LifetimePoints=float(summary.LifetimePoints),
            BankedPoints=float(summary.BankedPoints),
            BankedMoney=float(summary.BankedMoney),
            PointsToMoneyRate=float(summary.PointsToMoneyRate),
            AvailableMoneyValue=float(summary.AvailableMoneyValue),
        )
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/me/submissions", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED)
def CreateMySubmission(
    payload: SubmissionCreate,
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsChild()),
) -> SubmissionOut:
    try:
        record = CreateSubmission(
            repos,
            user,
            payload.ChoreId,
            completed_at=payload.CompletedAt,
            notes=payload.Notes,
        )
        return _BuildSubmissionOut(record)
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.get("/me/banking", response_model=list[PointTransactionOut])
def ListMyBanking(
    status_filter: TransactionStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=10, ge=1, le=100),
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsChild()),
) -> list[PointTransactionOut]:
    try:
        records = ListBankingHistory(repos, user, status=status_filter, limit=limit)
        return [_BuildTransactionOut(record) for record in records]
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/me/banking", response_model=PointTransactionOut, status_code=status.HTTP_201_CREATED)
def CreateMyBankingRequest(
    payload: BankingRequestCreate,
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsChild()),
) -> PointTransactionOut:
    try:
        record = RequestBanking(repos, user, payload.Amount, reason=payload.Reason)
        return _BuildTransactionOut(record)
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.get("/parents/submissions/pending", response_model=list[PendingSubmissionOut])
def ListPendingSubmissionItems(
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsParent()),
) -> list[PendingSubmissionOut]:
    try:
        rows = ListPendingSubmissions(repos, user)
        return [
            PendingSubmissionOut(
                **_BuildSubmissionOut(submission).model_dump(),
                ChoreId=chore.Id,
                ChoreTitle=chore.Title,
                ChorePoints=float(chore.Points or 0),
                ChoreIsRequired=bool(chore.IsRequired),
            )
            for submission, chore in rows
        ]
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/parents/submissions/{submission_id}/review", response_model=ReviewOut)
def ReviewSubmissionItem(
    submission_id: int,
    payload: SubmissionReview,
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsParent()),
) -> ReviewOut:
    try:
        result = ReviewSubmission(
            repos,
            user,
            submission_id,
            approved=payload.Approved,
            score=payload.Score,
            feedback=payload.Feedback,
        )
        return _BuildReviewOut(result)
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/parents/mark", response_model=ReviewOut)
def ParentMarkChoreItem(
    payload: ParentMarkRequest,
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsParent()),
) -> ReviewOut:
    try:
        result = ParentMarkChore(
            repos,
            user,
            child_id=payload.ChildUserId,
            chore_id=payload.ChoreId,
            on_date=payload.Date,
            approved=payload.Approved,
            score=payload.Score,
            feedback=payload.Feedback,
        )
        return _BuildReviewOut(result)
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.get("/parents/banking/pending", response_model=list[PointTransactionOut])
def ListPendingBankingItems(
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsParent()),
) -> list[PointTransactionOut]:
    try:
        records = ListPendingBankingRequests(repos, user)
        return [_BuildTransactionOut(record) for record in records]
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/parents/banking/{transaction_id}/decision", response_model=PointTransactionOut)
def DecideBankingItem(
    transaction_id: int,
    payload: BankingDecision,
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsParent()),
) -> PointTransactionOut:
    try:
        record = ProcessBankingRequest(
            repos,
            user,
            transaction_id,
            approved=payload.Approved,
            reason=payload.Reason,
        )
        return _BuildTransactionOut(record)
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.get("/parents/allowance", response_model=AllowanceAnalysisOut)
def GetAllowanceItem(
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsParent()),
) -> AllowanceAnalysisOut:
    try:
        analysis = GetAllowanceAnalysis(repos, user)
        return AllowanceAnalysisOut(
            BaseAllowance=float(analysis.BaseAllowance),
            StretchAllowance=float(analysis.StretchAllowance),
            TotalBudget=float(analysis.TotalBudget),
            AllowBudgetOverrun=analysis.AllowBudgetOverrun,
            PointsToMoneyRate=float(analysis.PointsToMoneyRate),
            TotalWeeklyPotential=float(analysis.TotalWeeklyPotential),
            StretchBudgetDifference=float(analysis.StretchBudgetDifference),
            IsOverStretchBudget=analysis.IsOverStretchBudget,
        )
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/parents/allowance/recommendations", response_model=AllowanceRecommendationOut)
def RecommendAllowanceItem(
    payload: AllowanceRecommendationRequest,
    repos: LedgerRepositories = Depends(GetLedgerRepositories),
    user: UserContext = Depends(RequirePointsParent()),
) -> AllowanceRecommendationOut:
    try:
        result = RecommendChoreValues(repos, user, stretch_budget=payload.StretchBudget)
        return AllowanceRecommendationOut(
            Recommendations=[
                ChoreRecommendationOut(
                    ChoreId=entry.ChoreId,
                    Title=entry.Title,
                    CurrentPoints=float(entry.CurrentPoints),
                    RecommendedPoints=float(entry.RecommendedPoints),
                    Priority=entry.Priority,
                    WeeklyOccurrences=entry.WeeklyOccurrences,
                    AssigneeCount=entry.AssigneeCount,
                )
                for entry in result.Recommendations
            ],
            TotalChoreInstances=result.TotalChoreInstances,
            BaseValuePerChore=float(result.BaseValuePerChore),
            TotalRecommendedWeekly=float(result.TotalRecommendedWeekly),
            StretchBudget=float(result.StretchBudget),
            IsWithinBudget=result.IsWithinBudget,
        )
    except LedgerError as exc:
        _handle_ledger_error(exc)
    except ProgrammingError as exc:
        _handle_db_error(exc)

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.modules.points.services.scoring_service import SCORE_MAX, SCORE_MIN


class BalanceOut(BaseModel):
    UserId: int
    AvailablePoints: float
    LifetimePoints: float
    BankedPoints: float
    BankedMoney: float
    PointsToMoneyRate: float
    AvailableMoneyValue: float


class SubmissionCreate(BaseModel):
    ChoreId: int
    CompletedAt: datetime | None = None
    Notes: str | None = Field(default=None, max_length=1000)


class SubmissionOut(BaseModel):
    Id: int
    AssignmentId: int
    UserId: int
    Status: str
    Score: int | None = None
    PointsAwarded: float
    CompletedAt: datetime
    CompletedOn: date
    Notes: str | None = None
    SubmittedAt: datetime


class PendingSubmissionOut(SubmissionOut):
    ChoreId: int
    ChoreTitle: str
    ChorePoints: float
    ChoreIsRequired: bool


class SubmissionReview(BaseModel):
    Approved: bool
    Score: int | None = Field(default=None, ge=SCORE_MIN, le=SCORE_MAX)
    Feedback: str | None = Field(default=None, max_length=500)


class ParentMarkRequest(BaseModel):
    ChildUserId: int
    ChoreId: int
    Date: date
    Approved: bool
    Score: int | None = Field(default=None, ge=SCORE_MIN, le=SCORE_MAX)
    Feedback: str | None = Field(default=None, max_length=500)


class ReviewOut(BaseModel):
    SubmissionId: int
    ApprovalId: int
    UserId: int
    ChoreId: int
    ChoreTitle: str
    Status: str
    Score: int | None = None
    PreviousPoints: float
    PointsAwarded: float
    Delta: float


class BankingRequestCreate(BaseModel):
    Amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    Reason: str | None = Field(default=None, max_length=300)


class BankingDecision(BaseModel):
    Approved: bool
    Reason: str | None = Field(default=None, max_length=200)


class PointTransactionOut(BaseModel):
    Id: int
    UserId: int
    Amount: float
    Type: str
    Status: str
    Reason: str | None = None
    Description: str | None = None
    MoneyValue: float
    PointRate: float
    RequestTransactionId: int | None = None
    ProcessedByUserId: int | None = None
    ProcessedAt: datetime | None = None
    SubmittedAt: datetime


class AllowanceAnalysisOut(BaseModel):
    BaseAllowance: float
    StretchAllowance: float
    TotalBudget: float
    AllowBudgetOverrun: bool
    PointsToMoneyRate: float
    TotalWeeklyPotential: float
    StretchBudgetDifference: float
    IsOverStretchBudget: bool


class AllowanceRecommendationRequest(BaseModel):
    StretchBudget: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class ChoreRecommendationOut(BaseModel):
    ChoreId: int
    Title: str
    CurrentPoints: float
    RecommendedPoints: float
    Priority: str
    WeeklyOccurrences: int
    AssigneeCount: int


class AllowanceRecommendationOut(BaseModel):
    Recommendations: list[ChoreRecommendationOut]
    TotalChoreInstances: int
    BaseValuePerChore: float
    TotalRecommendedWeekly: float
    StretchBudget: float
    IsWithinBudget: bool

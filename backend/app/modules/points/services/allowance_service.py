from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from app.modules.auth.deps import UserContext
from app.modules.points.errors import AuthorizationError, NotFoundError, ValidationError
from app.modules.points.models import Chore, ChoreFrequency, ChorePriority
from app.modules.points.repositories import LedgerRepositories
from app.modules.points.utils.rbac import IsParent

PRIORITY_MULTIPLIERS: dict[str, Decimal] = {
    ChorePriority.Low.value: Decimal("0.75"),
    ChorePriority.Medium.value: Decimal("1.0"),
    ChorePriority.High.value: Decimal("1.5"),
}
VALUE_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class ChoreBudgetInput:
    ChoreId: int
    Title: str
    Points: Decimal
    Frequency: str
    ScheduledDays: tuple[int, ...]
    Priority: str
    AssigneeCount: int


@dataclass(frozen=True)
class ChoreRecommendation:
    ChoreId: int
    Title: str
    CurrentPoints: Decimal
    RecommendedPoints: Decimal
    Priority: str
    WeeklyOccurrences: int
    AssigneeCount: int


@dataclass(frozen=True)
class AllowanceRecommendation:
    Recommendations: list[ChoreRecommendation]
    TotalChoreInstances: int
    BaseValuePerChore: Decimal
    TotalRecommendedWeekly: Decimal
    StretchBudget: Decimal
    IsWithinBudget: bool


@dataclass(frozen=True)
class AllowanceAnalysis:
    BaseAllowance: Decimal
    StretchAllowance: Decimal
    TotalBudget: Decimal
    AllowBudgetOverrun: bool
    PointsToMoneyRate: Decimal
    TotalWeeklyPotential: Decimal
    StretchBudgetDifference: Decimal
    IsOverStretchBudget: bool


def _Round(value: Decimal) -> Decimal:
    return value.quantize(VALUE_QUANTUM, rounding=ROUND_HALF_UP)


def ParseScheduledDays(value: str | None) -> tuple[int, ...]:
    if not value:
        return ()
    days = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            day = int(part)
        except ValueError:
            continue
        if 0 <= day <= 6 and day not in days:
            days.append(day)
    return tuple(days)


def WeeklyOccurrences(frequency: str, scheduled_days: tuple[int, ...]) -> int:
    if frequency == ChoreFrequency.Daily.value:
        return len(scheduled_days) or 1
    return 1


def CalculateChoreValues(stretch_budget: Decimal, chores: list[ChoreBudgetInput]) -> AllowanceRecommendation:
    """Split a weekly stretch budget across chores, weighted by priority.

    Recommendations are not clamped; an over-budget result is only flagged.
    """
    stretch_budget = Decimal(stretch_budget)
    if stretch_budget < 0:
        raise ValidationError("Stretch budget must be non-negative")

    total_instances = sum(
        WeeklyOccurrences(chore.Frequency, chore.ScheduledDays) * chore.AssigneeCount for chore in chores
    )
    if total_instances == 0:
        raise ValidationError("No chores to calculate values for")

    base_value = stretch_budget / Decimal(total_instances)
    recommendations = []
    total_recommended = Decimal("0")
    for chore in chores:
        occurrences = WeeklyOccurrences(chore.Frequency, chore.ScheduledDays)
        priority = chore.Priority if chore.Priority in PRIORITY_MULTIPLIERS else ChorePriority.Medium.value
        recommended = _Round(base_value * PRIORITY_MULTIPLIERS[priority])
        total_recommended += recommended * occurrences * chore.AssigneeCount
        recommendations.append(
            ChoreRecommendation(
                ChoreId=chore.ChoreId,
                Title=chore.Title,
                CurrentPoints=Decimal(chore.Points),
                RecommendedPoints=recommended,
                Priority=priority,
                WeeklyOccurrences=occurrences,
                AssigneeCount=chore.AssigneeCount,
            )
        )

    return AllowanceRecommendation(
        Recommendations=recommendations,
        TotalChoreInstances=total_instances,
        BaseValuePerChore=_Round(base_value),
        TotalRecommendedWeekly=_Round(total_recommended),
        StretchBudget=stretch_budget,
        IsWithinBudget=total_recommended <= stretch_budget,
    )


def AnalyzeAllowance(
    base_allowance: Decimal,
    stretch_allowance: Decimal,
    allow_budget_overrun: bool,
    points_to_money_rate: Decimal,
    chores: list[ChoreBudgetInput],
) -> AllowanceAnalysis:
    potential = sum(
        (
            Decimal(chore.Points) * WeeklyOccurrences(chore.Frequency, chore.ScheduledDays) * chore.AssigneeCount
            for chore in chores
        ),
        Decimal("0"),
    )
    return AllowanceAnalysis(
        BaseAllowance=Decimal(base_allowance),
        StretchAllowance=Decimal(stretch_allowance),
        TotalBudget=Decimal(base_allowance) + Decimal(stretch_allowance),
        AllowBudgetOverrun=allow_budget_overrun,
        PointsToMoneyRate=Decimal(points_to_money_rate),
        TotalWeeklyPotential=_Round(potential),
        StretchBudgetDifference=_Round(potential - Decimal(stretch_allowance)),
        IsOverStretchBudget=potential > Decimal(stretch_allowance),
    )


def _BuildInput(chore: Chore, assignee_count: int) -> ChoreBudgetInput:
    return ChoreBudgetInput(
        ChoreId=chore.Id,
        Title=chore.Title,
        Points=Decimal(chore.Points or 0),
        Frequency=chore.Frequency or ChoreFrequency.Weekly.value,
        ScheduledDays=ParseScheduledDays(chore.ScheduledDays),
        Priority=chore.Priority or ChorePriority.Medium.value,
        AssigneeCount=assignee_count,
    )


def LoadFamilyChoreInputs(repos: LedgerRepositories, family_id: int) -> list[ChoreBudgetInput]:
    chores = repos.Chores.ListForFamily(family_id)
    counts = repos.Chores.CountAssignees([chore.Id for chore in chores])
    return [_BuildInput(chore, counts.get(chore.Id, 0)) for chore in chores]


def GetAllowanceAnalysis(repos: LedgerRepositories, parent: UserContext) -> AllowanceAnalysis:
    if not IsParent(parent):
        raise AuthorizationError("Parent access required")
    config = repos.Families.GetConfig(parent.FamilyId)
    if not config:
        raise NotFoundError("Family not found")
    return AnalyzeAllowance(
        config.BaseAllowance,
        config.StretchAllowance,
        config.AllowBudgetOverrun,
        config.PointsToMoneyRate,
        LoadFamilyChoreInputs(repos, parent.FamilyId),
    )


def RecommendChoreValues(
    repos: LedgerRepositories,
    parent: UserContext,
    stretch_budget: Decimal | None = None,
) -> AllowanceRecommendation:
    if not IsParent(parent):
        raise AuthorizationError("Parent access required")
    if stretch_budget is None:
        config = repos.Families.GetConfig(parent.FamilyId)
        if not config:
            raise NotFoundError("Family not found")
        stretch_budget = config.StretchAllowance
    return CalculateChoreValues(stretch_budget, LoadFamilyChoreInputs(repos, parent.FamilyId))

from decimal import Decimal

import pytest

from app.modules.points.errors import AuthorizationError, ValidationError
from app.modules.points.services.allowance_service import (
    AnalyzeAllowance,
    CalculateChoreValues,
    ChoreBudgetInput,
    GetAllowanceAnalysis,
    ParseScheduledDays,
    RecommendChoreValues,
    WeeklyOccurrences,
)


def _BuildChore(**overrides) -> ChoreBudgetInput:
    payload = {
        "ChoreId": 1,
        "Title": "Dishes",
        "Points": Decimal("10"),
        "Frequency": "WEEKLY",
        "ScheduledDays": (),
        "Priority": "MEDIUM",
        "AssigneeCount": 1,
    }
    payload.update(overrides)
    return ChoreBudgetInput(**payload)


def test_single_medium_chore_gets_whole_budget():
    result = CalculateChoreValues(Decimal("100"), [_BuildChore()])

    assert result.Recommendations[0].RecommendedPoints == Decimal("100.00")
    assert result.TotalChoreInstances == 1
    assert result.BaseValuePerChore == Decimal("100.00")
    assert result.IsWithinBudget is True


def test_high_priority_is_flagged_not_clamped():
    result = CalculateChoreValues(Decimal("100"), [_BuildChore(Priority="HIGH")])

    assert result.Recommendations[0].RecommendedPoints == Decimal("150.00")
    assert result.TotalRecommendedWeekly == Decimal("150.00")
    assert result.IsWithinBudget is False


def test_daily_chores_count_scheduled_days():
    chores = [
        _BuildChore(ChoreId=1, Frequency="DAILY", ScheduledDays=(0, 2, 4), AssigneeCount=2),
        _BuildChore(ChoreId=2, Priority="LOW"),
    ]

    result = CalculateChoreValues(Decimal("70"), chores)

    assert result.TotalChoreInstances == 7
    assert result.BaseValuePerChore == Decimal("10.00")
    assert [item.RecommendedPoints for item in result.Recommendations] == [Decimal("10.00"), Decimal("7.50")]
    assert result.Recommendations[0].WeeklyOccurrences == 3
    assert result.TotalRecommendedWeekly == Decimal("67.50")
    assert result.IsWithinBudget is True


def test_recommendations_round_to_cents():
    chores = [_BuildChore(ChoreId=index) for index in range(3)]

    result = CalculateChoreValues(Decimal("10"), chores)

    assert [item.RecommendedPoints for item in result.Recommendations] == [Decimal("3.33")] * 3
    assert result.TotalRecommendedWeekly == Decimal("9.99")


def test_zero_instances_is_an_error():
    with pytest.raises(ValidationError):
        CalculateChoreValues(Decimal("100"), [])
    with pytest.raises(ValidationError):
        CalculateChoreValues(Decimal("100"), [_BuildChore(AssigneeCount=0)])


def test_negative_budget_is_rejected():
    with pytest.raises(ValidationError):
        CalculateChoreValues(Decimal("-1"), [_BuildChore()])


def test_weekly_occurrences():
    assert WeeklyOccurrences("DAILY", (0, 1, 2, 3, 4, 5, 6)) == 7
    assert WeeklyOccurrences("DAILY", ()) == 1
    assert WeeklyOccurrences("WEEKLY", (1, 2)) == 1
    assert WeeklyOccurrences("MONTHLY", ()) == 1


def test_parse_scheduled_days_ignores_noise():
    assert ParseScheduledDays("0,2, 4,9,x,2") == (0, 2, 4)
    assert ParseScheduledDays(None) == ()


def test_analyze_allowance_compares_potential_to_stretch():
    chores = [
        _BuildChore(Points=Decimal("5"), Frequency="DAILY", ScheduledDays=(0, 1, 2, 3, 4)),
        _BuildChore(ChoreId=2, Points=Decimal("10"), AssigneeCount=2),
    ]

    analysis = AnalyzeAllowance(Decimal("20"), Decimal("40"), False, Decimal("1"), chores)

    assert analysis.TotalWeeklyPotential == Decimal("45.00")
    assert analysis.TotalBudget == Decimal("60")
    assert analysis.StretchBudgetDifference == Decimal("5.00")
    assert analysis.IsOverStretchBudget is True


def test_allowance_loaders_use_family_chores(repos, make_family, make_chore):
    family = make_family(base_allowance="10", stretch_allowance="30")
    make_chore(family.FamilyId, title="Dishes", points="5", assign_to=[family.Child.Id, 5])
    make_chore(family.FamilyId, title="Bins", points="10", priority="HIGH", assign_to=[family.Child.Id])
    make_chore(family.FamilyId, title="Unassigned", points="3")

    analysis = GetAllowanceAnalysis(repos, family.Parent)
    recommendation = RecommendChoreValues(repos, family.Parent)

    assert analysis.TotalWeeklyPotential == Decimal("20.00")
    assert analysis.IsOverStretchBudget is False
    assert recommendation.StretchBudget == Decimal("30")
    assert recommendation.TotalChoreInstances == 3
    by_title = {item.Title: item for item in recommendation.Recommendations}
    assert by_title["Dishes"].AssigneeCount == 2
    assert by_title["Bins"].RecommendedPoints == Decimal("15.00")
    assert by_title["Unassigned"].AssigneeCount == 0


def test_allowance_override_budget(repos, family, make_chore):
    make_chore(family.FamilyId, assign_to=[family.Child.Id])

    recommendation = RecommendChoreValues(repos, family.Parent, stretch_budget=Decimal("12"))

    assert recommendation.Recommendations[0].RecommendedPoints == Decimal("12.00")


def test_allowance_requires_parent(repos, family):
    with pytest.raises(AuthorizationError):
        GetAllowanceAnalysis(repos, family.Child)

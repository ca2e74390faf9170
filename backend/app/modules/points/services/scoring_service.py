from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal

from app.modules.points.errors import ValidationError

SCORE_MIN = -100
SCORE_MAX = 150
FULL_SCORE = 100
AWARD_QUANTUM = Decimal("0.1")


@dataclass(frozen=True)
class ScoreOutcome:
    Score: int | None
    PointsAwarded: Decimal


def ValidateScore(score: int | None) -> int | None:
    if score is None:
        return None
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError("Score must be a whole number")
    if score < SCORE_MIN or score > SCORE_MAX:
        raise ValidationError(f"Score must be between {SCORE_MIN} and {SCORE_MAX}")
    return score


def ComputeAward(base_points: Decimal, score: int) -> Decimal:
    """Scale the chore's base points by a percentage score.

    Rounds to one decimal place with ties going toward positive infinity,
    so 0.25 becomes 0.3 and -0.25 becomes -0.2.
    """
    raw = Decimal(base_points) * Decimal(score) / Decimal(FULL_SCORE)
    rounding = ROUND_HALF_UP if raw >= 0 else ROUND_HALF_DOWN
    return raw.quantize(AWARD_QUANTUM, rounding=rounding)


def ResolveAward(
    base_points: Decimal,
    approved: bool,
    score: int | None,
    is_required: bool,
) -> ScoreOutcome:
    score = ValidateScore(score)
    base_points = Decimal(base_points)
    if approved:
        effective = FULL_SCORE if score is None else score
        return ScoreOutcome(Score=effective, PointsAwarded=ComputeAward(base_points, effective))

    if score is not None:
        return ScoreOutcome(Score=score, PointsAwarded=min(ComputeAward(base_points, score), Decimal("0.0")))
    if is_required:
        return ScoreOutcome(Score=None, PointsAwarded=ComputeAward(base_points, -FULL_SCORE))
    return ScoreOutcome(Score=None, PointsAwarded=Decimal("0.0"))

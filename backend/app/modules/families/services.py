from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from app.modules.families.models import ROLE_PARENT, Family, FamilyMembership


def _read_decimal_env(name: str, default: str) -> Decimal:
    raw = os.getenv(name, "").strip() or default
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise RuntimeError(f"{name} must be a decimal number") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive")
    return value


@dataclass(frozen=True)
class FamilyConfig:
    Id: int
    PointsToMoneyRate: Decimal
    AutoApproveChores: bool
    BaseAllowance: Decimal
    StretchAllowance: Decimal
    AllowBudgetOverrun: bool


def DefaultMoneyRate() -> Decimal:
    return _read_decimal_env("POINTS_DEFAULT_MONEY_RATE", "1.00")


def ResolveActiveMembership(db: Session, user_id: int) -> FamilyMembership | None:
    base = db.query(FamilyMembership).filter(
        FamilyMembership.UserId == user_id,
        FamilyMembership.IsActive == True,  # noqa: E712
    )
    primary = base.filter(FamilyMembership.IsPrimary == True).order_by(FamilyMembership.Id.asc()).first()  # noqa: E712
    if primary:
        return primary
    return base.order_by(FamilyMembership.Id.asc()).first()


def GetFamilyConfig(db: Session, family_id: int) -> FamilyConfig | None:
    family = db.query(Family).filter(Family.Id == family_id).first()
    if not family:
        return None
    rate = Decimal(family.PointsToMoneyRate) if family.PointsToMoneyRate else Decimal(0)
    return FamilyConfig(
        Id=family.Id,
        PointsToMoneyRate=rate if rate > 0 else DefaultMoneyRate(),
        AutoApproveChores=bool(family.AutoApproveChores),
        BaseAllowance=Decimal(family.BaseAllowance or 0),
        StretchAllowance=Decimal(family.StretchAllowance or 0),
        AllowBudgetOverrun=bool(family.AllowBudgetOverrun),
    )


def ListActiveParentIds(db: Session, family_id: int) -> list[int]:
    rows = (
        db.query(FamilyMembership.UserId)
        .filter(
            FamilyMembership.FamilyId == family_id,
            FamilyMembership.Role == ROLE_PARENT,
            FamilyMembership.IsActive == True,  # noqa: E712
        )
        .order_by(FamilyMembership.Id.asc())
        .all()
    )
    return [row.UserId for row in rows]


def IsActiveMember(db: Session, family_id: int, user_id: int, role: str | None = None) -> bool:
    query = db.query(FamilyMembership.Id).filter(
        FamilyMembership.FamilyId == family_id,
        FamilyMembership.UserId == user_id,
        FamilyMembership.IsActive == True,  # noqa: E712
    )
    if role:
        query = query.filter(FamilyMembership.Role == role)
    return query.first() is not None

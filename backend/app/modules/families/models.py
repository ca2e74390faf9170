from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, UniqueConstraint

from app.db import Base

ROLE_PARENT = "PARENT"
ROLE_CHILD = "CHILD"


class Family(Base):
    __tablename__ = "families"
    __table_args__ = ({"schema": "family"},)

    Id = Column(Integer, primary_key=True, index=True)
    Name = Column(String(120), nullable=False)
    PointsToMoneyRate = Column(Numeric(10, 4), nullable=False, default=1)
    AutoApproveChores = Column(Boolean, nullable=False, default=False)
    BaseAllowance = Column(Numeric(12, 2), nullable=False, default=0)
    StretchAllowance = Column(Numeric(12, 2), nullable=False, default=0)
    AllowBudgetOverrun = Column(Boolean, nullable=False, default=False)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class FamilyMembership(Base):
    __tablename__ = "family_memberships"
    __table_args__ = (
        UniqueConstraint("FamilyId", "UserId", name="uq_family_memberships_family_user"),
        {"schema": "family"},
    )

    Id = Column(Integer, primary_key=True, index=True)
    FamilyId = Column(Integer, nullable=False, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    Role = Column(String(20), nullable=False, default=ROLE_CHILD)
    IsActive = Column(Boolean, nullable=False, default=True)
    IsPrimary = Column(Boolean, nullable=False, default=False)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

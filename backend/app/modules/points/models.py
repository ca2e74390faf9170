from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)

from app.db import Base


class SubmissionStatus(str, Enum):
    Pending = "PENDING"
    AutoApproved = "AUTO_APPROVED"
    Approved = "APPROVED"
    Denied = "DENIED"


class TransactionType(str, Enum):
    BankingRequest = "BANKING_REQUEST"
    BankingApproved = "BANKING_APPROVED"
    BankingDenied = "BANKING_DENIED"


class TransactionStatus(str, Enum):
    Pending = "PENDING"
    Approved = "APPROVED"
    Denied = "DENIED"
    Completed = "COMPLETED"


class ChoreFrequency(str, Enum):
    Daily = "DAILY"
    Weekly = "WEEKLY"
    Monthly = "MONTHLY"
    AsNeeded = "AS_NEEDED"


class ChorePriority(str, Enum):
    Low = "LOW"
    Medium = "MEDIUM"
    High = "HIGH"


class UserBalance(Base):
    __tablename__ = "user_balances"
    __table_args__ = ({"schema": "points"},)

    UserId = Column(Integer, primary_key=True)
    AvailablePoints = Column(Numeric(12, 2), nullable=False, default=0)
    LifetimePoints = Column(Numeric(12, 2), nullable=False, default=0)
    BankedPoints = Column(Numeric(12, 2), nullable=False, default=0)
    BankedMoney = Column(Numeric(12, 2), nullable=False, default=0)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Chore(Base):
    __tablename__ = "chores"
    __table_args__ = ({"schema": "points"},)

    Id = Column(Integer, primary_key=True, index=True)
    FamilyId = Column(Integer, nullable=False, index=True)
    Title = Column(String(200), nullable=False)
    Points = Column(Numeric(10, 2), nullable=False, default=0)
    IsRequired = Column(Boolean, nullable=False, default=False)
    Frequency = Column(String(20), nullable=False, default=ChoreFrequency.Weekly.value)
    ScheduledDays = Column(String(20))
    Priority = Column(String(10), nullable=False, default=ChorePriority.Medium.value)
    IsActive = Column(Boolean, nullable=False, default=True)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ChoreAssignment(Base):
    __tablename__ = "chore_assignments"
    __table_args__ = (
        UniqueConstraint("ChoreId", "UserId", "WeekStart", name="uq_points_chore_assignments_week"),
        {"schema": "points"},
    )

    Id = Column(Integer, primary_key=True, index=True)
    ChoreId = Column(Integer, nullable=False, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    FamilyId = Column(Integer, nullable=False, index=True)
    WeekStart = Column(Date, nullable=False)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ChoreSubmission(Base):
    __tablename__ = "chore_submissions"
    __table_args__ = (
        UniqueConstraint("AssignmentId", "CompletedOn", name="uq_points_chore_submissions_day"),
        Index("ix_points_chore_submissions_status", "Status"),
        {"schema": "points"},
    )

    Id = Column(Integer, primary_key=True, index=True)
    AssignmentId = Column(Integer, nullable=False, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    CompletedAt = Column(DateTime(timezone=True), nullable=False)
    CompletedOn = Column(Date, nullable=False)
    Notes = Column(Text)
    Status = Column(String(20), nullable=False, default=SubmissionStatus.Pending.value)
    Score = Column(Integer)
    PointsAwarded = Column(Numeric(12, 2), nullable=False, default=0)
    SubmittedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ChoreApproval(Base):
    __tablename__ = "chore_approvals"
    __table_args__ = (
        UniqueConstraint("SubmissionId", name="uq_points_chore_approvals_submission"),
        {"schema": "points"},
    )

    Id = Column(Integer, primary_key=True, index=True)
    SubmissionId = Column(Integer, nullable=False, index=True)
    ApprovedByUserId = Column(Integer, nullable=False)
    Approved = Column(Boolean, nullable=False)
    Score = Column(Integer)
    PointsAwarded = Column(Numeric(12, 2), nullable=False, default=0)
    OriginalPoints = Column(Numeric(10, 2), nullable=False, default=0)
    Feedback = Column(String(500))
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class PointTransaction(Base):
    __tablename__ = "point_transactions"
    __table_args__ = (
        Index("ix_points_point_transactions_family_status", "FamilyId", "Type", "Status"),
        {"schema": "points"},
    )

    Id = Column(Integer, primary_key=True, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    FamilyId = Column(Integer, nullable=False)
    Amount = Column(Numeric(12, 2), nullable=False)
    Type = Column(String(30), nullable=False)
    Status = Column(String(20), nullable=False)
    Reason = Column(String(300))
    Description = Column(String(300))
    MoneyValue = Column(Numeric(12, 2), nullable=False, default=0)
    PointRate = Column(Numeric(10, 4), nullable=False)
    RequestTransactionId = Column(Integer)
    ProcessedByUserId = Column(Integer)
    ProcessedAt = Column(DateTime(timezone=True))
    SubmittedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

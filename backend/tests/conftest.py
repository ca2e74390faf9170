from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import LEDGER_SCHEMAS, Base
from app.modules.auth.deps import UserContext
from app.modules.families.models import ROLE_CHILD, ROLE_PARENT, Family, FamilyMembership
from app.modules.notifications import models as notifications_models  # noqa: F401
from app.modules.points.models import Chore, ChoreAssignment
from app.modules.points.repositories import BuildLedgerRepositories
from app.modules.points.services import submission_service

WEEK_START = date(2026, 10, 12)
LEDGER_NOW = datetime(2026, 10, 21, 12, 0, tzinfo=timezone.utc)


@dataclass
class SeededFamily:
    FamilyId: int
    Parent: UserContext
    Child: UserContext


@pytest.fixture(autouse=True)
def ledger_clock(monkeypatch):
    monkeypatch.setattr(submission_service, "NowUtc", lambda: LEDGER_NOW)
    return LEDGER_NOW


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ).execution_options(schema_translate_map={schema: None for schema in LEDGER_SCHEMAS})
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repos(db):
    return BuildLedgerRepositories(db)


@pytest.fixture
def make_family(db):
    def _make(
        name: str = "Smith",
        parent_id: int = 1,
        child_id: int = 2,
        rate: str = "1.00",
        auto_approve: bool = False,
        with_parent: bool = True,
        base_allowance: str = "0",
        stretch_allowance: str = "0",
    ) -> SeededFamily:
        family = Family(
            Name=name,
            PointsToMoneyRate=Decimal(rate),
            AutoApproveChores=auto_approve,
            BaseAllowance=Decimal(base_allowance),
            StretchAllowance=Decimal(stretch_allowance),
            AllowBudgetOverrun=False,
        )
        db.add(family)
        db.flush()
        if with_parent:
            db.add(FamilyMembership(FamilyId=family.Id, UserId=parent_id, Role=ROLE_PARENT, IsActive=True, IsPrimary=True))
        db.add(FamilyMembership(FamilyId=family.Id, UserId=child_id, Role=ROLE_CHILD, IsActive=True, IsPrimary=True))
        db.commit()
        return SeededFamily(
            FamilyId=family.Id,
            Parent=UserContext(Id=parent_id, Username="parent", Role=ROLE_PARENT, FamilyId=family.Id),
            Child=UserContext(Id=child_id, Username="kid", Role=ROLE_CHILD, FamilyId=family.Id),
        )

    return _make


@pytest.fixture
def make_chore(db):
    def _make(
        family_id: int,
        title: str = "Dishes",
        points: str = "10",
        is_required: bool = False,
        assign_to: list[int] | None = None,
        frequency: str = "WEEKLY",
        scheduled_days: str | None = None,
        priority: str = "MEDIUM",
        week_start: date = WEEK_START,
    ) -> Chore:
        chore = Chore(
            FamilyId=family_id,
            Title=title,
            Points=Decimal(points),
            IsRequired=is_required,
            Frequency=frequency,
            ScheduledDays=scheduled_days,
            Priority=priority,
            IsActive=True,
        )
        db.add(chore)
        db.flush()
        for user_id in assign_to or []:
            db.add(ChoreAssignment(ChoreId=chore.Id, UserId=user_id, FamilyId=family_id, WeekStart=week_start))
        db.commit()
        return chore

    return _make


@pytest.fixture
def family(make_family):
    return make_family()

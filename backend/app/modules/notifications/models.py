from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, Unicode

from app.db import Base


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_unread", "UserId", "IsRead", "CreatedAt"),
        {"schema": "notifications"},
    )

    Id = Column(Integer, primary_key=True, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    CreatedByUserId = Column(Integer, nullable=False)
    Type = Column(String(50), nullable=False)
    Title = Column(Unicode(160), nullable=False)
    Body = Column(Unicode(400))
    LinkUrl = Column(String(400))
    SourceModule = Column(String(80))
    SourceId = Column(String(120))
    MetaJson = Column(Text)
    IsRead = Column(Boolean, nullable=False, default=False)
    ReadAt = Column(DateTime(timezone=True))
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

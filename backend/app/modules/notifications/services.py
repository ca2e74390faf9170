import json

from sqlalchemy.orm import Session

from app.modules.auth.deps import NowUtc
from app.modules.notifications.models import Notification


def _EncodeMeta(meta: dict | None) -> str | None:
    if not meta:
        return None
    return json.dumps(meta, separators=(",", ":"), sort_keys=True, default=str)


def CreateNotificationsForUsers(
    db: Session,
    *,
    user_ids: list[int],
    created_by_user_id: int,
    title: str,
    notification_type: str,
    body: str | None = None,
    link_url: str | None = None,
    source_module: str | None = None,
    source_id: str | None = None,
    meta: dict | None = None,
) -> list[Notification]:
    """Write one unread notification per recipient and commit.

    Recipients are deduplicated and the acting user is never notified about
    their own action.
    """
    recipients = [user_id for user_id in dict.fromkeys(user_ids) if user_id != created_by_user_id]
    if not recipients:
        return []

    created_at = NowUtc()
    meta_json = _EncodeMeta(meta)
    records = [
        Notification(
            UserId=user_id,
            CreatedByUserId=created_by_user_id,
            Type=notification_type,
            Title=title[:160],
            Body=body[:400] if body else None,
            LinkUrl=link_url,
            SourceModule=source_module,
            SourceId=source_id,
            MetaJson=meta_json,
            IsRead=False,
            CreatedAt=created_at,
        )
        for user_id in recipients
    ]
    db.add_all(records)
    db.commit()
    return records


def ListNotifications(
    db: Session,
    *,
    user_id: int,
    unread_only: bool = True,
    limit: int = 50,
) -> list[Notification]:
    query = db.query(Notification).filter(Notification.UserId == user_id)
    if unread_only:
        query = query.filter(Notification.IsRead == False)  # noqa: E712
    return query.order_by(Notification.CreatedAt.desc(), Notification.Id.desc()).limit(limit).all()

import hashlib

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.logging_config import get_logger
from app.models.enums import NotificationType
from app.repositories.records import NotificationRepository

logger = get_logger()


def deterministic_id(*parts) -> str:
    raw = ":".join(str(p) for p in parts)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def emit(
    db: Session,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    metadata: dict | None = None,
    notification_id: str | None = None,
    priority: str = "high",
):
    """
    Write one notification for ``user_id``.

    With a ``notification_id`` the write happens at most once per id; a repeat
    returns None.
    """
    repo = NotificationRepository(db)
    fields = dict(
        user_id=user_id,
        type=NotificationType(type),
        title=title,
        message=message,
        priority=priority,
        is_read=False,
        metadata_=metadata or {},
    )

    if notification_id:
        notification = repo.create_once(notification_id, **fields)
        if notification is None:
            logger.bind(log_type="notification").info(
                f"Duplicate notification skipped | id={notification_id} | user={user_id}"
            )
            return None
    else:
        notification = repo.create(**fields)

    logger.bind(log_type="notification").info(
        f"Notification sent | type={notification.type} | user={user_id}"
    )
    return notification


def emit_best_effort(db: Session, *args, **kwargs) -> bool:
    """Like ``emit`` but never raises; returns whether the write went through."""
    try:
        emit(db, *args, **kwargs)
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.bind(log_type="notification").error(f"Notification write failed: {e}")
        return False

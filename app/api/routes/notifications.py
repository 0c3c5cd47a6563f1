from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, get_caller_id
from app.repositories.records import NotificationRepository
from app.schemas.notification import NotificationOut

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/", response_model=list[NotificationOut])
def my_notifications(caller_id: str | None = Depends(get_caller_id), db: Session = Depends(get_db)):
    if not caller_id:
        raise HTTPException(status_code=401, detail="User must be authenticated")
    return NotificationRepository(db).for_user(caller_id)


@router.post("/{notification_id}/read")
def mark_read(notification_id: str, caller_id: str | None = Depends(get_caller_id), db: Session = Depends(get_db)):
    if not caller_id:
        raise HTTPException(status_code=401, detail="User must be authenticated")

    repo = NotificationRepository(db)
    if not repo.conditional_update(notification_id, {"user_id": caller_id}, is_read=True):
        raise HTTPException(status_code=404, detail="Notification not found")

    return {"message": "Notification marked as read"}

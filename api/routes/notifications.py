"""In-app notification routes"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List

from api.dependencies import get_db
from api.responses import CountResponse
from domain.schemas.notification_schemas import NotificationResponse
from services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def list_notifications(
    user_id: UUID = Query(...),
    unread_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    items = NotificationService.list_for_user(db, user_id, unread_only)
    return [NotificationResponse.model_validate(n) for n in items]


@router.post("/read-all", response_model=CountResponse)
def mark_all_read(user_id: UUID = Query(...), db: Session = Depends(get_db)):
    return CountResponse(updated=NotificationService.mark_all_read(db, user_id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(notification_id: UUID, db: Session = Depends(get_db)):
    notification = NotificationService.mark_read(db, notification_id)
    return NotificationResponse.model_validate(notification)

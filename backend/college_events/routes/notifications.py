"""
In-app notifications for the signed-in user.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from college_events.db import DbClient
from college_events.dependencies import get_db_client
from college_events.schemas import NotificationResponse
from college_events.security import AuthUser, get_current_user

router = APIRouter()


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return [
        NotificationResponse.from_record(notification)
        for notification in db.list_notifications(user.user_id)
    ]

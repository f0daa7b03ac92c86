# comebookus/routers/cron_routes.py

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlmodel import Session

from comebookus.config import settings
from comebookus.db import get_session
from comebookus.deps import get_dispatcher
from comebookus.notifications import NotificationDispatcher
from comebookus.reminders import send_due_reminders
from comebookus.schemas import ReminderSummary

router = APIRouter(
    prefix="/cron",
    tags=["cron"],
)


@router.get("/reminders", response_model=ReminderSummary)
def run_reminders(
    authorization: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    if settings.cron_secret and authorization != f"Bearer {settings.cron_secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")
    return send_due_reminders(session, dispatcher)

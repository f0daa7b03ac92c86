# comebookus/routers/dashboard_routes.py

from fastapi import APIRouter, Depends
from sqlmodel import Session

from comebookus.auth import get_current_user
from comebookus.dashboard import dashboard_stats
from comebookus.db import get_session
from comebookus.schemas import DashboardStats

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
)


@router.get("", response_model=DashboardStats)
def get_dashboard(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return dashboard_stats(session, current_user["id"])

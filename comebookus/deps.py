# comebookus/deps.py

from fastapi import BackgroundTasks, Depends
from sqlmodel import Session

from comebookus.config import settings
from comebookus.db import get_session
from comebookus.locks import ProviderLocks
from comebookus.notifications import NotificationDispatcher
from comebookus.payments import StripeGateway
from comebookus.scheduling import SchedulingService

# shared by every request handled by this process
provider_locks = ProviderLocks(timeout=settings.reservation_lock_timeout)
dispatcher = NotificationDispatcher()


def get_dispatcher() -> NotificationDispatcher:
    return dispatcher


def get_payment_gateway() -> StripeGateway:
    return StripeGateway()


def get_scheduler(
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    notifier: NotificationDispatcher = Depends(get_dispatcher),
) -> SchedulingService:
    # notifications run after the response is sent
    def notify(notice):
        background_tasks.add_task(notifier.booking_confirmed, notice)

    return SchedulingService(session, provider_locks, notify=notify)

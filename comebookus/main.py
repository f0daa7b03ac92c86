# comebookus/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from comebookus import models  # noqa: F401  (registers tables)
from comebookus.config import settings
from comebookus.db import create_db_and_tables
from comebookus.errors import SchedulerBusy, SchedulingError
from comebookus.routers import (
    auth_routes,
    bookings_routes,
    clients_routes,
    cron_routes,
    dashboard_routes,
    public_routes,
    services_routes,
    users_routes,
    webhooks_routes,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(title="ComeBookUs", lifespan=lifespan)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    headers = None
    if isinstance(exc, SchedulerBusy):
        headers = {"Retry-After": str(settings.busy_retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "code": "VALIDATION_ERROR", "errors": errors},
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}


app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(services_routes.router)
app.include_router(clients_routes.router)
app.include_router(bookings_routes.router)
app.include_router(dashboard_routes.router)
app.include_router(webhooks_routes.router)
app.include_router(public_routes.router)
app.include_router(cron_routes.router)

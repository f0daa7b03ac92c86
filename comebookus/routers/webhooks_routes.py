# comebookus/routers/webhooks_routes.py

import logging

from fastapi import APIRouter, Depends

from comebookus.deps import get_scheduler
from comebookus.errors import InvalidTransition
from comebookus.scheduling import SchedulingService
from comebookus.schemas import PaymentEvent

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"],
)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


@router.post("/payments")
def payment_webhook(
    event: PaymentEvent,
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """Payment processor callback. Delivery is at-least-once, so every
    branch is safe to repeat and always acknowledges."""
    if event.type not in (PAYMENT_SUCCEEDED, PAYMENT_FAILED):
        logger.info("Unhandled payment event type: %s", event.type)
        return {"received": True}

    reference = event.data.payment_object.id
    booking = scheduler.find_by_payment_reference(reference)
    if booking is None:
        logger.error("Booking not found for payment intent %s", reference)
        return {"received": True}

    try:
        if event.type == PAYMENT_SUCCEEDED:
            booking = scheduler.confirm_payment(booking.id)
        else:
            booking = scheduler.fail_payment(booking.id)
    except InvalidTransition as e:
        logger.warning("Ignoring %s for booking %s: %s", event.type, booking.id, e.message)
        return {"received": True}

    return {
        "received": True,
        "booking_id": booking.id,
        "status": booking.status,
        "payment_status": booking.payment_status,
    }

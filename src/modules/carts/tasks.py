"""Background tasks for the cart module."""

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.utils import timezone

from modules.core.container import cart_service

logger = structlog.get_logger(__name__)


@shared_task(name="carts.release_stale_reservations")
def release_stale_reservations():
    """Give back stock held by idle cart lines.

    Controlled by ``CART_RESERVATION_TTL_MINUTES``; 0 keeps reservations
    until the user removes the line or checks out.
    """
    ttl = settings.CART_RESERVATION_TTL_MINUTES
    if ttl <= 0:
        logger.info("cart.expiry_disabled")
        return {"released": 0, "enabled": False}

    older_than = timezone.now() - timedelta(minutes=ttl)
    released = cart_service().release_stale_lines(
        older_than, batch_size=settings.CART_STALE_SWEEP_BATCH_SIZE
    )
    return {"released": released, "enabled": True}

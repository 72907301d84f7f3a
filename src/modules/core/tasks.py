"""Tasks assíncronas do módulo core."""

import structlog
from celery import shared_task
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

OUTBOX_BATCH_SIZE = 100
OUTBOX_MAX_RETRIES = 5


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = OUTBOX_BATCH_SIZE) -> dict:
    """Relay deliverable outbox rows to the in-process event bus.

    Rows are locked with ``SKIP LOCKED`` so two workers never deliver the
    same event.  A handler failure marks only that row as failed; it is
    retried on the next run until ``OUTBOX_MAX_RETRIES``.
    """
    published = failed = 0
    with transaction.atomic():
        events = list(
            OutboxEvent.objects.deliverable(OUTBOX_MAX_RETRIES).select_for_update(
                skip_locked=True
            )[:batch_size]
        )
        for outbox_event in events:
            log = logger.bind(
                outbox_id=str(outbox_event.id),
                event_type=outbox_event.event_type,
                aggregate_id=outbox_event.aggregate_id,
            )
            event_class = event_bus.event_class_for(outbox_event.event_type)
            if event_class is None:
                log.warning("outbox.unknown_event_type")
                outbox_event.mark_as_failed("No handler subscribed for event type.")
                failed += 1
                continue
            try:
                event_bus.publish(event_class.from_payload(outbox_event.payload))
            except Exception as exc:
                log.exception("outbox.delivery_failed")
                outbox_event.mark_as_failed(str(exc))
                failed += 1
                continue
            outbox_event.mark_as_published()
            published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}

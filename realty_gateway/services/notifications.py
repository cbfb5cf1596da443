"""Best-effort notification emitter with exponential backoff retry logic"""

import logging
import time
from typing import Callable
from sqlalchemy.orm import Session
from realty_gateway.config import settings
from realty_gateway.domain.models import NotificationEvent
from realty_gateway.infrastructure.database.repositories import NotificationRepository
from realty_gateway.infrastructure.observability.metrics import (
    notification_failure_counter,
    notification_latency_histogram,
)

logger = logging.getLogger(__name__)


class NotificationEmitter:
    """Persists inbox messages outside the workflow's transaction"""

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if session_factory is None:
            from realty_gateway.infrastructure.database.session import SessionLocal

            session_factory = SessionLocal
        self.session_factory = session_factory
        self.max_retries = settings.notification_max_retries if max_retries is None else max_retries
        self.backoff_base = settings.notification_backoff_base if backoff_base is None else backoff_base
        self.sleep = sleep

    def notify(self, event: NotificationEvent) -> None:
        """
        Store one notification, never raising to the caller.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base ...
        - Every failed attempt bumps notification_failures_total
        - The final failure is logged and dropped

        Args:
            event: Message built by the payment workflow
        """
        attempt = 0
        while attempt < self.max_retries:
            db = None
            try:
                db = self.session_factory()
                with notification_latency_histogram.time():
                    NotificationRepository(db).create_notification(event)
                    db.commit()
                return  # Success

            except Exception as e:
                if db is not None:
                    db.rollback()
                attempt += 1
                notification_failure_counter.inc()

                if attempt >= self.max_retries:
                    logger.error(
                        f"Notification delivery failed after {attempt} attempts: {e}",
                        extra={
                            "notification_type": getattr(event.type, "value", event.type),
                            "recipient_id": event.recipient_id,
                            "related_payment_id": event.related_payment_id,
                        },
                    )
                    return

                backoff = self.backoff_base * (2 ** (attempt - 1))
                self.sleep(backoff)

            finally:
                if db is not None:
                    db.close()

# marketplace/services/notification_service.py
from marketplace.celery_worker import celery_app
from marketplace.utils.settings import NOTIFICATION_MAX_RETRIES
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysylania powiadomien o zamowieniach.
    Uzywa Celery; wolany dopiero PO commicie transakcji, wiec rollback
    nigdy nie wysle powiadomienia o zamowieniu ktorego nie ma.
    Blad brokera (dowolny wyjatek z delay) nie psuje juz zatwierdzonego
    requestu - tylko warning.
    """

    def order_placed(self, customer_id: str, order_id: int, order_number: str):
        self._enqueue(order_placed_task, customer_id, order_id, order_number)

    def order_status_changed(self, customer_id: str, order_id: int, status: str):
        self._enqueue(order_status_changed_task, customer_id, order_id, status)

    def order_cancelled(self, customer_id: str, order_id: int, reason: str | None):
        self._enqueue(order_cancelled_task, customer_id, order_id, reason)

    @staticmethod
    def _enqueue(task, *args):
        try:
            task.delay(*args)
        except Exception as e:
            logger.warning(
                "Failed to enqueue notification",
                task=task.name,
                error_type=type(e).__name__,
                error=str(e),
            )


_task_options = dict(
    bind=True,
    acks_late=True,
    ignore_result=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    max_retries=NOTIFICATION_MAX_RETRIES,
)


@celery_app.task(name="marketplace.services.notification_service.order_placed_task", **_task_options)
def order_placed_task(self, customer_id: str, order_id: int, order_number: str):
    """
    Celery task - w prawdziwym systemie wyslalby email/SMS/push.
    Teraz tylko loguje.
    """
    logger.info("[NOTIFICATION] order placed", customer_id=customer_id, order_id=order_id, order_number=order_number)
    return {"customer_id": customer_id, "order_id": order_id, "event": "placed", "status": "sent"}


@celery_app.task(name="marketplace.services.notification_service.order_status_changed_task", **_task_options)
def order_status_changed_task(self, customer_id: str, order_id: int, status: str):
    logger.info("[NOTIFICATION] order status changed", customer_id=customer_id, order_id=order_id, status=status)
    return {"customer_id": customer_id, "order_id": order_id, "event": "status_changed", "status": "sent"}


@celery_app.task(name="marketplace.services.notification_service.order_cancelled_task", **_task_options)
def order_cancelled_task(self, customer_id: str, order_id: int, reason: str | None):
    logger.info("[NOTIFICATION] order cancelled", customer_id=customer_id, order_id=order_id, reason=reason)
    return {"customer_id": customer_id, "order_id": order_id, "event": "cancelled", "status": "sent"}

# app/services/notification_service.py
from app.celery_worker import celery_app
from app.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysyłania powiadomień.
    Używa Celery do asynchronicznego przetwarzania.
    """

    @staticmethod
    def send_order_confirmation(user_id: int, order_id: int, order_number: str):
        """
        Kolejkuje potwierdzenie zamowienia. Zamowienie jest juz zacommitowane,
        wiec blad brokera tylko logujemy.
        """
        try:
            send_order_confirmation_task.delay(user_id, order_id, order_number)
        except Exception as e:
            logger.warning(f"Could not queue confirmation for order {order_number}: {e}")


@celery_app.task(name="app.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(user_id: int, order_id: int, order_number: str):
    """
    Celery task - w prawdziwym systemie wysłałby email.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_number} (id={order_id}) confirmed")
    return {"user_id": user_id, "order_id": order_id, "order_number": order_number, "status": "sent"}

from typing import List, Optional

from shared.adapters.repository import AbstractRepository, SqlAlchemyRepository
from notifications.domain import model


class AbstractDeliveryRepository(AbstractRepository):
    def get_by_external_id(self, external_id: str, lock: bool = False) -> Optional[model.NotificationDelivery]:
        delivery = self._get_by_external_id(external_id, lock)
        if delivery is not None:
            self.seen.add(delivery)
        return delivery

    def list_retryable(self, max_attempts: int, limit: int = 100, lock: bool = False) -> List[model.NotificationDelivery]:
        """FAILED deliveries that still have attempts left, oldest first."""
        return self._track(self._list_retryable(max_attempts, limit, lock))

    def _get_by_external_id(self, external_id, lock):
        raise NotImplementedError

    def _list_retryable(self, max_attempts, limit, lock):
        raise NotImplementedError


class SqlAlchemyDeliveryRepository(SqlAlchemyRepository, AbstractDeliveryRepository):
    entity_class = model.NotificationDelivery
    key_attribute = "delivery_id"

    def _get_by_external_id(self, external_id, lock):
        return self._query(lock).filter_by(external_id=external_id).first()

    def _list_retryable(self, max_attempts, limit, lock):
        return (
            self._query(lock)
            .filter_by(status=model.DeliveryStatus.FAILED)
            .filter(model.NotificationDelivery.retry_count < max_attempts)
            .order_by(model.NotificationDelivery.status_changed_at)
            .limit(limit)
            .all()
        )

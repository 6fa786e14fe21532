from typing import Optional

from shared.adapters.repository import AbstractRepository, SqlAlchemyRepository
from payments.domain import model


class AbstractSubscriptionRepository(AbstractRepository):
    def get_current(self, provider_id: int, lock: bool = False) -> Optional[model.Subscription]:
        """The provider's most recent subscription that is not terminal."""
        subscription = self._get_current(provider_id, lock)
        if subscription is not None:
            self.seen.add(subscription)
        return subscription

    def get_by_external_id(self, external_subscription_id: str, lock: bool = False) -> Optional[model.Subscription]:
        subscription = self._get_by_external_id(external_subscription_id, lock)
        if subscription is not None:
            self.seen.add(subscription)
        return subscription

    def _get_current(self, provider_id, lock):
        raise NotImplementedError

    def _get_by_external_id(self, external_subscription_id, lock):
        raise NotImplementedError


class SqlAlchemySubscriptionRepository(SqlAlchemyRepository, AbstractSubscriptionRepository):
    entity_class = model.Subscription
    key_attribute = "subscription_id"

    def _get_current(self, provider_id, lock):
        return (
            self._query(lock)
            .filter_by(provider_id=provider_id)
            .filter(model.Subscription.status.notin_(model.SUBSCRIPTION_LIFECYCLE.terminal))
            .order_by(model.Subscription.created_at.desc())
            .first()
        )

    def _get_by_external_id(self, external_subscription_id, lock):
        return self._query(lock).filter_by(external_subscription_id=external_subscription_id).first()

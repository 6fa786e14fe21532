"""Read side of the payments service: plain queries, no aggregates."""

from typing import Optional

from sqlalchemy import text

from payments.service_layer.unit_of_work import SqlAlchemyUnitOfWork


def current_subscription(provider_id: int, uow: SqlAlchemyUnitOfWork) -> Optional[dict]:
    with uow:
        row = uow.session.execute(
            text("""
                SELECT subscription_id, provider_id, plan_id, gateway, status,
                       current_period_end, canceled_at, appointments_used
                FROM subscriptions
                WHERE provider_id = :provider_id
                ORDER BY created_at DESC
                LIMIT 1
            """),
            dict(provider_id=provider_id),
        ).mappings().first()
    return dict(row) if row else None

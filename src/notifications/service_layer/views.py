"""Read side of the notifications service."""

from typing import Optional

from sqlalchemy import text

from notifications.service_layer.unit_of_work import SqlAlchemyUnitOfWork


def delivery(delivery_id: int, uow: SqlAlchemyUnitOfWork) -> Optional[dict]:
    with uow:
        row = uow.session.execute(
            text("""
                SELECT delivery_id, user_id, target_role, channel, recipient, subject,
                       template, status, external_id, error_message, retry_count
                FROM notification_deliveries
                WHERE delivery_id = :delivery_id
            """),
            dict(delivery_id=delivery_id),
        ).mappings().first()
    return dict(row) if row else None

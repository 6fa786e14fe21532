# pylint: disable=redefined-outer-name
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import clear_mappers, sessionmaker
from sqlalchemy.pool import StaticPool

from shared.adapters.publisher import AbstractEventPublisher
from appointments import bootstrap as appointments_bootstrap
from appointments.adapters import orm as appointments_orm
from appointments.service_layer import unit_of_work as appointments_uow
from onboarding import bootstrap as onboarding_bootstrap
from onboarding.adapters import orm as onboarding_orm
from onboarding.service_layer import unit_of_work as onboarding_uow
from payments import bootstrap as payments_bootstrap
from payments.adapters import orm as payments_orm
from payments.service_layer import unit_of_work as payments_uow
from notifications import bootstrap as notifications_bootstrap
from notifications.adapters import orm as notifications_orm
from notifications.adapters.sender import AbstractNotificationSender, NotificationSendError
from notifications.service_layer import unit_of_work as notifications_uow


class FakePublisher(AbstractEventPublisher):
    """Keeps published envelopes in memory."""

    def __init__(self):
        self.published = []

    def _publish(self, envelope):
        self.published.append(envelope)

    def of_type(self, event_type):
        return [e for e in self.published if e.event_type == event_type]


class FakeSender(AbstractNotificationSender):
    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, delivery):
        if self.fail_with:
            raise NotificationSendError(self.fail_with)
        self.sent.append(delivery)
        return f"ext-{delivery.delivery_id}"


def sqlite_session_factory(metadata):
    """In-memory SQLite shared across threads (TestClient runs handlers in a pool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture(scope="session", autouse=True)
def mappers():
    appointments_orm.start_mappers()
    onboarding_orm.start_mappers()
    payments_orm.start_mappers()
    notifications_orm.start_mappers()
    yield
    clear_mappers()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def appointments_uow_factory():
    session_factory = sqlite_session_factory(appointments_orm.metadata)
    return lambda: appointments_uow.SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture
def onboarding_uow_factory():
    session_factory = sqlite_session_factory(onboarding_orm.metadata)
    return lambda: onboarding_uow.SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture
def payments_uow_factory():
    session_factory = sqlite_session_factory(payments_orm.metadata)
    return lambda: payments_uow.SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture
def notifications_uow_factory():
    session_factory = sqlite_session_factory(notifications_orm.metadata)
    return lambda: notifications_uow.SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture
def appointments_bus(appointments_uow_factory, publisher):
    return appointments_bootstrap.bootstrap(
        start_orm=False, uow_factory=appointments_uow_factory, publisher=publisher
    )


@pytest.fixture
def onboarding_bus(onboarding_uow_factory, publisher):
    return onboarding_bootstrap.bootstrap(
        start_orm=False, uow_factory=onboarding_uow_factory, publisher=publisher
    )


@pytest.fixture
def payments_bus(payments_uow_factory, publisher):
    return payments_bootstrap.bootstrap(
        start_orm=False, uow_factory=payments_uow_factory, publisher=publisher, free_plan_id="5"
    )


@pytest.fixture
def notifications_bus(notifications_uow_factory, publisher, sender):
    return notifications_bootstrap.bootstrap(
        start_orm=False, uow_factory=notifications_uow_factory, publisher=publisher,
        sender=sender, max_attempts=3,
    )

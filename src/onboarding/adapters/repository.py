from shared.adapters.repository import AbstractRepository, SqlAlchemyRepository
from onboarding.domain import model


class AbstractChecklistRepository(AbstractRepository):
    pass


class SqlAlchemyChecklistRepository(SqlAlchemyRepository, AbstractChecklistRepository):
    entity_class = model.OnboardingChecklist
    key_attribute = "provider_id"

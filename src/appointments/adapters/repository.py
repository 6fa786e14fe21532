from typing import List, Optional

from shared.adapters.repository import AbstractRepository, SqlAlchemyRepository
from appointments.domain import model


class AbstractAppointmentRepository(AbstractRepository):
    def list_open_for(self, patient_id: Optional[int] = None, provider_id: Optional[int] = None,
                      lock: bool = False) -> List[model.Appointment]:
        """Appointments of a patient or provider that have not reached a terminal state."""
        return self._track(self._list_open_for(patient_id, provider_id, lock))

    def _list_open_for(self, patient_id, provider_id, lock):
        raise NotImplementedError


class SqlAlchemyAppointmentRepository(SqlAlchemyRepository, AbstractAppointmentRepository):
    entity_class = model.Appointment
    key_attribute = "appointment_id"

    def _list_open_for(self, patient_id, provider_id, lock):
        query = self._query(lock).filter(model.Appointment.status.in_(model.OPEN_STATES))
        if patient_id is not None:
            query = query.filter_by(patient_id=patient_id)
        if provider_id is not None:
            query = query.filter_by(provider_id=provider_id)
        return query.order_by(model.Appointment.appointment_id).all()

import logging

from shared.adapters.publisher import AbstractEventPublisher, envelope_from
from shared.domain.envelope import Envelope
from shared.domain.exceptions import EntityNotFound
from shared.domain.payload import as_int, role_of, user_id_of
from onboarding.domain import commands, model
from onboarding.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def create_checklist(envelope: Envelope, uow: AbstractUnitOfWork):
    """
    Create the onboarding checklist for a newly registered provider.

    Patients have no professional onboarding and are skipped. The checklist
    is created once; a later USER_REGISTERED for the same provider (for
    example after a replay under a new event id) never resets it. ``planId``
    only preselects the plan, so a missing or malformed value still creates
    the checklist, with no plan.
    """
    role = role_of(envelope)
    if role != "PROVIDER":
        logger.debug(f"USER_REGISTERED {envelope.event_id} is for role {role or 'unknown'}, skipping")
        return

    provider_id = user_id_of(envelope).unwrap()
    if uow.checklists.get(provider_id, lock=True) is not None:
        logger.warning(f"Onboarding checklist already exists for provider {provider_id}, leaving it untouched")
        return

    plan_id = as_int(envelope.payload, "planId")
    if not plan_id.ok:
        logger.warning(f"Ignoring planId for provider {provider_id}: {plan_id.error}")

    checklist = model.OnboardingChecklist(
        provider_id=provider_id,
        selected_plan_id=plan_id.value,
        email=envelope.email or envelope.payload.get("email"),
    )
    uow.checklists.add(checklist)
    logger.info(f"Onboarding checklist initialised for provider {provider_id} (plan {plan_id.value})")


def _apply_step(command: commands.StepCommand, uow: AbstractUnitOfWork, operation: str, *args) -> str:
    with uow:
        checklist = uow.checklists.get(command.provider_id, lock=True)
        if checklist is None:
            raise EntityNotFound(f"no onboarding checklist for provider {command.provider_id}")
        getattr(checklist, operation)(command.step, *args)
        uow.commit()
        status = checklist.status_of(command.step)

    logger.info(f"Provider {command.provider_id} step {command.step}: {operation} -> {status.value}")
    return status.value


def start_step(command: commands.StartStep, uow: AbstractUnitOfWork) -> str:
    return _apply_step(command, uow, "start")


def submit_step(command: commands.SubmitStep, uow: AbstractUnitOfWork) -> str:
    return _apply_step(command, uow, "submit")


def request_step_action(command: commands.RequestStepAction, uow: AbstractUnitOfWork) -> str:
    return _apply_step(command, uow, "request_action", command.reason)


def approve_step(command: commands.ApproveStep, uow: AbstractUnitOfWork) -> str:
    return _apply_step(command, uow, "approve")


def reject_step(command: commands.RejectStep, uow: AbstractUnitOfWork) -> str:
    return _apply_step(command, uow, "reject", command.reason)


def waive_step(command: commands.WaiveStep, uow: AbstractUnitOfWork) -> str:
    return _apply_step(command, uow, "waive")


def publish_step_event(event, uow: AbstractUnitOfWork, publisher: AbstractEventPublisher):
    publisher.publish(
        envelope_from(event, source_user_id=event.provider_id, email=event.email, role="PROVIDER")
    )

"""Transition legality and terminal stability for every lifecycle table"""
import itertools
from types import SimpleNamespace

import pytest

from shared.domain.exceptions import InvalidTransition
from shared.domain.lifecycle import Lifecycle, transition
from appointments.domain.model import APPOINTMENT_LIFECYCLE, AppointmentStatus
from onboarding.domain.model import ONBOARDING_STEP_LIFECYCLE, OnboardingStepStatus
from payments.domain.model import SUBSCRIPTION_LIFECYCLE, SubscriptionStatus
from notifications.domain.model import DELIVERY_LIFECYCLE, DeliveryStatus

LIFECYCLES = [
    (APPOINTMENT_LIFECYCLE, AppointmentStatus),
    (SUBSCRIPTION_LIFECYCLE, SubscriptionStatus),
    (ONBOARDING_STEP_LIFECYCLE, OnboardingStepStatus),
    (DELIVERY_LIFECYCLE, DeliveryStatus),
]

CASES = [
    pytest.param(lifecycle, state, operation, id=f"{lifecycle.entity}-{state.value}-{operation}")
    for lifecycle, states in LIFECYCLES
    for state, operation in itertools.product(states, lifecycle.operations)
]


def _entity(state):
    return SimpleNamespace(status=state, status_changed_at=None)


@pytest.mark.parametrize("lifecycle, state, operation", CASES)
def test_every_state_operation_pair(lifecycle, state, operation):
    entity = _entity(state)
    sources, target = lifecycle.transitions[operation]

    if state in sources:
        assert transition(entity, lifecycle, operation) == target
        assert entity.status == target
        assert entity.status_changed_at is not None
    else:
        with pytest.raises(InvalidTransition):
            transition(entity, lifecycle, operation)
        assert entity.status == state
        assert entity.status_changed_at is None


@pytest.mark.parametrize("lifecycle, states", LIFECYCLES, ids=[l.entity for l, _ in LIFECYCLES])
def test_terminal_states_admit_nothing(lifecycle, states):
    assert lifecycle.terminal
    for state in lifecycle.terminal:
        for operation in lifecycle.operations:
            assert not lifecycle.allows(state, operation)


def test_terminal_states_match_the_documented_sets():
    assert APPOINTMENT_LIFECYCLE.terminal == {
        AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED_BY_PATIENT,
        AppointmentStatus.CANCELED_BY_PROVIDER, AppointmentStatus.NO_SHOW,
    }
    assert SUBSCRIPTION_LIFECYCLE.terminal == {SubscriptionStatus.CANCELED, SubscriptionStatus.UNPAID}
    assert ONBOARDING_STEP_LIFECYCLE.terminal == {
        OnboardingStepStatus.COMPLETED, OnboardingStepStatus.REJECTED, OnboardingStepStatus.NOT_REQUIRED,
    }
    assert DELIVERY_LIFECYCLE.terminal == {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED, DeliveryStatus.BOUNCED}


def test_table_starting_from_a_terminal_state_is_refused():
    with pytest.raises(ValueError):
        Lifecycle(
            "Broken",
            {"reopen": ((DeliveryStatus.DELIVERED,), DeliveryStatus.PENDING)},
            terminal=(DeliveryStatus.DELIVERED,),
        )


def test_unknown_operation_is_a_programming_error():
    with pytest.raises(KeyError):
        DELIVERY_LIFECYCLE.target(DeliveryStatus.PENDING, "teleport")


def test_invalid_transition_names_entity_and_state():
    with pytest.raises(InvalidTransition) as exc:
        APPOINTMENT_LIFECYCLE.target(AppointmentStatus.CANCELED_BY_PATIENT, "complete", entity_id=42)
    assert exc.value.current == AppointmentStatus.CANCELED_BY_PATIENT
    assert "Appointment 42" in str(exc.value)

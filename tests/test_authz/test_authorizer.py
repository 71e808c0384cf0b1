"""Tests for the authorization core: rule table, ownership and fail-closed lookups."""

from __future__ import annotations

import itertools
import time
from types import SimpleNamespace

import anyio
import pytest

from hms.authz import (
    FORBIDDEN,
    UNAUTHENTICATED,
    Allowed,
    AllowedWithFilter,
    Authorizer,
    Denied,
    Identity,
    Operation,
    RepositoryOwnershipResolver,
    ResourceRef,
    ResourceType,
    Role,
    RowFilter,
)
from hms.authz.rules import Effect, capability_for

ADMIN = Identity(id=1, email="admin@hms.test", role=Role.ADMIN, display_name="Admin")
RECEPTIONIST = Identity(id=2, email="desk@hms.test", role=Role.RECEPTIONIST, display_name="Desk")
DOCTOR_1 = Identity(id=3, email="one@hms.test", role=Role.DOCTOR, display_name="Dr One")
DOCTOR_2 = Identity(id=4, email="two@hms.test", role=Role.DOCTOR, display_name="Dr Two")
UNLINKED_DOCTOR = Identity(id=5, email="nobody@hms.test", role=Role.DOCTOR, display_name="Dr Nobody")

# user id -> doctor id
DOCTOR_LINKS = {DOCTOR_1.id: 1, DOCTOR_2.id: 2}


class FakeResolver:
    def __init__(self, links=None):
        self.links = DOCTOR_LINKS if links is None else links
        self.calls = 0

    async def resolve_doctor_id(self, identity):
        self.calls += 1
        if identity.role is not Role.DOCTOR:
            return None
        return self.links.get(identity.id)


class FailingResolver:
    async def resolve_doctor_id(self, identity):
        raise RuntimeError("store unavailable")


class SlowResolver:
    async def resolve_doctor_id(self, identity):
        await anyio.sleep(5)
        return 1


def _ref(resource_type, id=10, doctor_id=None):
    return ResourceRef(resource_type, id, doctor_id)


# ---- Rule table -----------------------------------------------------------------------


EXPECTED_ALLOWED = {
    # (role, resource): operations that are a flat allow
    (Role.ADMIN, ResourceType.PATIENT): set(Operation),
    (Role.ADMIN, ResourceType.DOCTOR): set(Operation),
    (Role.ADMIN, ResourceType.APPOINTMENT): set(Operation),
    (Role.ADMIN, ResourceType.PRESCRIPTION): set(Operation),
    (Role.ADMIN, ResourceType.BILLING): set(Operation),
    (Role.ADMIN, ResourceType.USER): {Operation.CREATE, Operation.READ, Operation.READ_LIST},
    (Role.RECEPTIONIST, ResourceType.PATIENT): {Operation.READ, Operation.READ_LIST, Operation.CREATE, Operation.UPDATE},
    (Role.RECEPTIONIST, ResourceType.DOCTOR): {Operation.READ, Operation.READ_LIST},
    (Role.RECEPTIONIST, ResourceType.APPOINTMENT): {
        Operation.READ,
        Operation.READ_LIST,
        Operation.CREATE,
        Operation.UPDATE,
    },
    (Role.RECEPTIONIST, ResourceType.PRESCRIPTION): {Operation.READ, Operation.READ_LIST},
    (Role.RECEPTIONIST, ResourceType.BILLING): {Operation.READ, Operation.READ_LIST, Operation.CREATE, Operation.UPDATE},
    (Role.DOCTOR, ResourceType.PATIENT): {Operation.READ, Operation.READ_LIST},
    (Role.DOCTOR, ResourceType.DOCTOR): {Operation.READ, Operation.READ_LIST},
    (Role.DOCTOR, ResourceType.BILLING): {Operation.READ, Operation.READ_LIST},
}

EXPECTED_OWNER = {
    (Role.DOCTOR, ResourceType.APPOINTMENT): {Operation.READ, Operation.READ_LIST, Operation.UPDATE},
    (Role.DOCTOR, ResourceType.PRESCRIPTION): {
        Operation.READ,
        Operation.READ_LIST,
        Operation.CREATE,
        Operation.UPDATE,
    },
}


@pytest.mark.parametrize(
    "role,resource_type,operation",
    list(itertools.product(Role, ResourceType, Operation)),
)
def test_capability_table_matches_role_matrix(role, resource_type, operation):
    effect = capability_for(role, resource_type, operation).effect
    if operation in EXPECTED_ALLOWED.get((role, resource_type), set()):
        assert effect is Effect.ALLOW
    elif operation in EXPECTED_OWNER.get((role, resource_type), set()):
        assert effect is Effect.ALLOW_IF_OWNER
    else:
        assert effect is Effect.DENY


def test_capability_table_is_read_only():
    from hms.authz.rules import CAPABILITIES, DENY

    with pytest.raises(TypeError):
        CAPABILITIES[(Role.RECEPTIONIST, ResourceType.PATIENT, Operation.DELETE)] = DENY  # type: ignore[index]


def test_doctor_appointment_update_is_limited_to_status():
    capability = capability_for(Role.DOCTOR, ResourceType.APPOINTMENT, Operation.UPDATE)
    assert capability.fields == frozenset({"status"})


# ---- Authorizer -----------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", list(Operation))
@pytest.mark.parametrize("resource_type", list(ResourceType))
async def test_missing_identity_is_unauthenticated(operation, resource_type):
    resolver = FakeResolver()
    authorizer = Authorizer(resolver)

    decision = await authorizer.authorize(None, operation, resource_type, _ref(resource_type))

    assert decision == UNAUTHENTICATED
    assert resolver.calls == 0


@pytest.mark.asyncio
async def test_receptionist_cannot_delete_patient():
    decision = await Authorizer(FakeResolver()).authorize(
        RECEPTIONIST, Operation.DELETE, ResourceType.PATIENT, _ref(ResourceType.PATIENT)
    )
    assert decision == FORBIDDEN


@pytest.mark.asyncio
async def test_flat_allow_does_not_consult_resolver():
    resolver = FakeResolver()
    decision = await Authorizer(resolver).authorize(ADMIN, Operation.DELETE, ResourceType.PATIENT, _ref(ResourceType.PATIENT))

    assert isinstance(decision, Allowed)
    assert decision.writable_fields is None
    assert resolver.calls == 0


@pytest.mark.asyncio
async def test_doctor_reads_billing_list_without_filter():
    decision = await Authorizer(FakeResolver()).authorize(DOCTOR_1, Operation.READ_LIST, ResourceType.BILLING)
    assert decision == Allowed()


@pytest.mark.asyncio
async def test_unauthenticated_billing_list():
    decision = await Authorizer(FakeResolver()).authorize(None, Operation.READ_LIST, ResourceType.BILLING)
    assert isinstance(decision, Denied)
    assert decision == UNAUTHENTICATED


@pytest.mark.asyncio
async def test_doctor_one_scenarios():
    """Dr One owns appointment 10 and prescription 20; Dr Two owns appointment 11 and prescription 21."""
    authorizer = Authorizer(FakeResolver())
    own_appt = ResourceRef.appointment(10, 1)
    other_appt = ResourceRef.appointment(11, 2)
    own_rx = ResourceRef.prescription(20, 1)
    other_rx = ResourceRef.prescription(21, 2)

    assert await authorizer.authorize(DOCTOR_1, Operation.READ, ResourceType.APPOINTMENT, own_appt) == Allowed(
        doctor_id=1
    )
    assert await authorizer.authorize(DOCTOR_1, Operation.READ, ResourceType.APPOINTMENT, other_appt) == FORBIDDEN
    assert await authorizer.authorize(DOCTOR_1, Operation.UPDATE, ResourceType.APPOINTMENT, own_appt) == Allowed(
        writable_fields=frozenset({"status"}), doctor_id=1
    )
    assert await authorizer.authorize(DOCTOR_1, Operation.UPDATE, ResourceType.APPOINTMENT, other_appt) == FORBIDDEN
    assert await authorizer.authorize(DOCTOR_1, Operation.DELETE, ResourceType.APPOINTMENT, own_appt) == FORBIDDEN
    assert await authorizer.authorize(DOCTOR_1, Operation.UPDATE, ResourceType.PRESCRIPTION, own_rx) == Allowed(
        doctor_id=1
    )
    assert await authorizer.authorize(DOCTOR_1, Operation.READ, ResourceType.PRESCRIPTION, other_rx) == FORBIDDEN


@pytest.mark.asyncio
@pytest.mark.parametrize("resource_type", [ResourceType.APPOINTMENT, ResourceType.PRESCRIPTION])
async def test_doctor_list_reads_come_back_filtered(resource_type):
    decision = await Authorizer(FakeResolver()).authorize(DOCTOR_2, Operation.READ_LIST, resource_type)
    assert decision == AllowedWithFilter(RowFilter(doctor_id=2))


@pytest.mark.asyncio
async def test_owner_check_without_ref_is_forbidden():
    decision = await Authorizer(FakeResolver()).authorize(DOCTOR_1, Operation.READ, ResourceType.APPOINTMENT)
    assert decision == FORBIDDEN


@pytest.mark.asyncio
async def test_prescription_create_defaults_to_own_doctor_id():
    authorizer = Authorizer(FakeResolver())

    without_doctor = await authorizer.authorize(
        DOCTOR_1, Operation.CREATE, ResourceType.PRESCRIPTION, ResourceRef.prescription(None, None)
    )
    assert without_doctor == Allowed(doctor_id=1)

    own = await authorizer.authorize(DOCTOR_1, Operation.CREATE, ResourceType.PRESCRIPTION, ResourceRef.prescription(None, 1))
    assert own == Allowed(doctor_id=1)


@pytest.mark.asyncio
async def test_prescription_create_for_another_doctor_is_forbidden():
    decision = await Authorizer(FakeResolver()).authorize(
        DOCTOR_1, Operation.CREATE, ResourceType.PRESCRIPTION, ResourceRef.prescription(None, 2)
    )
    assert decision == FORBIDDEN


@pytest.mark.asyncio
async def test_doctor_without_linked_record_is_forbidden():
    decision = await Authorizer(FakeResolver()).authorize(
        UNLINKED_DOCTOR, Operation.READ_LIST, ResourceType.APPOINTMENT
    )
    assert decision == FORBIDDEN


@pytest.mark.asyncio
async def test_resolver_error_fails_closed():
    decision = await Authorizer(FailingResolver()).authorize(
        DOCTOR_1, Operation.READ, ResourceType.APPOINTMENT, ResourceRef.appointment(10, 1)
    )
    assert decision == FORBIDDEN


@pytest.mark.asyncio
async def test_resolver_timeout_fails_closed():
    authorizer = Authorizer(SlowResolver(), lookup_timeout=0.01)
    decision = await authorizer.authorize(
        DOCTOR_1, Operation.READ, ResourceType.APPOINTMENT, ResourceRef.appointment(10, 1)
    )
    assert decision == FORBIDDEN


@pytest.mark.asyncio
async def test_decisions_are_repeatable():
    authorizer = Authorizer(FakeResolver())
    ref = ResourceRef.appointment(10, 1)

    first = await authorizer.authorize(DOCTOR_1, Operation.UPDATE, ResourceType.APPOINTMENT, ref)
    second = await authorizer.authorize(DOCTOR_1, Operation.UPDATE, ResourceType.APPOINTMENT, ref)

    assert first == second


def test_requires_ownership_only_for_owner_rules():
    authorizer = Authorizer(FakeResolver())

    assert authorizer.requires_ownership(DOCTOR_1, Operation.READ, ResourceType.APPOINTMENT)
    assert not authorizer.requires_ownership(DOCTOR_1, Operation.READ, ResourceType.PATIENT)
    assert not authorizer.requires_ownership(ADMIN, Operation.READ, ResourceType.APPOINTMENT)
    assert not authorizer.requires_ownership(None, Operation.READ, ResourceType.APPOINTMENT)


class BlockingDoctors:
    """Doctor lookup that blocks its worker thread, like a stalled database query."""

    def __init__(self, delay):
        self.delay = delay

    def find_by_user_id(self, user_id):
        time.sleep(self.delay)
        return SimpleNamespace(id=DOCTOR_LINKS[user_id])


@pytest.mark.asyncio
async def test_blocking_repository_lookup_past_deadline_fails_closed():
    authorizer = Authorizer(RepositoryOwnershipResolver(BlockingDoctors(0.3)), lookup_timeout=0.05)

    decision = await authorizer.authorize(
        DOCTOR_1, Operation.READ, ResourceType.APPOINTMENT, ResourceRef.appointment(10, 1)
    )

    assert decision == FORBIDDEN


@pytest.mark.asyncio
async def test_blocking_repository_lookup_within_deadline_is_allowed():
    authorizer = Authorizer(RepositoryOwnershipResolver(BlockingDoctors(0.01)), lookup_timeout=5)

    decision = await authorizer.authorize(
        DOCTOR_1, Operation.READ, ResourceType.APPOINTMENT, ResourceRef.appointment(10, 1)
    )

    assert decision == Allowed(doctor_id=1)

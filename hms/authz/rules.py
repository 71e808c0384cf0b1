"""
Role capability matrix.

The table answers one question: for (role, resource type, operation), is the
answer a flat allow, an allow that depends on owning the row, or a deny?

It is built once at import time and exposed as a read-only mapping; nothing
mutates it afterwards. Any combination not listed is a deny.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from .types import Operation, ResourceType, Role


class Effect(str, enum.Enum):
    ALLOW = "allow"
    ALLOW_IF_OWNER = "allow_if_owner"
    DENY = "deny"


@dataclass(frozen=True)
class Capability:
    effect: Effect
    # None means every field; otherwise the only fields an update may touch.
    fields: frozenset[str] | None = None


ALLOW = Capability(Effect.ALLOW)
OWNER = Capability(Effect.ALLOW_IF_OWNER)
DENY = Capability(Effect.DENY)

_READS = (Operation.READ, Operation.READ_LIST)
_EVERYONE = (Role.ADMIN, Role.DOCTOR, Role.RECEPTIONIST)
_FRONT_DESK = (Role.ADMIN, Role.RECEPTIONIST)

RuleKey = tuple[Role, ResourceType, Operation]


def _grant(
    table: dict[RuleKey, Capability],
    resource: ResourceType,
    operations: Iterable[Operation],
    roles: Iterable[Role],
    capability: Capability = ALLOW,
) -> None:
    for operation in operations:
        for role in roles:
            table[(role, resource, operation)] = capability


def _build_table() -> Mapping[RuleKey, Capability]:
    t: dict[RuleKey, Capability] = {}

    # Patients and billing: everyone reads, front desk writes, admin deletes.
    for resource in (ResourceType.PATIENT, ResourceType.BILLING):
        _grant(t, resource, _READS, _EVERYONE)
        _grant(t, resource, (Operation.CREATE, Operation.UPDATE), _FRONT_DESK)
        _grant(t, resource, (Operation.DELETE,), (Role.ADMIN,))

    # Doctors: everyone reads, only admin manages the roster.
    _grant(t, ResourceType.DOCTOR, _READS, _EVERYONE)
    _grant(t, ResourceType.DOCTOR, (Operation.CREATE, Operation.UPDATE, Operation.DELETE), (Role.ADMIN,))

    # Appointments: doctors see and update (status only) their own.
    _grant(t, ResourceType.APPOINTMENT, _READS, _FRONT_DESK)
    _grant(t, ResourceType.APPOINTMENT, _READS, (Role.DOCTOR,), OWNER)
    _grant(t, ResourceType.APPOINTMENT, (Operation.CREATE, Operation.UPDATE), _FRONT_DESK)
    _grant(
        t,
        ResourceType.APPOINTMENT,
        (Operation.UPDATE,),
        (Role.DOCTOR,),
        Capability(Effect.ALLOW_IF_OWNER, frozenset({"status"})),
    )
    _grant(t, ResourceType.APPOINTMENT, (Operation.DELETE,), (Role.ADMIN,))

    # Prescriptions: receptionists may only read; doctors own theirs.
    _grant(t, ResourceType.PRESCRIPTION, _READS, _FRONT_DESK)
    _grant(t, ResourceType.PRESCRIPTION, _READS, (Role.DOCTOR,), OWNER)
    _grant(t, ResourceType.PRESCRIPTION, (Operation.CREATE, Operation.UPDATE, Operation.DELETE), (Role.ADMIN,))
    _grant(t, ResourceType.PRESCRIPTION, (Operation.CREATE, Operation.UPDATE), (Role.DOCTOR,), OWNER)

    # Staff accounts.
    _grant(t, ResourceType.USER, (Operation.CREATE, *_READS), (Role.ADMIN,))

    return MappingProxyType(t)


CAPABILITIES: Mapping[RuleKey, Capability] = _build_table()


def capability_for(role: Role, resource_type: ResourceType, operation: Operation) -> Capability:
    """Return the rule for this combination; unlisted combinations are denied."""
    return CAPABILITIES.get((role, resource_type, operation), DENY)

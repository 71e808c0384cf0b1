"""Value types the authorization core reasons about."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Role(str, enum.Enum):
    """Closed set of staff roles. Every Identity carries exactly one."""

    ADMIN = "admin"
    DOCTOR = "doctor"
    RECEPTIONIST = "receptionist"

    @classmethod
    def parse(cls, raw: object) -> Role | None:
        """Return the Role for a stored value, or None when it is not a known role."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


class Operation(str, enum.Enum):
    READ = "read"
    READ_LIST = "read_list"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# Operations that target one existing row (and therefore may need its ResourceRef).
ROW_OPERATIONS = frozenset({Operation.READ, Operation.UPDATE, Operation.DELETE})


class ResourceType(str, enum.Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    APPOINTMENT = "appointment"
    PRESCRIPTION = "prescription"
    BILLING = "billing"
    USER = "user"


@dataclass(frozen=True)
class Identity:
    """
    Authenticated caller, produced once per request from a verified credential.

    `role` always comes from the credential store, never from the request body.
    """

    id: int
    email: str
    role: Role
    display_name: str

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role.value,
            "name": self.display_name,
        }


@dataclass(frozen=True)
class ResourceRef:
    """
    Minimal view of a target row: just what ownership checks inspect.

    `id` is None for a row that is about to be created. `doctor_id` is only
    meaningful for doctor-scoped resources.
    """

    resource_type: ResourceType
    id: int | None
    doctor_id: int | None = None

    @classmethod
    def appointment(cls, id: int | None, doctor_id: int | None) -> ResourceRef:
        return cls(ResourceType.APPOINTMENT, id, doctor_id)

    @classmethod
    def prescription(cls, id: int | None, doctor_id: int | None) -> ResourceRef:
        return cls(ResourceType.PRESCRIPTION, id, doctor_id)

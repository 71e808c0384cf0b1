"""
Repository interfaces.

Handlers and the ownership resolver depend only on these protocols; the
concrete implementation (SQLAlchemy, see `hms.repositories.orm`) is chosen
when the app is built.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from hms.models.clinical import Appointment, Billing, Doctor, Patient, Prescription
from hms.models.users import User

T = TypeVar("T")


class Repository(Protocol[T]):
    def list(self) -> Sequence[T]: ...

    def get(self, id: int) -> T | None: ...

    def add(self, obj: T) -> T: ...

    def update(self, obj: T, changes: Mapping[str, Any]) -> T: ...

    def delete(self, obj: T) -> None: ...


class UserRepository(Repository[User], Protocol):
    def find_by_email(self, email: str) -> User | None: ...

    def count(self) -> int: ...


class DoctorRepository(Repository[Doctor], Protocol):
    def find_by_user_id(self, user_id: int) -> Doctor | None: ...

    def find_by_email(self, email: str) -> Doctor | None: ...


class PatientRepository(Repository[Patient], Protocol):
    pass


class AppointmentRepository(Repository[Appointment], Protocol):
    pass


class PrescriptionRepository(Repository[Prescription], Protocol):
    pass


class BillingRepository(Repository[Billing], Protocol):
    pass


@dataclass(frozen=True)
class Repositories:
    """Per-request bundle of repositories sharing one unit of work."""

    users: UserRepository
    doctors: DoctorRepository
    patients: PatientRepository
    appointments: AppointmentRepository
    prescriptions: PrescriptionRepository
    billing: BillingRepository

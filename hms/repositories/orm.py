"""SQLAlchemy implementation of the repository interfaces."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.base import ExecutableOption

from hms.models.clinical import Appointment, Billing, Doctor, Patient, Prescription
from hms.models.users import User
from hms.repositories.base import Repositories

ModelT = TypeVar("ModelT")


class OrmRepository(Generic[ModelT]):
    """
    CRUD over one mapped class.

    Writes commit immediately: each handler performs a single mutation.
    Row filters attached to the session (see hms.db.filters) apply to `list()`.
    """

    model: ClassVar[type]
    order_by: ClassVar[tuple[Any, ...]] = ()

    def __init__(self, db: Session) -> None:
        self.db = db

    def _load_options(self) -> tuple[ExecutableOption, ...]:
        return ()

    def list(self) -> Sequence[ModelT]:
        stmt = select(self.model).options(*self._load_options())
        if self.order_by:
            stmt = stmt.order_by(*self.order_by)
        return list(self.db.scalars(stmt).all())

    def get(self, id: int) -> ModelT | None:
        stmt = select(self.model).where(self.model.id == id).options(*self._load_options())
        return self.db.scalars(stmt).first()

    def add(self, obj: ModelT) -> ModelT:
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, obj: ModelT, changes: Mapping[str, Any]) -> ModelT:
        for field, value in changes.items():
            setattr(obj, field, value)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def delete(self, obj: ModelT) -> None:
        self.db.delete(obj)
        self.db.commit()


class SqlAlchemyUserRepository(OrmRepository[User]):
    model = User
    order_by = (User.id,)

    def find_by_email(self, email: str) -> User | None:
        return self.db.scalars(select(User).where(User.email == email)).first()

    def count(self) -> int:
        return self.db.scalar(select(func.count(User.id))) or 0


class SqlAlchemyDoctorRepository(OrmRepository[Doctor]):
    model = Doctor
    order_by = (Doctor.id,)

    def find_by_user_id(self, user_id: int) -> Doctor | None:
        return self.db.scalars(select(Doctor).where(Doctor.user_id == user_id)).first()

    def find_by_email(self, email: str) -> Doctor | None:
        return self.db.scalars(select(Doctor).where(Doctor.email == email)).first()


class SqlAlchemyPatientRepository(OrmRepository[Patient]):
    model = Patient
    order_by = (Patient.id,)


class SqlAlchemyAppointmentRepository(OrmRepository[Appointment]):
    model = Appointment
    order_by = (Appointment.appointment_date.asc(), Appointment.id)

    def _load_options(self) -> tuple[ExecutableOption, ...]:
        return (
            selectinload(Appointment.patient),
            selectinload(Appointment.doctor),
        )


class SqlAlchemyPrescriptionRepository(OrmRepository[Prescription]):
    model = Prescription
    order_by = (Prescription.created_at.desc(), Prescription.id.desc())

    def _load_options(self) -> tuple[ExecutableOption, ...]:
        return (selectinload(Prescription.patient), selectinload(Prescription.doctor))


class SqlAlchemyBillingRepository(OrmRepository[Billing]):
    model = Billing
    order_by = (Billing.bill_date.desc(), Billing.id.desc())

    def _load_options(self) -> tuple[ExecutableOption, ...]:
        return (selectinload(Billing.patient),)


def build_repositories(db: Session) -> Repositories:
    return Repositories(
        users=SqlAlchemyUserRepository(db),
        doctors=SqlAlchemyDoctorRepository(db),
        patients=SqlAlchemyPatientRepository(db),
        appointments=SqlAlchemyAppointmentRepository(db),
        prescriptions=SqlAlchemyPrescriptionRepository(db),
        billing=SqlAlchemyBillingRepository(db),
    )

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Literal

from pydantic import BaseModel, Field

from hms.schemas.base import OrmModel, UpdateModel

AppointmentStatus = Literal["scheduled", "completed", "cancelled", "no-show"]
PaymentStatus = Literal["pending", "paid", "partially_paid", "overdue", "cancelled"]


# ---- Nested summaries ----------------------------------------------------------------


class PatientSummary(OrmModel):
    id: int
    name: str
    phone: str
    email: str | None


class DoctorSummary(OrmModel):
    id: int
    name: str
    email: str
    specialization: str


# ---- Patients ------------------------------------------------------------------------


class PatientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str | None = None
    phone: str = Field(min_length=1, max_length=20)
    address: str = Field(min_length=1)
    date_of_birth: date
    gender: str = Field(min_length=1, max_length=10)
    blood_group: str | None = Field(default=None, max_length=5)
    emergency_contact: str = Field(min_length=1, max_length=20)
    medical_history: str | None = None


class PatientUpdate(UpdateModel):
    clearable: ClassVar[frozenset[str]] = frozenset({"email", "blood_group", "medical_history"})

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = None
    phone: str | None = Field(default=None, min_length=1, max_length=20)
    address: str | None = Field(default=None, min_length=1)
    date_of_birth: date | None = None
    gender: str | None = Field(default=None, min_length=1, max_length=10)
    blood_group: str | None = Field(default=None, max_length=5)
    emergency_contact: str | None = Field(default=None, min_length=1, max_length=20)
    medical_history: str | None = None


class PatientOut(OrmModel):
    id: int
    name: str
    email: str | None
    phone: str
    address: str
    date_of_birth: date
    gender: str
    blood_group: str | None
    emergency_contact: str
    medical_history: str | None
    created_at: datetime
    updated_at: datetime


# ---- Doctors -------------------------------------------------------------------------


class DoctorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    phone: str = Field(min_length=1, max_length=20)
    specialization: str = Field(min_length=1, max_length=100)
    experience: int = Field(default=0, ge=0)
    qualification: str = Field(min_length=1)
    user_id: int | None = None


class DoctorUpdate(UpdateModel):
    clearable: ClassVar[frozenset[str]] = frozenset({"user_id"})

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, min_length=3, max_length=255)
    phone: str | None = Field(default=None, min_length=1, max_length=20)
    specialization: str | None = Field(default=None, min_length=1, max_length=100)
    experience: int | None = Field(default=None, ge=0)
    qualification: str | None = Field(default=None, min_length=1)
    user_id: int | None = None


class DoctorOut(OrmModel):
    id: int
    user_id: int | None
    name: str
    email: str
    phone: str
    specialization: str
    experience: int
    qualification: str
    created_at: datetime
    updated_at: datetime


# ---- Appointments --------------------------------------------------------------------


class AppointmentCreate(BaseModel):
    patient_id: int
    doctor_id: int
    appointment_date: datetime
    reason: str | None = None
    notes: str | None = None


class AppointmentUpdate(UpdateModel):
    clearable: ClassVar[frozenset[str]] = frozenset({"reason", "notes"})

    patient_id: int | None = None
    doctor_id: int | None = None
    appointment_date: datetime | None = None
    status: AppointmentStatus | None = None
    reason: str | None = None
    notes: str | None = None


class AppointmentOut(OrmModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_date: datetime
    status: str
    reason: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    patient: PatientSummary
    doctor: DoctorSummary


# ---- Prescriptions -------------------------------------------------------------------


class Medication(BaseModel):
    name: str = Field(min_length=1)
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    instructions: str = ""


class PrescriptionCreate(BaseModel):
    patient_id: int
    # Omitted by a doctor: filled in with the caller's own doctor record.
    doctor_id: int | None = None
    appointment_id: int | None = None
    diagnosis: str = Field(min_length=1, max_length=255)
    medications: list[Medication] = Field(min_length=1)
    frequency: str = Field(min_length=1, max_length=100)
    notes: str | None = None


class PrescriptionUpdate(UpdateModel):
    clearable: ClassVar[frozenset[str]] = frozenset({"notes"})

    diagnosis: str | None = Field(default=None, min_length=1, max_length=255)
    medications: list[Medication] | None = Field(default=None, min_length=1)
    frequency: str | None = Field(default=None, min_length=1, max_length=100)
    notes: str | None = None


class PrescriptionOut(OrmModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_id: int | None
    diagnosis: str
    medications: list[Medication]
    frequency: str
    notes: str | None
    created_at: datetime
    updated_at: datetime
    patient: PatientSummary
    doctor: DoctorSummary


# ---- Billing -------------------------------------------------------------------------


class BillingCreate(BaseModel):
    patient_id: int
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    description: str | None = None
    payment_status: PaymentStatus = "pending"
    bill_date: datetime | None = None


class BillingUpdate(UpdateModel):
    clearable: ClassVar[frozenset[str]] = frozenset({"description"})

    amount: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    description: str | None = None
    payment_status: PaymentStatus | None = None


class BillingOut(OrmModel):
    id: int
    patient_id: int
    amount: float
    description: str | None
    payment_status: str
    bill_date: datetime
    created_at: datetime
    updated_at: datetime
    patient: PatientSummary


class MessageOut(BaseModel):
    message: str

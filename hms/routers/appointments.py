from __future__ import annotations

from fastapi import APIRouter, Depends, status

from hms.authz.decision import Decision
from hms.authz.types import Operation, ResourceType
from hms.models.clinical import Appointment
from hms.repositories.base import Repositories
from hms.routers.common import ensure_exists
from hms.schemas.clinical import AppointmentCreate, AppointmentOut, AppointmentUpdate, MessageOut
from hms.security.dependencies import authorized, authorized_row, ensure_writable, get_repositories, not_found

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


@router.get("", response_model=list[AppointmentOut])
def list_appointments(
    _: Decision = Depends(authorized(Operation.READ_LIST, ResourceType.APPOINTMENT)),
    repos: Repositories = Depends(get_repositories),
) -> list[Appointment]:
    # Doctors only see their own rows: the row filter is applied by hms/db/filters.py.
    return list(repos.appointments.list())


@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    _: Decision = Depends(authorized(Operation.CREATE, ResourceType.APPOINTMENT)),
    repos: Repositories = Depends(get_repositories),
) -> Appointment:
    ensure_exists(repos.patients, payload.patient_id, "Patient")
    ensure_exists(repos.doctors, payload.doctor_id, "Doctor")
    return repos.appointments.add(Appointment(**payload.model_dump(), status="scheduled"))


@router.get("/{id}", response_model=AppointmentOut)
def get_appointment(
    id: int,
    _: Decision = Depends(authorized_row(Operation.READ, ResourceType.APPOINTMENT)),
    repos: Repositories = Depends(get_repositories),
) -> Appointment:
    appointment = repos.appointments.get(id)
    if appointment is None:
        raise not_found(ResourceType.APPOINTMENT)
    return appointment


@router.put("/{id}", response_model=AppointmentOut)
def update_appointment(
    id: int,
    payload: AppointmentUpdate,
    decision: Decision = Depends(authorized_row(Operation.UPDATE, ResourceType.APPOINTMENT)),
    repos: Repositories = Depends(get_repositories),
) -> Appointment:
    changes = payload.changes()
    # A doctor may only move the status of their own appointment.
    ensure_writable(decision, changes)

    appointment = repos.appointments.get(id)
    if appointment is None:
        raise not_found(ResourceType.APPOINTMENT)
    if "patient_id" in changes:
        ensure_exists(repos.patients, changes["patient_id"], "Patient")
    if "doctor_id" in changes:
        ensure_exists(repos.doctors, changes["doctor_id"], "Doctor")

    return repos.appointments.update(appointment, changes)


@router.delete("/{id}", response_model=MessageOut)
def delete_appointment(
    id: int,
    _: Decision = Depends(authorized_row(Operation.DELETE, ResourceType.APPOINTMENT)),
    repos: Repositories = Depends(get_repositories),
) -> MessageOut:
    appointment = repos.appointments.get(id)
    if appointment is None:
        raise not_found(ResourceType.APPOINTMENT)
    repos.appointments.delete(appointment)
    return MessageOut(message="Appointment deleted successfully")

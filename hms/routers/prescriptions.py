from __future__ import annotations

from fastapi import APIRouter, Depends, status

from hms.authz.core import Authorizer
from hms.authz.decision import Allowed, Decision
from hms.authz.types import Identity, Operation, ResourceRef, ResourceType
from hms.models.clinical import Prescription
from hms.repositories.base import Repositories
from hms.routers.common import bad_request, ensure_exists
from hms.schemas.clinical import MessageOut, PrescriptionCreate, PrescriptionOut, PrescriptionUpdate
from hms.security.dependencies import (
    authorized,
    authorized_row,
    get_authorizer,
    get_identity,
    get_repositories,
    not_found,
    raise_for_denied,
)

router = APIRouter(prefix="/api/prescriptions", tags=["prescriptions"])


async def authorize_prescription_create(
    payload: PrescriptionCreate,
    identity: Identity | None = Depends(get_identity),
    authorizer: Authorizer = Depends(get_authorizer),
) -> PrescriptionCreate:
    """
    Authorize a new prescription against the doctor it will belong to.

    A doctor may leave `doctor_id` out; it is then filled in with their own record.
    Naming another doctor is forbidden.
    """

    ref = ResourceRef.prescription(None, payload.doctor_id)
    decision = raise_for_denied(await authorizer.authorize(identity, Operation.CREATE, ResourceType.PRESCRIPTION, ref))
    if payload.doctor_id is None and isinstance(decision, Allowed) and decision.doctor_id is not None:
        return payload.model_copy(update={"doctor_id": decision.doctor_id})
    return payload


@router.get("", response_model=list[PrescriptionOut])
def list_prescriptions(
    _: Decision = Depends(authorized(Operation.READ_LIST, ResourceType.PRESCRIPTION)),
    repos: Repositories = Depends(get_repositories),
) -> list[Prescription]:
    return list(repos.prescriptions.list())


@router.post("", response_model=PrescriptionOut, status_code=status.HTTP_201_CREATED)
def create_prescription(
    payload: PrescriptionCreate = Depends(authorize_prescription_create),
    repos: Repositories = Depends(get_repositories),
) -> Prescription:
    if payload.doctor_id is None:
        raise bad_request("doctor_id is required")

    ensure_exists(repos.patients, payload.patient_id, "Patient")
    ensure_exists(repos.doctors, payload.doctor_id, "Doctor")

    if payload.appointment_id is not None:
        appointment = repos.appointments.get(payload.appointment_id)
        if appointment is None:
            raise bad_request(f"Appointment {payload.appointment_id} does not exist")
        if appointment.patient_id != payload.patient_id or appointment.doctor_id != payload.doctor_id:
            raise bad_request("Appointment does not match the prescription's patient and doctor")

    return repos.prescriptions.add(Prescription(**payload.model_dump()))


@router.get("/{id}", response_model=PrescriptionOut)
def get_prescription(
    id: int,
    _: Decision = Depends(authorized_row(Operation.READ, ResourceType.PRESCRIPTION)),
    repos: Repositories = Depends(get_repositories),
) -> Prescription:
    prescription = repos.prescriptions.get(id)
    if prescription is None:
        raise not_found(ResourceType.PRESCRIPTION)
    return prescription


@router.put("/{id}", response_model=PrescriptionOut)
def update_prescription(
    id: int,
    payload: PrescriptionUpdate,
    _: Decision = Depends(authorized_row(Operation.UPDATE, ResourceType.PRESCRIPTION)),
    repos: Repositories = Depends(get_repositories),
) -> Prescription:
    prescription = repos.prescriptions.get(id)
    if prescription is None:
        raise not_found(ResourceType.PRESCRIPTION)
    return repos.prescriptions.update(prescription, payload.changes())


@router.delete("/{id}", response_model=MessageOut)
def delete_prescription(
    id: int,
    _: Decision = Depends(authorized_row(Operation.DELETE, ResourceType.PRESCRIPTION)),
    repos: Repositories = Depends(get_repositories),
) -> MessageOut:
    prescription = repos.prescriptions.get(id)
    if prescription is None:
        raise not_found(ResourceType.PRESCRIPTION)
    repos.prescriptions.delete(prescription)
    return MessageOut(message="Prescription deleted successfully")

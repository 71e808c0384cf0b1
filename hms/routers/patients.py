from __future__ import annotations

from fastapi import APIRouter, Depends, status

from hms.authz.decision import Decision
from hms.authz.types import Operation, ResourceType
from hms.models.clinical import Patient
from hms.repositories.base import Repositories
from hms.schemas.clinical import MessageOut, PatientCreate, PatientOut, PatientUpdate
from hms.security.dependencies import authorized, authorized_row, get_repositories, not_found

router = APIRouter(prefix="/api/patients", tags=["patients"])


@router.get("", response_model=list[PatientOut])
def list_patients(
    _: Decision = Depends(authorized(Operation.READ_LIST, ResourceType.PATIENT)),
    repos: Repositories = Depends(get_repositories),
) -> list[Patient]:
    return list(repos.patients.list())


@router.post("", response_model=PatientOut, status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientCreate,
    _: Decision = Depends(authorized(Operation.CREATE, ResourceType.PATIENT)),
    repos: Repositories = Depends(get_repositories),
) -> Patient:
    return repos.patients.add(Patient(**payload.model_dump()))


@router.get("/{id}", response_model=PatientOut)
def get_patient(
    id: int,
    _: Decision = Depends(authorized_row(Operation.READ, ResourceType.PATIENT)),
    repos: Repositories = Depends(get_repositories),
) -> Patient:
    patient = repos.patients.get(id)
    if patient is None:
        raise not_found(ResourceType.PATIENT)
    return patient


@router.put("/{id}", response_model=PatientOut)
def update_patient(
    id: int,
    payload: PatientUpdate,
    _: Decision = Depends(authorized_row(Operation.UPDATE, ResourceType.PATIENT)),
    repos: Repositories = Depends(get_repositories),
) -> Patient:
    patient = repos.patients.get(id)
    if patient is None:
        raise not_found(ResourceType.PATIENT)
    return repos.patients.update(patient, payload.changes())


@router.delete("/{id}", response_model=MessageOut)
def delete_patient(
    id: int,
    _: Decision = Depends(authorized_row(Operation.DELETE, ResourceType.PATIENT)),
    repos: Repositories = Depends(get_repositories),
) -> MessageOut:
    patient = repos.patients.get(id)
    if patient is None:
        raise not_found(ResourceType.PATIENT)
    repos.patients.delete(patient)
    return MessageOut(message="Patient deleted successfully")

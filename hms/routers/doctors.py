from __future__ import annotations

from fastapi import APIRouter, Depends, status

from hms.authz.decision import Decision
from hms.authz.types import Operation, ResourceType, Role
from hms.models.clinical import Doctor
from hms.repositories.base import Repositories
from hms.routers.common import bad_request
from hms.schemas.clinical import DoctorCreate, DoctorOut, DoctorUpdate, MessageOut
from hms.security.dependencies import authorized, authorized_row, get_repositories, not_found

router = APIRouter(prefix="/api/doctors", tags=["doctors"])


def _check_account_link(repos: Repositories, user_id: int, doctor_id: int | None = None) -> None:
    """A doctor record may only be linked to an active doctor account not linked elsewhere."""
    user = repos.users.get(user_id)
    if user is None or Role.parse(user.role) is not Role.DOCTOR:
        raise bad_request(f"User {user_id} is not a doctor account")
    if not user.is_active:
        raise bad_request(f"User {user_id} is not active")
    linked = repos.doctors.find_by_user_id(user_id)
    if linked is not None and linked.id != doctor_id:
        raise bad_request(f"User {user_id} is already linked to doctor {linked.id}")


@router.get("", response_model=list[DoctorOut])
def list_doctors(
    _: Decision = Depends(authorized(Operation.READ_LIST, ResourceType.DOCTOR)),
    repos: Repositories = Depends(get_repositories),
) -> list[Doctor]:
    return list(repos.doctors.list())


@router.post("", response_model=DoctorOut, status_code=status.HTTP_201_CREATED)
def create_doctor(
    payload: DoctorCreate,
    _: Decision = Depends(authorized(Operation.CREATE, ResourceType.DOCTOR)),
    repos: Repositories = Depends(get_repositories),
) -> Doctor:
    if repos.doctors.find_by_email(payload.email) is not None:
        raise bad_request("Doctor with this email already exists")
    if payload.user_id is not None:
        _check_account_link(repos, payload.user_id)
    return repos.doctors.add(Doctor(**payload.model_dump()))


@router.get("/{id}", response_model=DoctorOut)
def get_doctor(
    id: int,
    _: Decision = Depends(authorized_row(Operation.READ, ResourceType.DOCTOR)),
    repos: Repositories = Depends(get_repositories),
) -> Doctor:
    doctor = repos.doctors.get(id)
    if doctor is None:
        raise not_found(ResourceType.DOCTOR)
    return doctor


@router.put("/{id}", response_model=DoctorOut)
def update_doctor(
    id: int,
    payload: DoctorUpdate,
    _: Decision = Depends(authorized_row(Operation.UPDATE, ResourceType.DOCTOR)),
    repos: Repositories = Depends(get_repositories),
) -> Doctor:
    doctor = repos.doctors.get(id)
    if doctor is None:
        raise not_found(ResourceType.DOCTOR)

    changes = payload.changes()
    if "email" in changes:
        existing = repos.doctors.find_by_email(changes["email"])
        if existing is not None and existing.id != doctor.id:
            raise bad_request("Doctor with this email already exists")
    if changes.get("user_id") is not None:
        _check_account_link(repos, changes["user_id"], doctor_id=doctor.id)

    return repos.doctors.update(doctor, changes)


@router.delete("/{id}", response_model=MessageOut)
def delete_doctor(
    id: int,
    _: Decision = Depends(authorized_row(Operation.DELETE, ResourceType.DOCTOR)),
    repos: Repositories = Depends(get_repositories),
) -> MessageOut:
    doctor = repos.doctors.get(id)
    if doctor is None:
        raise not_found(ResourceType.DOCTOR)
    repos.doctors.delete(doctor)
    return MessageOut(message="Doctor deleted successfully")

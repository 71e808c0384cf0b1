from __future__ import annotations

from fastapi import APIRouter, Depends, status

from hms.authz.decision import Decision
from hms.authz.types import Operation, ResourceType
from hms.models.clinical import Billing
from hms.repositories.base import Repositories
from hms.routers.common import ensure_exists
from hms.schemas.clinical import BillingCreate, BillingOut, BillingUpdate, MessageOut
from hms.security.dependencies import authorized, authorized_row, get_repositories, not_found

router = APIRouter(prefix="/api/billing", tags=["billing"])


@router.get("", response_model=list[BillingOut])
def list_bills(
    _: Decision = Depends(authorized(Operation.READ_LIST, ResourceType.BILLING)),
    repos: Repositories = Depends(get_repositories),
) -> list[Billing]:
    return list(repos.billing.list())


@router.post("", response_model=BillingOut, status_code=status.HTTP_201_CREATED)
def create_bill(
    payload: BillingCreate,
    _: Decision = Depends(authorized(Operation.CREATE, ResourceType.BILLING)),
    repos: Repositories = Depends(get_repositories),
) -> Billing:
    ensure_exists(repos.patients, payload.patient_id, "Patient")
    # bill_date defaults to now when omitted.
    return repos.billing.add(Billing(**payload.model_dump(exclude_none=True)))


@router.get("/{id}", response_model=BillingOut)
def get_bill(
    id: int,
    _: Decision = Depends(authorized_row(Operation.READ, ResourceType.BILLING)),
    repos: Repositories = Depends(get_repositories),
) -> Billing:
    bill = repos.billing.get(id)
    if bill is None:
        raise not_found(ResourceType.BILLING)
    return bill


@router.put("/{id}", response_model=BillingOut)
def update_bill(
    id: int,
    payload: BillingUpdate,
    _: Decision = Depends(authorized_row(Operation.UPDATE, ResourceType.BILLING)),
    repos: Repositories = Depends(get_repositories),
) -> Billing:
    bill = repos.billing.get(id)
    if bill is None:
        raise not_found(ResourceType.BILLING)
    return repos.billing.update(bill, payload.changes())


@router.delete("/{id}", response_model=MessageOut)
def delete_bill(
    id: int,
    _: Decision = Depends(authorized_row(Operation.DELETE, ResourceType.BILLING)),
    repos: Repositories = Depends(get_repositories),
) -> MessageOut:
    bill = repos.billing.get(id)
    if bill is None:
        raise not_found(ResourceType.BILLING)
    repos.billing.delete(bill)
    return MessageOut(message="Bill deleted successfully")

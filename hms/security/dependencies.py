from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable

from anyio import to_thread
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from hms.authz.core import Authorizer
from hms.authz.decision import Allowed, AllowedWithFilter, Decision, DenialReason, Denied
from hms.authz.ownership import RepositoryOwnershipResolver
from hms.authz.types import ROW_OPERATIONS, Identity, Operation, ResourceRef, ResourceType
from hms.db.filters import apply_row_filter
from hms.db.session import get_db
from hms.repositories.base import Repositories
from hms.repositories.orm import build_repositories
from hms.security.auth import extract_token, load_identity
from hms.security.config import SecurityConfig
from hms.security.tokens import TokenIssuer
from hms.settings import Settings

logger = logging.getLogger(__name__)

RESOURCE_LABELS = {
    ResourceType.PATIENT: "Patient",
    ResourceType.DOCTOR: "Doctor",
    ResourceType.APPOINTMENT: "Appointment",
    ResourceType.PRESCRIPTION: "Prescription",
    ResourceType.BILLING: "Bill",
    ResourceType.USER: "User",
}


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_token_issuer(request: Request) -> TokenIssuer:
    issuer = getattr(request.app.state, "token_issuer", None)
    if issuer is None:
        raise RuntimeError("Token issuer not configured. Did app startup run?")
    return issuer


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repositories(db: Session = Depends(get_db)) -> Repositories:
    return build_repositories(db)


def unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


def not_found(resource_type: ResourceType) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{RESOURCE_LABELS[resource_type]} not found")


def enforce_authentication(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    issuer: TokenIssuer = Depends(get_token_issuer),
    db: Session = Depends(get_db),
) -> None:
    """
    Global dependency: resolve the caller's Identity once per request.

    Routes marked public in the security YAML skip resolution; everything else
    without a valid credential is rejected with 401 before any handler runs.
    Role and ownership checks happen later, per route, in `authorized(...)`.
    """

    request.state.identity = None

    rule = config.match(request.url.path, request.method)
    if not rule.auth_required:
        return

    token = extract_token(request, config)
    identity = load_identity(build_repositories(db).users, issuer, token)
    if identity is None:
        raise unauthorized()

    request.state.identity = identity


def get_identity(request: Request) -> Identity | None:
    return getattr(request.state, "identity", None)


def get_current_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    if identity is None:
        raise unauthorized()
    return identity


def get_authorizer(
    repos: Repositories = Depends(get_repositories),
    settings: Settings = Depends(get_app_settings),
) -> Authorizer:
    return Authorizer(
        RepositoryOwnershipResolver(repos.doctors),
        lookup_timeout=settings.ownership_lookup_timeout_seconds,
    )


def raise_for_denied(decision: Decision) -> Allowed | AllowedWithFilter:
    """Translate a Denied decision into the matching HTTP error."""
    if isinstance(decision, Denied):
        if decision.reason is DenialReason.UNAUTHENTICATED:
            raise unauthorized()
        raise forbidden()
    return decision


def ensure_writable(decision: Decision, fields: Iterable[str]) -> None:
    """Reject an update that touches fields outside what the decision allows."""
    if not isinstance(decision, Allowed) or decision.writable_fields is None:
        return
    extra = set(fields) - decision.writable_fields
    if extra:
        logger.info("Update touches restricted fields=%s allowed=%s", sorted(extra), sorted(decision.writable_fields))
        raise forbidden()


def load_resource_ref(repos: Repositories, resource_type: ResourceType, id: int) -> ResourceRef:
    if resource_type is ResourceType.APPOINTMENT:
        appointment = repos.appointments.get(id)
        if appointment is None:
            raise not_found(resource_type)
        return ResourceRef.appointment(appointment.id, appointment.doctor_id)

    if resource_type is ResourceType.PRESCRIPTION:
        prescription = repos.prescriptions.get(id)
        if prescription is None:
            raise not_found(resource_type)
        return ResourceRef.prescription(prescription.id, prescription.doctor_id)

    return ResourceRef(resource_type, id)


def authorized(operation: Operation, resource_type: ResourceType) -> Callable[..., Awaitable[Decision]]:
    """
    Per-route dependency for collection operations (list / create).

    A doctor's list read comes back as AllowedWithFilter; the filter is attached
    to the request's Session so the handler's query is scoped transparently.
    """

    if operation in ROW_OPERATIONS:
        raise ValueError(f"{operation.value} targets one row; use authorized_row()")

    async def dependency(
        identity: Identity | None = Depends(get_identity),
        authorizer: Authorizer = Depends(get_authorizer),
        db: Session = Depends(get_db),
    ) -> Decision:
        decision = raise_for_denied(await authorizer.authorize(identity, operation, resource_type))
        if isinstance(decision, AllowedWithFilter):
            apply_row_filter(db, decision.filter)
        return decision

    return dependency


def authorized_row(operation: Operation, resource_type: ResourceType) -> Callable[..., Awaitable[Decision]]:
    """
    Per-route dependency for read / update / delete of `/{id}`.

    The target row is only loaded when the rule depends on ownership, so a
    caller the table denies outright never reaches the store.
    """

    if operation not in ROW_OPERATIONS:
        raise ValueError(f"{operation.value} is not a row operation; use authorized()")

    async def dependency(
        id: int,
        identity: Identity | None = Depends(get_identity),
        authorizer: Authorizer = Depends(get_authorizer),
        repos: Repositories = Depends(get_repositories),
    ) -> Decision:
        resource_ref = None
        if authorizer.requires_ownership(identity, operation, resource_type):
            resource_ref = await to_thread.run_sync(load_resource_ref, repos, resource_type, id)
        return raise_for_denied(await authorizer.authorize(identity, operation, resource_type, resource_ref))

    return dependency

"""
Authorization core.

One decision per request:

    decision = await authorizer.authorize(identity, Operation.UPDATE, ResourceType.APPOINTMENT, ref)

Algorithm:
1. No identity -> Denied(unauthenticated), before the rule table is consulted.
2. Look up the capability for (role, resource type, operation).
3. deny -> Denied(forbidden); allow -> Allowed.
4. allow_if_owner -> resolve the caller's doctor id through the ownership
   resolver, then compare it with the row (or derive a list filter, or fill
   in the doctor id of a new prescription).

The only I/O is that single lookup. Any failure of it (no linked doctor,
store error, timeout) yields Denied(forbidden): callers cannot tell "could
not check" apart from "may not".
"""

from __future__ import annotations

import logging
from typing import Protocol

import anyio

from .decision import FORBIDDEN, UNAUTHENTICATED, Allowed, AllowedWithFilter, Decision, RowFilter
from .rules import Capability, Effect, capability_for
from .types import Identity, Operation, ResourceRef, ResourceType

logger = logging.getLogger(__name__)


class OwnershipResolver(Protocol):
    """Maps a doctor Identity to the id of its Doctor record."""

    async def resolve_doctor_id(self, identity: Identity) -> int | None: ...


class Authorizer:
    """
    Stateless decision function over the static capability table.

    `lookup_timeout` bounds the ownership lookup (seconds, None for no bound).
    Cancellation of the calling task is never swallowed.
    """

    def __init__(self, resolver: OwnershipResolver, lookup_timeout: float | None = None) -> None:
        self._resolver = resolver
        self._lookup_timeout = lookup_timeout

    def requires_ownership(
        self,
        identity: Identity | None,
        operation: Operation,
        resource_type: ResourceType,
    ) -> bool:
        """True when `authorize` will need the target row's ResourceRef to decide."""
        if identity is None:
            return False
        return capability_for(identity.role, resource_type, operation).effect is Effect.ALLOW_IF_OWNER

    async def authorize(
        self,
        identity: Identity | None,
        operation: Operation,
        resource_type: ResourceType,
        resource_ref: ResourceRef | None = None,
    ) -> Decision:
        if identity is None:
            logger.debug("authz: unauthenticated op=%s resource=%s", operation.value, resource_type.value)
            return UNAUTHENTICATED

        capability = capability_for(identity.role, resource_type, operation)

        if capability.effect is Effect.DENY:
            logger.info(
                "authz: denied role=%s op=%s resource=%s user_id=%s",
                identity.role.value,
                operation.value,
                resource_type.value,
                identity.id,
            )
            return FORBIDDEN

        if capability.effect is Effect.ALLOW:
            logger.debug(
                "authz: allowed role=%s op=%s resource=%s", identity.role.value, operation.value, resource_type.value
            )
            return Allowed(writable_fields=capability.fields)

        return await self._authorize_owner(identity, operation, resource_type, resource_ref, capability)

    async def _authorize_owner(
        self,
        identity: Identity,
        operation: Operation,
        resource_type: ResourceType,
        resource_ref: ResourceRef | None,
        capability: Capability,
    ) -> Decision:
        doctor_id = await self._resolve_doctor_id(identity)
        if doctor_id is None:
            logger.info(
                "authz: no doctor record linked to user_id=%s op=%s resource=%s",
                identity.id,
                operation.value,
                resource_type.value,
            )
            return FORBIDDEN

        if operation is Operation.READ_LIST:
            return AllowedWithFilter(RowFilter(doctor_id=doctor_id))

        if operation is Operation.CREATE:
            # A new row without a doctor id becomes the caller's own.
            if resource_ref is None or resource_ref.doctor_id is None:
                return Allowed(writable_fields=capability.fields, doctor_id=doctor_id)
            if resource_ref.doctor_id == doctor_id:
                return Allowed(writable_fields=capability.fields, doctor_id=doctor_id)
            logger.info(
                "authz: denied create for another doctor user_id=%s resource=%s requested_doctor_id=%s",
                identity.id,
                resource_type.value,
                resource_ref.doctor_id,
            )
            return FORBIDDEN

        if resource_ref is None or resource_ref.doctor_id != doctor_id:
            logger.info(
                "authz: denied not owner user_id=%s op=%s resource=%s row_id=%s",
                identity.id,
                operation.value,
                resource_type.value,
                resource_ref.id if resource_ref is not None else None,
            )
            return FORBIDDEN

        return Allowed(writable_fields=capability.fields, doctor_id=doctor_id)

    async def _resolve_doctor_id(self, identity: Identity) -> int | None:
        try:
            with anyio.fail_after(self._lookup_timeout) as scope:
                doctor_id = await self._resolver.resolve_doctor_id(identity)
        except Exception as exc:
            # Fail closed; asyncio cancellation is a BaseException and still propagates.
            logger.warning("authz: ownership lookup failed user_id=%s error=%s", identity.id, type(exc).__name__)
            return None

        # A lookup running in a worker thread is not interrupted by the deadline; a late answer is discarded.
        if anyio.current_time() >= scope.deadline:
            logger.warning("authz: ownership lookup timed out user_id=%s", identity.id)
            return None
        return doctor_id

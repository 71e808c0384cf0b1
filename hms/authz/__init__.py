"""
Authorization core for the hospital API.

Decides, for one request, whether an Identity may perform an Operation on a
ResourceType (and, for doctor-scoped rows, whether it owns the row). Has no
FastAPI dependency; HTTP translation lives in hms.security.dependencies.
"""

from .core import Authorizer, OwnershipResolver
from .decision import FORBIDDEN, UNAUTHENTICATED, Allowed, AllowedWithFilter, Decision, DenialReason, Denied, RowFilter
from .ownership import RepositoryOwnershipResolver
from .rules import CAPABILITIES, Capability, Effect, capability_for
from .types import Identity, Operation, ResourceRef, ResourceType, Role

__all__ = [
    "FORBIDDEN",
    "UNAUTHENTICATED",
    "Allowed",
    "AllowedWithFilter",
    "Authorizer",
    "CAPABILITIES",
    "Capability",
    "Decision",
    "DenialReason",
    "Denied",
    "Effect",
    "Identity",
    "Operation",
    "OwnershipResolver",
    "RepositoryOwnershipResolver",
    "ResourceRef",
    "ResourceType",
    "Role",
    "RowFilter",
    "capability_for",
]

"""Outcomes returned by the authorization core."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union


class DenialReason(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class RowFilter:
    """Restrict doctor-scoped rows to those referencing `doctor_id`."""

    doctor_id: int


@dataclass(frozen=True)
class Denied:
    reason: DenialReason


@dataclass(frozen=True)
class Allowed:
    """
    The operation may proceed.

    writable_fields: when set, the only fields the caller may change.
    doctor_id: the caller's resolved doctor id, present whenever ownership was checked.
    """

    writable_fields: frozenset[str] | None = None
    doctor_id: int | None = None


@dataclass(frozen=True)
class AllowedWithFilter:
    """List reads allowed, but only over rows matching `filter`."""

    filter: RowFilter


Decision = Union[Denied, Allowed, AllowedWithFilter]

UNAUTHENTICATED = Denied(DenialReason.UNAUTHENTICATED)
FORBIDDEN = Denied(DenialReason.FORBIDDEN)

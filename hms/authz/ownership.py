"""Ownership link: which Doctor record belongs to a doctor Identity."""

from __future__ import annotations

import logging

from anyio import to_thread

from hms.repositories.base import DoctorRepository

from .types import Identity, Role

logger = logging.getLogger(__name__)


class RepositoryOwnershipResolver:
    """
    Resolve a doctor's record through the explicit `doctors.user_id` link.

    Names and emails are never matched: an account without a linked doctor
    row resolves to None, which the core turns into a denial.
    """

    def __init__(self, doctors: DoctorRepository) -> None:
        self._doctors = doctors

    async def resolve_doctor_id(self, identity: Identity) -> int | None:
        if identity.role is not Role.DOCTOR:
            return None
        doctor = await to_thread.run_sync(self._doctors.find_by_user_id, identity.id)
        if doctor is None:
            logger.debug("No doctor record linked to user_id=%s", identity.id)
            return None
        return doctor.id

from __future__ import annotations

from fastapi import HTTPException, status

from hms.repositories.base import Repository


def bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def ensure_exists(repo: Repository, id: int, label: str) -> None:
    """Reject a body that references a row which does not exist."""
    if repo.get(id) is None:
        raise bad_request(f"{label} {id} does not exist")

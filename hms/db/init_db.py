from __future__ import annotations

import logging

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from hms.authz.types import Role
from hms.db.base import Base
from hms.models import clinical as _clinical  # noqa: F401  (register tables)
from hms.models.users import User
from hms.repositories.orm import SqlAlchemyUserRepository
from hms.security.passwords import hash_password
from hms.settings import Settings

logger = logging.getLogger(__name__)


def init_db(engine: Engine, session_factory: sessionmaker[Session], settings: Settings) -> None:
    """
    Create tables and, on an empty credential store, the bootstrap admin.

    The admin is only created when both `HMS_BOOTSTRAP_ADMIN_EMAIL` and
    `HMS_BOOTSTRAP_ADMIN_PASSWORD` are set; otherwise nobody could register
    the first staff account.
    """

    Base.metadata.create_all(bind=engine)

    if not (settings.bootstrap_admin_email and settings.bootstrap_admin_password):
        return

    with session_factory() as db:
        users = SqlAlchemyUserRepository(db)
        if users.count() > 0:
            return
        users.add(
            User(
                name=settings.bootstrap_admin_name,
                email=settings.bootstrap_admin_email,
                password_hash=hash_password(settings.bootstrap_admin_password, rounds=settings.bcrypt_rounds),
                role=Role.ADMIN.value,
                is_active=True,
            )
        )
        logger.info("Bootstrap admin created email=%s", settings.bootstrap_admin_email)

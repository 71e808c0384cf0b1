from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import Session, with_loader_criteria

ROW_FILTER_KEY = "row_filter"


@event.listens_for(Session, "do_orm_execute")
def _apply_row_filter(execute_state) -> None:
    """
    Transparent doctor scoping.

    When the authorization core answers a list read with AllowedWithFilter, the
    filter is stored in `Session.info[ROW_FILTER_KEY]`; every later SELECT on
    that session only sees appointments and prescriptions of that doctor.
    """

    if not execute_state.is_select:
        return

    row_filter = execute_state.session.info.get(ROW_FILTER_KEY)
    if row_filter is None:
        return

    # Local import to avoid cycles.
    from hms.models.clinical import Appointment, Prescription

    doctor_id = row_filter.doctor_id
    execute_state.statement = execute_state.statement.options(
        with_loader_criteria(Appointment, lambda cls: cls.doctor_id == doctor_id, include_aliases=True),
        with_loader_criteria(Prescription, lambda cls: cls.doctor_id == doctor_id, include_aliases=True),
    )


def apply_row_filter(db: Session, row_filter) -> None:
    db.info[ROW_FILTER_KEY] = row_filter

"""Human-readable student and alumni identifiers.

An identifier looks like ``STU2024ELE0001``: a role prefix, a year, a
three-letter department code and a zero-padded sequence number. Sequence
numbers come from a per-role row in ``id_counters`` that is incremented and
read inside one short transaction, so concurrent registrations in separate
processes never receive the same number. The unique constraints on
``users.student_id`` and ``users.alumni_id`` back this up; callers retry with
a fresh sequence when an insert still collides.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.core.errors import ServiceUnavailableError
from backend.models.id_counter import IdCounter
from backend.models.user import ALUMNI_ROLE, STUDENT_ROLE, User

logger = logging.getLogger(__name__)

ID_PREFIXES = {
    STUDENT_ROLE: 'STU',
    ALUMNI_ROLE: 'ALU',
}
ID_FIELDS = {
    STUDENT_ROLE: 'student_id',
    ALUMNI_ROLE: 'alumni_id',
}
DEPARTMENT_CODE_LENGTH = 3
DEPARTMENT_CODE_FILLER = 'X'
SEQUENCE_WIDTH = 4


def department_code(department: str) -> str:
    letters = ''.join(character for character in department if character.isalnum())
    return letters[:DEPARTMENT_CODE_LENGTH].upper().ljust(DEPARTMENT_CODE_LENGTH, DEPARTMENT_CODE_FILLER)


def year_component(role: str, graduation_year: int, now: datetime) -> int:
    # Students are keyed by enrollment year, alumni by their class.
    if role == STUDENT_ROLE:
        return now.year
    return graduation_year


def format_identifier(role: str, year: int, department: str, sequence: int) -> str:
    prefix = ID_PREFIXES[role]
    return f'{prefix}{year}{department_code(department)}{sequence:0{SEQUENCE_WIDTH}d}'


def next_sequence(db: Session, role: str) -> int:
    """Atomically take the next sequence number for ``role`` and commit it.

    The first call for a role seeds the counter from the number of existing
    users with that role. Numbers consumed by registrations that later fail
    are not reused.
    """
    for _ in range(2):
        result = db.execute(
            update(IdCounter)
            .where(IdCounter.name == role)
            .values(value=IdCounter.value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            sequence = db.execute(select(IdCounter.value).where(IdCounter.name == role)).scalar_one()
            db.commit()
            return sequence

        db.rollback()
        existing = db.execute(select(func.count(User.id)).where(User.role == role)).scalar_one()
        db.add(IdCounter(name=role, value=existing + 1))
        try:
            db.commit()
        except IntegrityError:
            # Another request seeded the counter first; increment theirs.
            db.rollback()
            continue
        logger.info('Seeded %s identifier counter at %s.', role, existing + 1)
        return existing + 1

    raise ServiceUnavailableError('Identifier counter could not be initialized.')


def assign_identifier(
    db: Session,
    user: User,
    now: datetime,
    pending: dict[str, Any] | None = None,
) -> str | None:
    """Give ``user`` its role identifier unless it already has one.

    Admins have no identifier. An identifier that is already set is returned
    as is, so saving an existing record again never changes it. ``pending``
    holds field values about to be written to ``user``; the year and
    department are taken from it when present.
    """
    field = ID_FIELDS.get(user.role)
    if field is None:
        return None

    current = getattr(user, field)
    if current:
        return current

    pending = pending or {}
    graduation_year = pending.get('graduation_year', user.graduation_year)
    department = pending.get('department', user.department)

    year = year_component(user.role, graduation_year, now)
    identifier = format_identifier(user.role, year, department, next_sequence(db, user.role))
    setattr(user, field, identifier)
    return identifier

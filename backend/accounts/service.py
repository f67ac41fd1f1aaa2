"""Account operations: registration, login and profile updates.

Route handlers call these with a request-scoped session. Every failure is
raised as an AccountError subclass; store failures that are not uniqueness
conflicts come out as ServiceUnavailableError.
"""

import logging
import re
from contextlib import contextmanager
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.accounts.identifiers import ID_FIELDS, assign_identifier
from backend.accounts.validation import (
    normalize_fields,
    password_errors,
    role_field_errors,
    validate_registration,
)
from backend.auth.passwords import hash_password, verify_password
from backend.core import config
from backend.core.errors import (
    AuthenticationError,
    DuplicateKeyConflict,
    IdentifierConflictError,
    RegistrationValidationError,
    ServiceUnavailableError,
    UserNotFoundError,
)
from backend.models.user import ADMIN_ROLE, ALUMNI_ROLE, STUDENT_ROLE, User, utcnow

logger = logging.getLogger(__name__)

SELF_REGISTRATION_ROLES = (STUDENT_ROLE, ALUMNI_ROLE)

PRIVATE_FIELDS = frozenset({'hashed_password'})

UPDATABLE_FIELDS = frozenset({
    'first_name',
    'last_name',
    'graduation_year',
    'department',
    'current_position',
    'company',
    'current_year',
    'roll_number',
    'bio',
    'linkedin',
    'phone',
    'location',
    'profile_picture',
})
NON_EMPTY_FIELDS = frozenset({'first_name', 'last_name', 'graduation_year', 'department'})

UNIQUE_COLUMNS = ('student_id', 'alumni_id', 'email')

# Where each driver names the violated column or index. Values only appear
# after these tokens, so the first match is the real one.
CONSTRAINT_PATTERNS = (
    re.compile(r'unique constraint failed: users\.(\w+)'),  # sqlite
    re.compile(r'key \((\w+)\)='),  # postgresql
    re.compile(r"for key '(?:\w+\.)?(\w+)'"),  # mysql
)


def to_safe_user(user: User) -> dict[str, Any]:
    """Every column of ``user`` except the password hash."""
    return {
        column.name: getattr(user, column.name)
        for column in User.__table__.columns
        if column.name not in PRIVATE_FIELDS
    }


def _column_for(name: str) -> str | None:
    for column in UNIQUE_COLUMNS:
        if column in name:
            return column
    return None


def conflicting_field(exc: IntegrityError) -> str | None:
    """The unique column ``exc`` was raised for, read from the constraint name."""
    diag = getattr(exc.orig, 'diag', None)
    constraint_name = getattr(diag, 'constraint_name', None)
    if constraint_name:
        return _column_for(constraint_name.lower())

    message = str(exc.orig).lower()
    for pattern in CONSTRAINT_PATTERNS:
        match = pattern.search(message)
        if match:
            return _column_for(match.group(1))
    return None


def touch(user: User, now: datetime) -> None:
    """Advance ``updated_at`` past its previous value."""
    previous = user.updated_at
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    user.updated_at = now


@lru_cache(maxsize=1)
def _placeholder_hash() -> str:
    return hash_password('placeholder-password-for-unknown-accounts')


@contextmanager
def _storage_errors(db: Session):
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database operation failed.')
        raise ServiceUnavailableError() from exc


def get_user(db: Session, user_id: int) -> User:
    with _storage_errors(db):
        user = db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def _create_user(db: Session, fields: dict[str, Any]) -> User:
    fields = dict(fields)
    password = fields.pop('password')
    role = fields['role']
    id_field = ID_FIELDS.get(role)

    with _storage_errors(db):
        if db.query(User.id).filter(User.email == fields['email']).first() is not None:
            raise DuplicateKeyConflict('email')

        hashed_password = hash_password(password)

        for attempt in range(1, config.ID_ISSUE_MAX_ATTEMPTS + 1):
            now = utcnow()
            user = User(
                **fields,
                hashed_password=hashed_password,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            assign_identifier(db, user, now)
            db.add(user)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                conflict = conflicting_field(exc)
                if conflict == 'email':
                    raise DuplicateKeyConflict('email') from exc
                if id_field is None or conflict != id_field:
                    raise
                logger.warning(
                    'Identifier %s already taken (attempt %s of %s).',
                    getattr(user, id_field),
                    attempt,
                    config.ID_ISSUE_MAX_ATTEMPTS,
                )
                continue

            db.refresh(user)
            logger.info('Registered %s account %s.', role, user.id)
            return user

    raise IdentifierConflictError(id_field, config.ID_ISSUE_MAX_ATTEMPTS)


def register(db: Session, role: str, fields: dict[str, Any]) -> User:
    """Create a student or alumni account with its generated identifier."""
    normalized = validate_registration(role, fields, allowed_roles=SELF_REGISTRATION_ROLES)
    return _create_user(db, normalized)


def provision_admin(db: Session, fields: dict[str, Any]) -> User:
    """Create an admin account. Used by operator tooling, never by the public API."""
    normalized = validate_registration(ADMIN_ROLE, fields, allowed_roles=(ADMIN_ROLE,))
    return _create_user(db, normalized)


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the active user for these credentials and record the login.

    Unknown accounts, wrong passwords and deactivated accounts all raise the
    same AuthenticationError; only the log says which one it was.
    """
    normalized_email = (email or '').strip().lower()

    with _storage_errors(db):
        user = db.query(User).filter(User.email == normalized_email).first()

        if user is None:
            # Spend the same hashing time as a real check.
            verify_password(password, _placeholder_hash())
            logger.warning('Login rejected: no account for %s.', normalized_email)
            raise AuthenticationError()

        if not verify_password(password, user.hashed_password):
            logger.warning('Login rejected: password mismatch for user %s.', user.id)
            raise AuthenticationError()

        if not user.is_active:
            logger.warning('Login rejected: user %s is deactivated.', user.id)
            raise AuthenticationError()

        now = utcnow()
        user.last_login = now
        touch(user, now)
        db.commit()
        db.refresh(user)

    return user


def update_profile(
    db: Session,
    user_id: int,
    changes: dict[str, Any],
    password_changed: bool = False,
) -> User:
    """Apply a partial profile update.

    Role, email and the generated identifiers cannot change here. The password
    is only re-hashed when ``password_changed`` is set; a ``password`` key
    without the flag is ignored.
    """
    changes = dict(changes)
    new_password = changes.pop('password', None)

    errors = [
        {'field': name, 'message': f'{name} cannot be changed.'}
        for name in sorted(set(changes) - UPDATABLE_FIELDS)
    ]
    normalized, field_errors = normalize_fields({
        name: value for name, value in changes.items() if name in UPDATABLE_FIELDS
    })
    errors.extend(field_errors)
    reported = {error['field'] for error in errors}

    for name in sorted(NON_EMPTY_FIELDS & set(normalized)):
        if normalized[name] is None and name not in reported:
            errors.append({'field': name, 'message': f'{name} cannot be empty.'})
            reported.add(name)

    if password_changed:
        errors.extend(password_errors(new_password))

    user = get_user(db, user_id)

    merged = {name: getattr(user, name) for name in UPDATABLE_FIELDS}
    merged.update(normalized)
    errors.extend(
        error
        for error in role_field_errors(user.role, merged)
        if error['field'] in normalized and error['field'] not in reported
    )

    if errors:
        raise RegistrationValidationError(errors)

    hashed_password = hash_password(new_password) if password_changed else None

    with _storage_errors(db):
        now = utcnow()
        # Issued before the changes are applied; taking a sequence commits.
        assign_identifier(db, user, now, pending=normalized)

        for name, value in normalized.items():
            setattr(user, name, value)
        if hashed_password is not None:
            user.hashed_password = hashed_password
        touch(user, now)

        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            conflict = conflicting_field(exc)
            if conflict is None:
                raise
            raise DuplicateKeyConflict(conflict) from exc
        db.refresh(user)

    logger.info('Updated profile for user %s.', user.id)
    return user

"""Role-conditional field validation for user accounts.

Nothing here touches the store: it normalizes a candidate field set and reports every
violated field at once, before any hashing or identifier work happens.
"""

from datetime import date
from typing import Any, Callable

from backend.auth.passwords import BCRYPT_MAX_BYTES, exceeds_bcrypt_limit
from backend.core import config
from backend.core.errors import RegistrationValidationError
from backend.models.user import ADMIN_ROLE, ALUMNI_ROLE, ROLES, STUDENT_ROLE

MIN_CURRENT_YEAR = 1
MAX_CURRENT_YEAR = 6

STRING_FIELDS = (
    'first_name',
    'last_name',
    'email',
    'department',
    'current_position',
    'company',
    'roll_number',
    'bio',
    'linkedin',
    'phone',
    'location',
    'profile_picture',
)
INTEGER_FIELDS = ('graduation_year', 'current_year')
COMMON_REQUIRED_FIELDS = ('first_name', 'last_name', 'email', 'department', 'graduation_year')

FIELD_LABELS = {
    'first_name': 'First name',
    'last_name': 'Last name',
    'email': 'Email',
    'department': 'Department',
    'graduation_year': 'Graduation year',
    'current_position': 'Current position',
    'company': 'Company',
    'current_year': 'Current year',
    'roll_number': 'Roll number',
}


def _error(field: str, message: str) -> dict[str, str]:
    return {'field': field, 'message': message}


def _required(field: str) -> dict[str, str]:
    return _error(field, f'{FIELD_LABELS.get(field, field)} is required.')


def _range_error(name: str, value: int) -> dict[str, str] | None:
    if name == 'current_year':
        low, high = MIN_CURRENT_YEAR, MAX_CURRENT_YEAR
    else:
        low, high = config.MIN_GRADUATION_YEAR, date.today().year + config.GRADUATION_YEAR_LOOKAHEAD
    if low <= value <= high:
        return None
    return _error(name, f'{FIELD_LABELS[name]} must be between {low} and {high}.')


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        raise ValueError('not an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError('not an integer')
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        return int(stripped)
    raise ValueError('not an integer')


def normalize_fields(fields: dict[str, Any]) -> tuple[dict[str, Any], list[dict[str, str]]]:
    """Trim strings, lowercase the email and coerce year fields to integers.

    Blank strings become None. Years outside their allowed range are
    reported instead of kept. Keys outside the known string and integer
    fields (the password, for one) pass through untouched.
    """
    normalized: dict[str, Any] = {}
    errors: list[dict[str, str]] = []

    for name, value in fields.items():
        if name in STRING_FIELDS:
            if value is None:
                normalized[name] = None
            elif isinstance(value, str):
                normalized[name] = value.strip() or None
            else:
                errors.append(_error(name, f'{FIELD_LABELS.get(name, name)} must be text.'))
        elif name in INTEGER_FIELDS:
            if value is None:
                normalized[name] = None
                continue
            try:
                number = _coerce_int(value)
            except ValueError:
                errors.append(_error(name, f'{FIELD_LABELS[name]} must be a whole number.'))
                continue
            range_error = None if number is None else _range_error(name, number)
            if range_error is not None:
                errors.append(range_error)
            else:
                normalized[name] = number
        else:
            normalized[name] = value

    if normalized.get('email'):
        normalized['email'] = normalized['email'].lower()

    return normalized, errors


def _student_errors(fields: dict[str, Any]) -> list[dict[str, str]]:
    errors = []
    if fields.get('current_year') is None:
        errors.append(_required('current_year'))
    if not fields.get('roll_number'):
        errors.append(_required('roll_number'))
    return errors


def _alumni_errors(fields: dict[str, Any]) -> list[dict[str, str]]:
    return [_required(name) for name in ('current_position', 'company') if not fields.get(name)]


def _admin_errors(fields: dict[str, Any]) -> list[dict[str, str]]:
    return []


ROLE_RULES: dict[str, Callable[[dict[str, Any]], list[dict[str, str]]]] = {
    STUDENT_ROLE: _student_errors,
    ALUMNI_ROLE: _alumni_errors,
    ADMIN_ROLE: _admin_errors,
}


def role_field_errors(role: str, fields: dict[str, Any]) -> list[dict[str, str]]:
    """Violations of the required fields for ``role`` in an already normalized field set."""
    rule = ROLE_RULES.get(role)
    if rule is None:
        return [_error('role', f"Role must be one of: {', '.join(ROLES)}.")]
    return rule(fields)


def password_errors(password: Any) -> list[dict[str, str]]:
    if not isinstance(password, str) or not password:
        return [_error('password', 'Password is required.')]
    if len(password) < config.MIN_PASSWORD_LENGTH:
        return [_error('password', f'Password must be at least {config.MIN_PASSWORD_LENGTH} characters.')]
    if exceeds_bcrypt_limit(password):
        return [_error('password', f'Password must be at most {BCRYPT_MAX_BYTES} bytes.')]
    return []


def validate_registration(
    role: str,
    fields: dict[str, Any],
    allowed_roles: tuple[str, ...] = ROLES,
) -> dict[str, Any]:
    """Return the normalized field set for a new ``role`` account.

    Raises RegistrationValidationError listing every violated field.
    """
    normalized, errors = normalize_fields(fields)
    reported = {error['field'] for error in errors}

    for name in COMMON_REQUIRED_FIELDS:
        if name not in reported and normalized.get(name) is None:
            errors.append(_required(name))
            reported.add(name)

    errors.extend(password_errors(fields.get('password')))

    if role in ROLES and role not in allowed_roles:
        errors.append(_error('role', f"Only {' or '.join(allowed_roles)} accounts can be registered here."))
    else:
        errors.extend(error for error in role_field_errors(role, normalized) if error['field'] not in reported)

    if errors:
        raise RegistrationValidationError(errors)

    normalized['role'] = role
    return normalized

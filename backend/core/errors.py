"""Account error taxonomy.

Core account operations raise these; the route layer turns them into HTTP
responses with ``status_code`` and ``to_dict()``.
"""

from typing import Any


class AccountError(Exception):
    """Base class for identity and credential failures."""

    status_code = 400

    def __init__(self, message: str, code: str = 'ACCOUNT_ERROR', details: dict[str, Any] | None = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            'code': self.code,
            'message': self.message,
            'details': self.details,
        }


class RegistrationValidationError(AccountError):
    """One or more field invariants were violated. Every violation is listed."""

    status_code = 422

    def __init__(self, errors: list[dict[str, str]]):
        self.errors = errors
        fields = ', '.join(error['field'] for error in errors)
        super().__init__(f'Invalid fields: {fields}', code='VALIDATION_FAILED', details={'errors': errors})


class DuplicateKeyConflict(AccountError):
    status_code = 409

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(
            message or f'A user with this {field} already exists.',
            code='DUPLICATE_KEY',
            details={'field': field},
        )


class IdentifierConflictError(DuplicateKeyConflict):
    """No unique identifier could be issued within the retry budget."""

    def __init__(self, field: str, attempts: int):
        self.attempts = attempts
        super().__init__(field, f'Could not issue a unique {field} after {attempts} attempts.')


class CredentialError(AccountError):
    """The password hashing primitive failed."""

    status_code = 500

    def __init__(self, message: str = 'Password could not be processed.'):
        super().__init__(message, code='CREDENTIAL_FAILURE')


class AuthenticationError(AccountError):
    status_code = 401

    def __init__(self):
        # Same message for unknown accounts and bad passwords.
        super().__init__('Invalid credentials', code='INVALID_CREDENTIALS')


class UserNotFoundError(AccountError):
    status_code = 404

    def __init__(self, user_id: int):
        super().__init__('User not found.', code='USER_NOT_FOUND', details={'user_id': user_id})


class ServiceUnavailableError(AccountError):
    status_code = 503

    def __init__(self, message: str = 'Database unavailable. Verify DATABASE_URL and database credentials.'):
        super().__init__(message, code='SERVICE_UNAVAILABLE')

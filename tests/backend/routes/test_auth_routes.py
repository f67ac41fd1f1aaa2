import asyncio
import json
from datetime import datetime

import pytest
from pydantic import ValidationError

from backend.auth import jwt_handler
from backend.core.errors import AuthenticationError, DuplicateKeyConflict, RegistrationValidationError
from backend.main import account_error_handler
from backend.models.user import User
from backend.routes.auth_routes import (
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    get_profile,
    login,
    register,
    update_profile,
)


def _register_payload(**overrides) -> dict:
    payload = {
        'firstName': 'Marcus',
        'lastName': 'Hale',
        'email': ' Marcus@Example.com ',
        'password': 'secret123',
        'role': 'alumni',
        'graduationYear': 2020,
        'department': 'Computer Science',
        'currentPosition': 'Software Engineer',
        'company': 'Initech',
    }
    payload.update(overrides)
    return payload


def test_register_request_accepts_camel_case_and_normalizes() -> None:
    request = RegisterRequest(**_register_payload(role=' Alumni '))

    assert request.email == 'marcus@example.com'
    assert request.role == 'alumni'
    assert request.current_position == 'Software Engineer'


@pytest.mark.parametrize(
    'overrides',
    [
        {'email': 'not-an-email'},
        {'password': '12345'},
        {'role': 'faculty'},
        {'graduationYear': 1850},
        {'password': 'a' * 73},
        {'currentYear': 10**20},
        {'currentYear': 0},
    ],
)
def test_register_request_rejects_malformed_input(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        RegisterRequest(**_register_payload(**overrides))


def test_register_returns_token_and_safe_user(account_db, frozen_clock) -> None:
    frozen_clock(datetime(2024, 6, 1))

    response = register(data=RegisterRequest(**_register_payload()), db=account_db)
    body = response.model_dump(by_alias=True)

    assert body['user']['alumniId'] == 'ALU2020COM0001'
    assert body['user']['studentId'] is None
    assert body['user']['email'] == 'marcus@example.com'
    assert 'password' not in json.dumps(body['user'], default=str).lower()
    assert jwt_handler.decode_access_token(response.token)['sub'] == str(body['user']['id'])


def test_register_missing_company_reports_company(account_db) -> None:
    payload = _register_payload()
    del payload['company']

    with pytest.raises(RegistrationValidationError) as exception_info:
        register(data=RegisterRequest(**payload), db=account_db)

    assert [error['field'] for error in exception_info.value.errors] == ['company']


def test_register_duplicate_email(account_db) -> None:
    register(data=RegisterRequest(**_register_payload()), db=account_db)

    with pytest.raises(DuplicateKeyConflict):
        register(data=RegisterRequest(**_register_payload(email='MARCUS@example.com')), db=account_db)


def test_login_returns_token(account_db) -> None:
    register(data=RegisterRequest(**_register_payload()), db=account_db)

    response = login(data=LoginRequest(email='marcus@example.com', password='secret123'), db=account_db)

    assert response.user.last_login is not None
    assert jwt_handler.decode_access_token(response.token)['role'] == 'alumni'


def test_login_wrong_password_is_generic(account_db) -> None:
    register(data=RegisterRequest(**_register_payload()), db=account_db)

    with pytest.raises(AuthenticationError) as exception_info:
        login(data=LoginRequest(email='marcus@example.com', password='wrong-password'), db=account_db)

    error_response = asyncio.run(account_error_handler(None, exception_info.value))

    assert error_response.status_code == 401
    assert json.loads(error_response.body) == {'code': 'INVALID_CREDENTIALS', 'message': 'Invalid credentials'}


def test_validation_errors_are_listed_in_response() -> None:
    errors = [
        {'field': 'current_year', 'message': 'Current year is required.'},
        {'field': 'roll_number', 'message': 'Roll number is required.'},
    ]

    error_response = asyncio.run(account_error_handler(None, RegistrationValidationError(errors)))

    assert error_response.status_code == 422
    assert json.loads(error_response.body)['errors'] == errors


def test_get_profile_returns_safe_user(account_db) -> None:
    response = register(data=RegisterRequest(**_register_payload()), db=account_db)
    current_user = account_db.get(User, response.user.id)

    profile = get_profile(current_user=current_user)

    assert profile.user.alumni_id == 'ALU2020COM0001'
    assert 'hashed_password' not in profile.model_dump()['user']


def test_profile_update_request_tracks_password_intent() -> None:
    assert ProfileUpdateRequest(bio='hi').password_changed is False
    assert ProfileUpdateRequest(password=None).password_changed is False
    assert ProfileUpdateRequest(password='new-secret').password_changed is True


def test_profile_update_request_forbids_identity_fields() -> None:
    with pytest.raises(ValidationError):
        ProfileUpdateRequest(role='admin')
    with pytest.raises(ValidationError):
        ProfileUpdateRequest(alumniId='ALU1999XXX0001')


def test_profile_update_request_checks_current_year() -> None:
    assert ProfileUpdateRequest(currentYear=6).current_year == 6
    with pytest.raises(ValidationError):
        ProfileUpdateRequest(currentYear=10**20)


def test_update_profile_changes_password_and_keeps_identifier(account_db) -> None:
    registered = register(data=RegisterRequest(**_register_payload()), db=account_db)
    current_user = account_db.get(User, registered.user.id)
    previous_updated_at = registered.user.updated_at

    response = update_profile(
        data=ProfileUpdateRequest(company='Globex', password='brand-new-secret'),
        current_user=current_user,
        db=account_db,
    )

    assert response.user.company == 'Globex'
    assert response.user.alumni_id == 'ALU2020COM0001'
    assert response.user.updated_at > previous_updated_at
    login(data=LoginRequest(email='marcus@example.com', password='brand-new-secret'), db=account_db)

from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from backend.accounts import service
from backend.accounts.validation import MAX_CURRENT_YEAR, MIN_CURRENT_YEAR
from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_user
from backend.auth.passwords import BCRYPT_MAX_BYTES, exceeds_bcrypt_limit
from backend.core import config
from backend.database import get_db
from backend.models.user import ROLES, User

router = APIRouter(tags=['auth'])


def _normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    local_part, _, domain = normalized.partition('@')
    if not local_part or '.' not in domain or ' ' in normalized:
        raise ValueError('Valid email is required.')
    return normalized


def _check_graduation_year(value: int | None) -> int | None:
    if value is None:
        return None
    latest = date.today().year + config.GRADUATION_YEAR_LOOKAHEAD
    if not config.MIN_GRADUATION_YEAR <= value <= latest:
        raise ValueError('Valid graduation year is required.')
    return value


def _check_current_year(value: int | None) -> int | None:
    if value is None:
        return None
    if not MIN_CURRENT_YEAR <= value <= MAX_CURRENT_YEAR:
        raise ValueError(f'Current year must be between {MIN_CURRENT_YEAR} and {MAX_CURRENT_YEAR}.')
    return value


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class RegisterRequest(CamelModel):
    first_name: str
    last_name: str
    email: str
    password: str
    role: str = 'student'
    graduation_year: int
    department: str
    current_position: str | None = None
    company: str | None = None
    current_year: int | None = None
    roll_number: str | None = None
    bio: str | None = None
    linkedin: str | None = None
    phone: str | None = None
    location: str | None = None
    profile_picture: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < config.MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {config.MIN_PASSWORD_LENGTH} characters.')
        if exceeds_bcrypt_limit(value):
            raise ValueError(f'Password must be at most {BCRYPT_MAX_BYTES} bytes.')
        return value

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in ROLES:
            raise ValueError('Invalid role.')
        return normalized

    @field_validator('graduation_year')
    @classmethod
    def validate_graduation_year(cls, value: int) -> int:
        return _check_graduation_year(value)

    @field_validator('current_year')
    @classmethod
    def validate_current_year(cls, value: int | None) -> int | None:
        return _check_current_year(value)


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return value.strip().lower()


class ProfileUpdateRequest(CamelModel):
    first_name: str | None = None
    last_name: str | None = None
    graduation_year: int | None = None
    department: str | None = None
    current_position: str | None = None
    company: str | None = None
    current_year: int | None = None
    roll_number: str | None = None
    bio: str | None = None
    linkedin: str | None = None
    phone: str | None = None
    location: str | None = None
    profile_picture: str | None = None
    password: str | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = 'forbid'

    @field_validator('graduation_year')
    @classmethod
    def validate_graduation_year(cls, value: int | None) -> int | None:
        return _check_graduation_year(value)

    @field_validator('current_year')
    @classmethod
    def validate_current_year(cls, value: int | None) -> int | None:
        return _check_current_year(value)

    @property
    def password_changed(self) -> bool:
        return 'password' in self.model_fields_set and self.password is not None


class UserResponse(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    student_id: str | None = None
    alumni_id: str | None = None
    graduation_year: int
    department: str
    current_position: str | None = None
    company: str | None = None
    current_year: int | None = None
    roll_number: str | None = None
    bio: str | None = None
    linkedin: str | None = None
    phone: str | None = None
    location: str | None = None
    profile_picture: str | None = None
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


class ProfileResponse(CamelModel):
    user: UserResponse


def build_auth_response(user: User) -> AuthResponse:
    safe_user = service.to_safe_user(user)
    return AuthResponse(
        token=jwt_handler.create_access_token(safe_user),
        user=UserResponse.model_validate(safe_user),
    )


@router.post('/register', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    fields = data.model_dump(exclude={'role'})
    user = service.register(db, data.role, fields)
    return build_auth_response(user)


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = service.authenticate(db, data.email, data.password)
    return build_auth_response(user)


@router.get('/profile', response_model=ProfileResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return ProfileResponse(user=UserResponse.model_validate(service.to_safe_user(current_user)))


@router.put('/profile', response_model=ProfileResponse)
def update_profile(
    data: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    user = service.update_profile(db, current_user.id, changes, password_changed=data.password_changed)
    return ProfileResponse(user=UserResponse.model_validate(service.to_safe_user(user)))

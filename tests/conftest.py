import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('BCRYPT_ROUNDS', '4')

from backend.core import config  # noqa: E402
from backend.database import Base  # noqa: E402
from backend.models.id_counter import IdCounter  # noqa: E402
from backend.models.user import User  # noqa: E402

ACCOUNT_TABLES = [User.__table__, IdCounter.__table__]


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'BCRYPT_ROUNDS', 4)


@pytest.fixture
def account_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=ACCOUNT_TABLES)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=ACCOUNT_TABLES)
        engine.dispose()


@pytest.fixture
def account_session_factory(account_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=account_engine)


@pytest.fixture
def account_db(account_session_factory):
    db = account_session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def frozen_clock(monkeypatch: pytest.MonkeyPatch):
    def freeze(moment: datetime) -> datetime:
        monkeypatch.setattr('backend.accounts.service.utcnow', lambda: moment)
        return moment

    return freeze


def student_fields(**overrides) -> dict:
    fields = {
        'first_name': 'Priya',
        'last_name': 'Raman',
        'email': 'priya@example.edu',
        'password': 'secret123',
        'graduation_year': 2027,
        'department': 'Electrical Engineering',
        'current_year': 2,
        'roll_number': 'EE-2207',
    }
    fields.update(overrides)
    return fields


def alumni_fields(**overrides) -> dict:
    fields = {
        'first_name': 'Marcus',
        'last_name': 'Hale',
        'email': 'marcus@example.com',
        'password': 'secret123',
        'graduation_year': 2020,
        'department': 'Computer Science',
        'current_position': 'Software Engineer',
        'company': 'Initech',
    }
    fields.update(overrides)
    return fields


def make_user(**overrides) -> User:
    """A user row inserted directly, bypassing registration."""
    fields = {
        'first_name': 'Legacy',
        'last_name': 'User',
        'hashed_password': 'not-a-real-hash',
        'role': 'alumni',
        'graduation_year': 2015,
        'department': 'Mechanical',
        'current_position': 'Engineer',
        'company': 'Acme',
    }
    fields.update(overrides)
    return User(**fields)


@pytest.fixture
def account_fields():
    return {'student': student_fields, 'alumni': alumni_fields, 'user': make_user}

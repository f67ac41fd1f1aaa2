"""User model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String
from backend.database import Base

STUDENT_ROLE = 'student'
ALUMNI_ROLE = 'alumni'
ADMIN_ROLE = 'admin'
ROLES = (STUDENT_ROLE, ALUMNI_ROLE, ADMIN_ROLE)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form the columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """Represents a student, alumni or admin account."""
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('student', 'alumni', 'admin')", name='ck_users_role'),
    )

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=STUDENT_ROLE)

    # NULLs are exempt from UNIQUE, so only populated identifiers must differ.
    student_id = Column(String, unique=True)
    alumni_id = Column(String, unique=True)

    graduation_year = Column(Integer, nullable=False)
    department = Column(String, nullable=False)

    current_position = Column(String)
    company = Column(String)

    current_year = Column(Integer)
    roll_number = Column(String)

    bio = Column(String)
    linkedin = Column(String)
    phone = Column(String)
    location = Column(String)
    profile_picture = Column(String)

    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

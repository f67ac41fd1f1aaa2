"""Identifier counter model definitions."""

from sqlalchemy import Column, Integer, String
from backend.database import Base


class IdCounter(Base):
    """Last sequence number issued for a role's identifiers."""
    __tablename__ = "id_counters"

    name = Column(String, primary_key=True)
    value = Column(Integer, nullable=False, default=0)

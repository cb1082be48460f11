from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from ..database import Base


class User(Base):
    """Local mirror of a user issued by the hosted auth provider."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(100))
    base_currency = Column(String(3), nullable=False, default="JPY")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

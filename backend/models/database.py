"""
Database Models - SQLAlchemy ORM Models

Defines the schema touched by the maintenance tooling:
- Login (user accounts with a unique phone number)
"""

from sqlalchemy import Column, Integer, String, DateTime, Index
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()


# ===== Models =====

class Login(Base):
    """
    Login model - MedHome user accounts

    `number` holds the phone number as text. It must be unique, which the
    named index `number` enforces once the data has been repaired.
    """
    __tablename__ = "login"
    __table_args__ = (
        Index("number", "number", unique=True),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    number = Column(String(20), nullable=False)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Login(id={self.id}, email={self.email}, number={self.number})>"

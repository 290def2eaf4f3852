"""
SQLAlchemy ORM models for database tables.
Uses SQLAlchemy 2.0+ async style.

Ownership is a many-to-many relation (user_thermostats) so that a thermostat
can be shared between users. Sensors hang off exactly one thermostat.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class User(Base):
    """
    Account that can log in and own thermostats.
    password_hash is a bcrypt hash and never leaves the service layer.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )


class Token(Base):
    """
    Issued login tokens.
    A user may hold several at once; rows are never deleted, they simply expire.
    """
    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    token: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Thermostat(Base):
    """
    A thermostat registered by a user.
    device_id is the identifier used by the Nest web UI.
    """
    __tablename__ = "thermostat"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    device_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )


class Sensor(Base):
    """
    Remote temperature sensor attached to one thermostat.
    device_id is the sensor identifier used by the Nest web UI.
    """
    __tablename__ = "sensors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    device_id: Mapped[str] = mapped_column(String(255), nullable=False)
    thermostat_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("thermostat.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )


class UserThermostat(Base):
    """
    Junction table: user may view and manage thermostat.
    """
    __tablename__ = "user_thermostats"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    thermostat_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("thermostat.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now()
    )

import datetime as dt
import uuid
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, UniqueConstraint


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    # SQLite hands timezone columns back naive; they were stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


class System(SQLModel, table=True):
    __tablename__ = "systems"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    description: str = ""


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    created_at: dt.datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class AuthToken(SQLModel, table=True):
    __tablename__ = "auth_tokens"

    token: str = Field(primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    expires_at: dt.datetime = Field(sa_type=DateTime(timezone=True), index=True)
    revoked_at: Optional[dt.datetime] = Field(default=None, sa_type=DateTime(timezone=True))


class Reservation(SQLModel, table=True):
    __tablename__ = "reservations"
    __table_args__ = (
        # CRITICAL: Database-level protection against double booking
        UniqueConstraint("system_id", "date", "time_slot", name="unique_reservation_slot"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    system_id: str = Field(foreign_key="systems.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    date: dt.date = Field(index=True)
    time_slot: int  # 0 .. 11, see slots.SLOT_COUNT

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from slots import SLOT_COUNT


# Pydantic Schemas for Request/Response, shared by the API and the client
class Credentials(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6, max_length=128)


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    user_id: str
    email: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    expires_at: dt.datetime


class SystemRead(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    name: str
    description: str = ""


class ReservationCreate(BaseModel):
    system_id: str
    date: dt.date
    time_slot: int = Field(ge=0, lt=SLOT_COUNT)


class ReservationRead(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    system_id: str
    user_id: str
    date: dt.date
    time_slot: int


class SlotStatus(BaseModel):
    time_label: str
    time_slot: int
    status: str  # available | reserved | taken
    reservation_id: Optional[str] = None


class SystemSchedule(BaseModel):
    system: SystemRead
    schedule: List[SlotStatus]

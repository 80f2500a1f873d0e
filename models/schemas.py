from datetime import datetime
from typing import Any, Dict
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator


class SignupPayload(BaseModel):
    email: str
    password: str


class LoginPayload(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str


class CreateFormPayload(BaseModel):
    name: str


class FormOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    secret: str
    created_at: datetime
    updated_at: datetime


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    form_id: UUID
    data: Dict[str, Any]
    ip_address: str
    created_at: datetime

    @field_validator("ip_address", mode="before")
    @classmethod
    def ip_as_text(cls, v):
        # INET columns come back as ipaddress objects under asyncpg
        return str(v)

"""Pydantic schemas for admin account registration and approval."""

from datetime import datetime

from pydantic import BaseModel


class AdminRegister(BaseModel):
    name: str
    email: str


class AdminOut(BaseModel):
    id: str
    name: str
    email: str
    role: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AdminStatusUpdate(BaseModel):
    status: str  # approved | rejected

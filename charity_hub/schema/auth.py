from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional
from uuid import UUID
from datetime import datetime


class RegisterUser(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    # Staff accounts are provisioned by administrators
    role: Literal["student", "donor"] = "student"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: UUID
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    verified: bool
    role: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True

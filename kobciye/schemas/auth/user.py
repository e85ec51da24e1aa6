import uuid
from typing import Annotated

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    email: EmailStr
    password: Annotated[str, Field(min_length=6, max_length=72)]
    full_name: str | None = None
    phone: str | None = None


class LoginUser(BaseModel):
    email: EmailStr
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: uuid.UUID


class UserOut(BaseModel):
    id: uuid.UUID
    email: EmailStr

    class Config:
        from_attributes = True


class ChangePassword(BaseModel):
    current_password: str
    new_password: Annotated[str, Field(min_length=6, max_length=72)]

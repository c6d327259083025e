from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import List, Optional
from app.models.user import Role
from app.schemas.article import Pagination


class UserBase(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UserRegister(UserBase):
    password: str = Field(min_length=6, max_length=72)


class UserCreate(UserRegister):
    role: Role = Role.USER


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=72)


class UserRoleUpdate(BaseModel):
    role: Role


class User(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    message: str
    user: User


class SessionInfo(BaseModel):
    authenticated: bool
    user: Optional[User] = None


class UserList(BaseModel):
    users: List[User]
    pagination: Pagination

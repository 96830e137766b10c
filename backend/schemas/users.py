from pydantic import BaseModel, EmailStr, Field
from typing import List, Literal, Optional
from datetime import datetime

Role = Literal["admin", "editor", "viewer"]


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class User(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserPage(BaseModel):
    users: List[User]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., serialization_alias="totalPages")


class RoleUpdate(BaseModel):
    role: Role


class PasswordUpdate(BaseModel):
    password: str = Field(..., min_length=6)


class Token(BaseModel):
    access_token: str
    token_type: str
    user: User

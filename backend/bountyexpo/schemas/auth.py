from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    username: Optional[str] = Field(None, min_length=3, max_length=50, pattern=r'^@?[A-Za-z0-9_.]+$')
    full_name: Optional[str] = Field(None, max_length=255)

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v):
        if v is None:
            return v
        return v.lstrip('@').lower()


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    email: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    about: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    is_verified: bool
    created_at: datetime

    class Config:
        from_attributes = True


class LoginResponse(Token):
    user: UserResponse


class ProfileUpdate(BaseModel):
    """Editable profile fields (edit-profile screen)"""
    username: Optional[str] = Field(None, min_length=3, max_length=50, pattern=r'^@?[A-Za-z0-9_.]+$')
    full_name: Optional[str] = Field(None, max_length=255)
    about: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v):
        if v is None:
            return v
        return v.lstrip('@').lower()

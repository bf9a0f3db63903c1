from datetime import datetime
from pydantic import EmailStr, Field, field_validator
from typing import Optional

from blogosphere.core.schemas import CamelModel

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
USERNAME_PATTERN = rf"^[a-zA-Z0-9_]{{{USERNAME_MIN_LENGTH},{USERNAME_MAX_LENGTH}}}$"

def _blank_to_none(value):
    # El cliente manda "" cuando el campo se deja vacío
    if isinstance(value, str) and not value.strip():
        return None
    return value

class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    username: Optional[str] = Field(None, pattern=USERNAME_PATTERN)

    @field_validator("username", mode="before")
    @classmethod
    def blank_username_is_none(cls, value):
        return _blank_to_none(value)

class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class ProfileUpdate(CamelModel):
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = None
    location: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = None

class SettingsUpdate(CamelModel):
    email_notifications: Optional[bool] = None
    public_profile: Optional[bool] = None

class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    username: Optional[str] = Field(None, pattern=USERNAME_PATTERN)
    profile: Optional[ProfileUpdate] = None
    settings: Optional[SettingsUpdate] = None

    @field_validator("username", mode="before")
    @classmethod
    def blank_username_is_none(cls, value):
        return _blank_to_none(value)

class PasswordChange(CamelModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)

class UserResponse(CamelModel):
    """Usuario completo (sin hash de contraseña)"""
    id: int
    email: str
    first_name: Optional[str] = ""
    last_name: Optional[str] = ""
    username: str
    role: str
    is_active: bool
    profile: dict = {}
    settings: dict = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

class PublicUserResponse(CamelModel):
    id: int
    username: str
    first_name: Optional[str] = ""
    last_name: Optional[str] = ""
    profile: dict = {}
    created_at: Optional[datetime] = None

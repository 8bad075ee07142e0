from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


class CamelModel(BaseModel):
    """
    JSON bodies use camelCase on the wire (currentPassword, lastActive).
    Python code keeps snake_case attribute names.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    """
    Registration payload.

    - EmailStr uses email-validator library for RFC-compliant validation
    - Password minimum 8 chars; no complexity rules
    """
    username: str = Field(..., min_length=3, max_length=20)
    email: EmailStr
    password: str = Field(..., min_length=8)


class LoginRequest(CamelModel):
    """
    Login payload validation.

    Shorter minimum than registration so older accounts can still sign in;
    it only rejects obviously malformed requests.
    """
    email: EmailStr
    password: str = Field(..., min_length=6)


class UpdateProfileRequest(CamelModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=20)
    email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def require_one_field(self):
        if not self.username and not self.email:
            raise PydanticCustomError(
                "missing_profile_field",
                "At least one field (username or email) must be provided",
            )
        return self


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str

    @field_validator("current_password")
    @classmethod
    def validate_current_password(cls, v: str) -> str:
        if len(v) < 1:
            raise PydanticCustomError("password_required", "Current password is required")
        return v

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        if len(v) < 8:
            raise PydanticCustomError("password_too_short", "New password must be at least 8 characters")
        return v


class UserResponse(CamelModel):
    """
    Safe user representation for API responses.

    Critical: Never include password_hash in any response.
    """
    id: str
    username: str
    email: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


class ProfileResponse(CamelModel):
    user: UserResponse


class SessionResponse(CamelModel):
    id: str
    device: str
    browser: Optional[str] = None
    os: Optional[str] = None
    ip_address: Optional[str] = None
    location: Optional[str] = None
    last_active: datetime
    created_at: datetime
    current: bool = False

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class SessionListResponse(CamelModel):
    sessions: List[SessionResponse]


class MessageResponse(BaseModel):
    """
    Generic message response for operations without specific return data.
    """
    message: str


class RevokeAllResponse(BaseModel):
    message: str
    count: int

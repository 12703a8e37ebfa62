"""
Authentication request and response schemas.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CurrentUser(BaseModel):
    """Authenticated user information."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    is_admin: bool = Field(default=False)
    is_superuser: bool = Field(default=False)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: CurrentUser

"""Pydantic models for the auth API."""

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Role = Literal["auditor", "manager", "admin"]
AuthMethod = Literal["email_otp", "password"]

Name = Annotated[str, Field(min_length=2, max_length=50, description="Display name")]
Password = Annotated[str, Field(min_length=6, max_length=100, description="Account password")]
OtpCode = Annotated[str, Field(pattern=r"^[0-9]{6}$", description="6-digit verification code")]


# ── Requests ──────────────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    """Register with name and password."""
    name: Name
    password: Password


class LoginRequest(BaseModel):
    """Log in with name and password."""
    name: str = Field(..., min_length=1, description="Display name")
    password: str = Field(..., min_length=1, description="Account password")


class EmailRegisterRequest(BaseModel):
    """Start an email registration; a code is mailed to the address."""
    email: EmailStr = Field(..., description="Email address")
    name: Name


class EmailVerifyRequest(BaseModel):
    """Complete an email registration."""
    email: EmailStr = Field(..., description="Email address")
    name: Name
    otp: OtpCode


class EmailLoginRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address")


class EmailVerifyLoginRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address")
    otp: OtpCode


class PasswordForgotRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address of the account")


class PasswordResetRequest(BaseModel):
    email: EmailStr = Field(..., description="Email address of the account")
    otp: OtpCode
    new_password: Password


# ── Responses ─────────────────────────────────────────────────────────────


class UserInfo(BaseModel):
    """Public view of a user account."""
    id: str = Field(..., description="Unique user identifier")
    name: str = Field(..., description="Display name")
    email: Optional[str] = Field(None, description="Email address, if any")
    role: Role = Field("auditor", description="Account role")
    is_email_verified: bool = Field(False, description="Whether the email was verified")
    is_active: bool = Field(True, description="Whether the account may log in")
    auth_method: AuthMethod = Field(..., description="How the account was created")
    last_login: Optional[datetime] = Field(None, description="Last successful login")
    created_at: datetime = Field(..., description="Creation timestamp")


class AuthResponse(BaseModel):
    """Successful authentication."""
    success: bool = True
    message: str
    token: str = Field(..., description="Bearer token")
    user: UserInfo
    welcome_email_sent: Optional[bool] = Field(
        None, description="Set after email registration only"
    )


class OtpSentResponse(BaseModel):
    """A verification code was issued and mailed."""
    success: bool = True
    message: str
    email: str
    name: str
    expires_in_seconds: int


class NameAvailability(BaseModel):
    available: bool
    message: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ProfileResponse(BaseModel):
    success: bool = True
    data: UserInfo


class StatusResponse(BaseModel):
    success: bool = True
    is_authenticated: bool = True
    data: UserInfo


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    email_service: str = Field(..., description="smtp or console")
    pending_otps: int = Field(..., description="Codes currently awaiting verification")
    timestamp: datetime = Field(..., description="Current timestamp")

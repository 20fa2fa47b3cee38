"""
Pydantic schemas for authentication and session endpoints.

These schemas are the validation stage for /register and /login: if a field
is missing, too long, or malformed, FastAPI rejects the request with a 400
validation error before any handler code or database access runs.

Normalization happens here too. Names and emails are trimmed, and emails are
lowercased, so the service layer only ever sees canonical values. Passwords
are taken exactly as sent.
"""

from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

PersonName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
]
Email = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        to_lower=True,
        min_length=1,
        max_length=255,
        pattern=EMAIL_PATTERN,
    ),
]


class RegisterRequest(BaseModel):
    """Request body for POST /register."""
    name: PersonName
    surname: PersonName
    email: Email
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    """Request body for POST /login."""
    email: Annotated[
        str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=1)
    ]
    password: str = Field(min_length=1)


class UserPublic(BaseModel):
    """Public identity of a user (never includes the password hash)."""
    id: int
    name: str
    surname: str
    email: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Response body for successful registration and login."""
    ok: bool = True
    user: UserPublic


class WhoAmIResponse(BaseModel):
    ok: bool = True
    user: UserPublic
    session_id: str = Field(serialization_alias="sessionId")


class PrivateResponse(BaseModel):
    ok: bool = True
    message: str = "This is a protected resource"
    user: UserPublic


class SessionTestResponse(BaseModel):
    ok: bool = True
    message: str = "session test"
    views: int
    session_id: str = Field(serialization_alias="sessionId")


class OkResponse(BaseModel):
    ok: bool = True

# backend/roamplan/models/user_models.py

from pydantic import BaseModel, EmailStr, Field
from typing import Optional


# -------------------------
# Registration model
# -------------------------
class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)   # bcrypt ignores bytes past 72
    full_name: Optional[str] = None


# -------------------------
# Login models
# -------------------------
class LoginIn(BaseModel):
    email: EmailStr
    password: str


class GoogleLoginIn(BaseModel):
    id_token: str = Field(min_length=1)


# -------------------------
# Token response
# -------------------------
class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


# -------------------------
# Basic user info
# -------------------------
class MeOut(BaseModel):
    id: int
    email: EmailStr
    full_name: Optional[str]
    is_admin: bool
    auth_provider: str

# backend/roamplan/api/routes_auth.py

from typing import Any, Dict

from fastapi import APIRouter, Depends

from roamplan.core.config_loader import settings
from roamplan.core.errors import AuthenticationError, ConflictError
from roamplan.core.logger import logger
from roamplan.core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    verify_google_id_token,
    get_current_user,
)
from roamplan.db.sqlite_store import SQLiteStore, get_store
from roamplan.models.user_models import RegisterIn, LoginIn, GoogleLoginIn, TokenOut, MeOut

router = APIRouter(prefix="/auth", tags=["auth"])


def _is_admin(email: str) -> bool:
    return email.lower() in settings.admin_emails


# --------------------------
# REGISTER
# --------------------------
@router.post("/register", response_model=TokenOut, status_code=201)
def register(data: RegisterIn, store: SQLiteStore = Depends(get_store)):
    email = data.email.lower()
    if store.get_user_by_email(email):
        raise ConflictError("Email already registered")

    user_id = store.create_user(
        email=email,
        full_name=data.full_name or "",
        hashed_password=get_password_hash(data.password),
        auth_provider="password",
        is_admin=_is_admin(email),
    )
    logger.info(f"User {user_id} registered")

    return {"access_token": create_access_token(subject=str(user_id))}


# --------------------------
# LOGIN
# --------------------------
@router.post("/login", response_model=TokenOut)
def login(data: LoginIn, store: SQLiteStore = Depends(get_store)):
    user = store.get_user_by_email(data.email.lower())
    if not user or not verify_password(data.password, user["hashed_password"]):
        logger.info("Failed login attempt")
        raise AuthenticationError("Invalid credentials")

    logger.info(f"User {user['id']} logged in")
    return {"access_token": create_access_token(subject=str(user["id"]))}


# --------------------------
# GOOGLE SIGN-IN
# --------------------------
@router.post("/google", response_model=TokenOut)
def google_login(data: GoogleLoginIn, store: SQLiteStore = Depends(get_store)):
    claims = verify_google_id_token(data.id_token)

    user = store.get_user_by_email(claims["email"])
    if user:
        user_id = user["id"]
    else:
        user_id = store.create_user(
            email=claims["email"],
            full_name=claims["name"],
            hashed_password=None,
            auth_provider="google",
            is_admin=_is_admin(claims["email"]),
        )
        logger.info(f"User {user_id} created via Google sign-in")

    logger.info(f"User {user_id} logged in with Google")
    return {"access_token": create_access_token(subject=str(user_id))}


# --------------------------
# ME
# --------------------------
@router.get("/me", response_model=MeOut)
def me(user: Dict[str, Any] = Depends(get_current_user)):
    return user

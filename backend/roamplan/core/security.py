# backend/roamplan/core/security.py

import jwt
import bcrypt
import requests
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from fastapi import Depends, Header

from roamplan.core.config_loader import settings
from roamplan.core.errors import AuthenticationError, ForbiddenError
from roamplan.core.logger import logger
from roamplan.db.sqlite_store import SQLiteStore, get_store


GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


# ---------------------------------------------------------------------------
# PASSWORD HASHING
# ---------------------------------------------------------------------------
def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    # OAuth-only accounts have no password
    if not hashed:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


# ---------------------------------------------------------------------------
# JWT CREATION
# ---------------------------------------------------------------------------
def create_access_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes

    payload = {
        "sub": subject,
        "exp": now + timedelta(minutes=minutes),
        "iat": now,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# ---------------------------------------------------------------------------
# JWT VERIFY
# ---------------------------------------------------------------------------
def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None


def bearer_subject(authorization: Optional[str]) -> Optional[str]:
    """Return the `sub` claim of a bearer header, or None."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    payload = decode_token(authorization.split(" ", 1)[1])
    return payload.get("sub") if payload else None


# ---------------------------------------------------------------------------
# GOOGLE SIGN-IN
# ---------------------------------------------------------------------------
def verify_google_id_token(id_token: str) -> Dict[str, Any]:
    """
    Validate a Google ID token against the tokeninfo endpoint.

    Returns {"email", "name", "sub"} for a verified Google account.
    """
    if not settings.GOOGLE_CLIENT_ID:
        raise AuthenticationError("Google sign-in is not configured")

    try:
        resp = requests.get(
            settings.GOOGLE_TOKENINFO_URL,
            params={"id_token": id_token},
            timeout=10,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"Google tokeninfo request failed: {e}")
        raise AuthenticationError("Could not verify Google token")

    if resp.status_code != 200:
        logger.info(f"Google tokeninfo rejected token: HTTP {resp.status_code}")
        raise AuthenticationError("Invalid Google token")

    try:
        claims = resp.json()
    except ValueError as e:
        logger.error(f"Google tokeninfo returned a non-JSON body: {e}")
        raise AuthenticationError("Could not verify Google token")
    if not isinstance(claims, dict):
        raise AuthenticationError("Could not verify Google token")

    if claims.get("aud") != settings.GOOGLE_CLIENT_ID:
        raise AuthenticationError("Google token was issued for another client")
    if claims.get("iss") not in GOOGLE_ISSUERS:
        raise AuthenticationError("Google token has an unexpected issuer")
    # tokeninfo returns booleans as strings
    if str(claims.get("email_verified", "")).lower() != "true":
        raise AuthenticationError("Google account email is not verified")

    email = claims.get("email")
    if not email:
        raise AuthenticationError("Google token carries no email")

    return {
        "email": str(email).lower(),
        "name": claims.get("name", ""),
        "sub": claims.get("sub"),
    }


# ---------------------------------------------------------------------------
# DEPENDENCIES
# ---------------------------------------------------------------------------
def get_optional_user(
    authorization: Optional[str] = Header(None),
    store: SQLiteStore = Depends(get_store),
) -> Optional[Dict[str, Any]]:
    sub = bearer_subject(authorization)
    if not sub:
        return None
    return store.get_user_by_id(int(sub))


def get_current_user(
    authorization: Optional[str] = Header(None),
    store: SQLiteStore = Depends(get_store),
) -> Dict[str, Any]:
    sub = bearer_subject(authorization)
    if not sub:
        raise AuthenticationError("Missing or invalid token")

    user = store.get_user_by_id(int(sub))
    if not user:
        raise AuthenticationError("User no longer exists")
    return user


def get_admin_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not user.get("is_admin"):
        raise ForbiddenError()
    return user

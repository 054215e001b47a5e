"""
Access gate: password hashing, JWT issuance/verification and the request
dependencies that resolve the calling user.
"""

import os
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..db.connection import get_database

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-key-change")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET") or JWT_SECRET
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "15"))
JWT_REFRESH_EXPIRE_DAYS = int(os.getenv("JWT_REFRESH_EXPIRE_DAYS", "7"))

ADMIN_ROLE = "admin"

# bcrypt input limit
MAX_PASSWORD_BYTES = 72

# Never leave the password hash in a response
USER_PROJECTION = {"_id": 0, "password_hash": 0}

bearer_scheme = HTTPBearer(auto_error=False)


# Authentication functions
def hash_password(password: str) -> str:
    """Hash password with bcrypt"""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hash"""
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))


def _encode(user_id: str, token_type: str, expires_delta: timedelta, secret: str) -> str:
    payload = {
        "sub": user_id,
        "type": token_type,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def create_access_token(user_id: str) -> str:
    return _encode(user_id, "access", timedelta(minutes=JWT_EXPIRE_MINUTES), JWT_SECRET)


def create_refresh_token(user_id: str) -> str:
    return _encode(user_id, "refresh", timedelta(days=JWT_REFRESH_EXPIRE_DAYS), JWT_REFRESH_SECRET)


def generate_tokens(user_id: str) -> Dict[str, str]:
    return {
        "access_token": create_access_token(user_id),
        "refresh_token": create_refresh_token(user_id),
        "token_type": "bearer",
    }


def decode_token(token: str, token_type: str = "access") -> Optional[str]:
    """Return the user id a valid token was issued for, None otherwise"""
    secret = JWT_SECRET if token_type == "access" else JWT_REFRESH_SECRET
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected {token_type} token: {e}")
        return None

    if payload.get("type") != token_type:
        return None
    return payload.get("sub")


def find_active_user(user_id: Optional[str]) -> Optional[Dict]:
    if not user_id:
        return None
    user = get_database().users.find_one({"id": user_id}, USER_PROJECTION)
    if not user or not user.get("is_active", True):
        return None
    return user


# =============================================================================
# REQUEST DEPENDENCIES
# =============================================================================

async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Dict]:
    """Resolve the caller when a valid token is present, anonymous otherwise"""
    if credentials is None:
        return None
    return find_active_user(decode_token(credentials.credentials))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = find_active_user(decode_token(credentials.credentials))
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


async def require_admin(user: Dict = Depends(get_current_user)) -> Dict:
    if user.get("role") != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def ensure_owner(user: Dict, owner_id: Optional[str], detail: str = "Not authorized") -> None:
    if user["id"] != owner_id:
        raise HTTPException(status_code=403, detail=detail)

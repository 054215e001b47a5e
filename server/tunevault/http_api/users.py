import logging
from datetime import datetime, timezone
from typing import Optional, Dict

from bson import ObjectId
from fastapi import Request, HTTPException
from pydantic import BaseModel, EmailStr, Field, field_validator
from pymongo.errors import DuplicateKeyError

from ..db.connection import get_database
from .auth import (
    MAX_PASSWORD_BYTES,
    USER_PROJECTION,
    decode_token,
    find_active_user,
    generate_tokens,
    hash_password,
    verify_password,
)
from .errors import ok, created, server_error

logger = logging.getLogger(__name__)

def check_password_length(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
    return value

# Pydantic models for request/response
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_length(v)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class RefreshRequest(BaseModel):
    refresh_token: str

class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    avatar_url: Optional[str] = None

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        return check_password_length(v)

def get_db():
    return get_database()

def public_user(user: Dict) -> Dict:
    return {k: v for k, v in user.items() if k not in ("_id", "password_hash")}

# API Endpoints
async def register_handler(request: Request, register_data: RegisterRequest):
    """Register new user"""
    try:
        db = get_db()
        email = register_data.email.lower()

        if db.users.find_one({"email": email}):
            raise HTTPException(status_code=400, detail="Email already registered")

        now = datetime.now(timezone.utc).isoformat()
        new_user = {
            "id": str(ObjectId()),
            "name": register_data.name.strip(),
            "email": email,
            "password_hash": hash_password(register_data.password),
            "role": "user",
            "avatar_url": "",
            "is_active": True,
            "created_at": now,
            "updated_at": now,
            "last_login": now,
        }

        db.users.insert_one(new_user)
        logger.info(f"👤 Registered user {new_user['id']}")

        return created({"user": public_user(new_user), **generate_tokens(new_user["id"])})

    except HTTPException:
        raise
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Email already registered")
    except Exception as e:
        logger.error(f"Register error: {e}")
        raise server_error("Server error during registration")

async def login_handler(request: Request, login_data: LoginRequest):
    """Authenticate user with email and password"""
    try:
        db = get_db()
        user = db.users.find_one({"email": login_data.email.lower()}, {"_id": 0})

        if not user or not verify_password(login_data.password, user["password_hash"]):
            raise HTTPException(status_code=401, detail="Invalid email or password")

        if not user.get("is_active", True):
            raise HTTPException(status_code=403, detail="Account is deactivated")

        db.users.update_one(
            {"id": user["id"]},
            {"$set": {"last_login": datetime.now(timezone.utc).isoformat()}}
        )

        return ok({"user": public_user(user), **generate_tokens(user["id"])})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise server_error("Server error during login")

async def refresh_handler(request: Request, refresh_data: RefreshRequest):
    """Exchange a refresh token for a new token pair"""
    user = find_active_user(decode_token(refresh_data.refresh_token, token_type="refresh"))
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    return ok(generate_tokens(user["id"]))

async def logout_handler(request: Request, user: Dict):
    # Tokens are stateless; the client discards them
    return ok(message="Logged out successfully")

async def get_profile_handler(request: Request, user: Dict):
    return ok({"user": user})

async def update_profile_handler(request: Request, user: Dict, profile_data: UpdateProfileRequest):
    """Update name/avatar of the calling user"""
    try:
        db = get_db()
        update_fields = {k: v for k, v in profile_data.model_dump(exclude_unset=True).items() if v is not None}
        update_fields["updated_at"] = datetime.now(timezone.utc).isoformat()

        db.users.update_one({"id": user["id"]}, {"$set": update_fields})
        updated_user = db.users.find_one({"id": user["id"]}, USER_PROJECTION)

        return ok({"user": updated_user})

    except Exception as e:
        logger.error(f"Update profile error: {e}")
        raise server_error("Server error updating profile")

async def change_password_handler(request: Request, user: Dict, password_data: ChangePasswordRequest):
    try:
        db = get_db()
        stored = db.users.find_one({"id": user["id"]}, {"password_hash": 1})

        if not stored or not verify_password(password_data.current_password, stored["password_hash"]):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        db.users.update_one(
            {"id": user["id"]},
            {"$set": {
                "password_hash": hash_password(password_data.new_password),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }}
        )

        return ok(message="Password changed successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Change password error: {e}")
        raise server_error("Server error changing password")

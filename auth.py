import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr, Field

import config
from schemas import User as UserSchema
from storage import DuplicateError, Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])
security = HTTPBearer(auto_error=False)


# ----------------------- Utils -----------------------
def get_store(request: Request) -> Storage:
    return request.app.state.storage


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), n=16384, r=8, p=1, dklen=64)
    return f"{digest.hex()}.{salt}"


def verify_password(password: str, stored: str) -> bool:
    try:
        hashed, salt = stored.split(".", 1)
    except ValueError:
        return False
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), n=16384, r=8, p=1, dklen=64)
    return hmac.compare_digest(digest.hex(), hashed)


def create_token(payload: dict) -> str:
    exp = datetime.now(timezone.utc) + timedelta(days=config.JWT_EXPIRE_DAYS)
    to_encode = {**payload, "exp": exp}
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGO)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGO])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def public_user(user: dict) -> dict:
    return {
        "id": user["id"],
        "username": user["username"],
        "email": user["email"],
        "is_admin": user.get("is_admin", False),
        "created_at": user.get("created_at"),
    }


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: Storage = Depends(get_store),
):
    token = credentials.credentials if credentials else request.cookies.get(config.SESSION_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = decode_token(token)
    user_id = payload.get("id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    user = store.get_user(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_admin(user=Depends(get_current_user)):
    if not user.get("is_admin"):
        raise HTTPException(status_code=403, detail="Admin only")
    return user


def start_session(response: Response, user: dict) -> dict:
    token = create_token({"id": user["id"], "username": user["username"], "is_admin": user.get("is_admin", False)})
    response.set_cookie(
        config.SESSION_COOKIE,
        token,
        max_age=config.JWT_EXPIRE_DAYS * 24 * 3600,
        httponly=True,
        samesite="lax",
        secure=config.COOKIE_SECURE,
    )
    return {"token": token, "user": public_user(user)}


# ----------------------- Models -----------------------
class RegisterBody(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginBody(BaseModel):
    username: str
    password: str


# ----------------------- Routes -----------------------
@router.post("/register", status_code=201)
def register(body: RegisterBody, response: Response, store: Storage = Depends(get_store)):
    if store.get_user_by_username(body.username):
        raise HTTPException(status_code=400, detail="Username already exists")
    if store.get_user_by_email(body.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    try:
        user = store.create_user(UserSchema(
            username=body.username,
            email=body.email,
            password_hash=hash_password(body.password),
            is_admin=False,
        ))
    except DuplicateError as e:
        raise HTTPException(status_code=400, detail=e.message)
    logger.info("Registered user %s", user["id"])
    return start_session(response, user)


@router.post("/login")
def login(body: LoginBody, response: Response, store: Storage = Depends(get_store)):
    user = store.get_user_by_username(body.username)
    if not user or not verify_password(body.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return start_session(response, user)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(config.SESSION_COOKIE)
    return {"ok": True}


@router.get("/user")
def current_user(user=Depends(get_current_user)):
    return public_user(user)

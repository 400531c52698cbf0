from datetime import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError

from repairhub.config import settings
from repairhub.db import db
from repairhub.models.user import REGISTRABLE_ROLES, UserRole
from repairhub.schemas.user import LoginRequest, ProfileUpdate, RegisterRequest
from repairhub.services.auth import TOKEN_COOKIE, AuthContext, get_auth_context
from repairhub.utils.avatar import pick_avatar
from repairhub.utils.security import create_access_token, hash_password, verify_password
from repairhub.utils.serializers import serialize_profile, serialize_user
from repairhub.utils.validators import check_length

router = APIRouter(
    prefix="",
    tags=["auth"],
    responses={404: {"description": "Not found"}}
)

logger = logging.getLogger(__name__)

def issue_token(user: dict) -> str:
    return create_access_token({
        "sub": str(user["_id"]),
        "email": user["email"],
        "role": UserRole.parse(user.get("role")).value,
    })

def session_response(body: dict, token: str, status_code: int = 200) -> JSONResponse:
    """JSON body plus the http-only session cookie"""
    response = JSONResponse(body, status_code=status_code)
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=settings.JWT_EXPIRES_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response

def login_summary(user: dict) -> dict:
    return serialize_user(user, fields=("_id", "email", "username", "role", "avatarUrl"))

async def load_user(context: AuthContext) -> dict:
    if db.db is None:
        await db.connect()
    user = await db.db.users.find_one({"_id": context.object_id})
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest):
    if not payload.email or not payload.username or not payload.password or not payload.confirmPassword:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields"
        )

    email = payload.email.strip().lower()
    username = payload.username.strip()

    if len(email) < 5 or len(payload.password) < 8 or len(username) < 3:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid input")
    if len(email) > 100 or len(username) > 50 or len(payload.password) > 100:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Input too long")
    if payload.password != payload.confirmPassword:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Passwords do not match")

    role = UserRole.parse(payload.role)
    if role not in REGISTRABLE_ROLES:
        role = UserRole.CUSTOMER

    try:
        if db.db is None:
            await db.connect()

        if await db.db.users.find_one({"email": email}):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

        avatar = await pick_avatar(username)
        now = datetime.utcnow()
        user_doc = {
            "email": email,
            "username": username,
            "password": hash_password(payload.password),
            "role": role.value,
            "avatarUrl": avatar["avatarUrl"],
            "createdAt": now,
            "updatedAt": now,
        }
        if role == UserRole.TECHNICIAN:
            user_doc["phone"] = payload.phone
            user_doc["skills"] = payload.skills or []

        result = await db.db.users.insert_one(user_doc)
        user_doc["_id"] = result.inserted_id
        logger.info(f"Registered {role.value} {result.inserted_id}")

        token = issue_token(user_doc)
        return session_response(
            {"token": token, "user": login_summary(user_doc), "message": "User created successfully"},
            token,
            status_code=status.HTTP_201_CREATED,
        )
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Register error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

@router.post("/login")
async def login(payload: LoginRequest):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing credentials")

    try:
        if db.db is None:
            await db.connect()

        user = await db.db.users.find_one({"email": payload.email.strip().lower()})
        if not user or not verify_password(payload.password, user.get("password")):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

        await db.db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {"lastLogin": datetime.utcnow()}}
        )

        token = issue_token(user)
        return session_response({"token": token, "user": login_summary(user)}, token)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

@router.post("/logout")
async def logout():
    response = JSONResponse({"success": True, "message": "Logged out"})
    response.delete_cookie(TOKEN_COOKIE)
    return response

@router.get("/me")
async def me(context: AuthContext = Depends(get_auth_context)):
    user = await load_user(context)
    return {
        "success": True,
        "user": serialize_user(user, fields=("_id", "username", "email", "role", "createdAt")),
    }

@router.get("/profile")
async def get_profile(context: AuthContext = Depends(get_auth_context)):
    user = await load_user(context)
    return {"user": serialize_profile(user)}

@router.put("/profile")
async def update_profile(payload: ProfileUpdate, context: AuthContext = Depends(get_auth_context)):
    """
    Partial profile update.

    Password changes need the current password. Skills only apply to
    technicians. The role is never writable.
    """
    user = await load_user(context)
    updates = {}

    try:
        if payload.newPassword:
            if not payload.currentPassword:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password required")
            if not verify_password(payload.currentPassword, user.get("password")):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
            if len(payload.newPassword) < 8:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="New password must be at least 8 characters"
                )
            updates["password"] = hash_password(payload.newPassword)

        if payload.username and payload.username != user.get("username"):
            check_length(payload.username, "Username", 3, 50)
            updates["username"] = payload.username

        if payload.email:
            email = payload.email.strip().lower()
            if email != user.get("email"):
                check_length(email, "Email", 5, 100)
                taken = await db.db.users.find_one({"email": email, "_id": {"$ne": user["_id"]}})
                if taken:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
                updates["email"] = email

        for field in ("phone", "bio", "certifications"):
            value = getattr(payload, field)
            if value is not None:
                updates[field] = value

        if payload.skills is not None and UserRole.parse(user.get("role")) == UserRole.TECHNICIAN:
            updates["skills"] = [skill for skill in payload.skills if skill]

        if updates:
            updates["updatedAt"] = datetime.utcnow()
            await db.db.users.update_one({"_id": user["_id"]}, {"$set": updates})

        updated = await db.db.users.find_one({"_id": user["_id"]})
        return {
            "success": True,
            "user": serialize_profile(updated),
            "message": "Profile updated successfully",
        }
    except HTTPException:
        raise
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
    except Exception as e:
        logger.error(f"Profile update error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

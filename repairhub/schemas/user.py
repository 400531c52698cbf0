from pydantic import BaseModel
from typing import List, Optional

class RegisterRequest(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    confirmPassword: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    skills: Optional[List[str]] = None

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    certifications: Optional[str] = None
    skills: Optional[List[str]] = None
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None

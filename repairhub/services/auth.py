"""
Single authority for "who is calling".

The request gate and every handler resolve identity through `AuthService`, so
the two can never disagree about which tokens are trusted.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from bson import ObjectId
from fastapi import Depends, HTTPException, Request, status

from repairhub.config import settings
from repairhub.models.user import UserRole
from repairhub.utils.security import JWTError, decode_access_token, token_subject

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"
USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"

@dataclass(frozen=True)
class AuthContext:
    user_id: str
    role: UserRole

    @property
    def object_id(self) -> ObjectId:
        return ObjectId(self.user_id)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_technician(self) -> bool:
        return self.role == UserRole.TECHNICIAN

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER

    @property
    def is_staff(self) -> bool:
        """Technicians and admins share the technician side of the app"""
        return self.role in (UserRole.TECHNICIAN, UserRole.ADMIN)

class AuthService:
    def extract_token(self, request: Request) -> Optional[str]:
        """Cookie first, then `Authorization: Bearer`"""
        token = request.cookies.get(TOKEN_COOKIE)
        if token:
            return token

        auth_header = request.headers.get("authorization") or ""
        if auth_header.lower().startswith("bearer "):
            return auth_header[7:].strip() or None
        return None

    def is_dev_bypass(self, token: Optional[str]) -> bool:
        if not token or not settings.DEV_BYPASS_TOKEN or settings.is_production:
            return False
        return token == settings.DEV_BYPASS_TOKEN

    def verify(self, token: Optional[str]) -> Optional[AuthContext]:
        """Decode a token into a context. Any failure yields None."""
        if not token:
            return None
        try:
            payload = decode_access_token(token)
        except JWTError as e:
            logger.warning(f"Token verification failed: {str(e)}")
            return None

        user_id = token_subject(payload)
        if not user_id or not ObjectId.is_valid(user_id):
            logger.warning("Token verification failed: missing or malformed subject")
            return None

        return AuthContext(user_id=user_id, role=UserRole.parse(payload.get("role")))

    def from_request(self, request: Request) -> Optional[AuthContext]:
        """Use the context the gate attached, otherwise verify the raw token here."""
        context = getattr(request.state, "auth", None)
        if isinstance(context, AuthContext):
            return context
        return self.verify(self.extract_token(request))

auth_service = AuthService()

async def get_auth_context(request: Request) -> AuthContext:
    context = auth_service.from_request(request)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
    return context

async def require_technician(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not context.is_staff:
        logger.error(f"Technician access denied for role: {context.role.value}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - Technician access required"
        )
    return context

async def get_optional_auth_context(request: Request) -> Optional[AuthContext]:
    """For pages: the gate already redirected anonymous visitors where needed."""
    return auth_service.from_request(request)

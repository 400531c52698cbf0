from fastapi import APIRouter, Depends

from repairhub.services.auth import AuthContext, get_auth_context
from repairhub.utils.avatar import pick_avatar

router = APIRouter(
    prefix="",
    tags=["avatar"],
)

@router.get("")
async def random_avatar(context: AuthContext = Depends(get_auth_context)):
    """Suggest a random avatar; never fails, the fallback URL is always available."""
    return await pick_avatar()

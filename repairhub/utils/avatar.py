# repairhub/utils/avatar.py
import logging
import random
from urllib.parse import urlencode

import cloudinary
import cloudinary.search
import cloudinary.utils
from starlette.concurrency import run_in_threadpool

from repairhub.config import settings

logger = logging.getLogger(__name__)

AVATAR_COLORS = ["3b82f6", "10b981", "f59e0b", "ef4444", "8b5cf6", "ec4899"]
AVATAR_TRANSFORMATION = [
    {"width": 200, "height": 200, "crop": "fill", "gravity": "auto"},
    {"quality": "auto", "fetch_format": "auto"},
]

def cloudinary_configured() -> bool:
    return bool(
        settings.CLOUDINARY_CLOUD_NAME
        and settings.CLOUDINARY_API_KEY
        and settings.CLOUDINARY_API_SECRET
    )

if cloudinary_configured():
    cloudinary.config(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        secure=True,
    )

def fallback_avatar_url(name: str = "User") -> str:
    query = urlencode({
        "name": name or "User",
        "size": 200,
        "background": random.choice(AVATAR_COLORS),
        "color": "fff",
    })
    return f"https://ui-avatars.com/api/?{query}"

def _random_cloudinary_avatar():
    """Pick one hosted image at random; None when the account has no images."""
    result = (
        cloudinary.search.Search()
        .expression("resource_type:image")
        .max_results(100)
        .execute()
    )
    resources = (result or {}).get("resources") or []
    if not resources:
        return None
    image = random.choice(resources)
    url, _ = cloudinary.utils.cloudinary_url(
        image["public_id"],
        transformation=AVATAR_TRANSFORMATION,
        secure=True,
    )
    return {"avatarUrl": url, "source": "cloudinary", "public_id": image["public_id"]}

async def pick_avatar(name: str = "User") -> dict:
    """
    Random avatar for a new account.

    Falls back to a generated initials avatar when Cloudinary is not configured,
    has no images, or fails.
    """
    if cloudinary_configured():
        try:
            picked = await run_in_threadpool(_random_cloudinary_avatar)
            if picked:
                logger.info(f"Assigned avatar: {picked['public_id']}")
                return picked
            logger.info("No images found in Cloudinary account")
        except Exception as e:
            logger.error(f"Error fetching avatar from Cloudinary: {str(e)}")
    return {"avatarUrl": fallback_avatar_url(name), "source": "fallback"}

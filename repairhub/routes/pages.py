import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.templating import Jinja2Templates

from repairhub.db import get_database
from repairhub.middleware import login_redirect
from repairhub.services import repairs as repair_service
from repairhub.services.auth import AuthContext, get_optional_auth_context
from repairhub.services.conversations import list_conversations, unread_total
from repairhub.utils.serializers import serialize_profile

router = APIRouter(tags=["pages"], include_in_schema=False)

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")
templates = Jinja2Templates(directory=TEMPLATES_DIR)

# Job lists re-fetch themselves in the browser on this interval
POLL_INTERVAL_MS = 30000

def safe_redirect_target(target: Optional[str]) -> Optional[str]:
    """Only same-site paths are allowed as post-login targets"""
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return None

async def render(request: Request, template: str, context: Optional[AuthContext], **data):
    user = None
    unread = 0
    if context is not None:
        database = await get_database()
        user = serialize_profile(await database.users.find_one({"_id": context.object_id}))
        unread = await unread_total(database, context.object_id)
    return templates.TemplateResponse(request, template, {
        "user": user,
        "role": context.role.value if context else None,
        "unread": unread,
        "poll_interval": POLL_INTERVAL_MS,
        **data,
    })

def to_login(request: Request):
    return login_redirect(request.url.path)

@router.get("/")
async def home(request: Request, context: Optional[AuthContext] = Depends(get_optional_auth_context)):
    return await render(request, "home.html", context)

@router.get("/login")
async def login_page(request: Request, redirect: Optional[str] = None):
    return await render(request, "login.html", None, redirect=safe_redirect_target(redirect))

@router.get("/register")
async def register_page(request: Request):
    return await render(request, "register.html", None)

@router.get("/dashboard")
async def customer_dashboard(request: Request, context: Optional[AuthContext] = Depends(get_optional_auth_context)):
    if context is None:
        return to_login(request)
    repairs = await repair_service.list_repairs(await get_database(), context)
    return await render(request, "dashboard.html", context, repairs=repairs, section="dashboard")

@router.get("/technician")
async def technician_dashboard(request: Request, context: Optional[AuthContext] = Depends(get_optional_auth_context)):
    if context is None:
        return to_login(request)
    repairs = await repair_service.list_repairs(await get_database(), context)
    return await render(request, "technician.html", context, repairs=repairs, section="technician")

@router.get("/technician/available")
async def technician_available(request: Request, context: Optional[AuthContext] = Depends(get_optional_auth_context)):
    if context is None:
        return to_login(request)
    repairs = await repair_service.available_repairs(await get_database())
    return await render(request, "available.html", context, repairs=repairs, section="technician")

@router.get("/dashboard/messages")
@router.get("/technician/messages")
async def messages_page(
        request: Request,
        repairId: Optional[str] = None,
        context: Optional[AuthContext] = Depends(get_optional_auth_context),
):
    if context is None:
        return to_login(request)
    conversations = await list_conversations(await get_database(), context.object_id)
    section = "technician" if request.url.path.startswith("/technician") else "dashboard"
    return await render(
        request, "messages.html", context,
        conversations=conversations, selected=repairId, section=section,
    )

@router.get("/dashboard/profile")
@router.get("/technician/profile")
async def profile_page(request: Request, context: Optional[AuthContext] = Depends(get_optional_auth_context)):
    if context is None:
        return to_login(request)
    section = "technician" if request.url.path.startswith("/technician") else "dashboard"
    return await render(request, "profile.html", context, section=section)

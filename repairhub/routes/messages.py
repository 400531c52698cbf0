from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from repairhub.db import db
from repairhub.models.message import MAX_MESSAGE_LENGTH
from repairhub.schemas.message import MessageCreate
from repairhub.services import repairs as repair_service
from repairhub.services.auth import AuthContext, get_auth_context
from repairhub.services.conversations import list_conversations
from repairhub.utils.cache import PRIVATE, cache_headers
from repairhub.utils.serializers import MESSAGE_PARTY_FIELDS
from repairhub.utils.validators import validate_object_id

router = APIRouter(
    prefix="",
    tags=["messages"],
    responses={404: {"description": "Not found"}}
)

logger = logging.getLogger(__name__)

MESSAGE_PARTIES = {"senderId": MESSAGE_PARTY_FIELDS, "receiverId": MESSAGE_PARTY_FIELDS}

async def load_participating_repair(repair_id: str, context: AuthContext) -> dict:
    object_id = validate_object_id(repair_id, "repair ID")
    repair = await db.db.repairs.find_one({"_id": object_id})
    if not repair:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Repair not found")
    if not repair_service.is_participant(repair, context.object_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return repair

@router.get("")
async def get_messages(
        repairId: Optional[str] = Query(None, description="Thread to open; omit for the conversation list"),
        context: AuthContext = Depends(get_auth_context),
):
    """
    With `repairId`: the thread in chronological order. Reading it marks the
    caller's unread inbound messages as read.

    Without: one summary per conversation, newest first.
    """
    try:
        if db.db is None:
            await db.connect()

        if not repairId:
            conversations = await list_conversations(db.db, context.object_id)
            return JSONResponse(conversations, headers=cache_headers(PRIVATE))

        repair = await load_participating_repair(repairId, context)

        # Mark first so the returned thread reflects it
        result = await db.db.messages.update_many(
            {"repairId": repair["_id"], "receiverId": context.object_id, "read": False},
            {"$set": {"read": True}}
        )
        if result.modified_count:
            logger.info(f"Marked {result.modified_count} messages read for {context.user_id}")

        thread = await db.db.messages.find({"repairId": repair["_id"]}).sort(
            [("createdAt", 1), ("_id", 1)]
        ).to_list(length=None)

        items = await repair_service.populate(db.db, thread, MESSAGE_PARTIES)
        return JSONResponse(items, headers=cache_headers(PRIVATE))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Messages GET error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(payload: MessageCreate, context: AuthContext = Depends(get_auth_context)):
    if not payload.repairId or not payload.content or not payload.content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    if len(payload.content) > MAX_MESSAGE_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message too long")

    try:
        if db.db is None:
            await db.connect()

        repair = await load_participating_repair(payload.repairId, context)
        receiver_id = repair_service.counterpart(repair, context.object_id)
        if receiver_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No recipient found for this repair"
            )

        message = {
            "senderId": context.object_id,
            "receiverId": receiver_id,
            "repairId": repair["_id"],
            "content": payload.content,
            "read": False,
            "createdAt": datetime.utcnow(),
        }
        result = await db.db.messages.insert_one(message)
        message["_id"] = result.inserted_id

        return (await repair_service.populate(db.db, [message], MESSAGE_PARTIES))[0]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Messages POST error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

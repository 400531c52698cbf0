from datetime import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from repairhub.db import db
from repairhub.models.message import claim_notice
from repairhub.models.repair import RepairStatus, transition_error
from repairhub.schemas.repair import RepairCreate, RepairUpdate
from repairhub.services import repairs as repair_service
from repairhub.services.auth import AuthContext, get_auth_context, require_technician
from repairhub.utils.cache import PRIVATE, cache_headers
from repairhub.utils.validators import validate_object_id

router = APIRouter(
    prefix="",
    tags=["repairs"],
    responses={404: {"description": "Not found"}}
)

logger = logging.getLogger(__name__)

def not_found():
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Repair not found"
    )

def server_error():
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )

@router.get("")
async def list_repairs(context: AuthContext = Depends(get_auth_context)):
    try:
        if db.db is None:
            await db.connect()
        items = await repair_service.list_repairs(db.db, context)
        return JSONResponse(items, headers=cache_headers(PRIVATE))
    except Exception as e:
        logger.error(f"Repairs GET error: {str(e)}", exc_info=True)
        raise server_error()

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_repair(payload: RepairCreate, context: AuthContext = Depends(get_auth_context)):
    title = (payload.title or "").strip()
    description = (payload.description or "").strip()
    if not title or not description:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields"
        )

    try:
        if db.db is None:
            await db.connect()
        repair = await repair_service.create_repair(db.db, context, title, description)
        logger.info(f"Repair {repair['_id']} created by {context.user_id}")
        return (await repair_service.populate_repairs(db.db, [repair]))[0]
    except Exception as e:
        logger.error(f"Repairs POST error: {str(e)}", exc_info=True)
        raise server_error()

@router.get("/available")
async def available_repairs(context: AuthContext = Depends(require_technician)):
    try:
        if db.db is None:
            await db.connect()
        items = await repair_service.available_repairs(db.db)
        logger.info(f"Found {len(items)} available repairs")
        return JSONResponse(items, headers=cache_headers(PRIVATE))
    except Exception as e:
        logger.error(f"Available repairs GET error: {str(e)}", exc_info=True)
        raise server_error()

@router.get("/{id}")
async def get_repair(id: str, context: AuthContext = Depends(get_auth_context)):
    repair_id = validate_object_id(id, "repair ID")
    if db.db is None:
        await db.connect()

    repair = await repair_service.get_repair(db.db, repair_id, populated=False)
    if not repair:
        raise not_found()

    # Open jobs are visible to technicians browsing the board
    open_job = repair.get("technicianId") is None and context.is_staff
    if not (context.is_admin or open_job or repair_service.is_participant(repair, context.object_id)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    return (await repair_service.populate_repairs(db.db, [repair]))[0]

@router.put("/{id}")
async def update_repair(id: str, payload: RepairUpdate, context: AuthContext = Depends(get_auth_context)):
    """
    Partial update by a participant or an admin.

    Only the owner may rate, only once, and only after the repair is Completed.
    """
    repair_id = validate_object_id(id, "repair ID")

    try:
        if db.db is None:
            await db.connect()

        repair = await db.db.repairs.find_one({"_id": repair_id})
        if not repair:
            raise not_found()

        is_owner = repair.get("userId") == context.object_id
        is_technician = repair.get("technicianId") == context.object_id
        if not is_owner and not is_technician and not context.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

        updates = {}
        if payload.status:
            new_status = RepairStatus.from_value(payload.status)
            if new_status is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status")
            error = transition_error(
                repair.get("status"), new_status, repair.get("technicianId") is not None
            )
            if error:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)
            updates["status"] = new_status.value
        if payload.title:
            updates["title"] = payload.title
        if payload.description:
            updates["description"] = payload.description

        rating_filter = {}
        if payload.rating is not None and is_owner:
            effective_status = updates.get("status", repair.get("status"))
            if effective_status != RepairStatus.COMPLETED.value:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Can only rate completed repairs")
            if repair.get("rating"):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have already rated this repair")
            updates["rating"] = payload.rating
            if payload.review:
                updates["review"] = payload.review
            # A concurrent rating must not overwrite this one
            rating_filter = {"rating": None}

        updates["updatedAt"] = datetime.utcnow()
        result = await db.db.repairs.update_one({"_id": repair_id, **rating_filter}, {"$set": updates})
        if rating_filter and result.matched_count == 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You have already rated this repair")

        return await repair_service.get_repair(db.db, repair_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Repair PUT error: {str(e)}", exc_info=True)
        raise server_error()

@router.delete("/{id}")
async def delete_repair(id: str, context: AuthContext = Depends(get_auth_context)):
    repair_id = validate_object_id(id, "repair ID")

    try:
        if db.db is None:
            await db.connect()

        repair = await db.db.repairs.find_one({"_id": repair_id})
        if not repair:
            raise not_found()

        if repair.get("userId") != context.object_id and not context.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

        await db.db.repairs.delete_one({"_id": repair_id})
        logger.info(f"Repair {id} deleted by {context.user_id}")
        return {"message": "Repair deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Repair DELETE error: {str(e)}", exc_info=True)
        raise server_error()

@router.post("/{id}/claim")
async def claim_repair(id: str, context: AuthContext = Depends(require_technician)):
    repair_id = validate_object_id(id, "repair ID")

    try:
        if db.db is None:
            await db.connect()

        claimed = await repair_service.claim_repair(db.db, repair_id, context.object_id)
        if claimed is None:
            current = await db.db.repairs.find_one({"_id": repair_id})
            if not current:
                raise not_found()
            if current.get("technicianId") is not None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Repair already claimed")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Repair is no longer open")

        logger.info(f"Repair {id} claimed by technician {context.user_id}")
        await notify_customer_of_claim(claimed, context)

        return await repair_service.get_repair(db.db, repair_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Claim repair error: {str(e)}", exc_info=True)
        raise server_error()

async def notify_customer_of_claim(repair: dict, context: AuthContext) -> None:
    """Best effort: a failure here is logged and never undoes the claim."""
    try:
        technician = await db.db.users.find_one({"_id": context.object_id}, {"username": 1})
        technician_name = (technician or {}).get("username") or "A technician"
        await db.db.messages.insert_one({
            "senderId": context.object_id,
            "receiverId": repair["userId"],
            "repairId": repair["_id"],
            "content": claim_notice(technician_name, repair.get("title", "")),
            "read": False,
            "createdAt": datetime.utcnow(),
        })
        logger.info("Auto-message sent to customer after job claim")
    except Exception as e:
        logger.error(f"Failed to send auto-message: {str(e)}", exc_info=True)

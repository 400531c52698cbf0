"""Repair queries shared by the JSON API and the server-rendered pages."""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument

from repairhub.models.repair import RepairStatus
from repairhub.services.auth import AuthContext
from repairhub.utils.serializers import (
    REPAIR_OWNER_FIELDS,
    REPAIR_TECHNICIAN_FIELDS,
    serialize_document,
    serialize_user,
)

logger = logging.getLogger(__name__)

LIST_LIMIT = 50
NEWEST_FIRST = [("createdAt", -1), ("_id", -1)]
UNCLAIMED = {"$or": [{"technicianId": {"$exists": False}}, {"technicianId": None}]}

async def populate(database, documents: List[dict], fields: Dict[str, dict]) -> List[dict]:
    """
    Replace user-id references with small user summaries.

    `fields` maps a reference field name to the projection of the user it points at.
    Dangling references become None.
    """
    ids = set()
    for document in documents:
        for field in fields:
            if isinstance(document.get(field), ObjectId):
                ids.add(document[field])

    users = {}
    if ids:
        async for user in database.users.find({"_id": {"$in": list(ids)}}):
            users[user["_id"]] = user

    populated = []
    for document in documents:
        item = serialize_document(document)
        for field, projection in fields.items():
            ref = document.get(field)
            if ref is None:
                item[field] = None
                continue
            user = users.get(ref)
            item[field] = serialize_user(user, fields=("_id", *projection.keys())) if user else None
        populated.append(item)
    return populated

async def populate_repairs(database, repairs: List[dict]) -> List[dict]:
    return await populate(database, repairs, {
        "userId": REPAIR_OWNER_FIELDS,
        "technicianId": REPAIR_TECHNICIAN_FIELDS,
    })

def scope_for(context: AuthContext) -> dict:
    """Technicians see what they work on, customers what they own, admins everything"""
    if context.is_technician:
        return {"technicianId": context.object_id}
    if context.is_customer:
        return {"userId": context.object_id}
    return {}

async def list_repairs(database, context: AuthContext) -> List[dict]:
    query = scope_for(context)
    repairs = await database.repairs.find(query).sort(NEWEST_FIRST).limit(LIST_LIMIT).to_list(length=LIST_LIMIT)
    logger.info(f"Listed {len(repairs)} repairs for {context.role.value} {context.user_id}")
    return await populate_repairs(database, repairs)

async def available_repairs(database) -> List[dict]:
    query = {**UNCLAIMED, "status": RepairStatus.PENDING.value}
    repairs = await database.repairs.find(query).sort(NEWEST_FIRST).limit(LIST_LIMIT).to_list(length=LIST_LIMIT)
    return await populate(database, repairs, {"userId": REPAIR_OWNER_FIELDS})

async def get_repair(database, repair_id: ObjectId, populated: bool = True) -> Optional[dict]:
    repair = await database.repairs.find_one({"_id": repair_id})
    if repair is None or not populated:
        return repair
    return (await populate_repairs(database, [repair]))[0]

async def create_repair(database, context: AuthContext, title: str, description: str) -> dict:
    now = datetime.utcnow()
    document = {
        "title": title,
        "description": description,
        "status": RepairStatus.PENDING.value,
        "userId": context.object_id,
        "technicianId": None,
        "rating": None,
        "review": "",
        "createdAt": now,
        "updatedAt": now,
    }
    result = await database.repairs.insert_one(document)
    document["_id"] = result.inserted_id
    return document

async def claim_repair(database, repair_id: ObjectId, technician_id: ObjectId) -> Optional[dict]:
    """
    Assign a technician in one conditional update.

    Returns the updated document, or None when the repair does not exist or
    was already claimed; concurrent claims cannot both succeed.
    """
    return await database.repairs.find_one_and_update(
        {"_id": repair_id, **UNCLAIMED, "status": RepairStatus.PENDING.value},
        {"$set": {
            "technicianId": technician_id,
            "status": RepairStatus.ASSIGNED.value,
            "updatedAt": datetime.utcnow(),
        }},
        return_document=ReturnDocument.AFTER,
    )

def is_participant(repair: dict, user_id: ObjectId) -> bool:
    return user_id in participants(repair)

def participants(repair: dict) -> Iterable[ObjectId]:
    return [party for party in (repair.get("userId"), repair.get("technicianId")) if party is not None]

def counterpart(repair: dict, user_id: ObjectId) -> Optional[ObjectId]:
    """The other participant of a repair, None until a technician is assigned"""
    if repair.get("userId") == user_id:
        return repair.get("technicianId")
    return repair.get("userId")

"""
Per-user conversation summaries.

One row per repair the caller has exchanged messages on: the latest message,
how many messages the caller has not read yet, and who is on the other side.
Computed live from the `messages` collection on every call.
"""
import logging
from typing import List

from bson import ObjectId

from repairhub.utils.serializers import USER_PUBLIC_FIELDS, serialize_object_ids, serialize_user

logger = logging.getLogger(__name__)

def conversation_pipeline(user_id: ObjectId) -> List[dict]:
    return [
        {"$match": {"$or": [{"senderId": user_id}, {"receiverId": user_id}]}},
        {"$sort": {"createdAt": -1, "_id": -1}},
        {
            "$group": {
                "_id": "$repairId",
                "lastMessage": {"$first": "$content"},
                "lastMessageTime": {"$first": "$createdAt"},
                "lastSenderId": {"$first": "$senderId"},
                "unreadCount": {
                    "$sum": {
                        "$cond": [
                            {"$and": [
                                {"$eq": ["$receiverId", user_id]},
                                {"$eq": ["$read", False]},
                            ]},
                            1,
                            0,
                        ]
                    }
                },
            }
        },
        {"$sort": {"lastMessageTime": -1}},
        {
            "$lookup": {
                "from": "repairs",
                "localField": "_id",
                "foreignField": "_id",
                "as": "repair",
            }
        },
        # Conversations whose repair was deleted drop out here
        {"$unwind": "$repair"},
        {
            "$lookup": {
                "from": "users",
                "localField": "repair.userId",
                "foreignField": "_id",
                "as": "customer",
            }
        },
        {
            "$lookup": {
                "from": "users",
                "localField": "repair.technicianId",
                "foreignField": "_id",
                "as": "technician",
            }
        },
    ]

def summarize(row: dict, user_id: ObjectId) -> dict:
    repair = row["repair"]
    customer = row["customer"][0] if row.get("customer") else None
    technician = row["technician"][0] if row.get("technician") else None
    other_party = technician if repair.get("userId") == user_id else customer

    return {
        "repairId": str(row["_id"]),
        "repair": {
            "_id": str(repair["_id"]),
            "title": repair.get("title"),
            "status": repair.get("status"),
        },
        "customer": serialize_user(customer, fields=USER_PUBLIC_FIELDS),
        "technician": serialize_user(technician, fields=USER_PUBLIC_FIELDS),
        "otherParty": serialize_user(other_party, fields=USER_PUBLIC_FIELDS),
        "lastMessage": row.get("lastMessage"),
        "lastMessageTime": serialize_object_ids(row.get("lastMessageTime")),
        "lastSenderId": serialize_object_ids(row.get("lastSenderId")),
        "unreadCount": row.get("unreadCount", 0),
    }

async def list_conversations(database, user_id: ObjectId) -> List[dict]:
    rows = await database.messages.aggregate(conversation_pipeline(user_id)).to_list(length=None)
    logger.info(f"Built {len(rows)} conversation summaries for user {user_id}")
    return [summarize(row, user_id) for row in rows]

async def unread_total(database, user_id: ObjectId) -> int:
    return await database.messages.count_documents({"receiverId": user_id, "read": False})

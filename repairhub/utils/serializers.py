from datetime import datetime

from bson import ObjectId

# Fields a user reference expands to, per collection that embeds it
USER_PUBLIC_FIELDS = ("_id", "username", "email", "role", "phone", "avatarUrl")
REPAIR_OWNER_FIELDS = {"username": 1, "email": 1}
REPAIR_TECHNICIAN_FIELDS = {"username": 1, "email": 1, "phone": 1}
MESSAGE_PARTY_FIELDS = {"username": 1, "email": 1, "role": 1}

def serialize_object_ids(data):
    """Recursively turn ObjectIds into strings and datetimes into ISO strings"""
    if isinstance(data, dict):
        return {k: serialize_object_ids(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [serialize_object_ids(v) for v in data]
    elif isinstance(data, ObjectId):
        return str(data)
    elif isinstance(data, datetime):
        return data.isoformat()
    return data

def serialize_user(user, fields=None):
    """Public view of a user document. The password hash never leaves this function."""
    if not user:
        return None

    user_data = dict(user)
    user_data.pop("password", None)
    user_data.pop("__v", None)
    if fields is not None:
        user_data = {k: v for k, v in user_data.items() if k in fields}

    if "role" in user_data and user_data["role"] == "user":
        user_data["role"] = "customer"

    return serialize_object_ids(user_data)

def serialize_profile(user):
    return serialize_user(user, fields=(
        "_id", "username", "email", "role", "phone", "skills",
        "certifications", "bio", "avatarUrl", "createdAt",
    ))

def serialize_document(document):
    if not document:
        return None
    return serialize_object_ids(dict(document))

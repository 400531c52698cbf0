# repairhub/utils/validators.py
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from fastapi import status

def validate_object_id(object_id: str, label: str = "ID") -> ObjectId:
    """Parse a path/body id or fail with 400"""
    try:
        return ObjectId(object_id)
    except (InvalidId, TypeError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label}"
        )

def check_length(value: str, field: str, min_length: int, max_length: int) -> None:
    if len(value) < min_length or len(value) > max_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{field} must be {min_length}-{max_length} characters"
        )

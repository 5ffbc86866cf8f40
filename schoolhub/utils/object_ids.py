from typing import Any, Optional

from bson import ObjectId
from fastapi import HTTPException

from schoolhub.common.constants import INVALID_ID


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Coerce a client supplied id, None when it is not a valid ObjectId"""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def require_object_id(value: Any, field: str) -> ObjectId:
    """Same as ``to_object_id`` for REST parameters, 400 on a malformed id"""
    object_id = to_object_id(value)
    if object_id is None:
        raise HTTPException(status_code=400, detail=f"{INVALID_ID}: {field}")
    return object_id


def id_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None

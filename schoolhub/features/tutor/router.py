import logging
from typing import Any, Dict

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pymongo.database import Database
from sentry_sdk import capture_exception

from schoolhub.common import constants
from schoolhub.common.constants import ROLE_TYPE
from schoolhub.database.session import get_db
from schoolhub.features.directory.repository import IdentityDirectory, school_of
from schoolhub.features.messaging.repository import ConversationStore
from schoolhub.features.tutor.schemas import (
    ClearHistoryResponse,
    Pagination,
    TutorExchange,
    TutorHistoryResponse,
)
from schoolhub.utils.object_ids import require_object_id
from schoolhub.utils.transcript import read_exchange

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tutor", tags=["tutor"])


async def _get_student(db: Database, student_id: ObjectId, school_id: ObjectId) -> Dict[str, Any]:
    student = await IdentityDirectory(db).get_user(student_id)
    # a student of another school is reported as unknown
    if not student or school_of(student) != str(school_id):
        raise HTTPException(status_code=404, detail=constants.STUDENT_NOT_FOUND)
    if student.get("role") != ROLE_TYPE["STUDENT"]:
        raise HTTPException(status_code=403, detail=constants.NOT_A_STUDENT)
    return student


@router.get("/history/{student_id}", response_model=TutorHistoryResponse)
async def get_tutor_history(
    student_id: str = Path(..., description="Student ID"),
    school_id: str = Query(..., alias="schoolId", description="School ID"),
    limit: int = Query(20, ge=1, le=100, description="Number of exchanges per page"),
    offset: int = Query(0, ge=0, description="Number of exchanges to skip"),
    db: Database = Depends(get_db),
):
    """Tutor exchanges of a student, newest first"""
    student_oid = require_object_id(student_id, "studentId")
    school_oid = require_object_id(school_id, "schoolId")
    try:
        student = await _get_student(db, student_oid, school_oid)
        records, total = await ConversationStore(db).ai_history_page(student_oid, student["school"], limit, offset)

        conversations = []
        for record in records:
            question, answer = read_exchange(record)
            conversations.append(TutorExchange(
                id=str(record["_id"]),
                question=question,
                answer=answer,
                timestamp=record["created_at"],
            ))

        return TutorHistoryResponse(
            conversations=conversations,
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                hasMore=offset + len(records) < total,
            ),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error fetching tutor history: {e}")
        capture_exception(e)
        raise HTTPException(status_code=500, detail=constants.INTERNAL_SERVER_ERROR)


@router.delete("/history/{student_id}", response_model=ClearHistoryResponse)
async def clear_tutor_history(
    student_id: str = Path(..., description="Student ID"),
    school_id: str = Query(..., alias="schoolId", description="School ID"),
    db: Database = Depends(get_db),
):
    """Delete every tutor exchange of a student within the school"""
    student_oid = require_object_id(student_id, "studentId")
    school_oid = require_object_id(school_id, "schoolId")
    try:
        student = await _get_student(db, student_oid, school_oid)
        deleted = await ConversationStore(db).clear_ai_history(student_oid, student["school"])
        logger.info(f"Cleared {deleted} tutor exchanges of student {student_id}")
        return ClearHistoryResponse(message=constants.AI_HISTORY_CLEARED, deletedCount=deleted)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error clearing tutor history: {e}")
        capture_exception(e)
        raise HTTPException(status_code=500, detail=constants.INTERNAL_SERVER_ERROR)

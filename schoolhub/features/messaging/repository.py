from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime

from bson import ObjectId
from pymongo.database import Database

from schoolhub.common.constants import MESSAGE_KIND
from schoolhub.database.mongo_collections import (
    count_ai_exchanges,
    create_message,
    delete_ai_exchanges,
    find_ai_exchanges,
    find_conversation,
    find_participant_messages,
    mark_conversation_read,
)
from schoolhub.utils.transcript import format_exchange


def _require_school(school_id: Optional[ObjectId]) -> ObjectId:
    # every read and write is tenant scoped
    if school_id is None:
        raise ValueError("school is required for every message query")
    return school_id


class ConversationStore:
    """Repository for direct messages and AI tutor exchanges"""

    def __init__(self, db: Database):
        self.db = db

    async def create_text_message(
        self,
        *,
        sender_id: ObjectId,
        recipient_id: ObjectId,
        school_id: ObjectId,
        content: str,
        conversation_type: str,
        related_student: Optional[ObjectId] = None,
    ) -> Dict[str, Any]:
        """Insert a direct message and return the stored document"""
        if sender_id == recipient_id:
            raise ValueError("direct messages need two different participants")

        message_doc = {
            "sender": sender_id,
            "recipient": recipient_id,
            "school": _require_school(school_id),
            "kind": MESSAGE_KIND["TEXT"],
            "content": content,
            "conversation_type": conversation_type,
            "related_student": related_student,
            "is_read": False,
            "read_at": None,
            "created_at": datetime.utcnow(),
        }
        message_doc["_id"] = ObjectId(create_message(self.db, message_doc))
        return message_doc

    async def create_ai_exchange(
        self,
        *,
        student_id: ObjectId,
        school_id: ObjectId,
        question: str,
        answer: str,
    ) -> Dict[str, Any]:
        """Insert one tutor question/answer pair as a self-addressed record"""
        message_doc = {
            "sender": student_id,
            "recipient": student_id,
            "school": _require_school(school_id),
            "kind": MESSAGE_KIND["AI_QUERY"],
            "question": question,
            "answer": answer,
            "content": format_exchange(question, answer),
            "is_read": False,
            "read_at": None,
            "created_at": datetime.utcnow(),
        }
        message_doc["_id"] = ObjectId(create_message(self.db, message_doc))
        return message_doc

    async def recent_ai_exchanges(self, student_id: ObjectId, school_id: ObjectId, limit: int) -> List[Dict[str, Any]]:
        """The latest ``limit`` tutor records, oldest first"""
        records = find_ai_exchanges(self.db, student_id, _require_school(school_id), limit)
        records.reverse()
        return records

    async def ai_history_page(
        self,
        student_id: ObjectId,
        school_id: ObjectId,
        limit: int,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """One page of tutor records, newest first, with the total count"""
        school_id = _require_school(school_id)
        records = find_ai_exchanges(self.db, student_id, school_id, limit, skip=offset)
        total = count_ai_exchanges(self.db, student_id, school_id)
        return records, total

    async def clear_ai_history(self, student_id: ObjectId, school_id: ObjectId) -> int:
        return delete_ai_exchanges(self.db, student_id, _require_school(school_id))

    async def get_conversation(self, user_id: ObjectId, other_user_id: ObjectId, school_id: ObjectId) -> List[Dict[str, Any]]:
        return find_conversation(self.db, user_id, other_user_id, _require_school(school_id))

    async def mark_conversation_read(self, reader_id: ObjectId, other_user_id: ObjectId, school_id: ObjectId) -> int:
        """Read receipts for everything the reader received from the other user"""
        return mark_conversation_read(
            self.db,
            reader_id,
            other_user_id,
            _require_school(school_id),
            {"is_read": True, "read_at": datetime.utcnow()},
        )

    async def get_conversation_summaries(self, user_id: ObjectId, school_id: ObjectId) -> List[Dict[str, Any]]:
        """
        One entry per counterpart with the most recent message, unread and
        total counts. Ordered by most recent activity.
        """
        summaries: Dict[ObjectId, Dict[str, Any]] = {}
        for message in find_participant_messages(self.db, user_id, _require_school(school_id)):
            counterpart = message["recipient"] if message["sender"] == user_id else message["sender"]
            summary = summaries.get(counterpart)
            if summary is None:
                # messages arrive newest first, so the first one seen is the latest
                summary = {
                    "counterpart": counterpart,
                    "last_message": message,
                    "unread_count": 0,
                    "total_messages": 0,
                }
                summaries[counterpart] = summary
            summary["total_messages"] += 1
            if message["sender"] != user_id and not message.get("is_read"):
                summary["unread_count"] += 1
        return list(summaries.values())

from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from schoolhub.common.constants import MESSAGE_KIND


def get_collections(db: Database):
    messages = db["messages"]
    users = db["users"]
    classrooms = db["classrooms"]

    # Messages collection indexes
    messages.create_index([("sender", ASCENDING), ("recipient", ASCENDING), ("created_at", DESCENDING)])
    messages.create_index([("school", ASCENDING), ("conversation_type", ASCENDING)])
    messages.create_index([("school", ASCENDING), ("kind", ASCENDING)])

    return messages, users, classrooms


# Identity lookups (users and classrooms are owned by the platform, read only here)
def get_user(db: Database, user_id: ObjectId) -> Optional[Dict[str, Any]]:
    _, users, _ = get_collections(db)
    return users.find_one({"_id": user_id})


def get_users(db: Database, user_ids: List[ObjectId]) -> List[Dict[str, Any]]:
    _, users, _ = get_collections(db)
    return list(users.find({"_id": {"$in": user_ids}}))


def get_classroom(db: Database, classroom_id: ObjectId) -> Optional[Dict[str, Any]]:
    _, _, classrooms = get_collections(db)
    return classrooms.find_one({"_id": classroom_id})


def find_student_classroom(db: Database, student_id: ObjectId, school_id: ObjectId) -> Optional[Dict[str, Any]]:
    """Classroom whose roster lists the student"""
    _, _, classrooms = get_collections(db)
    return classrooms.find_one({"students": student_id, "school": school_id})


def find_student_classrooms(db: Database, student_id: ObjectId, school_id: Any) -> List[Dict[str, Any]]:
    _, _, classrooms = get_collections(db)
    return list(classrooms.find({"students": student_id, "school": school_id}).sort("_id", ASCENDING))


def find_teacher_classrooms(db: Database, teacher_id: ObjectId, school_id: Any) -> List[Dict[str, Any]]:
    """Classrooms the teacher is class teacher of"""
    _, _, classrooms = get_collections(db)
    return list(classrooms.find({"classTeacher": teacher_id, "school": school_id}).sort("_id", ASCENDING))


def find_children(db: Database, parent_email: str, school_id: Any) -> List[Dict[str, Any]]:
    """Students that list the parent's email as their parent contact"""
    _, users, _ = get_collections(db)
    return list(users.find({"parentEmail": parent_email, "role": "student", "school": school_id}).sort("_id", ASCENDING))


def find_parent_by_email(db: Database, email: str, school_id: Any) -> Optional[Dict[str, Any]]:
    _, users, _ = get_collections(db)
    return users.find_one({"email": email, "role": "parent", "school": school_id})


# Message CRUD operations
def create_message(db: Database, message_doc: Dict[str, Any]) -> str:
    messages, _, _ = get_collections(db)
    result = messages.insert_one(message_doc)
    return str(result.inserted_id)


def find_ai_exchanges(
    db: Database,
    student_id: ObjectId,
    school_id: ObjectId,
    limit: int,
    skip: int = 0,
) -> List[Dict[str, Any]]:
    """Tutor records for a student, newest first"""
    messages, _, _ = get_collections(db)
    return list(messages.find({
        "sender": student_id,
        "recipient": student_id,
        "kind": MESSAGE_KIND["AI_QUERY"],
        "school": school_id,
    }).sort([("created_at", DESCENDING), ("_id", DESCENDING)]).skip(skip).limit(limit))


def count_ai_exchanges(db: Database, student_id: ObjectId, school_id: ObjectId) -> int:
    messages, _, _ = get_collections(db)
    return messages.count_documents({
        "sender": student_id,
        "recipient": student_id,
        "kind": MESSAGE_KIND["AI_QUERY"],
        "school": school_id,
    })


def delete_ai_exchanges(db: Database, student_id: ObjectId, school_id: ObjectId) -> int:
    messages, _, _ = get_collections(db)
    result = messages.delete_many({
        "sender": student_id,
        "recipient": student_id,
        "kind": MESSAGE_KIND["AI_QUERY"],
        "school": school_id,
    })
    return result.deleted_count


def find_conversation(
    db: Database,
    user_id: ObjectId,
    other_user_id: ObjectId,
    school_id: ObjectId,
) -> List[Dict[str, Any]]:
    """Text messages exchanged by a pair, oldest first"""
    messages, _, _ = get_collections(db)
    return list(messages.find({
        "school": school_id,
        "kind": MESSAGE_KIND["TEXT"],
        "$or": [
            {"sender": user_id, "recipient": other_user_id},
            {"sender": other_user_id, "recipient": user_id},
        ],
    }).sort([("created_at", ASCENDING), ("_id", ASCENDING)]))


def mark_conversation_read(
    db: Database,
    reader_id: ObjectId,
    other_user_id: ObjectId,
    school_id: ObjectId,
    fields: Dict[str, Any],
) -> int:
    """Flip the read receipt on unread messages the reader received from the other user"""
    messages, _, _ = get_collections(db)
    result = messages.update_many(
        {
            "school": school_id,
            "kind": MESSAGE_KIND["TEXT"],
            "sender": other_user_id,
            "recipient": reader_id,
            "is_read": False,
        },
        {"$set": fields},
    )
    return result.modified_count


def find_participant_messages(db: Database, user_id: ObjectId, school_id: ObjectId) -> List[Dict[str, Any]]:
    """Every text message the user sent or received, newest first"""
    messages, _, _ = get_collections(db)
    return list(messages.find({
        "school": school_id,
        "kind": MESSAGE_KIND["TEXT"],
        "$or": [{"sender": user_id}, {"recipient": user_id}],
    }).sort([("created_at", DESCENDING), ("_id", DESCENDING)]))

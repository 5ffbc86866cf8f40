from typing import Any, Dict, Iterable, List, Optional

from pymongo.database import Database

from schoolhub.common.constants import DEFAULT_GRADE_LEVEL, DEFAULT_STUDENT_NAME
from schoolhub.database.mongo_collections import (
    find_children,
    find_parent_by_email,
    find_student_classroom,
    find_student_classrooms,
    find_teacher_classrooms,
    get_classroom,
    get_user,
    get_users,
)
from schoolhub.utils.object_ids import id_str, to_object_id


class IdentityDirectory:
    """Read-only view of the platform's users and classrooms"""

    def __init__(self, db: Database):
        self.db = db

    async def get_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        """User document for a client supplied id, None when unknown or malformed"""
        object_id = to_object_id(user_id)
        if object_id is None:
            return None
        return get_user(self.db, object_id)

    async def get_users(self, user_ids: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
        object_ids = [oid for oid in (to_object_id(user_id) for user_id in user_ids) if oid is not None]
        if not object_ids:
            return {}
        return {str(user["_id"]): user for user in get_users(self.db, object_ids)}

    async def get_grade_level(self, student: Dict[str, Any]) -> str:
        """Grade of the student's classroom, a neutral phrase when it cannot be resolved"""
        classroom = None
        classroom_id = to_object_id(student.get("classroom"))
        if classroom_id is not None:
            classroom = get_classroom(self.db, classroom_id)
        if classroom is None and student.get("school"):
            classroom = find_student_classroom(self.db, student["_id"], student["school"])

        if classroom and classroom.get("grade") not in (None, ""):
            return str(classroom["grade"])
        return DEFAULT_GRADE_LEVEL

    async def student_classrooms(self, student: Dict[str, Any]) -> List[Dict[str, Any]]:
        return find_student_classrooms(self.db, student["_id"], student.get("school"))

    async def teacher_classrooms(self, teacher: Dict[str, Any]) -> List[Dict[str, Any]]:
        return find_teacher_classrooms(self.db, teacher["_id"], teacher.get("school"))

    async def children_of(self, parent: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Students of the parent's school registered with the parent's email"""
        if not parent.get("email"):
            return []
        return find_children(self.db, parent["email"], parent.get("school"))

    async def parent_of(self, student: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not student.get("parentEmail"):
            return None
        return find_parent_by_email(self.db, student["parentEmail"], student.get("school"))


def display_name(user: Dict[str, Any]) -> str:
    return user.get("name") or DEFAULT_STUDENT_NAME


def school_of(user: Dict[str, Any]) -> Optional[str]:
    return id_str(user.get("school"))


def public_profile(user: Dict[str, Any]) -> Dict[str, Any]:
    """The populated identity shape pushed to clients"""
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "role": user.get("role"),
        "email": user.get("email"),
    }
